"""cowsaybot -- renders ``!cowsay`` style chat commands through the ``cowsay`` binary."""

__version__ = "1.0.0"
