"""Read-only access to a ``KEY=value`` dotenv file."""

from __future__ import annotations

from pathlib import Path


class EnvFile:
    """Parses a ``.env`` file on every read so edits are picked up on reload.

    Blank lines and ``#`` comments are skipped; surrounding single or double
    quotes are removed from values. A missing file reads as empty.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self, key: str) -> str:
        return self.read_all().get(key, "")

    def read_all(self) -> dict[str, str]:
        if not self.path.is_file():
            return {}
        values: dict[str, str] = {}
        for raw in self.path.read_text().splitlines():
            line = raw.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            if key.startswith("export "):
                key = key[len("export "):].strip()
            values[key] = _unquote(value.strip())
        return values


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value
