"""Runtime configuration and startup validation."""
