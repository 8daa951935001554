"""Logging setup shared by the CLI and the HTTP app."""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Install one stream handler on the ``solaris`` logger.

    Calling it again only changes the level, so the CLI callback and the
    FastAPI lifespan can both call it safely.
    """
    root = logging.getLogger("solaris")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)

    if not any(getattr(h, "_solaris", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._solaris = True  # type: ignore[attr-defined]
        root.addHandler(handler)
