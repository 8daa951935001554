"""Persistent state for the Solaris CLI.

Remembers the evidence files of the last analysis so ``chat`` can reuse
them.  Stored in ``<workspace>/cli/context.json``.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from functools import wraps
from pathlib import Path
from typing import Any, Callable

import typer

from solaris.auth import current_user
from solaris.config import settings
from solaris.db import get_connection, init_db


@dataclass
class CliContext:
    last_files: list[str] = field(default_factory=list)
    last_export: str | None = None
    user_preferences: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, data: str) -> CliContext:
        try:
            raw = json.loads(data)
            return cls(**raw)
        except (json.JSONDecodeError, TypeError):
            return cls()


def _get_context_path() -> Path:
    """Return the path to the context JSON file."""
    return settings.cli_config_dir / "context.json"


def load_context() -> CliContext:
    """Load the CLI context from disk. Returns defaults if missing/corrupt."""
    path = _get_context_path()
    if not path.exists():
        return CliContext()
    try:
        return CliContext.from_json(path.read_text(encoding="utf-8"))
    except OSError:
        return CliContext()


def save_context(ctx: CliContext) -> None:
    """Save the CLI context to disk."""
    settings.cli_config_dir.mkdir(parents=True, exist_ok=True)
    _get_context_path().write_text(ctx.to_json(), encoding="utf-8")


def require_user(func: Callable) -> Callable:
    """Decorator for CLI commands that need a signed-in user.

    Aborts with exit code 1 if no identity is stored.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        conn = get_connection()
        init_db(conn)
        try:
            user = current_user(conn)
        finally:
            conn.close()
        if user is None:
            typer.echo("❌ Not signed in.")
            typer.echo("Run 'auth signin' or 'auth signup' first.")
            raise typer.Exit(code=1)
        return func(*args, **kwargs)

    return wrapper
