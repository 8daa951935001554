"""Solaris CLI entry-point for the forensic case workspace.

Usage:
    python cli/main.py --help

Command groups:
    db        local account database
    auth      sign up / sign in
    analyze   extract a knowledge graph from evidence files
    chat      interactive session with the forensic assistant
    serve     run the HTTP API
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from solaris.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from typing import Optional

import typer

from cli.commands.auth import auth_app
from cli.commands.case import analyze, chat
from solaris.config import settings
from solaris.db import get_connection, init_db
from solaris.log import configure_logging

app = typer.Typer(
    name="solaris",
    help="Solaris forensic case workspace.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
) -> None:
    configure_logging(log_level or settings.log_level)


# ---------------------------------------------------------------------------
# db
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the account database (create tables if they do not exist)."""
    conn = get_connection()
    try:
        init_db(conn)
    finally:
        conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# auth / case
# ---------------------------------------------------------------------------
app.add_typer(auth_app, name="auth")
app.command("analyze")(analyze)
app.command("chat")(chat)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Port."),
    reload: bool = typer.Option(False, help="Auto-reload on code changes."),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("solaris.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
