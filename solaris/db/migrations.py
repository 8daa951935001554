"""Database initialisation.

``init_db(conn)`` is idempotent and safe to call on an existing database.
"""

from __future__ import annotations

import sqlite3

from solaris.config import settings


def init_db(conn: sqlite3.Connection) -> None:
    """Create the account tables if they do not exist."""
    conn.executescript(settings.schema_path.read_text(encoding="utf-8"))
