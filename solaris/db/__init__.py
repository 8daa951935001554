"""Database layer package.

Public re-exports so callers can write::

    from solaris.db import get_connection, init_db
"""

from solaris.db.connection import get_connection
from solaris.db.migrations import init_db

__all__ = ["get_connection", "init_db"]
