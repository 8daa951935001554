"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from solaris.api import app

    uvicorn solaris.api:app --reload
"""

from solaris.api.app import app, create_app

__all__ = ["app", "create_app"]
