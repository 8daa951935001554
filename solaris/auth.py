"""Local account store guarding the case workspace.

This is a session boundary for a single-user desktop tool, not a security
layer: passwords are stored as given.
"""

from __future__ import annotations

import json
import logging
import secrets
import sqlite3
import string
from dataclasses import asdict, dataclass
from typing import Optional

from solaris.errors import AuthError

logger = logging.getLogger(__name__)

CURRENT_USER_KEY = "forensic_user"


@dataclass
class UserRecord:
    id: str
    email: str
    username: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def _new_user_id() -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(9))


def _remember(conn: sqlite3.Connection, user: UserRecord) -> None:
    with conn:
        conn.execute(
            "INSERT INTO kv(key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (CURRENT_USER_KEY, json.dumps(user.to_dict())),
        )


def sign_up(
    conn: sqlite3.Connection,
    email: str,
    password: str,
    username: Optional[str] = None,
) -> UserRecord:
    """Create an account and sign it in.

    Raises:
        ValueError: If the email or password is blank.
        AuthError: If the email is taken.
    """
    email = email.strip()
    if not email or not password:
        raise ValueError("Email and password are required")
    name = (username or "").strip() or email.split("@")[0]
    user = UserRecord(id=_new_user_id(), email=email, username=name)
    try:
        with conn:
            conn.execute(
                "INSERT INTO users(id, email, username, password) VALUES (?, ?, ?, ?)",
                (user.id, user.email, user.username, password),
            )
    except sqlite3.IntegrityError as exc:
        raise AuthError("User with this email already exists") from exc
    _remember(conn, user)
    logger.info("Signed up %s", email)
    return user


def sign_in(conn: sqlite3.Connection, email: str, password: str) -> UserRecord:
    """Sign in with an existing account.

    Raises:
        AuthError: If the email/password pair does not match.
    """
    row = conn.execute(
        "SELECT id, email, username FROM users WHERE email = ? AND password = ?",
        (email.strip(), password),
    ).fetchone()
    if row is None:
        raise AuthError("Invalid email or password")
    user = UserRecord(id=row["id"], email=row["email"], username=row["username"])
    _remember(conn, user)
    return user


def sign_out(conn: sqlite3.Connection) -> None:
    with conn:
        conn.execute("DELETE FROM kv WHERE key = ?", (CURRENT_USER_KEY,))


def current_user(conn: sqlite3.Connection) -> Optional[UserRecord]:
    """Return the signed-in user, or ``None``.

    A corrupt identity record is removed and treated as signed out.
    """
    row = conn.execute("SELECT value FROM kv WHERE key = ?", (CURRENT_USER_KEY,)).fetchone()
    if row is None:
        return None
    try:
        data = json.loads(row["value"])
        return UserRecord(id=data["id"], email=data["email"], username=data["username"])
    except (ValueError, KeyError, TypeError):
        logger.warning("Discarding corrupt identity record")
        sign_out(conn)
        return None
