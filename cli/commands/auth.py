"""Local account commands."""

from __future__ import annotations

import typer

from solaris import auth
from solaris.db import get_connection, init_db
from solaris.errors import AuthError

auth_app = typer.Typer(help="Sign in to the local case workspace.")


@auth_app.command("signup")
def auth_signup(
    email: str = typer.Option(..., prompt=True, help="Account email."),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Password."),
    username: str = typer.Option("", help="Display name (defaults to the email's local part)."),
) -> None:
    """Create an account and sign it in."""
    conn = get_connection()
    init_db(conn)
    try:
        user = auth.sign_up(conn, email, password, username or None)
    except (AuthError, ValueError) as exc:
        typer.echo(f"❌ {exc}")
        raise typer.Exit(code=1)
    finally:
        conn.close()
    typer.echo(f"✅ Signed up as {user.username} <{user.email}>")


@auth_app.command("signin")
def auth_signin(
    email: str = typer.Option(..., prompt=True, help="Account email."),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Password."),
) -> None:
    """Sign in with an existing account."""
    conn = get_connection()
    init_db(conn)
    try:
        user = auth.sign_in(conn, email, password)
    except AuthError as exc:
        typer.echo(f"❌ {exc}")
        raise typer.Exit(code=1)
    finally:
        conn.close()
    typer.echo(f"✅ Signed in as {user.username} <{user.email}>")


@auth_app.command("signout")
def auth_signout() -> None:
    conn = get_connection()
    init_db(conn)
    try:
        auth.sign_out(conn)
    finally:
        conn.close()
    typer.echo("Signed out.")


@auth_app.command("whoami")
def auth_whoami() -> None:
    """Show the signed-in user."""
    conn = get_connection()
    init_db(conn)
    try:
        user = auth.current_user(conn)
    finally:
        conn.close()
    if user is None:
        typer.echo("Not signed in.")
        raise typer.Exit(code=1)
    typer.echo(f"{user.username} <{user.email}>")
