"""EventEase CLI — run the API and handle one-off admin chores.

Usage:
    eventease serve                          # Run the API with uvicorn
    eventease serve --reload                 # ...restarting on code changes
    eventease create-admin ops@example.com   # Promote (or create) an admin
    eventease generate-secret                # Print a fresh EVENTEASE_JWT_SECRET

Admin is never self-assignable through the API, so the first admin has
to come from here.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import secrets
import sys
from typing import Optional

import click

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop: normal CLI invocation
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _load_settings():
    """Import settings lazily so generate-secret works without a secret.

    The import itself builds the module-level settings, so it sits inside
    the try too.
    """
    try:
        from eventease.config import Settings

        return Settings()
    except ValueError as e:
        raise click.ClickException(f"Configuration error: {e}") from e


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="eventease")
def main():
    """EventEase — event planning API."""


# ---------------------------------------------------------------------------
# eventease serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", help="Bind address (default: EVENTEASE_HOST)")
@click.option("--port", "-p", type=int, help="Port (default: EVENTEASE_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes (development)")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    settings = _load_settings()
    uvicorn.run(
        "eventease.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="debug" if settings.debug else "info",
    )


# ---------------------------------------------------------------------------
# eventease create-admin
# ---------------------------------------------------------------------------


@main.command("create-admin")
@click.argument("email")
@click.option("--name", "-n", default="Administrator", help="Display name for a new account")
@click.option("--password", help="Password for a new account (prompted if omitted)")
def create_admin(email: str, name: str, password: Optional[str]):
    """Give EMAIL the admin role, creating the account if needed."""
    settings = _load_settings()
    _run(_create_admin_impl(settings, email, name, password))


async def _create_admin_impl(settings, email: str, name: str, password: Optional[str]):
    from eventease.auth.policy import Role
    from eventease.auth.store import SqlCredentialStore, normalize_email
    from eventease.db.engine import build_engine, build_session_factory
    from eventease.errors import AppError

    engine = build_engine(settings)
    store = SqlCredentialStore(
        build_session_factory(engine), bcrypt_rounds=settings.bcrypt_rounds
    )
    try:
        user = await store.find_by_email(normalize_email(email))
        if user is None:
            if password is None:
                password = click.prompt(
                    "Password for the new account",
                    hide_input=True,
                    confirmation_prompt=True,
                )
            if len(password) < 6:
                raise click.ClickException("Password must be at least 6 characters")
            user = await store.create(
                name=name,
                email=email,
                password=password,
                role=Role.ADMIN,
                is_verified=True,
            )
            click.secho(f"Created admin {user.email} ({user.id})", fg="green")
        elif user.role == Role.ADMIN.value:
            click.echo(f"{user.email} is already an admin")
        else:
            user = await store.update(user.id, role=Role.ADMIN)
            click.secho(f"Promoted {user.email} to admin", fg="green")
    except AppError as e:
        raise click.ClickException(e.message) from e
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# eventease generate-secret
# ---------------------------------------------------------------------------


@main.command("generate-secret")
@click.option("--bytes", "-b", "nbytes", default=48, show_default=True,
              help="Random bytes before encoding (min 32)")
def generate_secret(nbytes: int):
    """Print a random value for EVENTEASE_JWT_SECRET."""
    if nbytes < 32:
        click.secho("Use at least 32 bytes for an HS256 secret", fg="red", err=True)
        sys.exit(1)
    click.echo(secrets.token_urlsafe(nbytes))


if __name__ == "__main__":
    main()
