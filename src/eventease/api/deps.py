"""Shared route dependencies — app.state accessors and the token cookie.

Learn: create_app() builds the auth collaborators once; these small
functions hand them to route handlers through Depends(), which also makes
them easy to override in tests via app.dependency_overrides.
"""

from typing import Optional

from fastapi import Request, Response

from eventease.auth.linker import IdentityLinker
from eventease.auth.oauth import GoogleOAuthClient
from eventease.auth.store import SqlCredentialStore
from eventease.auth.tokens import TokenService
from eventease.config import Settings
from eventease.db.models import User
from eventease.schemas.user import UserRead


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> SqlCredentialStore:
    return request.app.state.store


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def get_linker(request: Request) -> IdentityLinker:
    return request.app.state.linker


def get_google(request: Request) -> Optional[GoogleOAuthClient]:
    return request.app.state.google


# ─── Token cookie ────────────────────────────────────────


def set_token_cookie(response: Response, token: str, settings: Settings) -> None:
    """HttpOnly cookie with the same lifetime as the token inside it."""
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=int(settings.token_lifetime.total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        path="/",
    )


def clear_token_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        path="/",
    )


def auth_payload(user: User, token: str, message: str) -> dict:
    return {
        "success": True,
        "message": message,
        "token": token,
        "data": UserRead.model_validate(user).model_dump(mode="json"),
    }
