"""Authentication gate — request → identity.

Learn: These are used as Depends() in route handlers to extract and
validate the current user from the request.

Token lookup order:
1. `Authorization: Bearer <token>` header (API clients, mobile)
2. `token` cookie (browsers, set by login and the Google callback)

Two modes over the same core:
- require_auth: the "hard" dependency — 401 unless a valid token resolves
  to a user that still exists
- attach_if_present: the "soft" dependency — same checks, but any failure
  just means "anonymous"

Deleting a user is how its tokens get revoked: the gate looks the subject
up on every request and treats a missing user as a bad token.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Request

from eventease.auth.store import CredentialStore
from eventease.auth.tokens import TokenErrorKind, TokenService, TokenVerificationError
from eventease.db.models import User
from eventease.errors import AppError, AuthenticationError

logger = structlog.get_logger()


@dataclass(frozen=True)
class CurrentIdentity:
    """The authenticated user making the request.

    Learn: A copy of the user row minus the password hash. Downstream code
    uses this for ownership and role checks; it never sees credentials.
    """

    id: uuid.UUID
    name: str
    email: str
    role: str
    avatar_url: Optional[str] = None
    is_verified: bool = False

    @classmethod
    def from_user(cls, user: User) -> "CurrentIdentity":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            avatar_url=user.avatar_url,
            is_verified=user.is_verified,
        )


class AuthGate:
    """Extracts, verifies, and resolves bearer tokens."""

    def __init__(
        self,
        tokens: TokenService,
        store: CredentialStore,
        cookie_name: str = "token",
    ):
        self.tokens = tokens
        self.store = store
        self.cookie_name = cookie_name

    def extract_token(self, request: Request) -> Optional[str]:
        """Bearer header first, then cookie. None when neither is present."""
        authorization = request.headers.get("Authorization", "")
        if authorization.startswith("Bearer "):
            token = authorization[7:].strip()
            if token:
                return token
        return request.cookies.get(self.cookie_name) or None

    async def authenticate(self, request: Request) -> CurrentIdentity:
        """Strict mode. Raises AuthenticationError (401).

        Store failures propagate as InfrastructureError (500).
        """
        token = self.extract_token(request)
        if not token:
            raise AuthenticationError("No token provided")

        try:
            claims = self.tokens.verify(token)
        except TokenVerificationError as e:
            logger.info("auth.token_rejected", reason=e.kind.value)
            if e.kind is TokenErrorKind.EXPIRED:
                raise AuthenticationError("Token has expired")
            raise AuthenticationError("Invalid token")

        user = await self.store.find_by_id(claims.subject_id)
        if user is None:
            logger.info("auth.subject_missing", subject=claims.subject_id)
            raise AuthenticationError("User not found")

        return CurrentIdentity.from_user(user)

    async def authenticate_optional(self, request: Request) -> Optional[CurrentIdentity]:
        """Optional mode. Never raises; returns None when anything is off."""
        if not self.extract_token(request):
            return None
        try:
            return await self.authenticate(request)
        except AuthenticationError:
            return None
        except AppError as e:
            logger.warning("auth.optional_lookup_failed", error=e.message)
            return None


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


async def require_auth(
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no valid token)."""
    identity = await gate.authenticate(request)
    request.state.user = identity
    return identity


async def attach_if_present(
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — None if absent or invalid)."""
    identity = await gate.authenticate_optional(request)
    request.state.user = identity
    return identity
