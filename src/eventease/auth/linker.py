"""External identity linker — Google profile → local user + token.

Learn: After Google sign-in completes we know an external account id,
an email, a display name and maybe a picture. The linker decides which
local user that is, first match wins:

1. A user already linked to this external id → returning user
2. A user with the same email → link the Google account to it
3. Nobody → create a guest account with an unusable password

then stamps last_login_at and issues a token.

Step 2 trusts the provider's claim that the person controls the email.
We only take that path when the provider says the email is verified, and
it can be switched off entirely (EVENTEASE_OAUTH_AUTO_LINK=false); the
user then has to sign in with their password instead.

Two first-time sign-ins for the same Google account can race. The
database lets exactly one insert win; the loser gets DuplicateKeyError,
and one retry through the lookups finds the winner's row.
"""

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import structlog

from eventease.auth.password import unusable_password_hash
from eventease.auth.policy import Role
from eventease.auth.store import CredentialStore, normalize_email
from eventease.auth.tokens import TokenService
from eventease.db.models import User, utcnow
from eventease.errors import AppError, DuplicateKeyError, LinkingFailedError

logger = structlog.get_logger()


@dataclass(frozen=True)
class ExternalProfile:
    """Normalized profile from a completed OAuth handshake."""

    external_id: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email_verified: bool = True


@dataclass(frozen=True)
class LinkResult:
    identity: User
    token: str
    created: bool = False
    linked: bool = False


class IdentityLinker:
    def __init__(
        self,
        store: CredentialStore,
        tokens: TokenService,
        auto_link: bool = True,
        lifetime: Optional[timedelta] = None,
        bcrypt_rounds: int = 12,
    ):
        self.store = store
        self.tokens = tokens
        self.auto_link = auto_link
        self.lifetime = lifetime
        self.bcrypt_rounds = bcrypt_rounds

    async def link(self, profile: ExternalProfile) -> LinkResult:
        """Resolve profile to a user, record the login, issue a token.

        Raises LinkingFailedError for every failure; the message is safe
        to show to clients and never carries store internals.
        """
        if not profile.external_id or not profile.email:
            raise LinkingFailedError()

        for attempt in range(2):
            try:
                user, created, linked = await self._resolve(profile)
                break
            except DuplicateKeyError:
                if attempt:
                    logger.warning(
                        "oauth.link_conflict", external_id=profile.external_id
                    )
                    raise LinkingFailedError()
                logger.info("oauth.link_race_retry", external_id=profile.external_id)
            except LinkingFailedError:
                raise
            except AppError as e:
                logger.error("oauth.link_failed", error=e.message)
                raise LinkingFailedError() from e

        try:
            user = await self.store.update(user.id, last_login_at=utcnow())
        except AppError as e:
            logger.error("oauth.login_stamp_failed", user_id=str(user.id), error=e.message)
            raise LinkingFailedError() from e

        token = self.tokens.issue(str(user.id), self.lifetime)
        logger.info(
            "oauth.login",
            user_id=str(user.id),
            created=created,
            linked=linked,
        )
        return LinkResult(identity=user, token=token, created=created, linked=linked)

    async def _resolve(self, profile: ExternalProfile) -> tuple[User, bool, bool]:
        user = await self.store.find_by_external_id(profile.external_id)
        if user is not None:
            return user, False, False

        email = normalize_email(profile.email)
        user = await self.store.find_by_email(email)
        if user is not None:
            return await self._link_existing(user, profile), False, True

        user = await self.store.create(
            name=profile.display_name or email.split("@")[0],
            email=email,
            password_hash=await asyncio.to_thread(
                unusable_password_hash, self.bcrypt_rounds
            ),
            role=Role.GUEST,
            external_id=profile.external_id,
            avatar_url=profile.avatar_url,
            is_verified=True,
        )
        return user, True, False

    async def _link_existing(self, user: User, profile: ExternalProfile) -> User:
        if not self.auto_link:
            logger.info("oauth.auto_link_disabled", user_id=str(user.id))
            raise LinkingFailedError(
                "An account with this email already exists. Sign in with your password."
            )
        if not profile.email_verified:
            logger.warning("oauth.unverified_email", user_id=str(user.id))
            raise LinkingFailedError()
        if user.external_id and user.external_id != profile.external_id:
            logger.warning("oauth.already_linked_elsewhere", user_id=str(user.id))
            raise LinkingFailedError()

        fields = {"external_id": profile.external_id, "is_verified": True}
        if not user.avatar_url and profile.avatar_url:
            fields["avatar_url"] = profile.avatar_url
        return await self.store.update(user.id, **fields)
