"""Credential store — persisted identities behind a small contract.

Learn: The gate and the linker only ever talk to the CredentialStore
protocol, never to SQLAlchemy directly. SqlCredentialStore is the real
implementation. Each method opens its own session and commits on its own,
so every write is atomic: a cancelled request can't leave half a user.

Uniqueness (email, external_id) is the database's job. A losing insert
surfaces as DuplicateKeyError; the caller decides whether to retry.
Anything else that goes wrong talking to the database becomes
InfrastructureError, which the API reports as a 500 — never as
"bad credentials".
"""

import asyncio
import enum
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Protocol, Union

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventease.auth import password as passwords
from eventease.db.models import User
from eventease.errors import DuplicateKeyError, InfrastructureError, NotFoundError

logger = structlog.get_logger()

UserId = Union[str, uuid.UUID]

# Columns callers may change through update(); `password` is hashed first
UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "email",
        "password",
        "password_hash",
        "external_id",
        "role",
        "avatar_url",
        "is_verified",
        "last_login_at",
    }
)


class CredentialStore(Protocol):
    async def find_by_id(self, user_id: UserId) -> Optional[User]: ...

    async def find_by_email(self, email: str) -> Optional[User]: ...

    async def find_by_external_id(self, external_id: str) -> Optional[User]: ...

    async def create(self, **fields) -> User: ...

    async def update(self, user_id: UserId, **fields) -> User: ...

    async def verify_password(self, user: User, password: str) -> bool: ...


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _parse_id(user_id: UserId) -> Optional[uuid.UUID]:
    if isinstance(user_id, uuid.UUID):
        return user_id
    try:
        return uuid.UUID(str(user_id))
    except ValueError:
        return None


def _role_value(role) -> str:
    return role.value if isinstance(role, enum.Enum) else str(role)


def _duplicate_message(exc: IntegrityError) -> str:
    detail = str(exc.orig).lower()
    if "external_id" in detail:
        return "External account is already linked to another user"
    if "email" in detail:
        return "Email already exists"
    return "Resource already exists"


class SqlCredentialStore:
    """CredentialStore backed by the users table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        bcrypt_rounds: int = passwords.DEFAULT_ROUNDS,
    ):
        self._session_factory = session_factory
        self._bcrypt_rounds = bcrypt_rounds
        self._dummy_hash: Optional[str] = None

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except IntegrityError as exc:
            raise DuplicateKeyError(_duplicate_message(exc)) from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error("store.unavailable", error=str(exc))
            raise InfrastructureError("Credential store unavailable") from exc

    async def hash_password(self, password: str) -> str:
        # bcrypt is CPU-bound; keep it off the event loop
        return await asyncio.to_thread(
            passwords.hash_password, password, self._bcrypt_rounds
        )

    # ─── Lookups ────────────────────────────────────────

    async def find_by_id(self, user_id: UserId) -> Optional[User]:
        uid = _parse_id(user_id)
        if uid is None:
            return None
        async with self._session() as session:
            return await session.get(User, uid)

    async def find_by_email(self, email: str) -> Optional[User]:
        async with self._session() as session:
            result = await session.execute(
                select(User).where(User.email == normalize_email(email))
            )
            return result.scalars().first()

    async def find_by_external_id(self, external_id: str) -> Optional[User]:
        async with self._session() as session:
            result = await session.execute(
                select(User).where(User.external_id == external_id)
            )
            return result.scalars().first()

    async def list_identities(self, role: Optional[str] = None) -> list[User]:
        q = select(User).order_by(User.created_at.desc())
        if role:
            q = q.where(User.role == role)
        async with self._session() as session:
            result = await session.execute(q)
            return list(result.scalars().all())

    # ─── Writes ─────────────────────────────────────────

    async def create(
        self,
        *,
        name: str,
        email: str,
        password: Optional[str] = None,
        password_hash: Optional[str] = None,
        role: str = "guest",
        external_id: Optional[str] = None,
        avatar_url: Optional[str] = None,
        is_verified: bool = False,
        last_login_at=None,
    ) -> User:
        """Insert a new user. Exactly one of password/password_hash is required."""
        if (password is None) == (password_hash is None):
            raise ValueError("create() needs exactly one of password or password_hash")
        if password is not None:
            password_hash = await self.hash_password(password)

        user = User(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=password_hash,
            role=_role_value(role),
            external_id=external_id,
            avatar_url=avatar_url,
            is_verified=is_verified,
            last_login_at=last_login_at,
        )
        async with self._session() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        logger.info("store.user_created", user_id=str(user.id), role=user.role)
        return user

    async def update(self, user_id: UserId, **fields) -> User:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        if "password" in fields:
            fields["password_hash"] = await self.hash_password(fields.pop("password"))
        if fields.get("email") is not None:
            fields["email"] = normalize_email(fields["email"])
        if fields.get("role") is not None:
            fields["role"] = _role_value(fields["role"])

        uid = _parse_id(user_id)
        async with self._session() as session:
            user = await session.get(User, uid) if uid else None
            if user is None:
                raise NotFoundError("User not found")
            for key, value in fields.items():
                setattr(user, key, value)
            await session.commit()
            await session.refresh(user)
        return user

    async def delete(self, user_id: UserId) -> None:
        uid = _parse_id(user_id)
        async with self._session() as session:
            user = await session.get(User, uid) if uid else None
            if user is None:
                raise NotFoundError("User not found")
            await session.delete(user)
            await session.commit()
        logger.info("store.user_deleted", user_id=str(uid))

    # ─── Credentials ────────────────────────────────────

    async def verify_password(self, user: User, password: str) -> bool:
        return await asyncio.to_thread(
            passwords.verify_password, password, user.password_hash
        )

    async def verify_password_for_unknown(self, password: str) -> bool:
        """Spend a full bcrypt check on a login for an email with no account.

        Always False. Keeps "no such email" as slow as "wrong password".
        """
        if self._dummy_hash is None:
            self._dummy_hash = await asyncio.to_thread(
                passwords.unusable_password_hash, self._bcrypt_rounds
            )
        await asyncio.to_thread(passwords.verify_password, password, self._dummy_hash)
        return False
