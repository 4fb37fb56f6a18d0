"""Authorization policy — role and ownership checks.

Learn: These run after the gate has attached an identity. The predicates
(has_role, is_owner, can_mutate) are pure and return bools; the ensure_*
helpers raise PermissionDeniedError (403) so route code reads as a list
of preconditions. 403 means "we know who you are, and no" — never use it
for a missing or bad token, that's the gate's 401.
"""

import enum
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from fastapi import Depends

from eventease.auth.gate import CurrentIdentity, require_auth
from eventease.errors import PermissionDeniedError


class Role(str, enum.Enum):
    GUEST = "guest"
    ORGANIZER = "organizer"
    ADMIN = "admin"


# Roles a user may pick for themselves at sign-up
SELF_ASSIGNABLE_ROLES = frozenset({Role.GUEST, Role.ORGANIZER})


def _role_of(identity: CurrentIdentity) -> Optional[Role]:
    try:
        return Role(identity.role)
    except ValueError:
        return None


def has_role(identity: CurrentIdentity, allowed_roles: Iterable) -> bool:
    allowed = {Role(r) for r in allowed_roles}
    return _role_of(identity) in allowed


def is_admin(identity: CurrentIdentity) -> bool:
    return _role_of(identity) is Role.ADMIN


def _owner_of(resource: Any, owner_field: str) -> Any:
    if isinstance(resource, Mapping):
        return resource.get(owner_field)
    return getattr(resource, owner_field, None)


def is_owner(identity: CurrentIdentity, resource: Any, owner_field: str) -> bool:
    """True when the resource's owner_field holds the identity's id."""
    owner = _owner_of(resource, owner_field)
    return owner is not None and str(owner) == str(identity.id)


def can_mutate(identity: CurrentIdentity, resource: Any, owner_field: str) -> bool:
    """Owners may change their own resources; admins may change anything."""
    return is_owner(identity, resource, owner_field) or is_admin(identity)


def ensure_role(identity: CurrentIdentity, allowed_roles: Iterable) -> None:
    allowed = list(allowed_roles)
    if not has_role(identity, allowed):
        raise PermissionDeniedError(
            f"User role {identity.role} is not authorized to access this route"
        )


def ensure_can_mutate(
    identity: CurrentIdentity,
    resource: Any,
    owner_field: str,
    message: str = "Not authorized to modify this resource",
) -> None:
    if not can_mutate(identity, resource, owner_field):
        raise PermissionDeniedError(message)


def ensure_owner(
    identity: CurrentIdentity,
    resource: Any,
    owner_field: str,
    message: str = "Not authorized to access this resource",
) -> None:
    """Strict ownership, no admin override."""
    if not is_owner(identity, resource, owner_field):
        raise PermissionDeniedError(message)


def require_role(*roles):
    """Dependency factory: authenticated AND holding one of `roles`.

    Usage: `identity: CurrentIdentity = Depends(require_role(Role.ADMIN))`
    """

    async def dependency(
        identity: CurrentIdentity = Depends(require_auth),
    ) -> CurrentIdentity:
        ensure_role(identity, roles)
        return identity

    return dependency
