"""Users API — account management on top of the credential store.

Learn: POST /users and POST /users/login are aliases of the /auth routes
(same handlers, mounted twice). The rest needs a signed-in user:
- read: any signed-in user
- update/delete: yourself, or an admin
- role changes: admins only; nobody promotes themselves
- password change: yourself only, and only with the current password
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query

from eventease.api.auth import login, register
from eventease.api.deps import get_store
from eventease.auth.gate import CurrentIdentity, require_auth
from eventease.auth.policy import Role, ensure_can_mutate, ensure_owner, is_admin
from eventease.auth.store import SqlCredentialStore
from eventease.errors import AuthenticationError, NotFoundError, PermissionDeniedError
from eventease.schemas.user import AuthResponse, PasswordChange, UserRead, UserUpdate

logger = structlog.get_logger()

router = APIRouter(prefix="/users")

router.add_api_route(
    "", register, methods=["POST"], response_model=AuthResponse, status_code=201
)
router.add_api_route("/login", login, methods=["POST"], response_model=AuthResponse)


async def _load(store: SqlCredentialStore, user_id: str):
    user = await store.find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.get("")
async def list_users(
    role: Optional[Role] = Query(None),
    identity: CurrentIdentity = Depends(require_auth),
    store: SqlCredentialStore = Depends(get_store),
):
    users = await store.list_identities(role.value if role else None)
    return {
        "success": True,
        "count": len(users),
        "data": [UserRead.model_validate(u) for u in users],
    }


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    identity: CurrentIdentity = Depends(require_auth),
    store: SqlCredentialStore = Depends(get_store),
):
    user = await _load(store, user_id)
    return {"success": True, "data": UserRead.model_validate(user)}


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdate,
    identity: CurrentIdentity = Depends(require_auth),
    store: SqlCredentialStore = Depends(get_store),
):
    user = await _load(store, user_id)
    ensure_can_mutate(identity, user, "id", "Not authorized to update this user")

    fields = body.model_dump(exclude_unset=True, exclude_none=True)
    if "role" in fields and fields["role"] != user.role and not is_admin(identity):
        raise PermissionDeniedError("Only admins can change user roles")

    if fields:
        user = await store.update(user.id, **fields)
        logger.info(
            "users.updated",
            user_id=str(user.id),
            by=str(identity.id),
            fields=sorted(fields),
        )
    return {
        "success": True,
        "message": "User updated successfully",
        "data": UserRead.model_validate(user),
    }


@router.put("/{user_id}/password")
async def change_password(
    user_id: str,
    body: PasswordChange,
    identity: CurrentIdentity = Depends(require_auth),
    store: SqlCredentialStore = Depends(get_store),
):
    """Self-service only. Outstanding tokens stay valid."""
    user = await _load(store, user_id)
    ensure_owner(identity, user, "id", "Not authorized to change this password")
    if not await store.verify_password(user, body.current_password):
        raise AuthenticationError("Current password is incorrect")

    await store.update(user.id, password=body.new_password)
    logger.info("users.password_changed", user_id=str(user.id))
    return {"success": True, "message": "Password updated successfully"}


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    identity: CurrentIdentity = Depends(require_auth),
    store: SqlCredentialStore = Depends(get_store),
):
    """Deleting a user also revokes every token issued to it."""
    user = await _load(store, user_id)
    ensure_can_mutate(identity, user, "id", "Not authorized to delete this user")
    await store.delete(user.id)
    logger.info("users.deleted", user_id=str(user.id), by=str(identity.id))
    return {"success": True, "message": "User deleted successfully"}
