"""Invitation API routes.

Learn: Only an event's organizer (or an admin) sends invitations for it.
Guests see the invitations addressed to them via GET /invitations/mine.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventease.auth.gate import CurrentIdentity, require_auth
from eventease.db.engine import get_db
from eventease.schemas.event import InvitationCreate, InvitationRead, InvitationUpdate
from eventease.services.invitation_service import InvitationService

router = APIRouter(prefix="/invitations")


def _svc(db: AsyncSession = Depends(get_db)) -> InvitationService:
    return InvitationService(db)


@router.post("", status_code=201)
async def create_invitation(
    body: InvitationCreate,
    identity: CurrentIdentity = Depends(require_auth),
    svc: InvitationService = Depends(_svc),
):
    invitation = await svc.create_invitation(
        identity, body.event_id, body.guest_id, body.message
    )
    return {"success": True, "data": InvitationRead.model_validate(invitation)}


@router.get("/mine")
async def my_invitations(
    identity: CurrentIdentity = Depends(require_auth),
    svc: InvitationService = Depends(_svc),
):
    invitations = await svc.list_for_guest(identity)
    return {
        "success": True,
        "count": len(invitations),
        "data": [InvitationRead.model_validate(i) for i in invitations],
    }


@router.get("/{invitation_id}")
async def get_invitation(
    invitation_id: uuid.UUID,
    identity: CurrentIdentity = Depends(require_auth),
    svc: InvitationService = Depends(_svc),
):
    invitation = await svc.get_visible_invitation(identity, invitation_id)
    return {"success": True, "data": InvitationRead.model_validate(invitation)}


@router.put("/{invitation_id}")
async def update_invitation(
    invitation_id: uuid.UUID,
    body: InvitationUpdate,
    identity: CurrentIdentity = Depends(require_auth),
    svc: InvitationService = Depends(_svc),
):
    invitation = await svc.update_invitation(
        identity,
        invitation_id,
        **body.model_dump(exclude_unset=True, exclude_none=True),
    )
    return {"success": True, "data": InvitationRead.model_validate(invitation)}


@router.delete("/{invitation_id}")
async def delete_invitation(
    invitation_id: uuid.UUID,
    identity: CurrentIdentity = Depends(require_auth),
    svc: InvitationService = Depends(_svc),
):
    await svc.delete_invitation(identity, invitation_id)
    return {"success": True, "message": "Invitation deleted successfully"}
