"""RSVP API routes.

Learn: Answering an invitation is strictly personal: only the invited
guest may create the RSVP, admins included. Changing or withdrawing it
afterwards follows the usual rule (the guest, or an admin).
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventease.auth.gate import CurrentIdentity, require_auth
from eventease.db.engine import get_db
from eventease.schemas.event import RsvpCreate, RsvpRead, RsvpUpdate
from eventease.services.invitation_service import RsvpService

router = APIRouter(prefix="/rsvps")


def _svc(db: AsyncSession = Depends(get_db)) -> RsvpService:
    return RsvpService(db)


@router.post("", status_code=201)
async def create_rsvp(
    body: RsvpCreate,
    identity: CurrentIdentity = Depends(require_auth),
    svc: RsvpService = Depends(_svc),
):
    rsvp = await svc.create_rsvp(
        identity,
        body.invitation_id,
        status=body.status,
        guests_count=body.guests_count,
        notes=body.notes,
    )
    return {"success": True, "data": RsvpRead.model_validate(rsvp)}


@router.get("/mine")
async def my_rsvps(
    identity: CurrentIdentity = Depends(require_auth),
    svc: RsvpService = Depends(_svc),
):
    rsvps = await svc.list_for_user(identity)
    return {
        "success": True,
        "count": len(rsvps),
        "data": [RsvpRead.model_validate(r) for r in rsvps],
    }


@router.put("/{rsvp_id}")
async def update_rsvp(
    rsvp_id: uuid.UUID,
    body: RsvpUpdate,
    identity: CurrentIdentity = Depends(require_auth),
    svc: RsvpService = Depends(_svc),
):
    rsvp = await svc.update_rsvp(
        identity, rsvp_id, **body.model_dump(exclude_unset=True, exclude_none=True)
    )
    return {"success": True, "data": RsvpRead.model_validate(rsvp)}


@router.delete("/{rsvp_id}")
async def delete_rsvp(
    rsvp_id: uuid.UUID,
    identity: CurrentIdentity = Depends(require_auth),
    svc: RsvpService = Depends(_svc),
):
    await svc.delete_rsvp(identity, rsvp_id)
    return {"success": True, "message": "RSVP deleted successfully"}
