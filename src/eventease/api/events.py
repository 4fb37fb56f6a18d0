"""Event API routes.

Learn: Routes receive the service via Depends() and delegate; ownership
checks happen inside the service. The list endpoint uses the optional
gate: anonymous visitors see the same events, signed-in users also get
their own RSVP status on each one.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from eventease.auth.gate import CurrentIdentity, attach_if_present, require_auth
from eventease.db.engine import get_db
from eventease.schemas.event import EventCreate, EventRead, EventUpdate
from eventease.services.event_service import EventService

router = APIRouter(prefix="/events")


def _svc(db: AsyncSession = Depends(get_db)) -> EventService:
    return EventService(db)


@router.post("", status_code=201)
async def create_event(
    body: EventCreate,
    identity: CurrentIdentity = Depends(require_auth),
    svc: EventService = Depends(_svc),
):
    event = await svc.create_event(identity, **body.model_dump())
    return {"success": True, "data": EventRead.model_validate(event)}


@router.get("")
async def list_events(
    status: Optional[str] = Query(None, pattern=r"^(active|cancelled|completed)$"),
    viewer: Optional[CurrentIdentity] = Depends(attach_if_present),
    svc: EventService = Depends(_svc),
):
    rows = await svc.list_events(viewer, status=status)
    data = [
        EventRead.model_validate(event).model_copy(update={"my_rsvp_status": rsvp_status})
        for event, rsvp_status in rows
    ]
    return {"success": True, "count": len(data), "data": data}


@router.get("/{event_id}")
async def get_event(event_id: uuid.UUID, svc: EventService = Depends(_svc)):
    event = await svc.get_event(event_id)
    return {"success": True, "data": EventRead.model_validate(event)}


@router.put("/{event_id}")
async def update_event(
    event_id: uuid.UUID,
    body: EventUpdate,
    identity: CurrentIdentity = Depends(require_auth),
    svc: EventService = Depends(_svc),
):
    event = await svc.update_event(
        identity, event_id, **body.model_dump(exclude_unset=True, exclude_none=True)
    )
    return {"success": True, "data": EventRead.model_validate(event)}


@router.delete("/{event_id}")
async def delete_event(
    event_id: uuid.UUID,
    identity: CurrentIdentity = Depends(require_auth),
    svc: EventService = Depends(_svc),
):
    await svc.delete_event(identity, event_id)
    return {"success": True, "message": "Event deleted successfully"}
