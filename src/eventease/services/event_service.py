"""Event service — business logic for events.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database. Ownership checks
live here too, next to the load that fetches the row being checked, so
no route can forget them.
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventease.auth.gate import CurrentIdentity
from eventease.auth.policy import ensure_can_mutate
from eventease.db.models import Event, Rsvp
from eventease.errors import NotFoundError


class EventService:
    """Business logic for event management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_event(self, organizer: CurrentIdentity, **fields) -> Event:
        """Any signed-in user may organize an event."""
        event = Event(organizer_id=organizer.id, **fields)
        self.db.add(event)
        await self.db.commit()
        await self.db.refresh(event)
        return event

    async def list_events(
        self,
        viewer: Optional[CurrentIdentity] = None,
        status: Optional[str] = None,
    ) -> list[tuple[Event, Optional[str]]]:
        """All events, soonest first, with the viewer's RSVP status if any.

        status narrows the list to active, cancelled or completed events.
        """
        query = select(Event).order_by(Event.date)
        if status is not None:
            query = query.where(Event.status == status)
        result = await self.db.execute(query)
        events = list(result.scalars().all())

        statuses: dict[uuid.UUID, str] = {}
        if viewer is not None and events:
            rsvps = await self.db.execute(
                select(Rsvp.event_id, Rsvp.status).where(
                    Rsvp.user_id == viewer.id,
                    Rsvp.event_id.in_([e.id for e in events]),
                )
            )
            statuses = {event_id: status for event_id, status in rsvps.all()}

        return [(event, statuses.get(event.id)) for event in events]

    async def get_event(self, event_id: uuid.UUID) -> Event:
        event = await self.db.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    async def update_event(
        self, identity: CurrentIdentity, event_id: uuid.UUID, **fields
    ) -> Event:
        event = await self.get_event(event_id)
        ensure_can_mutate(
            identity, event, "organizer_id", "Not authorized to update this event"
        )
        for key, value in fields.items():
            setattr(event, key, value)
        await self.db.commit()
        await self.db.refresh(event)
        return event

    async def delete_event(self, identity: CurrentIdentity, event_id: uuid.UUID) -> None:
        event = await self.get_event(event_id)
        ensure_can_mutate(
            identity, event, "organizer_id", "Not authorized to delete this event"
        )
        await self.db.delete(event)
        await self.db.commit()
