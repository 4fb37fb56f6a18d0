"""Invitation and RSVP services.

Learn: The two ownership rules of the planner meet here:
- invitations belong to the event's organizer (admins may step in)
- an RSVP can only be submitted by the invited guest — nobody answers on
  someone else's behalf, admins included
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventease.auth.gate import CurrentIdentity
from eventease.auth.policy import can_mutate, ensure_can_mutate, ensure_owner, is_owner
from eventease.db.models import Event, Invitation, Rsvp, User, utcnow
from eventease.errors import DuplicateKeyError, NotFoundError, PermissionDeniedError


class InvitationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_invitation(
        self,
        organizer: CurrentIdentity,
        event_id: uuid.UUID,
        guest_id: uuid.UUID,
        message: Optional[str] = None,
    ) -> Invitation:
        event = await self.db.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        ensure_can_mutate(
            organizer, event, "organizer_id",
            "Not authorized to send invitations for this event",
        )
        if guest_id == event.organizer_id:
            raise PermissionDeniedError("Organizer cannot invite themselves")
        if await self.db.get(User, guest_id) is None:
            raise NotFoundError("Guest not found")

        invitation = Invitation(
            event_id=event.id,
            guest_id=guest_id,
            organizer_id=event.organizer_id,
            message=message,
            status="sent",
            sent_at=utcnow(),
        )
        self.db.add(invitation)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateKeyError("Guest already invited to this event") from e
        await self.db.refresh(invitation)
        return invitation

    async def get_invitation(self, invitation_id: uuid.UUID) -> Invitation:
        invitation = await self.db.get(Invitation, invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation not found")
        return invitation

    async def get_visible_invitation(
        self, identity: CurrentIdentity, invitation_id: uuid.UUID
    ) -> Invitation:
        """Guest, organizer, or admin may read an invitation."""
        invitation = await self.get_invitation(invitation_id)
        if not (
            is_owner(identity, invitation, "guest_id")
            or can_mutate(identity, invitation, "organizer_id")
        ):
            raise PermissionDeniedError("Not authorized to view this invitation")
        return invitation

    async def list_for_guest(self, guest: CurrentIdentity) -> list[Invitation]:
        result = await self.db.execute(
            select(Invitation)
            .where(Invitation.guest_id == guest.id)
            .order_by(Invitation.created_at.desc())
        )
        return list(result.scalars().all())

    async def update_invitation(
        self, identity: CurrentIdentity, invitation_id: uuid.UUID, **fields
    ) -> Invitation:
        invitation = await self.get_invitation(invitation_id)
        ensure_can_mutate(
            identity, invitation, "organizer_id",
            "Not authorized to update this invitation",
        )
        for key, value in fields.items():
            setattr(invitation, key, value)
        await self.db.commit()
        await self.db.refresh(invitation)
        return invitation

    async def delete_invitation(
        self, identity: CurrentIdentity, invitation_id: uuid.UUID
    ) -> None:
        invitation = await self.get_invitation(invitation_id)
        ensure_can_mutate(
            identity, invitation, "organizer_id",
            "Not authorized to delete this invitation",
        )
        await self.db.delete(invitation)
        await self.db.commit()


class RsvpService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_rsvp(
        self,
        guest: CurrentIdentity,
        invitation_id: uuid.UUID,
        status: str,
        guests_count: int = 1,
        notes: Optional[str] = None,
    ) -> Rsvp:
        invitation = await self.db.get(Invitation, invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation not found")
        ensure_owner(
            guest, invitation, "guest_id",
            "Not authorized to RSVP for this invitation",
        )

        rsvp = Rsvp(
            invitation_id=invitation.id,
            user_id=guest.id,
            event_id=invitation.event_id,
            status=status,
            guests_count=guests_count,
            notes=notes or "",
            responded_at=utcnow(),
        )
        self.db.add(rsvp)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateKeyError("RSVP already submitted for this invitation") from e
        await self.db.refresh(rsvp)
        return rsvp

    async def get_rsvp(self, rsvp_id: uuid.UUID) -> Rsvp:
        rsvp = await self.db.get(Rsvp, rsvp_id)
        if rsvp is None:
            raise NotFoundError("RSVP not found")
        return rsvp

    async def list_for_user(self, user: CurrentIdentity) -> list[Rsvp]:
        result = await self.db.execute(
            select(Rsvp).where(Rsvp.user_id == user.id).order_by(Rsvp.responded_at.desc())
        )
        return list(result.scalars().all())

    async def update_rsvp(
        self, identity: CurrentIdentity, rsvp_id: uuid.UUID, **fields
    ) -> Rsvp:
        rsvp = await self.get_rsvp(rsvp_id)
        ensure_can_mutate(identity, rsvp, "user_id", "Not authorized to update this RSVP")
        for key, value in fields.items():
            setattr(rsvp, key, value)
        rsvp.responded_at = utcnow()
        await self.db.commit()
        await self.db.refresh(rsvp)
        return rsvp

    async def delete_rsvp(self, identity: CurrentIdentity, rsvp_id: uuid.UUID) -> None:
        rsvp = await self.get_rsvp(rsvp_id)
        ensure_can_mutate(identity, rsvp, "user_id", "Not authorized to delete this RSVP")
        await self.db.delete(rsvp)
        await self.db.commit()
