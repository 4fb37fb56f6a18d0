"""Pydantic schemas for events, invitations, and RSVPs."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


def _future(value: datetime) -> datetime:
    aware = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if aware <= datetime.now(timezone.utc):
        raise ValueError("Event date must be in the future")
    return aware


# ─── Events ─────────────────────────────────────────────

class EventCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    date: datetime
    time: str = Field(..., pattern=TIME_PATTERN)
    location: str = Field(..., min_length=1, max_length=200)

    @field_validator("date")
    @classmethod
    def date_in_future(cls, v: datetime) -> datetime:
        return _future(v)


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    date: Optional[datetime] = None
    time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    status: Optional[str] = Field(None, pattern=r"^(active|cancelled|completed)$")

    @field_validator("date")
    @classmethod
    def date_in_future(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _future(v) if v is not None else v


class EventRead(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    date: datetime
    time: str
    location: str
    organizer_id: uuid.UUID
    status: str
    created_at: datetime
    updated_at: datetime
    my_rsvp_status: Optional[str] = None  # only for a signed-in viewer

    model_config = {"from_attributes": True}


# ─── Invitations ────────────────────────────────────────

class InvitationCreate(BaseModel):
    event_id: uuid.UUID
    guest_id: uuid.UUID
    message: Optional[str] = Field(None, max_length=500)


class InvitationUpdate(BaseModel):
    message: Optional[str] = Field(None, max_length=500)
    status: Optional[str] = Field(None, pattern=r"^(pending|sent|accepted|declined)$")


class InvitationRead(BaseModel):
    id: uuid.UUID
    event_id: uuid.UUID
    guest_id: uuid.UUID
    organizer_id: uuid.UUID
    message: Optional[str] = None
    status: str
    sent_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


# ─── RSVPs ──────────────────────────────────────────────

class RsvpCreate(BaseModel):
    invitation_id: uuid.UUID
    status: str = Field(..., pattern=r"^(going|maybe|not_going)$")
    guests_count: int = Field(1, ge=1, le=20)
    notes: Optional[str] = Field(None, max_length=500)


class RsvpUpdate(BaseModel):
    status: Optional[str] = Field(None, pattern=r"^(going|maybe|not_going)$")
    guests_count: Optional[int] = Field(None, ge=1, le=20)
    notes: Optional[str] = Field(None, max_length=500)


class RsvpRead(BaseModel):
    id: uuid.UUID
    invitation_id: uuid.UUID
    user_id: uuid.UUID
    event_id: uuid.UUID
    status: str
    guests_count: int
    notes: Optional[str] = None
    responded_at: datetime

    model_config = {"from_attributes": True}
