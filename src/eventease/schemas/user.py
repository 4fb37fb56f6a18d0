"""Pydantic schemas for users and authentication.

Learn: Pydantic v2 models validate request/response data. Separate
"Create"/"Request" schemas (input) from "Read" schemas (output) for clean
APIs. UserRead has no password field at all, so a hash can't leak through
a response by accident.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserRead(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str
    avatar_url: Optional[str] = None
    is_verified: bool = False
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: str = Field(..., max_length=100, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=128)
    role: Optional[str] = Field(None, pattern=r"^(guest|organizer)$")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters long")
        return v


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[str] = Field(None, max_length=100, pattern=EMAIL_PATTERN)
    role: Optional[str] = Field(None, pattern=r"^(guest|organizer|admin)$")


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class GoogleLoginRequest(BaseModel):
    # Mobile clients send either spelling
    id_token: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("id_token", "idToken")
    )


class AuthResponse(BaseModel):
    """Login/registration response — the token is also set as a cookie."""
    success: bool = True
    message: str
    token: str
    data: UserRead
