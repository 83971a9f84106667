"""Pydantic schemas for accounts and authentication.

Learn: There is no schema with a password field on the way out —
UserRead is the only shape a user is ever serialized as.
"""

import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

from bugtracker.schemas.common import Email, UserRole


class RegisterRequest(BaseModel):
    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
    email: Email
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    email: Email
    password: str = Field(min_length=1)


class UserRead(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    role: UserRole
    created_at: datetime = Field(serialization_alias="createdAt")

    model_config = {"from_attributes": True}


class AuthUser(BaseModel):
    """The user block returned next to a token."""
    id: uuid.UUID
    username: str
    email: str
    role: UserRole

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: AuthUser


class MeResponse(BaseModel):
    success: bool = True
    user: AuthUser
