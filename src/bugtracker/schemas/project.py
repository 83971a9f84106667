"""Pydantic schemas for projects and their members.

Learn: Separate "Create"/"Update" schemas (input) from "Read" schemas
(output). Member user ids are accepted as plain strings so the service
can report exactly which id was malformed or unknown.
"""

import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, Field, StringConstraints

from bugtracker.schemas.common import MemberRole, Priority, ProjectStatus, UserSummary

ProjectName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100)]
ProjectDescription = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]


class MemberIn(BaseModel):
    user: str
    role: Optional[MemberRole] = None


class ProjectCreate(BaseModel):
    name: ProjectName
    description: ProjectDescription = ""
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    members: list[MemberIn] = Field(default_factory=list)


class ProjectUpdate(BaseModel):
    """Partial update — only non-None fields are applied.

    members, when given, replaces the member list (the creator always stays).
    """
    name: Optional[ProjectName] = None
    description: Optional[ProjectDescription] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    members: Optional[list[MemberIn]] = None


class MemberRead(BaseModel):
    user: UserSummary
    role: MemberRole

    model_config = {"from_attributes": True}


class ProjectRead(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    status: ProjectStatus
    priority: Priority
    created_by: UserSummary = Field(validation_alias="creator", serialization_alias="createdBy")
    members: list[MemberRead]
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    model_config = {"from_attributes": True}
