"""Pydantic schemas for issue comments."""

import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

from bugtracker.schemas.common import UserSummary


class CommentCreate(BaseModel):
    content: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)]


class CommentRead(BaseModel):
    id: uuid.UUID
    content: str
    issue: uuid.UUID = Field(validation_alias="issue_id")
    author: UserSummary
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    model_config = {"from_attributes": True}
