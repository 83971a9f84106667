"""Shared value sets and the small summary shapes used for populated references.

Learn: Foreign keys in responses are "populated" — an issue's createdBy
is {id, username, email}, its project is {id, name}. These summaries are
reused by every Read schema.
"""

import uuid
from typing import Annotated, Literal

from pydantic import BaseModel, StringConstraints

Priority = Literal["Low", "Medium", "High", "Critical"]
ProjectStatus = Literal["Active", "Completed", "On Hold", "Archived"]
IssueStatus = Literal["Open", "In Progress", "Resolved", "Closed", "Reopened"]
IssueType = Literal["Bug", "Feature", "Task", "Improvement"]
MemberRole = Literal["developer", "qa", "manager"]
UserRole = Literal["user", "admin"]

EMAIL_PATTERN = r"^[^@\s]+@([A-Za-z0-9-]+\.)+[A-Za-z]{2,}$"

Email = Annotated[str, StringConstraints(strip_whitespace=True, pattern=EMAIL_PATTERN)]


class UserSummary(BaseModel):
    id: uuid.UUID
    username: str
    email: str

    model_config = {"from_attributes": True}


class ProjectSummary(BaseModel):
    id: uuid.UUID
    name: str

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    success: bool = True
    msg: str
