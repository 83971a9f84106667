"""Pydantic schemas for issues and issue listings.

Learn:
- IssueCreate: what you POST to create an issue
- IssueUpdate: what you PUT to modify one (all optional; an explicit
  "assignedTo": null unassigns, an absent key leaves it alone)
- IssueRead: what the API returns, with populated project/user summaries
- IssueList: a page of issues plus the total match count
"""

import uuid
from datetime import date, datetime
from typing import Annotated, Optional

from pydantic import AliasChoices, BaseModel, Field, StringConstraints

from bugtracker.schemas.common import (
    IssueStatus,
    IssueType,
    Priority,
    ProjectSummary,
    UserSummary,
)

IssueTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=5, max_length=200)]
IssueDescription = Annotated[str, StringConstraints(strip_whitespace=True, max_length=2000)]


class IssueCreate(BaseModel):
    title: IssueTitle
    description: IssueDescription = ""
    status: Optional[IssueStatus] = None
    priority: Optional[Priority] = None
    type: Optional[IssueType] = None
    project: str
    assigned_to: Optional[str] = Field(
        None, validation_alias=AliasChoices("assignedTo", "assigned_to")
    )
    due_date: Optional[date] = Field(
        None, validation_alias=AliasChoices("dueDate", "due_date")
    )


class IssueUpdate(BaseModel):
    title: Optional[IssueTitle] = None
    description: Optional[IssueDescription] = None
    status: Optional[IssueStatus] = None
    priority: Optional[Priority] = None
    type: Optional[IssueType] = None
    project: Optional[str] = None
    assigned_to: Optional[str] = Field(
        None, validation_alias=AliasChoices("assignedTo", "assigned_to")
    )
    due_date: Optional[date] = Field(
        None, validation_alias=AliasChoices("dueDate", "due_date")
    )


class IssueRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    status: IssueStatus
    priority: Priority
    type: IssueType
    project: ProjectSummary
    created_by: UserSummary = Field(validation_alias="creator", serialization_alias="createdBy")
    assigned_to: Optional[UserSummary] = Field(
        None, validation_alias="assignee", serialization_alias="assignedTo"
    )
    due_date: Optional[date] = Field(None, serialization_alias="dueDate")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")

    model_config = {"from_attributes": True}


class IssueList(BaseModel):
    total: int
    page: int
    limit: int
    issues: list[IssueRead]
