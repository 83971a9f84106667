"""Issue API routes, with comments nested under their issue.

Learn: Listing takes the whole query language as query parameters:
  GET /issues?project=..&status=Open&search=crash&sortBy=priority&order=desc&page=2
Ids referenced by the body (project, assignedTo) are checked for format
(400) and existence (404) before anything is written.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.auth.dependencies import CurrentIdentity, get_current_user, get_policy
from bugtracker.auth.policy import Action, CommentRef, IssueRef, Policy, ProjectRef
from bugtracker.db.engine import get_db
from bugtracker.db.models import Issue, Project
from bugtracker.errors import NotFound, ValidationError
from bugtracker.schemas.comment import CommentCreate, CommentRead
from bugtracker.schemas.common import MessageResponse
from bugtracker.schemas.issue import IssueCreate, IssueList, IssueRead, IssueUpdate
from bugtracker.services.cascade import CascadeManager
from bugtracker.services.comment_service import CommentService
from bugtracker.services.ids import parse_id
from bugtracker.services.issue_service import UNSET, IssueFilters, IssueService
from bugtracker.services.project_service import ProjectService
from bugtracker.services.user_service import UserService

router = APIRouter(prefix="/issues")

# Keeps the OFFSET inside a 64-bit integer.
MAX_PAGE = 100_000
MAX_LIMIT = 100


def _svc(db: AsyncSession = Depends(get_db)) -> IssueService:
    return IssueService(db)


async def _load_issue(svc: IssueService, issue_id: str) -> Issue:
    issue = await svc.get_issue(parse_id(issue_id, "Issue"))
    if not issue:
        raise NotFound("Issue not found")
    return issue


async def _load_project(db: AsyncSession, project_id: str) -> Project:
    project = await ProjectService(db).get_project(parse_id(project_id, "Project"))
    if not project:
        raise NotFound("Project not found")
    return project


async def _check_assignee(db: AsyncSession, user_id: str) -> uuid.UUID:
    parsed = parse_id(user_id, "Assigned To User")
    if not await UserService(db).get_user(parsed):
        raise NotFound("Assigned user not found")
    return parsed


# ─── Issues ──────────────────────────────────────────────


@router.get("", response_model=IssueList)
async def list_issues(
    project: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    type: Optional[str] = None,
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    search: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    order: Optional[str] = None,
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=MAX_LIMIT),
    svc: IssueService = Depends(_svc),
):
    """Filter, sort and paginate issues. Defaults: newest first, 10 per page, at most 100."""
    filters = IssueFilters(status=status, priority=priority, type=type, search=search)
    if project:
        filters.project_id = parse_id(project, "Project")
    if assigned_to:
        filters.assigned_to_id = parse_id(assigned_to, "Assigned User")
        if not await UserService(svc.db).get_user(filters.assigned_to_id):
            raise NotFound("Assigned user for filter not found")

    issues, total = await svc.list_issues(
        filters, sort_by=sort_by, order=order, page=page, limit=limit
    )
    return {"total": total, "page": page, "limit": limit, "issues": issues}


@router.get("/{issue_id}", response_model=IssueRead)
async def get_issue(issue_id: str, svc: IssueService = Depends(_svc)):
    return await _load_issue(svc, issue_id)


@router.post("", response_model=IssueRead, status_code=201)
async def create_issue(
    body: IssueCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
    svc: IssueService = Depends(_svc),
):
    project = await _load_project(svc.db, body.project)
    policy.authorize(identity, Action.CREATE_ISSUE, ProjectRef.from_model(project))

    assigned_to_id = None
    if body.assigned_to:
        assigned_to_id = await _check_assignee(svc.db, body.assigned_to)

    return await svc.create_issue(
        creator_id=identity.id,
        project_id=project.id,
        title=body.title,
        description=body.description,
        status=body.status,
        priority=body.priority,
        type=body.type,
        assigned_to_id=assigned_to_id,
        due_date=body.due_date,
    )


@router.put("/{issue_id}", response_model=IssueRead)
async def update_issue(
    issue_id: str,
    body: IssueUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
    svc: IssueService = Depends(_svc),
):
    """Partial update. "assignedTo": null unassigns, "dueDate": null clears."""
    issue = await _load_issue(svc, issue_id)
    policy.authorize(identity, Action.UPDATE_ISSUE, IssueRef.from_model(issue, issue.project))

    project_id = None
    if body.project:
        target = await _load_project(svc.db, body.project)
        if target.id != issue.project_id:
            # Moving an issue counts as creating it in the target project.
            policy.authorize(identity, Action.CREATE_ISSUE, ProjectRef.from_model(target))
        project_id = target.id

    assigned_to_id = UNSET
    if "assigned_to" in body.model_fields_set:
        assigned_to_id = None
        if body.assigned_to:
            assigned_to_id = await _check_assignee(svc.db, body.assigned_to)

    due_date = body.due_date if "due_date" in body.model_fields_set else UNSET

    return await svc.update_issue(
        issue,
        title=body.title,
        description=body.description,
        status=body.status,
        priority=body.priority,
        type=body.type,
        project_id=project_id,
        assigned_to_id=assigned_to_id,
        due_date=due_date,
    )


@router.delete("/{issue_id}", response_model=MessageResponse)
async def delete_issue(
    issue_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
    svc: IssueService = Depends(_svc),
):
    """Delete an issue and its comments."""
    issue = await _load_issue(svc, issue_id)
    policy.authorize(identity, Action.DELETE_ISSUE, IssueRef.from_model(issue))
    await CascadeManager(svc.db).delete_issue(issue.id)
    return {"msg": "Issue removed successfully"}


# ─── Comments ────────────────────────────────────────────


@router.get("/{issue_id}/comments", response_model=list[CommentRead])
async def list_comments(issue_id: str, svc: IssueService = Depends(_svc)):
    """Comments on an issue, oldest first."""
    issue = await _load_issue(svc, issue_id)
    return await CommentService(svc.db).list_for_issue(issue.id)


@router.post("/{issue_id}/comments", response_model=CommentRead, status_code=201)
async def create_comment(
    issue_id: str,
    body: CommentCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
    svc: IssueService = Depends(_svc),
):
    issue = await _load_issue(svc, issue_id)
    policy.authorize(identity, Action.CREATE_COMMENT, IssueRef.from_model(issue, issue.project))
    return await CommentService(svc.db).create_comment(issue.id, identity.id, body.content)


@router.delete("/{issue_id}/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    issue_id: str,
    comment_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
    db: AsyncSession = Depends(get_db),
):
    parsed_issue = parse_id(issue_id, "Issue or Comment")
    parsed_comment = parse_id(comment_id, "Issue or Comment")

    comments = CommentService(db)
    comment = await comments.get_comment(parsed_comment)
    if not comment:
        raise NotFound("Comment not found")
    if comment.issue_id != parsed_issue:
        raise ValidationError("Comment does not belong to this issue")

    policy.authorize(identity, Action.DELETE_COMMENT, CommentRef.from_model(comment))
    await comments.delete_comment(comment.id)
    return {"msg": "Comment removed successfully"}
