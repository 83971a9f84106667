"""Issue service — business logic for issue CRUD and listing.

Learn: Listing is the only "query language" in the tracker:
- exact filters: project, status, priority, type, assignedTo
- free text: case-insensitive substring match on title OR description
- one sort field, asc/desc (default: newest first)
- 1-indexed page/limit pagination, with the total match count

Filters are applied conditionally — only when the caller provides them.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.db.models import Issue, utcnow
from bugtracker.errors import ValidationError

logger = structlog.get_logger()

SORTABLE_FIELDS = {
    "createdAt": Issue.created_at,
    "updatedAt": Issue.updated_at,
    "title": Issue.title,
    "status": Issue.status,
    "priority": Issue.priority,
    "type": Issue.type,
    "dueDate": Issue.due_date,
}

# Sentinel for "field not provided" in partial updates, where None
# is a meaningful value (unassign, clear due date).
UNSET = object()


@dataclass
class IssueFilters:
    project_id: Optional[uuid.UUID] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    type: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None
    search: Optional[str] = None


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class IssueService:
    """Business logic for issues."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Read ────────────────────────────────────────────

    async def get_issue(self, issue_id: uuid.UUID) -> Optional[Issue]:
        result = await self.db.execute(
            select(Issue)
            .where(Issue.id == issue_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def list_issues(
        self,
        filters: IssueFilters,
        sort_by: Optional[str] = None,
        order: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Issue], int]:
        """Return (page of issues, total matching)."""
        conditions = []
        if filters.project_id:
            conditions.append(Issue.project_id == filters.project_id)
        if filters.status:
            conditions.append(Issue.status == filters.status)
        if filters.priority:
            conditions.append(Issue.priority == filters.priority)
        if filters.type:
            conditions.append(Issue.type == filters.type)
        if filters.assigned_to_id:
            conditions.append(Issue.assigned_to_id == filters.assigned_to_id)
        if filters.search:
            pattern = _like_pattern(filters.search)
            conditions.append(
                or_(
                    Issue.title.ilike(pattern, escape="\\"),
                    Issue.description.ilike(pattern, escape="\\"),
                )
            )

        if sort_by:
            column = SORTABLE_FIELDS.get(sort_by)
            if column is None:
                raise ValidationError(
                    f"Cannot sort by '{sort_by}'. Allowed: {', '.join(SORTABLE_FIELDS)}"
                )
            ordering = column.desc() if order == "desc" else column.asc()
        else:
            ordering = Issue.created_at.desc()

        query = (
            select(Issue)
            .where(*conditions)
            .order_by(ordering, Issue.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        issues = list(result.scalars().all())

        total = await self.db.scalar(
            select(func.count()).select_from(Issue).where(*conditions)
        )
        return issues, total or 0

    # ─── Create ──────────────────────────────────────────

    async def create_issue(
        self,
        creator_id: uuid.UUID,
        project_id: uuid.UUID,
        title: str,
        description: str = "",
        status: Optional[str] = None,
        priority: Optional[str] = None,
        type: Optional[str] = None,
        assigned_to_id: Optional[uuid.UUID] = None,
        due_date: Optional[date] = None,
    ) -> Issue:
        issue = Issue(
            title=title,
            description=description,
            status=status or "Open",
            priority=priority or "Medium",
            type=type or "Bug",
            project_id=project_id,
            created_by_id=creator_id,
            assigned_to_id=assigned_to_id,
            due_date=due_date,
        )
        self.db.add(issue)
        await self.db.commit()

        logger.info("issue.created", issue_id=str(issue.id), project_id=str(project_id))
        return await self.get_issue(issue.id)

    # ─── Update ──────────────────────────────────────────

    async def update_issue(
        self,
        issue: Issue,
        title: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        type: Optional[str] = None,
        project_id: Optional[uuid.UUID] = None,
        assigned_to_id=UNSET,
        due_date=UNSET,
    ) -> Issue:
        """Apply provided fields. assigned_to_id/due_date accept None to clear."""
        changes = []
        for attr, value in (
            ("title", title),
            ("description", description),
            ("status", status),
            ("priority", priority),
            ("type", type),
            ("project_id", project_id),
        ):
            if value is not None:
                setattr(issue, attr, value)
                changes.append(attr)
        if assigned_to_id is not UNSET:
            issue.assigned_to_id = assigned_to_id
            changes.append("assigned_to_id")
        if due_date is not UNSET:
            issue.due_date = due_date
            changes.append("due_date")

        issue.updated_at = utcnow()
        await self.db.commit()

        logger.info("issue.updated", issue_id=str(issue.id), changes=changes)
        return await self.get_issue(issue.id)
