"""Project service — business logic for projects and membership.

Learn: Service layer separates business logic from HTTP routing.
API routes authorize and call services, services call the database.

Membership invariant: the creator is always a member. On create the
creator is added as "manager"; when members are replaced later the
creator keeps whatever project role they already had.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.db.models import Project, ProjectMember, User, utcnow
from bugtracker.errors import Conflict, NotFound, ValidationError
from bugtracker.schemas.project import MemberIn

logger = structlog.get_logger()

CREATOR_ROLE = "manager"
DEFAULT_MEMBER_ROLE = "developer"


class ProjectService:
    """Business logic for project management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Read ────────────────────────────────────────────

    async def get_project(self, project_id: uuid.UUID) -> Optional[Project]:
        result = await self.db.execute(
            select(Project)
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def list_for_user(self, user_id: uuid.UUID) -> list[Project]:
        """Projects the user created or is a member of."""
        member_of = select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)
        result = await self.db.execute(
            select(Project)
            .where(or_(Project.created_by_id == user_id, Project.id.in_(member_of)))
            .order_by(Project.created_at.desc())
        )
        return list(result.scalars().all())

    # ─── Create ──────────────────────────────────────────

    async def create_project(
        self,
        creator_id: uuid.UUID,
        name: str,
        description: str = "",
        status: Optional[str] = None,
        priority: Optional[str] = None,
        members: Optional[list[MemberIn]] = None,
    ) -> Project:
        duplicate = await self.db.execute(
            select(Project.id).where(Project.name == name, Project.created_by_id == creator_id)
        )
        if duplicate.first():
            raise Conflict("You already have a project with this name")

        roster = await self._resolve_members(creator_id, CREATOR_ROLE, members or [])

        project = Project(
            name=name,
            description=description,
            status=status or "Active",
            priority=priority or "Medium",
            created_by_id=creator_id,
        )
        project.members = [
            ProjectMember(user_id=user_id, role=role, position=i)
            for i, (user_id, role) in enumerate(roster)
        ]
        self.db.add(project)
        await self._commit()

        logger.info("project.created", project_id=str(project.id), members=len(roster))
        return await self.get_project(project.id)

    # ─── Update ──────────────────────────────────────────

    async def update_project(
        self,
        project: Project,
        name: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        members: Optional[list[MemberIn]] = None,
    ) -> Project:
        """Apply non-None fields. `members` replaces the roster."""
        if name is not None and name != project.name:
            duplicate = await self.db.execute(
                select(Project.id).where(
                    Project.name == name,
                    Project.created_by_id == project.created_by_id,
                    Project.id != project.id,
                )
            )
            if duplicate.first():
                raise Conflict("You already have a project with this name")
            project.name = name
        if description is not None:
            project.description = description
        if status is not None:
            project.status = status
        if priority is not None:
            project.priority = priority

        if members is not None:
            current = {m.user_id: m for m in project.members}
            creator = current.get(project.created_by_id)
            creator_role = creator.role if creator else CREATOR_ROLE
            roster = await self._resolve_members(project.created_by_id, creator_role, members)

            updated = []
            for i, (user_id, role) in enumerate(roster):
                member = current.get(user_id) or ProjectMember(user_id=user_id)
                member.role = role
                member.position = i
                updated.append(member)
            project.members = updated

        project.updated_at = utcnow()
        await self._commit()

        logger.info("project.updated", project_id=str(project.id))
        return await self.get_project(project.id)

    # ─── Internals ───────────────────────────────────────

    async def _resolve_members(
        self,
        creator_id: uuid.UUID,
        creator_role: str,
        members: list[MemberIn],
    ) -> list[tuple[uuid.UUID, str]]:
        """Creator first, then each distinct, existing user in request order."""
        roster: list[tuple[uuid.UUID, str]] = [(creator_id, creator_role)]
        seen = {creator_id}
        for entry in members:
            try:
                user_id = uuid.UUID(str(entry.user))
            except ValueError:
                raise ValidationError(f"Invalid user ID format for member: {entry.user}")
            if user_id in seen:
                continue
            if not await self.db.get(User, user_id):
                raise NotFound(f"User not found for member ID: {entry.user}")
            roster.append((user_id, entry.role or DEFAULT_MEMBER_ROLE))
            seen.add(user_id)
        return roster

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict("Duplicate field value entered")
