"""Cascade manager — referential integrity on delete.

Learn: Children always go before their parent:
  project → comments of its issues → issues → member rows → project
  issue   → comments → issue

All steps run in the caller's session transaction and commit once at the
end, so no reader ever sees a parent gone while its children remain.
If any step fails the transaction is rolled back and CascadeFailure
reports which deletions had already been issued.

The parent row is removed with DELETE ... WHERE id = :id and the affected
row count is checked (compare-and-delete). Two concurrent deletes of the
same parent therefore cannot both succeed: the loser gets NotFound.
"""

import uuid
from dataclasses import dataclass, field

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.db.models import Comment, Issue, Project, ProjectMember
from bugtracker.errors import CascadeFailure, NotFound, TrackerError

logger = structlog.get_logger()


@dataclass
class CascadeResult:
    """What a successful cascade removed."""
    deleted: list[str] = field(default_factory=list)
    issues: int = 0
    comments: int = 0


class CascadeManager:
    """Deletes parents together with everything that references them."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def delete_issue(self, issue_id: uuid.UUID) -> CascadeResult:
        result = CascadeResult()
        try:
            comment_ids = await self._ids(select(Comment.id).where(Comment.issue_id == issue_id))
            await self._run_step("comments", delete(Comment).where(Comment.issue_id == issue_id))
            result.deleted += [f"comment:{cid}" for cid in comment_ids]
            result.comments = len(comment_ids)

            removed = await self._run_step("issue", delete(Issue).where(Issue.id == issue_id))
            if removed == 0:
                raise NotFound("Issue not found")
            result.deleted.append(f"issue:{issue_id}")
            result.issues = 1

            await self.db.commit()
        except TrackerError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("cascade.failed", issue_id=str(issue_id), error=str(e), partially_deleted=result.deleted)
            raise CascadeFailure(
                f"Deleting issue {issue_id} failed: {e}",
                partially_deleted=result.deleted,
                rolled_back=True,
            )

        logger.info("issue.deleted", issue_id=str(issue_id), comments=result.comments)
        return result

    async def delete_project(self, project_id: uuid.UUID) -> CascadeResult:
        result = CascadeResult()
        project_issues = select(Issue.id).where(Issue.project_id == project_id)
        try:
            issue_ids = await self._ids(project_issues)
            comment_ids = await self._ids(select(Comment.id).where(Comment.issue_id.in_(project_issues)))

            await self._run_step("comments", delete(Comment).where(Comment.issue_id.in_(project_issues)))
            result.deleted += [f"comment:{cid}" for cid in comment_ids]
            result.comments = len(comment_ids)

            await self._run_step("issues", delete(Issue).where(Issue.project_id == project_id))
            result.deleted += [f"issue:{iid}" for iid in issue_ids]
            result.issues = len(issue_ids)

            await self._run_step("members", delete(ProjectMember).where(ProjectMember.project_id == project_id))

            removed = await self._run_step("project", delete(Project).where(Project.id == project_id))
            if removed == 0:
                raise NotFound("Project not found")
            result.deleted.append(f"project:{project_id}")

            await self.db.commit()
        except TrackerError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("cascade.failed", project_id=str(project_id), error=str(e), partially_deleted=result.deleted)
            raise CascadeFailure(
                f"Deleting project {project_id} failed: {e}",
                partially_deleted=result.deleted,
                rolled_back=True,
            )

        logger.info(
            "project.deleted",
            project_id=str(project_id),
            issues=result.issues,
            comments=result.comments,
        )
        return result

    # ─── Internals ───────────────────────────────────────

    async def _ids(self, query) -> list[uuid.UUID]:
        rows = await self.db.execute(query)
        return list(rows.scalars().all())

    async def _run_step(self, step: str, statement) -> int:
        """Execute one DELETE and return the affected row count."""
        outcome = await self.db.execute(statement)
        logger.debug("cascade.step", step=step, rows=outcome.rowcount)
        return outcome.rowcount
