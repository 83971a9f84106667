"""Comment service — comments on issues, oldest first."""

import uuid
from typing import Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.db.models import Comment
from bugtracker.errors import NotFound

logger = structlog.get_logger()


class CommentService:
    """Business logic for comments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_comment(self, comment_id: uuid.UUID) -> Optional[Comment]:
        result = await self.db.execute(
            select(Comment)
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def list_for_issue(self, issue_id: uuid.UUID) -> list[Comment]:
        result = await self.db.execute(
            select(Comment)
            .where(Comment.issue_id == issue_id)
            .order_by(Comment.created_at.asc(), Comment.id)
        )
        return list(result.scalars().all())

    async def create_comment(
        self, issue_id: uuid.UUID, author_id: uuid.UUID, content: str
    ) -> Comment:
        comment = Comment(content=content, issue_id=issue_id, author_id=author_id)
        self.db.add(comment)
        await self.db.commit()

        logger.info("comment.created", comment_id=str(comment.id), issue_id=str(issue_id))
        return await self.get_comment(comment.id)

    async def delete_comment(self, comment_id: uuid.UUID) -> None:
        """Compare-and-delete: a comment already gone is NotFound."""
        result = await self.db.execute(delete(Comment).where(Comment.id == comment_id))
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotFound("Comment not found")
        await self.db.commit()
        logger.info("comment.deleted", comment_id=str(comment_id))
