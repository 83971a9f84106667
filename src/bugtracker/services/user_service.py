"""User service — the credential store.

Learn: Lookup by id (the auth gate), lookup by email (login), and an
atomic create that relies on the unique constraints rather than a
check-then-insert race: the pre-checks give friendly messages, the
IntegrityError branch covers two concurrent registrations.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.auth.password import BCRYPT_ROUNDS, hash_password, needs_rehash, verify_password
from bugtracker.db.models import User
from bugtracker.errors import Conflict, Unauthenticated

logger = structlog.get_logger()


class UserService:
    """Business logic for accounts."""

    def __init__(self, db: AsyncSession, bcrypt_rounds: int = BCRYPT_ROUNDS):
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds

    # ─── Read ────────────────────────────────────────────

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def list_users(self, role: Optional[str] = None) -> list[User]:
        query = select(User).order_by(User.created_at)
        if role:
            query = query.where(User.role == role)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ─── Create ──────────────────────────────────────────

    async def create_user(
        self,
        username: str,
        email: str,
        password: str,
        role: str = "user",
    ) -> User:
        if await self.get_by_email(email):
            raise Conflict("User already exists with this email")
        taken = await self.db.execute(select(User.id).where(User.username == username))
        if taken.first():
            raise Conflict("Username is already taken")

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            role=role,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict("Duplicate field value entered")

        logger.info("user.created", user_id=str(user.id), role=role)
        return user

    async def ensure_admin(self, username: str, email: str, password: str) -> User:
        """Create the bootstrap admin account unless the email is taken."""
        existing = await self.get_by_email(email)
        if existing:
            logger.info("user.admin_exists", user_id=str(existing.id), role=existing.role)
            return existing
        return await self.create_user(username, email, password, role="admin")

    # ─── Login ───────────────────────────────────────────

    async def authenticate(self, email: str, password: str) -> User:
        """Email + password → user, or Unauthenticated("Invalid credentials")."""
        user = await self.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise Unauthenticated("Invalid credentials")

        if needs_rehash(user.password_hash, self.bcrypt_rounds):
            user.password_hash = hash_password(password, rounds=self.bcrypt_rounds)
            await self.db.commit()
            logger.info("user.password_rehashed", user_id=str(user.id), rounds=self.bcrypt_rounds)
        return user
