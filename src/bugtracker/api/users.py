"""User API routes — directory lookups for assignment and membership pickers.

Admin-only routes live under /admin and go through require_roles().
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.auth.dependencies import require_roles
from bugtracker.db.engine import get_db
from bugtracker.errors import NotFound
from bugtracker.schemas.common import UserRole
from bugtracker.schemas.user import UserRead
from bugtracker.services.ids import parse_id
from bugtracker.services.user_service import UserService

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("/users", response_model=list[UserRead])
async def list_users(svc: UserService = Depends(_svc)):
    """All users, without password hashes."""
    return await svc.list_users()


@router.get("/users/{user_id}", response_model=UserRead)
async def get_user(user_id: str, svc: UserService = Depends(_svc)):
    user = await svc.get_user(parse_id(user_id, "User"))
    if not user:
        raise NotFound("User not found")
    return user


@router.get(
    "/admin/users",
    response_model=list[UserRead],
    dependencies=[Depends(require_roles("admin"))],
)
async def admin_list_users(
    role: Optional[UserRole] = Query(None, description="Filter by account role"),
    svc: UserService = Depends(_svc),
):
    """Account listing with role filter, restricted to admins."""
    return await svc.list_users(role=role)
