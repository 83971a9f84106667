"""API route aggregation.

All routers registered here get mounted in main.py under /api/v1.

Learn: The authentication gate is applied at the include_router level
using FastAPI's dependencies parameter, so every users/projects/issues
route requires a valid token without repeating it per handler. Health
and auth are open (logout and me carry the gate themselves).
"""

from fastapi import APIRouter, Depends

from bugtracker.api.auth import router as auth_router
from bugtracker.api.health import router as health_router
from bugtracker.api.issues import router as issues_router
from bugtracker.api.projects import router as projects_router
from bugtracker.api.users import router as users_router
from bugtracker.auth.dependencies import get_current_user

_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes
api_router.include_router(users_router, tags=["users"], dependencies=_auth)
api_router.include_router(projects_router, tags=["projects"], dependencies=_auth)
api_router.include_router(issues_router, tags=["issues", "comments"], dependencies=_auth)
