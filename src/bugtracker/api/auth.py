"""Auth API — registration, login, logout, current user.

Learn: Routes for the session lifecycle:
- POST /auth/register → create an account, returns a token
- POST /auth/login → email/password → token (body + httpOnly cookie)
- GET /auth/logout → overwrite the cookie with "none" (10 s lifetime)
- GET /auth/me → current user info

The token is returned in the body too, so API clients can send it as
a Bearer header instead of relying on the cookie.
"""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.auth.dependencies import CurrentIdentity, get_current_user, get_token_service
from bugtracker.auth.jwt import TokenService
from bugtracker.db.engine import get_db
from bugtracker.errors import clear_token_cookie
from bugtracker.schemas.common import MessageResponse
from bugtracker.schemas.user import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    RegisterRequest,
)
from bugtracker.services.user_service import UserService

router = APIRouter(prefix="/auth")


def _svc(request: Request, db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db, bcrypt_rounds=request.app.state.settings.bcrypt_rounds)


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    svc: UserService = Depends(_svc),
    tokens: TokenService = Depends(get_token_service),
):
    """Create a new user account (role "user")."""
    user = await svc.create_user(
        username=body.username,
        email=body.email,
        password=body.password,
    )
    return {"token": tokens.create_token(str(user.id)), "user": user}


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    svc: UserService = Depends(_svc),
    tokens: TokenService = Depends(get_token_service),
):
    """Login with email and password → token in body and cookie."""
    user = await svc.authenticate(body.email, body.password)
    token = tokens.create_token(str(user.id))

    settings = request.app.state.settings
    response.set_cookie(
        settings.token_cookie_name,
        token,
        expires=datetime.now(timezone.utc) + timedelta(days=settings.jwt_cookie_expire_days),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return {"token": token, "user": user}


# ─── Logout ──────────────────────────────────────────────


@router.get("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    identity: CurrentIdentity = Depends(get_current_user),
):
    """Clear the session cookie."""
    clear_token_cookie(response, request)
    return {"msg": "Logged out successfully"}


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=MeResponse)
async def get_me(identity: CurrentIdentity = Depends(get_current_user)):
    """Get the current authenticated user's info."""
    return {"user": identity.to_dict()}
