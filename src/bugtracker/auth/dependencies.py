"""FastAPI auth dependencies — the authentication gate.

Learn: These are used as Depends() in route handlers to extract
and validate the current user identity from the request.

Token lookup order:
1. Authorization: Bearer <token> header (frontend JS, API clients)
2. "token" cookie (httpOnly cookie set by /auth/login)

A token that is expired, malformed or points at a deleted account is
rejected with 401 and the session cookie is overwritten so the browser
stops resubmitting it.
"""

import uuid
from typing import Optional

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.auth.jwt import TokenService
from bugtracker.auth.policy import Policy, check_role
from bugtracker.db.engine import get_db
from bugtracker.errors import InvalidToken, Unauthenticated
from bugtracker.services.user_service import UserService

logger = structlog.get_logger()


class CurrentIdentity:
    """Represents the authenticated user making the request.

    Learn: Only the public parts of the account — never the password
    hash. Downstream code (policy checks, "created_by" fields) uses this.
    """

    def __init__(
        self,
        id: uuid.UUID,
        username: str,
        email: str,
        role: Optional[str] = None,
    ):
        self.id = id
        self.username = username
        self.email = email
        self.role = role

    @classmethod
    def from_user(cls, user) -> "CurrentIdentity":
        return cls(id=user.id, username=user.username, email=user.email, role=user.role)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "username": self.username,
            "email": self.email,
            "role": self.role,
        }


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_policy(request: Request) -> Policy:
    return request.app.state.policy


def extract_token(request: Request) -> Optional[str]:
    """Header first, cookie fallback."""
    authorization = request.headers.get("Authorization")
    if authorization and authorization.startswith("Bearer"):
        parts = authorization.split(" ", 1)
        return parts[1].strip() if len(parts) > 1 else ""
    cookie_name = request.app.state.settings.token_cookie_name
    return request.cookies.get(cookie_name)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> CurrentIdentity:
    """Resolve the request's token to an identity (401 otherwise)."""
    token = extract_token(request)
    if not token or not token.strip():
        raise Unauthenticated(
            "Not authorized to access this route (no valid token provided or token is empty)"
        )

    try:
        payload = tokens.verify_token(token)
        user_id = uuid.UUID(str(payload["id"]))
    except ValueError:
        logger.warning("auth.token_rejected", kind="InvalidToken", error="malformed id claim")
        raise InvalidToken("Not authorized: Invalid token (malformed id claim)", clear_cookie=True)
    except Unauthenticated as e:
        logger.warning("auth.token_rejected", kind=e.kind, error=e.message)
        raise

    user = await UserService(db).get_user(user_id)
    if not user:
        logger.warning("auth.user_missing", user_id=str(user_id))
        raise Unauthenticated(
            "Not authorized to access this route (user associated with token not found)",
            clear_cookie=True,
        )

    identity = CurrentIdentity.from_user(user)
    request.state.identity = identity
    structlog.contextvars.bind_contextvars(user_id=str(identity.id))
    return identity


def require_roles(*roles: str):
    """Dependency factory — allow only callers whose role is in `roles`.

    Learn: Used after the gate, e.g. Depends(require_roles("admin")).
    Denials are 403 and name the caller's actual role.
    """

    async def checker(identity: CurrentIdentity = Depends(get_current_user)) -> CurrentIdentity:
        check_role(identity, roles).raise_for_denial()
        return identity

    return checker
