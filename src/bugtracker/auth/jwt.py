"""JWT session token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
The token carries the user id in an "id" claim plus standard exp/iat.
Nothing is stored server-side; verification only needs the secret.

Expired and otherwise-invalid tokens raise different errors so the
client can tell "log in again" apart from "this token is garbage".
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from bugtracker.config import Settings
from bugtracker.errors import ExpiredToken, InvalidToken


class TokenService:
    """Issues and verifies signed session tokens."""

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.expire_minutes = settings.jwt_expire_minutes

    def create_token(self, user_id: str, expires_minutes: Optional[int] = None) -> str:
        """Create a signed token for a user id."""
        now = datetime.now(timezone.utc)
        minutes = self.expire_minutes if expires_minutes is None else expires_minutes
        payload = {
            "id": user_id,
            "iat": now,
            "exp": now + timedelta(minutes=minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> dict:
        """Verify and decode a token.

        Returns the payload dict on success.
        Raises ExpiredToken or InvalidToken on failure, both asking the
        response layer to clear the session cookie.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise ExpiredToken("Not authorized: Token has expired", clear_cookie=True)
        except jwt.InvalidTokenError as e:
            raise InvalidToken(f"Not authorized: Invalid token ({e})", clear_cookie=True)

        if not payload.get("id"):
            raise InvalidToken("Not authorized: Invalid token (missing id claim)", clear_cookie=True)
        return payload
