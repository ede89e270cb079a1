"""Bearer token handling for API callers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from concierge.config.settings import settings


class AuthenticationError(Exception):
    """The bearer token is missing its signature, expired or malformed."""


class TokenPayload(BaseModel):
    sub: str
    exp: datetime
    iat: Optional[datetime] = None

    @property
    def user_id(self) -> int:
        """Numeric user id carried in ``sub``; raises ``ValueError`` otherwise."""
        return int(self.sub)


def _key_and_algorithm() -> tuple[str, str]:
    security = settings.security
    return security.secret.get_secret_value(), security.algorithm


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    # Tokens are issued by the account service; this is for tests and local tooling.
    key, algorithm = _key_and_algorithm()
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "iat": issued,
        "exp": issued + (expires_delta or timedelta(minutes=60)),
    }
    return jwt.encode(claims, key, algorithm=algorithm)


def decode_access_token(token: str) -> TokenPayload:
    key, algorithm = _key_and_algorithm()
    try:
        return TokenPayload.model_validate(jwt.decode(token, key, algorithms=[algorithm]))
    except (JWTError, ValidationError) as exc:
        raise AuthenticationError("Invalid authentication token") from exc
