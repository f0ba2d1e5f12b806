"""Bearer tokens for verified identities.

Tokens are HS256 JWTs carrying the subject twice: as the registered ``sub``
claim and as ``openid`` for clients that read the provider's field name.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

import jwt
from jwt import PyJWTError

from src.config.settings import DEFAULT_TOKEN_TTL_DAYS, Settings
from src.logging_config import get_logger

logger = get_logger("infrastructure.tokens")

ALGORITHM = "HS256"


class TokenCodec(Protocol):
    def issue(self, subject: str) -> str: ...

    def verify(self, token: str) -> Optional[str]: ...


class JwtTokenCodec:
    def __init__(self, secret: str, ttl: timedelta = timedelta(days=DEFAULT_TOKEN_TTL_DAYS)) -> None:
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self._ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "JwtTokenCodec":
        return cls(settings.require_jwt_secret(), timedelta(days=settings.token_ttl_days))

    def issue(self, subject: str, *, now: Optional[datetime] = None) -> str:
        issued = now or datetime.now(timezone.utc)
        claims = {
            "sub": subject,
            "openid": subject,
            "iat": issued,
            "exp": issued + self._ttl,
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> Optional[str]:
        """Return the subject of a valid token, or ``None`` if it is invalid or expired."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except PyJWTError as exc:
            logger.debug("Token rejected: %s", type(exc).__name__)
            return None
        subject = payload.get("sub") or payload.get("openid")
        if not subject or not isinstance(subject, str):
            return None
        return subject
