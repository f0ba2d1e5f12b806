from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

from src.application.commands import Login
from src.application.context import RequestContext
from src.application.services.user_service import UserService
from src.domain.entities.user import User
from src.domain.errors import AuthenticationError, FoodTurnsError
from src.infrastructure.tokens import TokenCodec
from src.infrastructure.wechat_client import IdentityProviderError
from src.logging_config import get_logger

logger = get_logger("services.auth")

BEARER_PREFIX = "Bearer "


class IdentityProvider(Protocol):
    def code_to_session(self, code: str) -> str: ...


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: User


class AuthService:
    """Turns login codes into tokens and bearer headers into request contexts."""

    def __init__(self, users: UserService, provider: IdentityProvider, tokens: TokenCodec) -> None:
        self._users = users
        self._provider = provider
        self._tokens = tokens

    def login(self, cmd: Login, *, request_id: Optional[str] = None) -> LoginResult:
        """Exchange a client login code for a token, creating the user on first login."""
        try:
            subject = self._provider.code_to_session(cmd.code)
        except IdentityProviderError as exc:
            logger.warning(
                "Login failed",
                extra={"errcode": exc.errcode, "status_code": exc.status_code, "request_id": request_id},
            )
            if exc.errcode is not None:
                raise AuthenticationError(str(exc)) from exc
            raise FoodTurnsError(str(exc)) from exc

        user = self._users.ensure_user(subject)
        logger.info("User logged in", extra={"user_id": user.id, "request_id": request_id})
        return LoginResult(token=self._tokens.issue(subject), user=user)

    def authenticate(
        self, authorization: Optional[str], *, request_id: Optional[str] = None
    ) -> RequestContext:
        """Verify an ``Authorization: Bearer <token>`` header value."""
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise AuthenticationError("Missing bearer token")
        subject = self._tokens.verify(authorization[len(BEARER_PREFIX) :].strip())
        if subject is None:
            raise AuthenticationError("Invalid or expired token")
        return RequestContext.for_user(subject, request_id or uuid.uuid4().hex)

    def optional_context(
        self, authorization: Optional[str], *, request_id: Optional[str] = None
    ) -> RequestContext:
        """Anonymous context when no header is sent; a sent header must still be valid."""
        if not authorization:
            return RequestContext.anonymous(request_id or uuid.uuid4().hex)
        return self.authenticate(authorization, request_id=request_id)
