from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from src.domain.errors import AuthenticationError
from src.domain.value_objects.ids import UserId


@dataclass(frozen=True)
class RequestContext:
    """Verified identity of the caller, passed explicitly into every service call.

    ``subject_id`` is ``None`` for anonymous callers of public operations.
    """

    subject_id: Optional[UserId] = None
    request_id: Optional[str] = None

    @classmethod
    def anonymous(cls, request_id: Optional[str] = None) -> "RequestContext":
        return cls(subject_id=None, request_id=request_id)

    @classmethod
    def for_user(cls, subject_id: str, request_id: Optional[str] = None) -> "RequestContext":
        return cls(subject_id=UserId(subject_id), request_id=request_id)

    @property
    def is_authenticated(self) -> bool:
        return self.subject_id is not None

    def require_user(self) -> UserId:
        if self.subject_id is None:
            raise AuthenticationError("Sign-in required")
        return self.subject_id
