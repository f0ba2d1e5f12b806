"""Error taxonomy shared by the gateway, the resolver and the services.

Every error carries the :class:`ResponseCode` the transport boundary should
answer with. Services raise these; they never return an empty success in
place of a failure.
"""

from __future__ import annotations

from typing import ClassVar

from .value_objects.enums import ResponseCode


class FoodTurnsError(Exception):
    """Base class for all domain errors."""

    code: ClassVar[ResponseCode] = ResponseCode.ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(FoodTurnsError):
    """Missing or malformed input. Raised before anything reaches the store."""

    code = ResponseCode.BAD_REQUEST


class AuthenticationError(FoodTurnsError):
    """No identity, or the presented identity could not be verified."""

    code = ResponseCode.UNAUTHORIZED


class AuthorizationError(FoodTurnsError):
    """Identity is known but the action is not allowed."""

    code = ResponseCode.FORBIDDEN


class NotFoundError(FoodTurnsError):
    code = ResponseCode.NOT_FOUND


class PersistenceError(FoodTurnsError):
    """Constraint violation or store failure."""

    code = ResponseCode.ERROR


class ConflictError(PersistenceError):
    """Duplicate write, e.g. a second membership row for the same pair."""

    code = ResponseCode.BAD_REQUEST


def response_code_for(exc: BaseException) -> ResponseCode:
    if isinstance(exc, FoodTurnsError):
        return exc.code
    return ResponseCode.ERROR
