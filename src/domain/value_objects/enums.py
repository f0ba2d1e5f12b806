from enum import Enum


class GroupType(str, Enum):
    FAMILY = "family"
    PARTNER = "partner"


class MemberRole(str, Enum):
    OWNER = "owner"
    MEMBER = "member"


class StepType(str, Enum):
    CUSTOM = "custom"
    LINK = "link"


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    TIMEOUT = "timeout"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class ResponseCode(int, Enum):
    """Response classification handed to the transport boundary."""

    SUCCESS = 200
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    ERROR = 500
