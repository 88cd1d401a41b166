"""
Domain Error Taxonomy.

Every rule violation in the allocation engine raises one of the exceptions
below. Each carries a stable machine-readable ErrorCode and a human-readable
message; the kind (not found, invalid state, capacity, ...) is the class.

Usage:
    from domain.errors import InvalidStateError, ErrorCode

    raise InvalidStateError(
        ErrorCode.PROJECT_TERMINAL,
        "Cannot update a completed or cancelled project.",
    )

    # At the boundary, turn anything into a safe response
    response = to_error_response(exc)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# =============================================================================
# ERROR KINDS AND CODES
# =============================================================================


class ErrorKind(str, Enum):
    """Categories of failure. None of them is retried by the engine."""
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    INELIGIBLE_ROLE = "ineligible_role"
    VALIDATION = "validation"
    ALREADY_ACTIVE = "already_active"
    ALREADY_INACTIVE = "already_inactive"
    INTERNAL = "internal"


class ErrorCode(str, Enum):
    """
    Stable error codes.

    Categories:
    - *_NOT_FOUND: referenced entity does not exist
    - PROJECT_*, TASK_*, TEAM_*, USER_*: illegal given current state
    - *_CAPACITY_EXCEEDED: ceiling reached
    - ROLE_*, NOT_*: wrong role or relationship for the request
    - VALIDATION_*: malformed input
    """

    # Not found
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    TEAM_NOT_FOUND = "TEAM_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    TEAM_MEMBER_NOT_FOUND = "TEAM_MEMBER_NOT_FOUND"
    COMMENT_NOT_FOUND = "COMMENT_NOT_FOUND"

    # Invalid state
    PROJECT_TERMINAL = "PROJECT_TERMINAL"
    PROJECT_ALREADY_CANCELLED = "PROJECT_ALREADY_CANCELLED"
    PROJECT_HAS_ACTIVE_TASKS = "PROJECT_HAS_ACTIVE_TASKS"
    PROJECT_START_DATE_LOCKED = "PROJECT_START_DATE_LOCKED"
    PROJECT_TEAM_ALREADY_ASSIGNED = "PROJECT_TEAM_ALREADY_ASSIGNED"
    PROJECT_TEAM_MISSING = "PROJECT_TEAM_MISSING"
    PROJECT_SAME_TEAM = "PROJECT_SAME_TEAM"
    PROJECT_SAME_MANAGER = "PROJECT_SAME_MANAGER"
    PROJECT_MANAGES_ACTIVE = "PROJECT_MANAGES_ACTIVE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    TASK_TERMINAL = "TASK_TERMINAL"
    TASK_ALREADY_COMPLETED = "TASK_ALREADY_COMPLETED"
    TASK_ALREADY_ASSIGNED = "TASK_ALREADY_ASSIGNED"
    TASK_NOT_ASSIGNED = "TASK_NOT_ASSIGNED"
    TASK_NOT_STARTED_YET = "TASK_NOT_STARTED_YET"
    TEAM_INACTIVE = "TEAM_INACTIVE"
    TEAM_STAFFS_ACTIVE_PROJECT = "TEAM_STAFFS_ACTIVE_PROJECT"
    USER_INACTIVE = "USER_INACTIVE"
    COMMENT_DELETED = "COMMENT_DELETED"
    COMMENT_ALREADY_DELETED = "COMMENT_ALREADY_DELETED"

    # Capacity
    MANAGER_CAPACITY_EXCEEDED = "MANAGER_CAPACITY_EXCEEDED"
    TEAM_CAPACITY_EXCEEDED = "TEAM_CAPACITY_EXCEEDED"

    # Role / eligibility
    ROLE_NOT_PROJECT_MANAGER = "ROLE_NOT_PROJECT_MANAGER"
    ROLE_NOT_TEAM_MEMBER = "ROLE_NOT_TEAM_MEMBER"
    NOT_TEAM_MEMBER = "NOT_TEAM_MEMBER"
    NOT_PROJECT_PARTICIPANT = "NOT_PROJECT_PARTICIPANT"
    NOT_COMMENT_OWNER = "NOT_COMMENT_OWNER"

    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    VALIDATION_DATE_ORDER = "VALIDATION_DATE_ORDER"
    VALIDATION_DATE_IN_PAST = "VALIDATION_DATE_IN_PAST"
    VALIDATION_DATE_OUT_OF_PROJECT = "VALIDATION_DATE_OUT_OF_PROJECT"
    VALIDATION_IMMUTABLE_FIELD = "VALIDATION_IMMUTABLE_FIELD"
    VALIDATION_DUPLICATE = "VALIDATION_DUPLICATE"

    # Activation toggles
    USER_ALREADY_ACTIVE = "USER_ALREADY_ACTIVE"
    USER_ALREADY_INACTIVE = "USER_ALREADY_INACTIVE"
    TEAM_ALREADY_INACTIVE = "TEAM_ALREADY_INACTIVE"
    MEMBERSHIP_ALREADY_ACTIVE = "MEMBERSHIP_ALREADY_ACTIVE"

    # Fallback
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# EXCEPTIONS
# =============================================================================


class AllocationError(Exception):
    """
    Base class for every domain rule violation.

    Attributes:
        code: Stable machine-readable error code.
        message: Human-readable description.
        details: Optional extra context (entity ids of the caller's own request).
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class NotFoundError(AllocationError):
    """Referenced Project/Task/Team/User/TeamMember/Comment does not exist."""
    kind = ErrorKind.NOT_FOUND


class InvalidStateError(AllocationError):
    """Operation is illegal given the entity's current status."""
    kind = ErrorKind.INVALID_STATE


class CapacityExceededError(AllocationError):
    """A manager or team ceiling has been reached."""
    kind = ErrorKind.CAPACITY_EXCEEDED


class IneligibleRoleError(AllocationError):
    """User has the wrong role (or membership) for the requested relationship."""
    kind = ErrorKind.INELIGIBLE_ROLE


class DomainValidationError(AllocationError):
    """Malformed input: bad date ordering, empty fields, immutable fields."""
    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class AlreadyActiveError(AllocationError):
    """Activation requested on something that is already active."""
    kind = ErrorKind.ALREADY_ACTIVE


class AlreadyInactiveError(AllocationError):
    """Deactivation requested on something that is already inactive."""
    kind = ErrorKind.ALREADY_INACTIVE


# =============================================================================
# ERROR RESPONSE
# =============================================================================


class ErrorResponse(BaseModel):
    """
    Standardized error payload.

    Produced for every failure so callers can branch on `code`.
    """
    error: bool = Field(default=True, description="Always true for errors")
    code: str = Field(..., description="Error code from ErrorCode enum")
    kind: str = Field(..., description="Error category from ErrorKind enum")
    message: str = Field(..., description="Human-readable error message")
    retryable: bool = Field(default=False, description="Whether retrying unchanged may succeed")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")


INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again later."


def to_error_response(exc: BaseException) -> ErrorResponse:
    """
    Map any exception to a stable ErrorResponse.

    Domain errors keep their code and message. Anything else is reported as
    INTERNAL_ERROR with a generic message so no identifiers leak out.

    Args:
        exc: The exception raised by an operation.

    Returns:
        ErrorResponse suitable for returning to a caller.
    """
    if isinstance(exc, AllocationError):
        return ErrorResponse(
            code=exc.code.value,
            kind=exc.kind.value,
            message=exc.message,
            retryable=exc.retryable,
            details=exc.details or None,
        )

    logger.error("Unhandled error: %s", type(exc).__name__, exc_info=exc)
    return ErrorResponse(
        code=ErrorCode.INTERNAL_ERROR.value,
        kind=ErrorKind.INTERNAL.value,
        message=INTERNAL_ERROR_MESSAGE,
    )
