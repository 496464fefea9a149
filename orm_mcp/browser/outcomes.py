"""
Operation outcomes and failure taxonomy.

Internally the browser layer raises AutomationError subclasses. At the
boundary every operation returns Success, Retryable or Fatal, and
map_failure() is the only place where internal failures become the
caller-facing OperationError.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Error kinds surfaced to callers."""

    AUTHENTICATION_FAILED = "authentication_failed"
    NAVIGATION_TIMEOUT = "navigation_timeout"
    NAVIGATION_ERROR = "navigation_error"
    PAGE_STRUCTURE_CHANGED = "page_structure_changed"
    ACTION_UNCONFIRMED = "action_unconfirmed"
    SESSION_EXPIRED = "session_expired"
    TIMEOUT = "timeout"
    INVALID_ARGUMENT = "invalid_argument"


@dataclass(frozen=True)
class OperationError:
    """Classified failure returned to callers."""

    kind: ErrorKind
    message: str
    retryable: bool = False
    ambiguous: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
            "ambiguous": self.ambiguous,
        }


@dataclass(frozen=True)
class Success:
    payload: Any = None


@dataclass(frozen=True)
class Retryable:
    error: OperationError


@dataclass(frozen=True)
class Fatal:
    error: OperationError


OperationOutcome = Union[Success, Retryable, Fatal]


# Internal taxonomy


class AutomationError(Exception):
    """
    Base class for browser automation failures.

    Attributes:
        summary: Caller-safe, human-readable description
        detail: Internal detail (selectors, URLs); logged, never returned
    """

    def __init__(self, summary: str, detail: str = ""):
        super().__init__(summary)
        self.summary = summary
        self.detail = detail


class ElementNotFound(AutomationError):
    """An expected element is missing from the rendered page."""


class NavigationTimeout(AutomationError):
    """Page readiness was not observed within the navigation timeout."""


class OperationTimeout(AutomationError):
    """The caller's deadline expired mid-operation."""


class UnexpectedPage(AutomationError):
    """Navigation landed somewhere other than the requested page."""


class AuthError(AutomationError):
    """Login failed or could not be confirmed."""


class SessionExpired(AutomationError):
    """The platform redirected to its login page."""


class ActionUnconfirmed(AutomationError):
    """A write action was performed but its effect was not observed."""

    def __init__(self, summary: str, detail: str = "", idempotent: bool = False):
        super().__init__(summary, detail)
        self.idempotent = idempotent


class InvalidArgument(AutomationError):
    """Caller input rejected before touching the browser."""


def map_failure(exc: AutomationError) -> Retryable | Fatal:
    """Classify an internal failure into a caller-facing outcome."""
    if exc.detail:
        logger.debug(f"{type(exc).__name__}: {exc.detail}")

    if isinstance(exc, NavigationTimeout):
        return Retryable(OperationError(ErrorKind.NAVIGATION_TIMEOUT, exc.summary, retryable=True))
    if isinstance(exc, OperationTimeout):
        return Retryable(OperationError(ErrorKind.TIMEOUT, exc.summary, retryable=True))
    if isinstance(exc, ActionUnconfirmed):
        if exc.idempotent:
            return Retryable(OperationError(ErrorKind.ACTION_UNCONFIRMED, exc.summary, retryable=True))
        return Fatal(OperationError(ErrorKind.ACTION_UNCONFIRMED, exc.summary, ambiguous=True))
    if isinstance(exc, ElementNotFound):
        return Fatal(
            OperationError(
                ErrorKind.PAGE_STRUCTURE_CHANGED,
                f"{exc.summary} (the platform's page structure no longer matches expectations)",
            )
        )
    if isinstance(exc, UnexpectedPage):
        return Fatal(OperationError(ErrorKind.NAVIGATION_ERROR, exc.summary))
    if isinstance(exc, AuthError):
        return Fatal(OperationError(ErrorKind.AUTHENTICATION_FAILED, exc.summary))
    if isinstance(exc, SessionExpired):
        return Fatal(OperationError(ErrorKind.SESSION_EXPIRED, exc.summary))
    if isinstance(exc, InvalidArgument):
        return Fatal(OperationError(ErrorKind.INVALID_ARGUMENT, exc.summary))

    return Fatal(OperationError(ErrorKind.NAVIGATION_ERROR, exc.summary))
