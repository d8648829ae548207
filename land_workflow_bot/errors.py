"""Exception types shared by the gateways and workflows."""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for failures raised by land workflow components."""


class StoreUnavailable(WorkflowError):
    """Raised when the manager roster store cannot be queried or written."""


class TicketServiceError(WorkflowError):
    """Raised when a Trello call fails for reasons other than a missing card."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TicketCreateFailed(TicketServiceError):
    """Raised when Trello rejects a card creation or comment."""

    def __init__(self, cause: Exception | str, *, status_code: int | None = None) -> None:
        super().__init__(f"Trello write failed: {cause}", status_code=status_code)
        self.cause = cause


class TicketNotFound(TicketServiceError):
    """Raised when Trello reports that the addressed card does not exist."""


class InvalidLink(WorkflowError):
    """Raised when a submitted link is not a Trello card link."""


class NotificationFailed(WorkflowError):
    """Raised when Slack rejects a message, update, or DM."""

    def __init__(self, operation: str, error: str | None = None) -> None:
        super().__init__(f"Slack {operation} failed: {error or 'unknown_error'}")
        self.operation = operation
        self.error = error


class CorrelationParseError(ValueError):
    """Raised when workflow state cannot be recovered from a rendered message."""


class StatusTransitionError(WorkflowError):
    """Raised when a submission cannot move to the requested state."""


class AlreadyResolved(StatusTransitionError):
    """Raised when a decision targets a submission that is no longer pending."""


class ResponseAlreadySent(WorkflowError):
    """Raised when an event handler tries to reply a second time."""
