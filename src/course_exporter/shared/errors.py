"""
Errors Module - Exception taxonomy for the export flow.
=======================================================

- PreconditionError: wrong page location or required course data missing
- TransportError / NoReceiverError: the target context could not be reached
- ReloadTimeoutError: a reload did not finish within the bounded wait
- UserCancelledError: the user abandoned choosing a destination
- PersistenceError: an export artifact could not be written

Normalizers never raise; only the two structural preconditions can fail
extraction itself.
"""

from typing import Optional

NO_RECEIVER_MESSAGE = "Could not establish connection. Receiving end does not exist."
RELOAD_TIMEOUT_MESSAGE = "Tab reload timed out. Please reload the page manually and try again."


class ExportError(Exception):
    """Base class for all export failures."""


class PreconditionError(ExportError):
    """The target page is not a course page, or its course data is missing."""


class TransportError(ExportError):
    """A request message could not be delivered or answered."""


class NoReceiverError(TransportError):
    """The target context has no listener registered for the request."""

    def __init__(self, message: str = NO_RECEIVER_MESSAGE):
        super().__init__(message)


class ReloadTimeoutError(ExportError, TimeoutError):
    """The target context did not finish reloading within the allowed wait."""

    def __init__(self, message: str = RELOAD_TIMEOUT_MESSAGE):
        super().__init__(message)


class UserCancelledError(ExportError):
    """Destination selection was abandoned. Reported as a cancellation."""


class PersistenceError(ExportError):
    """Writing an export artifact failed."""

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        written: Optional[list[str]] = None,
    ):
        super().__init__(message)
        self.filename = filename
        self.written = list(written or [])


class ExportInProgressError(ExportError):
    """Another export is already running for this exporter."""


class InvalidTransitionError(ValueError):
    """The request state machine received an event it cannot handle."""


def is_missing_receiver_error(error: BaseException) -> bool:
    """
    Check whether an error signals that no listener is present.

    Args:
        error: Any exception raised while sending a message

    Returns:
        True for NoReceiverError or a message naming a missing receiving end
    """
    if isinstance(error, NoReceiverError):
        return True
    return "Receiving end does not exist" in str(error)
