"""
Orchestrator Module - Request course data from a document context.
==================================================================

Sends ``{type: "extract-course-data"}`` to a context and recovers at most
once from a missing listener:

    IDLE → REQUESTING → SUCCESS
                      → FAILED                      (ok:false, transport fault)
                      → RECOVERING_VIA_INJECTION ┐
                      → RECOVERING_VIA_RELOAD    ┴→ RETRYING → SUCCESS | FAILED

Transitions come from a pure table lookup (:func:`transition`); a second
missing-listener failure has no entry leading back into recovery, so the
one-recovery limit holds by construction.
"""

import asyncio
import re
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError

from course_exporter.orchestration.context import DocumentContext
from course_exporter.shared.config import get_settings
from course_exporter.shared.errors import (
    ExportError,
    InvalidTransitionError,
    NoReceiverError,
    PreconditionError,
    ReloadTimeoutError,
    TransportError,
    is_missing_receiver_error,
)
from course_exporter.shared.logging import get_logger
from course_exporter.shared.schemas import ExtractionResult, ExtractRequest, ExtractResponse

logger = get_logger(__name__)

TAB_NOT_FOUND = "Active tab not found."
NOT_A_COURSE_TAB = "A course page must be open in the target tab."
UNREADABLE_RESPONSE = "Could not read page data."


# ─────────────────────────────────────────────────────────────────────────────
# State Machine
# ─────────────────────────────────────────────────────────────────────────────


class RequestState(str, Enum):
    """States of one request invocation."""

    IDLE = "idle"
    REQUESTING = "requesting"
    RECOVERING_VIA_INJECTION = "recovering_via_injection"
    RECOVERING_VIA_RELOAD = "recovering_via_reload"
    RETRYING = "retrying"
    SUCCESS = "success"
    FAILED = "failed"


class RequestEvent(str, Enum):
    """Events that drive the request state machine."""

    START = "start"
    RESPONSE_OK = "response_ok"
    RESPONSE_ERROR = "response_error"
    NO_RECEIVER = "no_receiver"
    TRANSPORT_ERROR = "transport_error"
    RECOVERED = "recovered"
    RECOVERY_FAILED = "recovery_failed"
    TIMED_OUT = "timed_out"


TERMINAL_STATES = frozenset({RequestState.SUCCESS, RequestState.FAILED})

_S = RequestState
_E = RequestEvent

_TRANSITIONS: dict[tuple[RequestState, RequestEvent], RequestState] = {
    (_S.IDLE, _E.START): _S.REQUESTING,
    (_S.REQUESTING, _E.RESPONSE_OK): _S.SUCCESS,
    (_S.REQUESTING, _E.RESPONSE_ERROR): _S.FAILED,
    (_S.REQUESTING, _E.TRANSPORT_ERROR): _S.FAILED,
    (_S.RECOVERING_VIA_INJECTION, _E.RECOVERED): _S.RETRYING,
    (_S.RECOVERING_VIA_INJECTION, _E.RECOVERY_FAILED): _S.FAILED,
    (_S.RECOVERING_VIA_RELOAD, _E.RECOVERED): _S.RETRYING,
    (_S.RECOVERING_VIA_RELOAD, _E.RECOVERY_FAILED): _S.FAILED,
    (_S.RECOVERING_VIA_RELOAD, _E.TIMED_OUT): _S.FAILED,
    (_S.RETRYING, _E.RESPONSE_OK): _S.SUCCESS,
    (_S.RETRYING, _E.RESPONSE_ERROR): _S.FAILED,
    (_S.RETRYING, _E.TRANSPORT_ERROR): _S.FAILED,
    (_S.RETRYING, _E.NO_RECEIVER): _S.FAILED,
}


def transition(
    state: RequestState,
    event: RequestEvent,
    can_inject: bool = False,
) -> RequestState:
    """
    Compute the next state.

    Args:
        state: Current state
        event: Event that occurred
        can_inject: Whether the context supports script injection; only
            consulted for a first missing-listener failure

    Returns:
        The next state

    Raises:
        InvalidTransitionError: If the event is impossible in this state
    """
    if state is RequestState.REQUESTING and event is RequestEvent.NO_RECEIVER:
        if can_inject:
            return RequestState.RECOVERING_VIA_INJECTION
        return RequestState.RECOVERING_VIA_RELOAD

    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransitionError(
            f"No transition from {state.value} on {event.value}"
        ) from None


# ─────────────────────────────────────────────────────────────────────────────
# Location Check
# ─────────────────────────────────────────────────────────────────────────────


def validate_course_location(url: Optional[str], pattern: Optional[str] = None) -> str:
    """
    Reject a target whose location is not a course page.

    Runs before any message is sent.

    Raises:
        PreconditionError: If the URL is missing or does not match
    """
    if not url:
        raise PreconditionError(TAB_NOT_FOUND)

    pattern = pattern or get_settings().site.course_url_pattern
    if not re.match(pattern, url, re.IGNORECASE):
        raise PreconditionError(NOT_A_COURSE_TAB)
    return url


def parse_extract_response(response: Any) -> ExtractionResult:
    """
    Validate a response message and return its data.

    Raises:
        PreconditionError: For ``{ok: false, error}``, with the error verbatim
        TransportError: For a missing or malformed response
    """
    if not isinstance(response, dict):
        raise TransportError(UNREADABLE_RESPONSE)

    try:
        parsed = ExtractResponse.model_validate(response)
    except ValidationError as e:
        logger.debug(f"Malformed response: {e}")
        raise TransportError(UNREADABLE_RESPONSE) from e

    if not parsed.ok:
        raise PreconditionError(parsed.error or UNREADABLE_RESPONSE)
    if parsed.data is None:
        raise TransportError(UNREADABLE_RESPONSE)
    return parsed.data


# ─────────────────────────────────────────────────────────────────────────────
# Orchestrator
# ─────────────────────────────────────────────────────────────────────────────


class RequestOrchestrator:
    """
    Drives one request per call through the state machine.

    Example:
        >>> orchestrator = RequestOrchestrator()
        >>> result = await orchestrator.request_course_data(tab)
        >>> result.slug
        'web-auth'
    """

    def __init__(
        self,
        reload_timeout: Optional[float] = None,
        request_type: Optional[str] = None,
        course_url_pattern: Optional[str] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            reload_timeout: Seconds to wait for a reload to complete
            request_type: Request message type
            course_url_pattern: Regex a target URL must match
        """
        settings = get_settings()

        self.reload_timeout = (
            reload_timeout if reload_timeout is not None else settings.get_effective_reload_timeout()
        )
        self.request = ExtractRequest(type=request_type or settings.orchestration.request_type)
        self.course_url_pattern = course_url_pattern or settings.site.course_url_pattern

        # States visited by the last invocation
        self.history: list[RequestState] = []

    def _advance(self, state: RequestState, event: RequestEvent, can_inject: bool = False) -> RequestState:
        next_state = transition(state, event, can_inject=can_inject)
        logger.debug(f"{state.value} --{event.value}--> {next_state.value}")
        self.history.append(next_state)
        return next_state

    async def _send(self, context: DocumentContext) -> tuple[RequestEvent, Any]:
        """Send the request once; classify the outcome as an event."""
        try:
            response = await context.send_message(self.request.to_json_dict())
        except NoReceiverError as e:
            return RequestEvent.NO_RECEIVER, e
        except TransportError as e:
            if is_missing_receiver_error(e):
                return RequestEvent.NO_RECEIVER, NoReceiverError(str(e))
            return RequestEvent.TRANSPORT_ERROR, e

        try:
            return RequestEvent.RESPONSE_OK, parse_extract_response(response)
        except PreconditionError as e:
            return RequestEvent.RESPONSE_ERROR, e
        except TransportError as e:
            return RequestEvent.TRANSPORT_ERROR, e

    async def _inject(self, context: DocumentContext) -> tuple[RequestEvent, Optional[ExportError]]:
        logger.info("No listener in target; injecting extractor")
        try:
            await context.inject_extractor()
        except ExportError as e:
            return RequestEvent.RECOVERY_FAILED, e
        return RequestEvent.RECOVERED, None

    async def _reload(self, context: DocumentContext) -> tuple[RequestEvent, Optional[ExportError]]:
        logger.warning(f"No listener in target; reloading (wait up to {self.reload_timeout:g}s)")
        try:
            await context.reload()
        except ExportError as e:
            return RequestEvent.RECOVERY_FAILED, e

        try:
            await asyncio.wait_for(context.wait_until_complete(), timeout=self.reload_timeout)
        except asyncio.TimeoutError:
            await context.stop_loading()
            return RequestEvent.TIMED_OUT, ReloadTimeoutError()
        return RequestEvent.RECOVERED, None

    async def request_course_data(self, context: Optional[DocumentContext]) -> ExtractionResult:
        """
        Request course data from a context, recovering once if needed.

        Args:
            context: Target document context

        Returns:
            ExtractionResult from the context

        Raises:
            PreconditionError: Wrong location, or the context reported an error
            NoReceiverError: Still no listener after recovery
            ReloadTimeoutError: Reload did not complete in time
            TransportError: Other delivery faults
        """
        validate_course_location(getattr(context, "url", None), self.course_url_pattern)

        self.history = [RequestState.IDLE]
        state = self._advance(RequestState.IDLE, RequestEvent.START)
        result: Optional[ExtractionResult] = None
        failure: Optional[BaseException] = None

        while state not in TERMINAL_STATES:
            if state in (RequestState.REQUESTING, RequestState.RETRYING):
                logger.debug(f"Sending {self.request.type} to {context.url}")
                event, outcome = await self._send(context)
                if event is RequestEvent.RESPONSE_OK:
                    result = outcome
                else:
                    failure = outcome
                state = self._advance(state, event, can_inject=context.can_inject_scripts)
            elif state is RequestState.RECOVERING_VIA_INJECTION:
                event, error = await self._inject(context)
                failure = error or failure
                state = self._advance(state, event)
            elif state is RequestState.RECOVERING_VIA_RELOAD:
                event, error = await self._reload(context)
                failure = error or failure
                state = self._advance(state, event)
            else:
                raise InvalidTransitionError(f"Unexpected state {state.value}")

        if state is RequestState.FAILED:
            logger.error(f"Request failed: {failure}")
            raise failure

        logger.info(f"Received course data for '{result.slug}'")
        return result
