"""
Tests for Orchestration Module.
===============================

Tests for:
- Request state machine transitions
- RequestOrchestrator recovery flows (injection, reload, timeout)
- BrowserTab listener lifecycle
"""

import asyncio

import pytest


def _orchestrator(**kwargs):
    from course_exporter.orchestration.orchestrator import RequestOrchestrator

    kwargs.setdefault("reload_timeout", 1.0)
    return RequestOrchestrator(**kwargs)


# ─────────────────────────────────────────────────────────────────────────────
# State Machine Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestTransition:
    """Tests for the pure transition function."""

    def test_happy_path(self):
        """Test IDLE → REQUESTING → SUCCESS."""
        from course_exporter.orchestration.orchestrator import RequestEvent, RequestState, transition

        state = transition(RequestState.IDLE, RequestEvent.START)
        assert state is RequestState.REQUESTING
        assert transition(state, RequestEvent.RESPONSE_OK) is RequestState.SUCCESS

    def test_no_receiver_picks_recovery_by_capability(self):
        """Test that injection capability selects the recovery branch."""
        from course_exporter.orchestration.orchestrator import RequestEvent, RequestState, transition

        assert (
            transition(RequestState.REQUESTING, RequestEvent.NO_RECEIVER, can_inject=True)
            is RequestState.RECOVERING_VIA_INJECTION
        )
        assert (
            transition(RequestState.REQUESTING, RequestEvent.NO_RECEIVER, can_inject=False)
            is RequestState.RECOVERING_VIA_RELOAD
        )

    def test_second_missing_listener_fails(self):
        """Test that a retry never leads back into recovery."""
        from course_exporter.orchestration.orchestrator import RequestEvent, RequestState, transition

        for can_inject in (True, False):
            assert (
                transition(RequestState.RETRYING, RequestEvent.NO_RECEIVER, can_inject=can_inject)
                is RequestState.FAILED
            )

    @pytest.mark.parametrize(
        "state_name,event_name,expected_name",
        [
            ("REQUESTING", "RESPONSE_ERROR", "FAILED"),
            ("REQUESTING", "TRANSPORT_ERROR", "FAILED"),
            ("RECOVERING_VIA_INJECTION", "RECOVERED", "RETRYING"),
            ("RECOVERING_VIA_INJECTION", "RECOVERY_FAILED", "FAILED"),
            ("RECOVERING_VIA_RELOAD", "RECOVERED", "RETRYING"),
            ("RECOVERING_VIA_RELOAD", "TIMED_OUT", "FAILED"),
            ("RETRYING", "RESPONSE_OK", "SUCCESS"),
            ("RETRYING", "RESPONSE_ERROR", "FAILED"),
        ],
    )
    def test_table_entries(self, state_name: str, event_name: str, expected_name: str):
        """Test individual table entries."""
        from course_exporter.orchestration.orchestrator import RequestEvent, RequestState, transition

        result = transition(RequestState[state_name], RequestEvent[event_name])

        assert result is RequestState[expected_name]

    @pytest.mark.parametrize(
        "state_name,event_name",
        [
            ("IDLE", "RESPONSE_OK"),
            ("SUCCESS", "START"),
            ("FAILED", "NO_RECEIVER"),
            ("RECOVERING_VIA_INJECTION", "TIMED_OUT"),
            ("RETRYING", "RECOVERED"),
        ],
    )
    def test_impossible_events_raise(self, state_name: str, event_name: str):
        """Test that undefined pairs are rejected."""
        from course_exporter.orchestration.orchestrator import RequestEvent, RequestState, transition
        from course_exporter.shared.errors import InvalidTransitionError

        with pytest.raises(InvalidTransitionError):
            transition(RequestState[state_name], RequestEvent[event_name])


class TestLocationAndResponse:
    """Tests for validate_course_location and parse_extract_response."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://frontendmasters.com/courses/web-auth/",
            "https://frontendmasters.com/courses/web-auth",
            "https://frontendmasters.com/courses/web-auth/introduction/",
        ],
    )
    def test_accepts_course_urls(self, url: str):
        """Test URLs that are course pages."""
        from course_exporter.orchestration.orchestrator import validate_course_location

        assert validate_course_location(url, r"^https://frontendmasters\.com/courses/[^/?#]+/?") == url

    @pytest.mark.parametrize(
        "url,message",
        [
            (None, "Active tab not found."),
            ("", "Active tab not found."),
            ("https://frontendmasters.com/learn/", "A course page must be open in the target tab."),
            ("https://example.com/courses/web-auth/", "A course page must be open in the target tab."),
        ],
    )
    def test_rejects_other_locations(self, url, message: str):
        """Test the two location failures."""
        from course_exporter.orchestration.orchestrator import validate_course_location
        from course_exporter.shared.errors import PreconditionError

        with pytest.raises(PreconditionError) as exc_info:
            validate_course_location(url, r"^https://frontendmasters\.com/courses/[^/?#]+/?")

        assert str(exc_info.value) == message

    def test_error_response_is_verbatim(self):
        """Test that ok:false text is surfaced unchanged."""
        from course_exporter.orchestration.orchestrator import parse_extract_response
        from course_exporter.shared.errors import PreconditionError

        with pytest.raises(PreconditionError, match="^Course information could not be found"):
            parse_extract_response(
                {"ok": False, "error": "Course information could not be found on the page."}
            )

    @pytest.mark.parametrize(
        "response",
        [None, "ok", {"ok": True}, {"ok": True, "data": {"slug": "x"}}, {"data": {}}],
    )
    def test_malformed_responses(self, response):
        """Test that unreadable responses are transport failures."""
        from course_exporter.orchestration.orchestrator import UNREADABLE_RESPONSE, parse_extract_response
        from course_exporter.shared.errors import TransportError

        with pytest.raises(TransportError) as exc_info:
            parse_extract_response(response)

        assert str(exc_info.value) == UNREADABLE_RESPONSE


# ─────────────────────────────────────────────────────────────────────────────
# Orchestrator Flow Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestRequestOrchestrator:
    """Tests for RequestOrchestrator.request_course_data."""

    def test_direct_success(self, fake_context_factory, ok_response, extraction_result):
        """Test a context that answers the first request."""
        from course_exporter.orchestration.orchestrator import RequestState

        context = fake_context_factory([ok_response])
        orchestrator = _orchestrator()

        result = asyncio.run(orchestrator.request_course_data(context))

        assert result == extraction_result
        assert context.calls == ["send"]
        assert context.messages == [{"type": "extract-course-data"}]
        assert orchestrator.history == [
            RequestState.IDLE,
            RequestState.REQUESTING,
            RequestState.SUCCESS,
        ]

    def test_recovers_by_injection(self, fake_context_factory, ok_response, extraction_result):
        """Test no listener → inject → one retry, same result as a direct success."""
        from course_exporter.orchestration.orchestrator import RequestState
        from course_exporter.shared.errors import NoReceiverError

        context = fake_context_factory([NoReceiverError(), ok_response])
        orchestrator = _orchestrator()

        result = asyncio.run(orchestrator.request_course_data(context))

        assert result == extraction_result
        assert context.calls == ["send", "inject", "send"]
        assert RequestState.RECOVERING_VIA_INJECTION in orchestrator.history
        assert orchestrator.history[-1] is RequestState.SUCCESS

    def test_recovers_by_reload(self, fake_context_factory, ok_response, extraction_result):
        """Test no listener without injection → reload → wait → retry."""
        from course_exporter.shared.errors import NoReceiverError

        context = fake_context_factory([NoReceiverError(), ok_response], can_inject=False)

        result = asyncio.run(_orchestrator().request_course_data(context))

        assert result == extraction_result
        assert context.calls == ["send", "reload", "wait", "send"]

    def test_message_naming_missing_receiver_counts_as_no_listener(
        self, fake_context_factory, ok_response
    ):
        """Test that a plain transport error about the receiving end triggers recovery."""
        from course_exporter.shared.errors import NO_RECEIVER_MESSAGE, TransportError

        context = fake_context_factory([TransportError(NO_RECEIVER_MESSAGE), ok_response])

        asyncio.run(_orchestrator().request_course_data(context))

        assert context.calls == ["send", "inject", "send"]

    def test_reload_timeout(self, fake_context_factory):
        """Test that a reload that never completes fails without a retry."""
        from course_exporter.shared.errors import RELOAD_TIMEOUT_MESSAGE, NoReceiverError, ReloadTimeoutError

        context = fake_context_factory(
            [NoReceiverError()], can_inject=False, reload_completes=False
        )

        with pytest.raises(ReloadTimeoutError) as exc_info:
            asyncio.run(_orchestrator(reload_timeout=0.05).request_course_data(context))

        assert str(exc_info.value) == RELOAD_TIMEOUT_MESSAGE
        assert context.calls == ["send", "reload", "wait", "stop"]

    def test_error_response_is_not_retried(self, fake_context_factory):
        """Test that ok:false fails immediately with its text."""
        from course_exporter.shared.errors import PreconditionError

        context = fake_context_factory([{"ok": False, "error": "URL is not in /courses/<course-slug>/ format."}])

        with pytest.raises(PreconditionError, match="format"):
            asyncio.run(_orchestrator().request_course_data(context))

        assert context.calls == ["send"]

    def test_second_missing_listener_is_surfaced(self, fake_context_factory):
        """Test that only one recovery is attempted."""
        from course_exporter.shared.errors import NoReceiverError

        context = fake_context_factory([NoReceiverError(), NoReceiverError()])

        with pytest.raises(NoReceiverError):
            asyncio.run(_orchestrator().request_course_data(context))

        assert context.calls == ["send", "inject", "send"]

    def test_failed_injection(self, fake_context_factory):
        """Test that an injection failure ends the request."""
        from course_exporter.shared.errors import NoReceiverError, TransportError

        context = fake_context_factory(
            [NoReceiverError()], inject_error=TransportError("Cannot access page.")
        )

        with pytest.raises(TransportError, match="Cannot access page."):
            asyncio.run(_orchestrator().request_course_data(context))

        assert context.calls == ["send", "inject"]

    def test_non_course_location_sends_nothing(self, fake_context_factory, ok_response):
        """Test that the location check runs before any message."""
        from course_exporter.shared.errors import PreconditionError

        context = fake_context_factory([ok_response], url="https://frontendmasters.com/learn/")

        with pytest.raises(PreconditionError):
            asyncio.run(_orchestrator().request_course_data(context))

        assert context.calls == []

    def test_missing_context(self):
        """Test that no target at all is a precondition failure."""
        from course_exporter.shared.errors import PreconditionError

        with pytest.raises(PreconditionError, match="Active tab not found."):
            asyncio.run(_orchestrator().request_course_data(None))

    def test_malformed_response(self, fake_context_factory):
        """Test that a garbage response is a transport failure."""
        from course_exporter.shared.errors import TransportError

        context = fake_context_factory([{"unexpected": True}])

        with pytest.raises(TransportError, match="Could not read page data."):
            asyncio.run(_orchestrator().request_course_data(context))


# ─────────────────────────────────────────────────────────────────────────────
# Browser Tab Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestBrowserTab:
    """Tests for BrowserTab backed by a stub fetcher."""

    def test_fresh_tab_has_no_listener(self, stub_fetcher_factory, sample_course_html, course_url):
        """Test that messaging a freshly opened tab fails with no receiver."""
        from course_exporter.orchestration.context import BrowserTab, TabStatus
        from course_exporter.shared.errors import NoReceiverError

        async def scenario():
            tab = BrowserTab(course_url, fetcher=stub_fetcher_factory(sample_course_html))
            await tab.open()
            assert tab.status is TabStatus.COMPLETE
            await tab.send_message({"type": "extract-course-data"})

        with pytest.raises(NoReceiverError):
            asyncio.run(scenario())

    def test_injection_attaches_listener_once(
        self, stub_fetcher_factory, sample_course_html, course_url
    ):
        """Test that injection is idempotent and the listener answers."""
        from course_exporter.orchestration.context import BrowserTab

        async def scenario():
            tab = BrowserTab(course_url, fetcher=stub_fetcher_factory(sample_course_html))
            await tab.open()
            await tab.inject_extractor()
            listener = tab._listener
            await tab.inject_extractor()
            assert tab._listener is listener
            ignored = await tab.send_message({"type": "ping"})
            response = await tab.send_message({"type": "extract-course-data"})
            return ignored, response

        ignored, response = asyncio.run(scenario())

        assert ignored is None
        assert response["ok"] is True
        assert response["data"]["payload"]["courseData"]["title"] == "Web Authentication APIs"

    def test_injection_requires_scripting(self, stub_fetcher_factory, sample_course_html, course_url):
        """Test that a tab without scripting refuses injection."""
        from course_exporter.orchestration.context import BrowserTab
        from course_exporter.shared.errors import TransportError

        async def scenario():
            tab = BrowserTab(
                course_url,
                fetcher=stub_fetcher_factory(sample_course_html),
                scripting_enabled=False,
            )
            await tab.open()
            await tab.inject_extractor()

        with pytest.raises(TransportError):
            asyncio.run(scenario())

    def test_injection_before_load_fails(self, stub_fetcher_factory, sample_course_html, course_url):
        """Test that injection needs a completed load."""
        from course_exporter.orchestration.context import BrowserTab
        from course_exporter.shared.errors import TransportError

        tab = BrowserTab(course_url, fetcher=stub_fetcher_factory(sample_course_html))

        with pytest.raises(TransportError):
            asyncio.run(tab.inject_extractor())

    @pytest.mark.parametrize("auto_attach", [True, False])
    def test_reload_reattaches_listener(
        self, stub_fetcher_factory, sample_course_html, course_url, auto_attach: bool
    ):
        """Test that a reload drops the listener and the new load re-attaches it."""
        from course_exporter.orchestration.context import BrowserTab

        fetcher = stub_fetcher_factory(sample_course_html)

        async def scenario():
            tab = BrowserTab(course_url, fetcher=fetcher, auto_attach_listener=auto_attach)
            await tab.open()
            assert tab.has_listener is auto_attach
            await tab.reload()
            assert not tab.has_listener
            await tab.wait_until_complete()
            return tab.has_listener

        assert asyncio.run(scenario()) is True
        assert fetcher.calls == 2

    def test_failed_reload_is_logged_and_times_out(
        self, stub_fetcher_factory, sample_course_html, course_url, caplog
    ):
        """Test that a reload whose fetch raises is logged and bounded by the timeout."""
        from course_exporter.orchestration.context import BrowserTab
        from course_exporter.shared.errors import ReloadTimeoutError

        class BrokenOnReload(stub_fetcher_factory):
            def fetch(self, url):
                if self.calls:
                    self.calls += 1
                    raise RuntimeError("connection reset")
                return super().fetch(url)

        fetcher = BrokenOnReload(sample_course_html)

        async def scenario():
            tab = BrowserTab(course_url, fetcher=fetcher, scripting_enabled=False)
            await tab.open()
            await _orchestrator(reload_timeout=0.2).request_course_data(tab)

        with caplog.at_level("ERROR"):
            with pytest.raises(ReloadTimeoutError):
                asyncio.run(scenario())

        assert fetcher.calls == 2
        assert "connection reset" in caplog.text

    def test_stop_loading_cancels_pending_reload(
        self, stub_fetcher_factory, sample_course_html, course_url
    ):
        """Test that an abandoned reload does not keep running."""
        from course_exporter.orchestration.context import BrowserTab, TabStatus

        fetcher = stub_fetcher_factory(sample_course_html, delay=0.2)

        async def scenario():
            tab = BrowserTab(course_url, fetcher=fetcher)
            await tab.open()
            await tab.reload()
            await asyncio.sleep(0)
            await tab.stop_loading()
            await asyncio.gather(tab._load_task, return_exceptions=True)
            return tab

        tab = asyncio.run(scenario())

        assert tab._load_task.cancelled()
        assert tab.status is TabStatus.LOADING
        assert not tab.has_listener

    def test_orchestrator_recovers_fresh_tab_by_injection(
        self, stub_fetcher_factory, sample_course_html, course_url
    ):
        """Test the full request against a tab that starts without a listener."""
        from course_exporter.orchestration.context import BrowserTab

        async def scenario():
            tab = BrowserTab(course_url, fetcher=stub_fetcher_factory(sample_course_html))
            await tab.open()
            try:
                return await _orchestrator().request_course_data(tab)
            finally:
                await tab.close()

        result = asyncio.run(scenario())

        assert result.slug == "web-auth"
        assert result.payload.course_data.lesson_count == 5

    def test_orchestrator_recovers_fresh_tab_by_reload(
        self, stub_fetcher_factory, sample_course_html, course_url
    ):
        """Test that a tab without scripting recovers through one reload."""
        from course_exporter.orchestration.context import BrowserTab
        from course_exporter.orchestration.orchestrator import RequestState

        fetcher = stub_fetcher_factory(sample_course_html)
        orchestrator = _orchestrator()

        async def scenario():
            tab = BrowserTab(course_url, fetcher=fetcher, scripting_enabled=False)
            await tab.open()
            try:
                return await orchestrator.request_course_data(tab)
            finally:
                await tab.close()

        result = asyncio.run(scenario())

        assert result.slug == "web-auth"
        assert fetcher.calls == 2
        assert RequestState.RECOVERING_VIA_RELOAD in orchestrator.history
        assert orchestrator.history[-1] is RequestState.SUCCESS

    def test_failed_load_reports_missing_course_data(self, stub_fetcher_factory, course_url):
        """Test that an errored load yields an empty page and an error response."""
        from course_exporter.extraction.assembler import COURSE_DATA_NOT_FOUND
        from course_exporter.orchestration.context import BrowserTab
        from course_exporter.shared.errors import PreconditionError

        async def scenario():
            tab = BrowserTab(
                course_url,
                fetcher=stub_fetcher_factory("<h1>Oops</h1>", status_code=500),
                auto_attach_listener=True,
            )
            await tab.open()
            await _orchestrator().request_course_data(tab)

        with pytest.raises(PreconditionError) as exc_info:
            asyncio.run(scenario())

        assert str(exc_info.value) == COURSE_DATA_NOT_FOUND
