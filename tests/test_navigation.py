"""Tests for navigation retry, backoff and identity rotation."""

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from fakes import FakePage, FakePlaywrightFactory, build_listing
from reviewscraper.config import settings
from reviewscraper.ingest.errors import (
    FatalNavigationError,
    NavigationExhausted,
    RateLimitedError,
    RetryExhausted,
)
from reviewscraper.ingest.navigation import NavigationController, RetryPolicy, signature_classifier
from reviewscraper.ingest.session_manager import BrowserSessionManager

URL = "https://www.example.com/hotel/reviews"


async def _session(user_agents, **page_kwargs):
    page = FakePage(build_listing(1, 1), **page_kwargs)
    manager = BrowserSessionManager(user_agents, executable_path="", playwright_factory=FakePlaywrightFactory(page))
    return await manager.acquire(), page


class TestClassifier:
    """Default retryable/fatal classification."""

    def test_rate_limit_signatures(self):
        is_retryable = signature_classifier()
        assert is_retryable(RateLimitedError(URL))
        assert is_retryable(Exception("net::ERR_TOO_MANY_RETRIES at https://x"))
        assert is_retryable(Exception("Navigation failed: 429 Too Many Requests"))

    def test_other_errors_are_fatal(self):
        is_retryable = signature_classifier()
        assert not is_retryable(Exception("net::ERR_NAME_NOT_RESOLVED"))
        assert not is_retryable(ValueError("Cannot navigate to invalid URL"))

    def test_429_inside_url_is_not_rate_limiting(self):
        is_retryable = signature_classifier()
        url = "https://www.example.com/hotel/es/casa.es.html?aid=304292&label=x429"
        assert not is_retryable(Exception(f"net::ERR_NAME_NOT_RESOLVED at {url}"))
        assert not is_retryable(Exception(f"net::ERR_CONNECTION_REFUSED at {url}\nCall log:\n  - navigating to \"{url}\""))

    def test_429_status_is_rate_limiting(self):
        is_retryable = signature_classifier()
        assert is_retryable(Exception("Server responded with HTTP 429"))
        assert is_retryable(Exception("Unexpected status: 429 at https://www.example.com/r"))

    def test_timeouts_only_when_enabled(self):
        timeout = PlaywrightTimeoutError("Timeout 45000ms exceeded")
        assert not signature_classifier()(timeout)
        assert signature_classifier(retry_timeouts=True)(timeout)
        assert RetryPolicy.pagination().is_retryable(timeout)


def test_backoff_is_linear_in_attempt():
    policy = RetryPolicy(kind="test", max_attempts=3, min_delay_ms=2000, max_delay_ms=2000)

    assert policy.backoff_seconds(1) == pytest.approx(2.0)
    assert policy.backoff_seconds(3) == pytest.approx(6.0)


def test_backoff_within_jitter_range():
    policy = RetryPolicy(kind="test", max_attempts=3, min_delay_ms=1000, max_delay_ms=3000)

    for _ in range(20):
        assert 2.0 <= policy.backoff_seconds(2) <= 6.0


def test_exhausted_alias():
    assert NavigationExhausted is RetryExhausted


@pytest.mark.asyncio
async def test_rate_limited_then_success(user_agents, sleep_recorder):
    """A 429 on the first attempt is retried after a delay with a new identity."""
    session, page = await _session(user_agents, goto_outcomes=[429, None])
    initial_ua = session.user_agent
    controller = NavigationController(user_agents, sleep=sleep_recorder)

    outcome = await controller.navigate(session, URL)

    assert outcome.success is True
    assert outcome.attempts == 2
    assert outcome.error is None
    assert page.goto_calls == [URL, URL]
    assert len(sleep_recorder.delays) == 1
    assert settings.initial_min_delay_ms / 1000 <= sleep_recorder.delays[0] <= settings.initial_max_delay_ms / 1000
    assert len(page.header_history) == 1
    assert page.header_history[0]["User-Agent"] != initial_ua
    assert session.user_agent == page.header_history[0]["User-Agent"]


@pytest.mark.asyncio
async def test_driver_error_signature_is_retried(user_agents, sleep_recorder):
    session, page = await _session(
        user_agents,
        goto_outcomes=[Exception("net::ERR_TOO_MANY_RETRIES"), Exception("net::ERR_TOO_MANY_RETRIES")],
    )
    controller = NavigationController(user_agents, sleep=sleep_recorder)

    outcome = await controller.navigate(session, URL)

    assert outcome.success is True
    assert outcome.attempts == 3
    assert len(sleep_recorder.delays) == 2


@pytest.mark.asyncio
async def test_fatal_error_is_not_retried(user_agents, sleep_recorder):
    session, page = await _session(user_agents, goto_outcomes=[Exception("net::ERR_NAME_NOT_RESOLVED")])
    controller = NavigationController(user_agents, sleep=sleep_recorder)

    with pytest.raises(FatalNavigationError) as exc_info:
        await controller.navigate(session, URL)

    assert "ERR_NAME_NOT_RESOLVED" in str(exc_info.value)
    assert page.goto_calls == [URL]
    assert sleep_recorder.delays == []
    assert page.header_history == []


@pytest.mark.asyncio
async def test_dns_failure_on_url_containing_429_is_fatal(user_agents, sleep_recorder):
    url = "https://www.example.com/hotel/es/casa.es.html?aid=304292"
    session, page = await _session(
        user_agents,
        goto_outcomes=[Exception(f"net::ERR_NAME_NOT_RESOLVED at {url}")],
    )
    controller = NavigationController(user_agents, sleep=sleep_recorder)

    with pytest.raises(FatalNavigationError):
        await controller.navigate(session, url)

    assert page.goto_calls == [url]
    assert sleep_recorder.delays == []


@pytest.mark.asyncio
async def test_budget_exhausted(user_agents, sleep_recorder):
    """Every attempt throttled: outcome carries RetryExhausted with the last cause."""
    session, page = await _session(user_agents, goto_outcomes=[429] * 10)
    controller = NavigationController(user_agents, sleep=sleep_recorder)
    policy = RetryPolicy(kind="initial", max_attempts=3, min_delay_ms=100, max_delay_ms=100)

    outcome = await controller.navigate(session, URL, policy)

    assert outcome.success is False
    assert outcome.attempts == 3
    assert isinstance(outcome.error, RetryExhausted)
    assert isinstance(outcome.error.last_error, RateLimitedError)
    assert outcome.error.attempts == 3
    assert len(page.goto_calls) == 3
    # No wait after the final attempt
    assert sleep_recorder.delays == pytest.approx([0.1, 0.2])
    assert len(page.header_history) == 2


@pytest.mark.asyncio
async def test_injected_classifier(user_agents, sleep_recorder):
    """A custom predicate replaces the built-in signatures."""
    session, page = await _session(
        user_agents,
        goto_outcomes=[Exception("captcha wall"), None],
    )
    controller = NavigationController(user_agents, sleep=sleep_recorder)
    policy = RetryPolicy(
        kind="initial",
        max_attempts=2,
        min_delay_ms=0,
        max_delay_ms=0,
        is_retryable=lambda e: "captcha" in str(e),
    )

    outcome = await controller.navigate(session, URL, policy)

    assert outcome.success is True
    assert outcome.attempts == 2
