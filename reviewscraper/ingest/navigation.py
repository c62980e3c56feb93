"""Navigation with linear jittered backoff and identity rotation on rate limiting."""

from __future__ import annotations

import asyncio
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from reviewscraper import metrics
from reviewscraper.config import settings
from reviewscraper.ingest.base import ErrorKind, NavigationAttempt, NavigationOutcome
from reviewscraper.ingest.errors import (
    FatalNavigationError,
    RateLimitedError,
    RetryableNavigationError,
    RetryExhausted,
)
from reviewscraper.ingest.session_manager import Session
from reviewscraper.ingest.user_agent_pool import UserAgentPool

logger = logging.getLogger(__name__)

RetryClassifier = Callable[[BaseException], bool]

# Substrings (lowercase match) of driver errors that indicate throttling
RATE_LIMIT_SIGNATURES = (
    "too many requests",
    "err_too_many_retries",
    "err_connection_reset",
)

# A 429 only counts when reported as a status, never as a digit run in a URL
_RATE_LIMIT_STATUS_RE = re.compile(r'\b(?:http|status)\W*429\b')
_URL_RE = re.compile(r'\b(?:https?|wss?|file)://\S+')


def signature_classifier(
    signatures: Iterable[str] = RATE_LIMIT_SIGNATURES,
    retry_timeouts: bool = False,
) -> RetryClassifier:
    """
    Build a predicate that decides whether a navigation error is retryable.

    URLs quoted in driver messages are removed before matching, so a target
    whose query string contains "429" is not mistaken for throttling.

    Args:
        signatures: Error message substrings treated as rate limiting
        retry_timeouts: Also retry Playwright timeouts

    Returns:
        Callable returning True for retryable errors
    """
    lowered = tuple(s.lower() for s in signatures)

    def is_retryable(error: BaseException) -> bool:
        if isinstance(error, RetryableNavigationError):
            return True
        if retry_timeouts and isinstance(error, PlaywrightTimeoutError):
            return True
        message = _URL_RE.sub("", str(error).lower())
        if _RATE_LIMIT_STATUS_RE.search(message):
            return True
        return any(sig in message for sig in lowered)

    return is_retryable


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff range for one kind of navigation."""

    kind: str
    max_attempts: int
    min_delay_ms: int
    max_delay_ms: int
    is_retryable: RetryClassifier = field(default_factory=signature_classifier)

    def backoff_seconds(self, attempt: int) -> float:
        """Random delay in [min, max] scaled linearly by the attempt number."""
        return random.uniform(self.min_delay_ms, self.max_delay_ms) * attempt / 1000.0

    @classmethod
    def initial(cls, is_retryable: Optional[RetryClassifier] = None) -> "RetryPolicy":
        return cls(
            kind="initial",
            max_attempts=settings.initial_max_attempts,
            min_delay_ms=settings.initial_min_delay_ms,
            max_delay_ms=settings.initial_max_delay_ms,
            is_retryable=is_retryable or signature_classifier(),
        )

    @classmethod
    def pagination(cls, is_retryable: Optional[RetryClassifier] = None) -> "RetryPolicy":
        # A stuck "next" click usually shows up as a wait timeout
        return cls(
            kind="pagination",
            max_attempts=settings.pagination_max_attempts,
            min_delay_ms=settings.pagination_min_delay_ms,
            max_delay_ms=settings.pagination_max_delay_ms,
            is_retryable=is_retryable or signature_classifier(retry_timeouts=True),
        )

    @classmethod
    def discovery(cls, is_retryable: Optional[RetryClassifier] = None) -> "RetryPolicy":
        return cls(
            kind="discovery",
            max_attempts=settings.discovery_max_attempts,
            min_delay_ms=settings.discovery_min_delay_ms,
            max_delay_ms=settings.discovery_max_delay_ms,
            is_retryable=is_retryable or signature_classifier(),
        )


class NavigationController:
    """Runs navigations under a RetryPolicy, rotating identity between attempts."""

    def __init__(
        self,
        user_agents: UserAgentPool,
        timeout_ms: Optional[int] = None,
        wait_until: Optional[str] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize navigation controller.

        Args:
            user_agents: Identity pool used for rotation
            timeout_ms: Per-navigation timeout
            wait_until: Playwright load state to wait for
            sleep: Awaitable used for backoff delays
        """
        self.user_agents = user_agents
        self.timeout_ms = timeout_ms or settings.navigation_timeout_ms
        self.wait_until = wait_until or settings.navigation_wait_until
        self._sleep = sleep

    async def run_with_retry(
        self,
        session: Session,
        action: Callable[[], Awaitable[object]],
        policy: RetryPolicy,
        target: str,
    ) -> NavigationOutcome:
        """
        Run a navigation action until it succeeds or the policy gives up.

        Args:
            session: Session whose identity is rotated between attempts
            action: Zero-argument coroutine function performing the navigation
            policy: Attempt budget, backoff range and retry classifier
            target: Description of the navigation for logs and errors

        Returns:
            NavigationOutcome; on exhaustion ``error`` is a RetryExhausted

        Raises:
            FatalNavigationError: If the action fails with a non-retryable error
        """
        nav = NavigationAttempt(target=target, kind=policy.kind)

        while nav.attempt < policy.max_attempts:
            nav.attempt += 1
            logger.info(f"[{policy.kind}] {target} (attempt {nav.attempt}/{policy.max_attempts})")

            try:
                await action()
            except Exception as e:
                nav.last_error = e
                if not policy.is_retryable(e):
                    nav.last_error_kind = ErrorKind.OTHER
                    metrics.navigation_attempts_total.labels(kind=policy.kind, outcome="fatal").inc()
                    logger.error(f"[{policy.kind}] Non-retryable error for {target}: {type(e).__name__}: {e}")
                    raise FatalNavigationError(target, e) from e

                nav.last_error_kind = ErrorKind.RATE_LIMITED
                metrics.navigation_attempts_total.labels(kind=policy.kind, outcome="rate_limited").inc()

                if nav.attempt >= policy.max_attempts:
                    break

                delay = policy.backoff_seconds(nav.attempt)
                metrics.navigation_retries_total.labels(kind=policy.kind).inc()
                metrics.navigation_backoff_seconds.labels(kind=policy.kind).observe(delay)
                logger.warning(
                    f"[{policy.kind}] Retryable failure on {target}, retrying in {delay:.1f}s: "
                    f"{type(e).__name__}: {e}"
                )
                await self._sleep(delay)
                await self._rotate_identity(session)
                continue

            metrics.navigation_attempts_total.labels(kind=policy.kind, outcome="success").inc()
            return NavigationOutcome(success=True, attempts=nav.attempt)

        error = RetryExhausted(target, nav.attempt, nav.last_error)
        logger.error(f"[{policy.kind}] {error}")
        return NavigationOutcome(success=False, attempts=nav.attempt, error=error)

    async def _rotate_identity(self, session: Session) -> None:
        try:
            await session.rotate_identity(self.user_agents.get_random(exclude=session.user_agent))
        except Exception as e:
            logger.warning(f"Could not rotate User-Agent: {e}")

    async def navigate(
        self,
        session: Session,
        target: str,
        policy: Optional[RetryPolicy] = None,
        timeout_ms: Optional[int] = None,
    ) -> NavigationOutcome:
        """
        Load ``target`` in the session's page, waiting for network quiescence.

        An HTTP 429 answer is raised as RateLimitedError so it is retried like
        a driver-level throttling error.
        """
        policy = policy or RetryPolicy.initial()
        timeout = timeout_ms or self.timeout_ms

        async def goto():
            response = await session.page.goto(target, wait_until=self.wait_until, timeout=timeout)
            if response is not None and response.status == 429:
                raise RateLimitedError(target, response.status)

        return await self.run_with_retry(session, goto, policy, target)
