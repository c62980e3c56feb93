"""Page-by-page traversal of a review listing by clicking its "next" control."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from reviewscraper import metrics
from reviewscraper.config import settings
from reviewscraper.ingest.base import LoopState, ScrapeResult, TerminalState
from reviewscraper.ingest.discovery import PaginationDiscoverer
from reviewscraper.ingest.errors import FatalNavigationError, PageNotAdvancedError
from reviewscraper.ingest.extractor import RecordExtractor
from reviewscraper.ingest.navigation import NavigationController, RetryPolicy
from reviewscraper.ingest.page_preparer import PagePreparer, random_delay_seconds
from reviewscraper.ingest.session_manager import Session
from reviewscraper.logging_config import get_logger

logger = logging.getLogger(__name__)


class PaginationLoop:
    """
    Drives extraction across pages on a single session.

    The loop ends when no enabled "next" control is rendered (clean), when a
    retry budget runs out (exhausted, partial records kept), or on a
    non-retryable error (FatalNavigationError raised with the partial records
    attached). A click that leaves the same cards on screen counts as a
    retryable failure, so a "next" control that never moves the listing ends
    the run once the pagination budget is spent. The advisory page hint is
    logged but never consulted for termination.

    The loop holds configuration only; each run's progress lives on its
    ScrapeResult, so one loop can serve concurrent runs.
    """

    def __init__(
        self,
        navigator: NavigationController,
        preparer: PagePreparer,
        discoverer: PaginationDiscoverer,
        extractor: RecordExtractor,
        initial_policy: Optional[RetryPolicy] = None,
        pagination_policy: Optional[RetryPolicy] = None,
        max_pages: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.navigator = navigator
        self.preparer = preparer
        self.discoverer = discoverer
        self.extractor = extractor
        self.template = extractor.template
        self.initial_policy = initial_policy or RetryPolicy.initial()
        self.pagination_policy = pagination_policy or RetryPolicy.pagination()
        self.max_pages = max_pages if max_pages is not None else (settings.max_pages or None)
        self._sleep = sleep

    async def _wait_for_records(self, session: Session, timeout_ms: int) -> bool:
        try:
            await session.page.wait_for_selector(self.template.card_selector, timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def run(self, session: Session, url: str) -> ScrapeResult:
        """
        Collect every review reachable from ``url``.

        Returns:
            ScrapeResult in the CLEAN or EXHAUSTED state

        Raises:
            FatalNavigationError: On a non-retryable failure
        """
        log = get_logger(__name__, url=url)
        result = ScrapeResult(url=url)

        try:
            outcome = await self.navigator.navigate(session, url, self.initial_policy)
            if not outcome.success:
                return result.terminate(TerminalState.EXHAUSTED, outcome.error)

            await self.preparer.prepare(session)
            if not await self._wait_for_records(session, settings.record_wait_timeout_ms):
                log.warning("No review cards rendered after initial load")

            result.last_page_hint = await self.discoverer.last_page_hint(session)

            while True:
                result.loop_state = LoopState.EXTRACTING
                records = await self.extractor.extract_page(session)
                result.records.extend(records)
                result.pages_visited += 1
                metrics.pages_scraped_total.inc()
                log.info(
                    f"Page {result.pages_visited} of {result.last_page_hint or 'unknown'}: "
                    f"{len(records)} reviews ({len(result.records)} total)"
                )

                result.loop_state = LoopState.ADVANCING_OR_DONE
                if self.max_pages and result.pages_visited >= self.max_pages:
                    log.warning(f"Stopping at page ceiling ({self.max_pages})")
                    return result.terminate(TerminalState.CLEAN)

                next_button = await session.page.query_selector(self.template.next_button_selector)
                if not next_button:
                    log.info("No more review pages")
                    return result.terminate(TerminalState.CLEAN)

                target = f"page {result.pages_visited + 1} of {url}"
                previous = await self.extractor.fingerprint(session)
                outcome = await self.navigator.run_with_retry(
                    session,
                    lambda: self._advance(session, next_button, previous, target),
                    self.pagination_policy,
                    target,
                )
                if not outcome.success:
                    log.error(
                        f"Could not advance past page {result.pages_visited}, "
                        f"keeping {len(result.records)} reviews"
                    )
                    return result.terminate(TerminalState.EXHAUSTED, outcome.error)

        except FatalNavigationError as e:
            result.terminate(TerminalState.FATAL, e)
            e.partial_records = list(result.records)
            raise
        except PlaywrightError as e:
            # Browser-level failure outside a retried navigation (crash, closed target)
            result.terminate(TerminalState.FATAL, e)
            raise FatalNavigationError(url, e, result.records) from e

    async def _advance(self, session: Session, fallback_button, previous: str, target: str) -> None:
        # A previous attempt may have moved the listing after its wait timed out
        if await self.extractor.fingerprint(session) != previous:
            await session.page.wait_for_selector(self.template.card_selector, timeout=settings.next_page_wait_timeout_ms)
            return

        # Re-query so a retry does not click a detached handle
        button = await session.page.query_selector(self.template.next_button_selector) or fallback_button
        await button.click()
        await self._sleep(random_delay_seconds(settings.next_page_settle_min_ms, settings.next_page_settle_max_ms))
        await session.page.wait_for_selector(self.template.card_selector, timeout=settings.next_page_wait_timeout_ms)

        if await self.extractor.fingerprint(session) == previous:
            raise PageNotAdvancedError(target)
