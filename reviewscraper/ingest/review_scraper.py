"""Entry points: scrape every review of a listing, or read its page count."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError

from reviewscraper import metrics
from reviewscraper.config import settings
from reviewscraper.ingest.base import ScrapeResult, TerminalState
from reviewscraper.ingest.discovery import PaginationDiscoverer
from reviewscraper.ingest.errors import FatalNavigationError
from reviewscraper.ingest.extractor import RecordExtractor
from reviewscraper.ingest.navigation import NavigationController, RetryPolicy
from reviewscraper.ingest.page_preparer import PagePreparer
from reviewscraper.ingest.pagination import PaginationLoop
from reviewscraper.ingest.session_manager import BrowserSessionManager, DiagnosticsSink
from reviewscraper.ingest.templates import BOOKING_TEMPLATE, ListingTemplate
from reviewscraper.ingest.user_agent_pool import UserAgentPool

logger = logging.getLogger(__name__)


class ReviewScraper:
    """Wires the session, navigation, preparation and extraction components."""

    def __init__(
        self,
        template: ListingTemplate = BOOKING_TEMPLATE,
        user_agents: Optional[UserAgentPool] = None,
        session_manager: Optional[BrowserSessionManager] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
        block_resources: Optional[bool] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the scraper.

        Args:
            template: Selector template of the review listing
            user_agents: Identity pool (built-in pool when omitted)
            session_manager: Browser session owner (built from the pool when omitted)
            diagnostics: Sink for browser crash/disconnect events
            block_resources: Abort image/media/font requests
            sleep: Awaitable used for every delay, replaceable in tests
        """
        self.user_agents = user_agents or UserAgentPool(size=settings.user_agent_pool_size)
        self.sessions = session_manager or BrowserSessionManager(self.user_agents, diagnostics=diagnostics)
        self.block_resources = settings.block_resources if block_resources is None else block_resources

        self.navigator = NavigationController(self.user_agents, sleep=sleep)
        self.preparer = PagePreparer(template, sleep=sleep)
        self.discoverer = PaginationDiscoverer(template)
        self.extractor = RecordExtractor(template)
        self.loop = PaginationLoop(
            self.navigator,
            self.preparer,
            self.discoverer,
            self.extractor,
            sleep=sleep,
        )

    async def scrape_reviews(self, url: str) -> ScrapeResult:
        """
        Scrape all review pages reachable from ``url``.

        Returns:
            ScrapeResult whose ``state`` tells a complete run (CLEAN) from a
            partial one (EXHAUSTED)

        Raises:
            LaunchFailure: If the browser could not be started
            FatalNavigationError: On a non-retryable navigation error; the
                partial records are on ``partial_records``
        """
        start = time.monotonic()
        logger.info(f"Starting review scrape: {url}")

        try:
            async with self.sessions.session_scope() as session:
                if self.block_resources:
                    await self.preparer.install_resource_filter(session)
                result = await self.loop.run(session, url)
        except FatalNavigationError:
            metrics.scrape_runs_total.labels(state=TerminalState.FATAL.value).inc()
            raise
        finally:
            metrics.scrape_duration_seconds.observe(time.monotonic() - start)

        metrics.scrape_runs_total.labels(state=result.state.value).inc()
        logger.info(
            f"Scrape finished ({result.state.value}): {len(result.records)} reviews "
            f"from {result.pages_visited} pages in {time.monotonic() - start:.1f}s"
        )
        return result

    async def get_last_page_number(self, url: str) -> Optional[str]:
        """
        Advisory last page label of the listing at ``url``, or None.

        Uses its own session and the smaller discovery retry budget. Navigation
        and browser failures yield None; only a browser launch failure is
        raised.
        """
        async with self.sessions.session_scope() as session:
            try:
                outcome = await self.navigator.navigate(
                    session,
                    url,
                    RetryPolicy.discovery(),
                    timeout_ms=settings.discovery_navigation_timeout_ms,
                )
                if not outcome.success:
                    logger.error(f"Could not load {url} for page count: {outcome.error}")
                    return None

                await self.preparer.prepare(session)
                return await self.discoverer.last_page_hint(session)
            except FatalNavigationError as e:
                logger.error(f"Could not load {url} for page count: {e}")
                return None
            except PlaywrightError as e:
                logger.error(f"Browser failure reading page count of {url}: {type(e).__name__}: {e}")
                return None


async def scrape_reviews(url: str) -> ScrapeResult:
    """Scrape every review of ``url`` with default configuration."""
    return await ReviewScraper().scrape_reviews(url)


async def get_last_page_number(url: str) -> Optional[str]:
    """Advisory last page label of ``url`` with default configuration."""
    return await ReviewScraper().get_last_page_number(url)
