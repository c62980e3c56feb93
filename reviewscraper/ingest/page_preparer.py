"""Clears consent dialogs and content gates after a navigation."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from playwright.async_api import Route

from reviewscraper.config import settings
from reviewscraper.ingest.session_manager import Session
from reviewscraper.ingest.templates import BOOKING_TEMPLATE, ListingTemplate

logger = logging.getLogger(__name__)

BLOCKED_RESOURCE_TYPES = frozenset(["image", "media", "font"])


def random_delay_seconds(min_ms: int, max_ms: int) -> float:
    """Uniform random delay between two millisecond bounds, in seconds."""
    return random.uniform(min_ms, max_ms) / 1000.0


class PagePreparer:
    """Best-effort removal of interaction friction on a freshly loaded page."""

    def __init__(
        self,
        template: ListingTemplate = BOOKING_TEMPLATE,
        record_timeout_ms: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.template = template
        self.record_timeout_ms = record_timeout_ms or settings.record_wait_timeout_ms
        self._sleep = sleep

    async def prepare(self, session: Session) -> None:
        """Accept cookies, then expand all reviews. Missing controls are skipped."""
        await self._accept_consent(session)
        await self._expand_content(session)

    async def _accept_consent(self, session: Session) -> None:
        selector = self.template.consent_button_selector
        try:
            button = await session.page.query_selector(selector)
            if not button:
                return
            logger.info("Cookie banner found, accepting")
            await button.click()
            await self._sleep(random_delay_seconds(settings.consent_settle_min_ms, settings.consent_settle_max_ms))
        except Exception as e:
            logger.warning(f"Could not accept cookie banner: {type(e).__name__}: {e}")

    async def _expand_content(self, session: Session) -> None:
        selector = self.template.expand_button_selector
        try:
            button = await session.page.query_selector(selector)
            if not button:
                return
            logger.info("'Read all reviews' button found, clicking")
            await button.click()
            await self._sleep(random_delay_seconds(settings.expand_settle_min_ms, settings.expand_settle_max_ms))
            # Expansion can replace the review list subtree
            await session.page.wait_for_selector(self.template.card_selector, timeout=self.record_timeout_ms)
        except Exception as e:
            logger.warning(f"Could not expand reviews: {type(e).__name__}: {e}")

    async def install_resource_filter(self, session: Session) -> None:
        """Abort image, media and font requests. Call before navigating."""
        await session.page.route("**/*", self._route_handler)
        logger.debug(f"Blocking resource types: {', '.join(sorted(BLOCKED_RESOURCE_TYPES))}")

    @staticmethod
    async def _route_handler(route: Route) -> None:
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
            return
        await route.continue_()
