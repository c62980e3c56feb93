"""Reads the advisory last page label from the rendered pagination control."""

import logging
from typing import Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from selectolax.parser import HTMLParser

from reviewscraper.config import settings
from reviewscraper.ingest.session_manager import Session
from reviewscraper.ingest.templates import BOOKING_TEMPLATE, ListingTemplate

logger = logging.getLogger(__name__)


def last_visible_page_label(html: str, template: ListingTemplate = BOOKING_TEMPLATE) -> Optional[str]:
    """
    Label of the last visible page button in the pagination list.

    Items without a button, or marked aria-hidden (other than "false"), are
    skipped.
    """
    tree = HTMLParser(html or "")
    label = None
    for item in tree.css(template.navigation_item_selector):
        button = item.css_first("button")
        if button is None:
            continue
        # A bare aria-hidden attribute parses with a None value
        if "aria-hidden" in item.attributes and item.attributes["aria-hidden"] != "false":
            continue
        label = (button.text(deep=True) or "").strip() or None
    return label


class PaginationDiscoverer:
    """Advisory page count. The pagination loop never stops on this value."""

    def __init__(self, template: ListingTemplate = BOOKING_TEMPLATE, timeout_ms: Optional[int] = None):
        self.template = template
        self.timeout_ms = timeout_ms or settings.navigation_hint_timeout_ms

    async def last_page_hint(self, session: Session) -> Optional[str]:
        try:
            await session.page.wait_for_selector(self.template.navigation_selector, timeout=self.timeout_ms)
        except PlaywrightTimeoutError:
            logger.info("Pagination control not found, page count unknown")
            return None

        try:
            html = await session.page.content()
        except Exception as e:
            logger.warning(f"Could not read pagination control: {e}")
            return None

        label = last_visible_page_label(html, self.template)
        if label:
            logger.info(f"Detected last review page: {label}")
        return label
