"""Command-line entry point.

Usage:
    python -m reviewscraper.main <url>
    python -m reviewscraper.main <url> --pages-only
"""

import argparse
import asyncio
import json
import logging
import sys

from reviewscraper.ingest.base import TerminalState
from reviewscraper.ingest.errors import FatalNavigationError, LaunchFailure
from reviewscraper.ingest.review_scraper import ReviewScraper
from reviewscraper.logging_config import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2


async def run(url: str, pages_only: bool = False) -> int:
    scraper = ReviewScraper()

    if pages_only:
        last_page = await scraper.get_last_page_number(url)
        print(json.dumps({"url": url, "last_page_number": last_page}))
        return EXIT_OK

    try:
        result = await scraper.scrape_reviews(url)
    except FatalNavigationError as e:
        logger.error(f"Scrape aborted: {e}")
        print(json.dumps({
            "url": url,
            "state": TerminalState.FATAL.value,
            "error": str(e),
            "records": [r.to_dict() for r in e.partial_records],
        }, ensure_ascii=False, indent=2))
        return EXIT_FATAL

    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return EXIT_PARTIAL if result.is_partial else EXIT_OK


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Scrape paginated reviews from a rendered listing")
    parser.add_argument("url", help="URL of the review listing")
    parser.add_argument(
        "--pages-only",
        action="store_true",
        help="Only report the advisory last page number",
    )
    args = parser.parse_args(argv)

    setup_logging()

    try:
        return asyncio.run(run(args.url, pages_only=args.pages_only))
    except LaunchFailure as e:
        logger.error(str(e))
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
