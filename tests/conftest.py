"""Shared fixtures for scraper tests."""

import pytest

from fakes import TEST_USER_AGENTS, FakePage, FakePlaywrightFactory, SleepRecorder, build_listing
from reviewscraper.ingest.review_scraper import ReviewScraper
from reviewscraper.ingest.session_manager import BrowserSessionManager
from reviewscraper.ingest.user_agent_pool import UserAgentPool


@pytest.fixture
def user_agents():
    return UserAgentPool(TEST_USER_AGENTS)


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def make_scraper(user_agents, sleep_recorder):
    """Build a ReviewScraper over a fake browser. Returns (scraper, page, factory, sessions)."""

    def _make(pages=None, launch_errors=None, executable_path="", **page_kwargs):
        page = FakePage(pages if pages is not None else build_listing(3, 2), **page_kwargs)
        factory = FakePlaywrightFactory(page, launch_errors)
        sessions = BrowserSessionManager(
            user_agents,
            executable_path=executable_path,
            playwright_factory=factory,
        )
        scraper = ReviewScraper(
            user_agents=user_agents,
            session_manager=sessions,
            block_resources=False,
            sleep=sleep_recorder,
        )
        return scraper, page, factory, sessions

    return _make
