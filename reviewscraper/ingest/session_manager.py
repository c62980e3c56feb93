"""Headless browser session lifecycle: one browser process and one page per run."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, List, Optional, Protocol

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from reviewscraper import metrics
from reviewscraper.config import settings
from reviewscraper.ingest.errors import LaunchFailure
from reviewscraper.ingest.user_agent_pool import UserAgentPool

logger = logging.getLogger(__name__)


class DiagnosticsSink(Protocol):
    """Receives passive browser events. Implementations must not raise."""

    def page_crashed(self, url: str) -> None: ...

    def page_error(self, message: str) -> None: ...

    def browser_disconnected(self) -> None: ...


class LoggingDiagnosticsSink:
    """Diagnostics sink that writes browser events to the log."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def page_crashed(self, url: str) -> None:
        self.log.error(f"Page crashed: {url}")

    def page_error(self, message: str) -> None:
        self.log.warning(f"Page script error: {message}")

    def browser_disconnected(self) -> None:
        self.log.warning("Browser disconnected")


@dataclass
class Session:
    """An open browser process bound to exactly one page."""

    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page
    user_agent: str
    released: bool = field(default=False)

    async def rotate_identity(self, user_agent: str) -> None:
        """Send a different User-Agent on subsequent requests from this page."""
        await self.page.set_extra_http_headers({"User-Agent": user_agent})
        logger.info(f"Rotated User-Agent to: {user_agent}")
        self.user_agent = user_agent


class BrowserSessionManager:
    """
    Launches and tears down headless Chromium sessions.

    ``launches`` and ``releases`` count lifecycle events so callers (and
    tests) can check every acquired session was released exactly once.
    """

    def __init__(
        self,
        user_agents: UserAgentPool,
        diagnostics: Optional[DiagnosticsSink] = None,
        executable_path: Optional[str] = None,
        browser_args: Optional[List[str]] = None,
        headless: Optional[bool] = None,
        disable_cache: Optional[bool] = None,
        playwright_factory: Callable = async_playwright,
    ):
        """
        Initialize session manager.

        Args:
            user_agents: Identity pool, the initial User-Agent is drawn from it
            diagnostics: Sink for crash/disconnect events (logs by default)
            executable_path: Optional Chromium binary override
            browser_args: Chromium command-line flags
            headless: Run without a visible window
            disable_cache: Bypass the HTTP cache so retried loads hit the network
            playwright_factory: Callable returning an object with ``start()``
        """
        self.user_agents = user_agents
        self.diagnostics = diagnostics or LoggingDiagnosticsSink()
        self.executable_path = executable_path if executable_path is not None else settings.browser_executable_path
        self.browser_args = list(browser_args if browser_args is not None else settings.browser_args)
        self.headless = settings.browser_headless if headless is None else headless
        self.disable_cache = settings.disable_cache if disable_cache is None else disable_cache
        self._playwright_factory = playwright_factory

        self.launches = 0
        self.releases = 0

    async def _launch_browser(self, playwright: Playwright) -> Browser:
        """Launch Chromium, retrying once with the bundled binary if an override fails."""
        options = {"headless": self.headless, "args": self.browser_args}

        if self.executable_path:
            try:
                return await playwright.chromium.launch(executable_path=self.executable_path, **options)
            except Exception as e:
                logger.warning(
                    f"Launch with executable {self.executable_path} failed, "
                    f"retrying with default binary: {type(e).__name__}: {e}"
                )

        try:
            return await playwright.chromium.launch(**options)
        except Exception as e:
            raise LaunchFailure(str(e), self.executable_path or None) from e

    def _register_listeners(self, browser: Browser, page: Page) -> None:
        sink = self.diagnostics

        def guarded(fn):
            def handler(*args):
                try:
                    fn(*args)
                except Exception as e:
                    logger.debug(f"Diagnostics sink error: {e}")
            return handler

        page.on("crash", guarded(lambda p: sink.page_crashed(p.url)))
        page.on("pageerror", guarded(lambda err: sink.page_error(str(err))))
        browser.on("disconnected", guarded(lambda b: sink.browser_disconnected()))

    async def _disable_cache(self, context: BrowserContext, page: Page) -> None:
        try:
            cdp = await context.new_cdp_session(page)
            await cdp.send("Network.setCacheDisabled", {"cacheDisabled": True})
        except Exception as e:
            logger.debug(f"Could not disable browser cache: {e}")

    async def acquire(self) -> Session:
        """
        Launch a browser and open one page.

        Returns:
            A new Session; must be passed to release() exactly once

        Raises:
            LaunchFailure: If the browser could not be started
        """
        try:
            playwright = await self._playwright_factory().start()
        except Exception as e:
            metrics.browser_sessions_total.labels(event="launch_failed").inc()
            raise LaunchFailure(f"Playwright driver failed to start: {e}") from e

        browser: Optional[Browser] = None
        try:
            browser = await self._launch_browser(playwright)
            user_agent = self.user_agents.get_random()
            context = await browser.new_context(
                user_agent=user_agent,
                locale=settings.browser_locale,
                ignore_https_errors=True,
            )
            page = await context.new_page()
        except Exception as e:
            metrics.browser_sessions_total.labels(event="launch_failed").inc()
            if browser is not None:
                try:
                    await browser.close()
                except Exception as close_error:
                    logger.error(f"Error closing browser after failed launch: {close_error}")
            await playwright.stop()
            if isinstance(e, LaunchFailure):
                raise
            raise LaunchFailure(str(e), self.executable_path or None) from e

        self._register_listeners(browser, page)
        if self.disable_cache:
            await self._disable_cache(context, page)

        self.launches += 1
        metrics.browser_sessions_total.labels(event="launched").inc()
        logger.info(f"Browser session launched with User-Agent: {user_agent}")

        return Session(
            playwright=playwright,
            browser=browser,
            context=context,
            page=page,
            user_agent=user_agent,
        )

    async def release(self, session: Session) -> None:
        """Close page, context, browser and driver. A second call is a no-op."""
        if session.released:
            logger.warning("Session already released, ignoring")
            return
        session.released = True

        for name, closer in (
            ("page", session.page.close),
            ("context", session.context.close),
            ("browser", session.browser.close),
            ("playwright", session.playwright.stop),
        ):
            try:
                await closer()
            except Exception as e:
                logger.error(f"Error closing {name}: {e}")

        self.releases += 1
        metrics.browser_sessions_total.labels(event="released").inc()
        logger.debug("Browser session released")

    @asynccontextmanager
    async def session_scope(self) -> AsyncIterator[Session]:
        """Acquire a session and release it on every exit path."""
        session = await self.acquire()
        try:
            yield session
        finally:
            await self.release(session)
