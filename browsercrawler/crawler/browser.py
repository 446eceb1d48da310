"""
Browser abstraction used by the scheduler, with a Playwright implementation.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from playwright.async_api import Browser as PlaywrightBrowserInstance
from playwright.async_api import Page, Playwright, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .exceptions import PageLoadTimeoutError


class BrowserType(Enum):
    """Supported browser engines."""
    CHROMIUM = 'chromium'
    FIREFOX = 'firefox'
    WEBKIT = 'webkit'


class Browser(ABC):
    """Operations the crawler needs from a browser."""

    async def start(self):
        """Launch the browser. No-op by default."""

    @abstractmethod
    async def open(self, url: str, timeout: float):
        """
        Load the URL in the browser.

        Args:
            url: The URL to load
            timeout: Page load timeout in seconds

        Raises:
            PageLoadTimeoutError: if the page does not load in time
        """

    @property
    @abstractmethod
    def current_url(self) -> Optional[str]:
        """URL of the page currently loaded."""

    @abstractmethod
    async def execute_script(self, script: str) -> Any:
        """Run a script in the current page and return its result."""

    @abstractmethod
    async def close(self):
        """Close the browser and free its resources."""


class PlaywrightBrowser(Browser):
    """Browser implementation backed by Playwright."""

    def __init__(self, browser_type: BrowserType = BrowserType.CHROMIUM,
                 headless: bool = True, user_agent: Optional[str] = None):
        self.browser_type = browser_type
        self.headless = headless
        self.user_agent = user_agent
        self.logger = logging.getLogger(__name__)

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[PlaywrightBrowserInstance] = None
        self._page: Optional[Page] = None

    async def start(self):
        if self._page is not None:
            return

        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.browser_type.value)
        self._browser = await launcher.launch(
            headless=self.headless,
            args=['--disable-dev-shm-usage'] if self.browser_type is BrowserType.CHROMIUM else None
        )
        context = await self._browser.new_context(user_agent=self.user_agent)
        self._page = await context.new_page()
        self.logger.info(f"Started {self.browser_type.value} browser (headless={self.headless})")

    async def open(self, url: str, timeout: float):
        if self._page is None:
            await self.start()
        try:
            await self._page.goto(url, wait_until='load', timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise PageLoadTimeoutError(f"Page load timed out after {timeout}s: {url}") from e

    @property
    def current_url(self) -> Optional[str]:
        return self._page.url if self._page is not None else None

    async def execute_script(self, script: str) -> Any:
        if self._page is None:
            return None
        # Playwright evaluates expressions, not function bodies
        return await self._page.evaluate(f"() => {{ {script} }}")

    async def close(self):
        try:
            if self._browser is not None:
                await self._browser.close()
            if self._playwright is not None:
                await self._playwright.stop()
        finally:
            self._page = None
            self._browser = None
            self._playwright = None
            self.logger.info("Browser closed")
