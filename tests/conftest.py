"""Shared fixtures and fake collaborators for crawler tests."""

import asyncio
from typing import Any, Dict, List, Optional, Set, Union

import pytest

from browsercrawler.crawler.browser import Browser
from browsercrawler.crawler.delay import PAGE_LOAD_TIME_SCRIPT
from browsercrawler.crawler.exceptions import PageLoadTimeoutError
from browsercrawler.crawler.fetcher import HeadResponse
from browsercrawler.utils.config import Config, CrawlerConfig, DelayConfig


class FakeBrowser(Browser):
    """In-memory browser: records opened URLs and answers scripts."""

    def __init__(self, redirects: Optional[Dict[str, str]] = None,
                 timeouts: Optional[Set[str]] = None,
                 load_time: Any = 0,
                 links: Optional[Dict[str, List[str]]] = None):
        self.redirects = redirects or {}
        self.timeouts = timeouts or set()
        self.load_time = load_time
        self.links = links or {}
        self.opened: List[str] = []
        self.start_count = 0
        self.close_count = 0
        self._current_url: Optional[str] = None

    async def start(self):
        self.start_count += 1

    async def open(self, url: str, timeout: float):
        self.opened.append(url)
        if url in self.timeouts:
            raise PageLoadTimeoutError(f"Timed out: {url}")
        self._current_url = self.redirects.get(url, url)

    @property
    def current_url(self) -> Optional[str]:
        return self._current_url

    async def execute_script(self, script: str) -> Any:
        if script == PAGE_LOAD_TIME_SCRIPT:
            return self.load_time
        return self.links.get(self._current_url, [])

    async def close(self):
        self.close_count += 1


class FakeFetcher:
    """Answers HEAD requests from a table; unknown URLs are HTML pages."""

    def __init__(self, responses: Optional[Dict[str, Union[HeadResponse, BaseException]]] = None):
        self.responses = responses or {}
        self.requested: List[str] = []
        self.downloads: List[tuple] = []
        self.start_count = 0
        self.close_count = 0

    async def start(self):
        self.start_count += 1

    async def close(self):
        self.close_count += 1

    async def head(self, url: str) -> HeadResponse:
        self.requested.append(url)
        response = self.responses.get(url)
        if isinstance(response, BaseException):
            raise response
        if response is None:
            response = HeadResponse(url=url, final_url=url, status_code=200, mime_type='text/html')
        return response

    async def download_file(self, url, destination):
        self.downloads.append((url, destination))
        return destination


def make_config(seed_urls: List[str], **crawler_options) -> Config:
    delay_options = crawler_options.pop('delay', {})
    return Config(
        crawler=CrawlerConfig(seed_urls=seed_urls, **crawler_options),
        delay=DelayConfig(**delay_options)
    )


@pytest.fixture
def fake_browser():
    return FakeBrowser()


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


async def wait_until(predicate, timeout: float = 2.0):
    """Poll until predicate() is true."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("Condition not met in time")
        await asyncio.sleep(0.01)
