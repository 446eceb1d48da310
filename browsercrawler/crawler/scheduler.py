"""
Crawler scheduler that drives the crawl loop: it takes candidates from the
frontier, probes and loads them, dispatches events and waits between
requests according to the crawl delay mechanism.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Union

import aiohttp

from .browser import Browser, PlaywrightBrowser
from .delay import CrawlDelayMechanism, create_crawl_delay_mechanism
from .events import (
    NonHtmlContentEvent,
    PageLoadEvent,
    PageLoadTimeoutEvent,
    RequestErrorEvent,
    RequestRedirectEvent,
)
from .exceptions import CrawlerStateError, InvalidRequestError, PageLoadTimeoutError
from .fetcher import WebFetcher
from .request import CrawlCandidate, CrawlRequest, CrawlRequestBuilder
from .url_frontier import CrawlFrontier, FeedResult, FrontierState
from ..storage.dedup_index import normalize_url
from ..utils.logger import get_crawler_logger
from ..utils.monitoring import CrawlerMonitor

if TYPE_CHECKING:
    from ..utils.config import Config

HTML_MIME_TYPE = 'text/html'


class CrawlerState(Enum):
    """Lifecycle states of the crawler."""
    NOT_STARTED = 'not_started'
    RUNNING = 'running'
    STOPPING = 'stopping'
    STOPPED = 'stopped'


@dataclass
class CrawlStats:
    """Statistics for a crawl run."""
    start_time: float
    candidates_served: int = 0
    page_loads: int = 0
    non_html_responses: int = 0
    request_errors: int = 0
    redirects: int = 0
    page_load_timeouts: int = 0
    errors: int = 0
    total_delay_ms: int = 0

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time

    @property
    def candidates_per_minute(self) -> float:
        elapsed_minutes = self.elapsed_time / 60
        return self.candidates_served / elapsed_minutes if elapsed_minutes > 0 else 0


class CrawlerScheduler:
    """
    Skeletal crawler. Subclasses override the ``on_*`` callbacks to handle
    pages and call ``crawl()`` to feed new requests.

    Only one iteration of the crawl loop is active at a time. Requests fed
    from callbacks are admitted synchronously, before the next candidate is
    selected.
    """

    def __init__(self, config: 'Config',
                 browser_factory: Optional[Callable[[], Browser]] = None,
                 fetcher_factory: Optional[Callable[[], WebFetcher]] = None,
                 monitor: Optional[CrawlerMonitor] = None):
        self.config = config
        self.logger = get_crawler_logger(__name__, crawler=type(self).__name__)
        self.monitor = monitor

        self._browser_factory = browser_factory or self._create_default_browser
        self._fetcher_factory = fetcher_factory or self._create_default_fetcher

        # Components, created per run
        self.frontier: Optional[CrawlFrontier] = None
        self.browser: Optional[Browser] = None
        self.fetcher: Optional[WebFetcher] = None
        self.crawl_delay_mechanism: Optional[CrawlDelayMechanism] = None

        # Crawl state
        self.stats = CrawlStats(start_time=time.time())
        self._state = CrawlerState.NOT_STARTED
        self._stop_event: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_thread_id: Optional[int] = None
        self._frontier_lock = threading.RLock()
        self._current_candidate: Optional[CrawlCandidate] = None
        self._can_save_state = False

        self._crawl_seeds: List[CrawlRequest] = [
            CrawlRequestBuilder(url).build() for url in config.crawler.seed_urls
        ]

    def _create_default_browser(self) -> Browser:
        return PlaywrightBrowser(
            browser_type=self.config.crawler.browser,
            headless=self.config.crawler.headless,
            user_agent=self.config.crawler.user_agent
        )

    def _create_default_fetcher(self) -> WebFetcher:
        return WebFetcher(
            user_agent=self.config.crawler.user_agent,
            request_timeout=self.config.crawler.request_timeout
        )

    @property
    def state(self) -> CrawlerState:
        return self._state

    def is_running(self) -> bool:
        return self._state in (CrawlerState.RUNNING, CrawlerState.STOPPING)

    @property
    def current_candidate(self) -> Optional[CrawlCandidate]:
        return self._current_candidate

    def add_seed(self, request: Union[CrawlRequest, str]):
        """Add a crawl seed. Seeds are fed to the frontier when a new crawl starts."""
        if self.is_running():
            raise CrawlerStateError("Cannot add a seed while the crawler is running. Use crawl() instead.")
        if isinstance(request, str):
            request = CrawlRequestBuilder(request).build()
        self._crawl_seeds.append(request)

    async def start(self, browser: Optional[Browser] = None):
        """Start a new crawl. Returns when the crawl has finished."""
        await self._start(browser, None)

    async def resume(self, state: FrontierState, browser: Optional[Browser] = None):
        """Resume a crawl from a previously saved frontier state."""
        await self._start(browser, state)

    def start_background(self, browser: Optional[Browser] = None) -> asyncio.Task:
        """Start a new crawl in a separate task."""
        if self.is_running():
            raise CrawlerStateError("The crawler is already running.")
        return asyncio.create_task(self.start(browser))

    async def _start(self, browser: Optional[Browser], frontier_state: Optional[FrontierState]):
        if self.is_running():
            raise CrawlerStateError("The crawler is already running.")

        self._state = CrawlerState.RUNNING
        self._stop_event = asyncio.Event()
        self._loop = asyncio.get_running_loop()
        self._loop_thread_id = threading.get_ident()
        self.stats = CrawlStats(start_time=time.time())

        try:
            if frontier_state is None:
                self.frontier = self._create_frontier()
            else:
                self.frontier = CrawlFrontier.restore(
                    frontier_state,
                    max_crawl_depth=self.config.crawler.max_crawl_depth,
                    offsite_filter_enabled=self.config.crawler.offsite_filter_enabled
                )

            self.browser = browser or self._browser_factory()
            delay_config = self.config.delay
            self.crawl_delay_mechanism = create_crawl_delay_mechanism(
                delay_config.strategy,
                fixed_delay_ms=delay_config.fixed_delay_ms,
                min_delay_ms=delay_config.min_delay_ms,
                max_delay_ms=delay_config.max_delay_ms,
                script_executor=self.browser.execute_script
            )

            await self.browser.start()
            self.fetcher = self._fetcher_factory()
            await self.fetcher.start()
            self._can_save_state = True

            await self._run()
        finally:
            await self._teardown()

    def _create_frontier(self) -> CrawlFrontier:
        crawler_config = self.config.crawler
        frontier = CrawlFrontier(
            max_crawl_depth=crawler_config.max_crawl_depth,
            offsite_filter_enabled=crawler_config.offsite_filter_enabled,
            crawl_strategy=crawler_config.crawl_strategy
        )
        for seed in self._crawl_seeds:
            result = frontier.feed(seed, is_seed=True)
            if self.monitor:
                self.monitor.record_feed(result.value)

        self.logger.info(f"Added {len(frontier)} seed requests to frontier")
        return frontier

    async def _run(self):
        """Defines the workflow of the crawler."""
        self.logger.info("Crawler started")
        await self.on_start()

        max_pages = self.config.crawler.max_pages

        while not self._stop_event.is_set() and self._has_next_candidate():
            if max_pages and self.stats.candidates_served >= max_pages:
                self.logger.info(f"Reached max pages limit: {max_pages}")
                break

            with self._frontier_lock:
                candidate = self.frontier.get_next_candidate()
                queue_size = len(self.frontier)
            self._current_candidate = candidate
            self.stats.candidates_served += 1
            if self.monitor:
                self.monitor.record_candidate_served()
                self.monitor.update_queue_size(queue_size)

            try:
                await self._process_candidate(candidate)
            except Exception as e:
                self.stats.errors += 1
                if self.monitor:
                    self.monitor.record_error()
                self.logger.error(f"Error processing {candidate.url}: {e}", exc_info=True)

            await self._perform_delay()
            self._current_candidate = None

        await self.on_stop()
        self._log_final_stats()

    def _has_next_candidate(self) -> bool:
        with self._frontier_lock:
            return self.frontier.has_next_candidate()

    async def _process_candidate(self, candidate: CrawlCandidate):
        """Probe the candidate with a HEAD request, then open HTML pages in the browser."""
        candidate_url = candidate.url
        self.logger.log_url_event(logging.DEBUG, candidate_url,
                                  f"Processing {candidate_url} (depth {candidate.crawl_depth})")

        try:
            head_response = await self.fetcher.head(candidate_url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.stats.request_errors += 1
            self._record_event('request_error')
            await self.on_request_error(RequestErrorEvent(candidate, e))
            return

        if not self._is_same_url(head_response.final_url, candidate_url):
            await self._handle_request_redirect(candidate, head_response.final_url)
            return

        if head_response.mime_type != HTML_MIME_TYPE:
            # Non-HTML content is not opened in the browser
            self.stats.non_html_responses += 1
            self._record_event('non_html_content')
            await self.on_non_html_content(NonHtmlContentEvent(candidate, head_response.mime_type))
            return

        try:
            await self.browser.open(candidate_url, self.config.crawler.page_load_timeout)
        except PageLoadTimeoutError as e:
            self.stats.page_load_timeouts += 1
            self._record_event('page_load_timeout')
            await self.on_page_load_timeout(PageLoadTimeoutEvent(candidate, e))
            return

        loaded_url = self.browser.current_url
        if loaded_url and not self._is_same_url(loaded_url, candidate_url):
            # Redirected in the browser (JavaScript or meta refresh)
            await self._handle_request_redirect(candidate, loaded_url)
            return

        self.stats.page_loads += 1
        self._record_event('page_load')
        await self.on_page_load(PageLoadEvent(candidate, self.browser))

    @staticmethod
    def _is_same_url(first: str, second: str) -> bool:
        return normalize_url(first) == normalize_url(second)

    async def _handle_request_redirect(self, candidate: CrawlCandidate, redirected_url: str):
        """Feed a request for the redirect target and notify the callback."""
        try:
            redirected_request = CrawlRequestBuilder(redirected_url).set_parent(candidate).build()
        except InvalidRequestError as e:
            self.logger.warning(f"Ignoring redirect of {candidate.url} to {redirected_url}: {e}")
            return

        self._feed(redirected_request)
        self.stats.redirects += 1
        self._record_event('request_redirect')
        await self.on_request_redirect(RequestRedirectEvent(candidate, redirected_request))

    async def _perform_delay(self):
        """Wait before the next request. A stop request or cancellation ends the wait."""
        delay_ms = await self.crawl_delay_mechanism.get_delay()
        self.stats.total_delay_ms += delay_ms
        if self.monitor:
            self.monitor.record_delay(delay_ms)

        if delay_ms <= 0:
            return

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay_ms / 1000)
        except asyncio.TimeoutError:
            pass
        except asyncio.CancelledError:
            self.logger.info("Crawl delay interrupted, stopping crawler")
            self.request_stop()

    def _record_event(self, event_type: str):
        if self.monitor:
            self.monitor.record_event(event_type)

    def _feed(self, request: CrawlRequest, is_seed: bool = False) -> FeedResult:
        with self._frontier_lock:
            result = self.frontier.feed(request, is_seed)
            queue_size = len(self.frontier)

        if self.monitor:
            self.monitor.record_feed(result.value)
            self.monitor.update_queue_size(queue_size)
        return result

    def crawl(self, request: Union[CrawlRequest, str, Iterable[Union[CrawlRequest, str]]]):
        """
        Feed one or more requests to the running crawler.

        URL strings are turned into requests whose parent is the current
        candidate. CrawlRequest instances are fed as they are; build them with
        CrawlRequestBuilder.set_parent() to keep the crawl depth.
        Safe to call from other threads.
        """
        if not self.is_running():
            raise CrawlerStateError(
                "The crawler is not started. Maybe you meant to add this request as a crawl seed?"
            )

        if isinstance(request, (CrawlRequest, str)):
            self._feed(self._to_request(request))
            return

        for item in request:
            self._feed(self._to_request(item))

    def _to_request(self, request: Union[CrawlRequest, str]) -> CrawlRequest:
        if isinstance(request, CrawlRequest):
            return request
        builder = CrawlRequestBuilder(request)
        candidate = self._current_candidate
        if candidate is not None:
            builder.set_parent(candidate)
        return builder.build()

    def request_stop(self):
        """Ask the crawler to stop after the current candidate. Does nothing if not running."""
        if self._state is not CrawlerState.RUNNING:
            return

        self._state = CrawlerState.STOPPING
        self.logger.info("Stopping crawler...")

        if self._loop is not None and threading.get_ident() != self._loop_thread_id:
            self._loop.call_soon_threadsafe(self._stop_event.set)
        else:
            self._stop_event.set()

    def save_state(self) -> FrontierState:
        """Return a snapshot of the frontier that can be passed to resume()."""
        if not self._can_save_state:
            raise CrawlerStateError(
                "Cannot save state at this point. The crawler should be started at least once."
            )
        with self._frontier_lock:
            return self.frontier.snapshot()

    async def download_file(self, url: str, destination: Union[str, Path]) -> Path:
        """Download a file using the crawler's HTTP session."""
        if self._state is not CrawlerState.RUNNING:
            raise CrawlerStateError("Cannot download file when the crawler is not running.")
        return await self.fetcher.download_file(url, destination)

    async def _teardown(self):
        """Close the resources of the run."""
        try:
            if self.fetcher:
                await self.fetcher.close()
        except Exception as e:
            self.logger.error(f"Error closing fetcher: {e}")

        try:
            if self.browser:
                await self.browser.close()
        except Exception as e:
            self.logger.error(f"Error closing browser: {e}")
        finally:
            self.fetcher = None
            self.browser = None
            self._current_candidate = None
            self._state = CrawlerState.STOPPED
            self.logger.info("Crawler stopped")

    def _log_final_stats(self):
        """Log final crawl statistics."""
        self.logger.info("=== CRAWL COMPLETED ===")
        for name, value in self.get_stats().items():
            self.logger.log_crawler_stat(name, value)

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        queued = 0
        if self.frontier is not None:
            with self._frontier_lock:
                queued = len(self.frontier)

        return {
            'candidates_served': self.stats.candidates_served,
            'page_loads': self.stats.page_loads,
            'non_html_responses': self.stats.non_html_responses,
            'request_errors': self.stats.request_errors,
            'redirects': self.stats.redirects,
            'page_load_timeouts': self.stats.page_load_timeouts,
            'errors': self.stats.errors,
            'total_delay_ms': self.stats.total_delay_ms,
            'elapsed_time': self.stats.elapsed_time,
            'candidates_per_minute': self.stats.candidates_per_minute,
            'requests_in_queue': queued,
            'state': self._state.value
        }

    async def on_start(self):
        """Called when the crawler starts."""
        self.logger.info("onStart")

    async def on_page_load(self, event: PageLoadEvent):
        """Called when the browser has loaded the page of a candidate."""
        self.logger.log_url_event(logging.INFO, event.candidate.url, f"onPageLoad: {event.candidate.url}")

    async def on_non_html_content(self, event: NonHtmlContentEvent):
        """Called when a candidate points to non-HTML content."""
        self.logger.log_url_event(logging.INFO, event.candidate.url,
                                  f"onNonHtmlContent: {event.candidate.url} ({event.mime_type})")

    async def on_request_error(self, event: RequestErrorEvent):
        """Called when the HEAD request of a candidate fails."""
        self.logger.log_url_event(logging.INFO, event.candidate.url,
                                  f"onRequestError: {event.candidate.url}: {event.error!r}")

    async def on_request_redirect(self, event: RequestRedirectEvent):
        """Called when a candidate is redirected."""
        self.logger.log_url_event(logging.INFO, event.candidate.url,
                                  f"onRequestRedirect: {event.candidate.url} -> "
                                  f"{event.redirected_request.url}")

    async def on_page_load_timeout(self, event: PageLoadTimeoutEvent):
        """Called when a page does not load within the page load timeout."""
        self.logger.log_url_event(logging.INFO, event.candidate.url,
                                  f"onPageLoadTimeout: {event.candidate.url}")

    async def on_stop(self):
        """Called when the crawl loop has finished."""
        self.logger.info("onStop")
