"""
Crawler core components.
"""

from .exceptions import (
    CrawlerError, InvalidRequestError, InvalidConfigurationError,
    EmptyFrontierError, CorruptStateError, CrawlerStateError, PageLoadTimeoutError
)
from .request import CrawlRequest, CrawlRequestBuilder, CrawlCandidate
from .url_frontier import CrawlFrontier, CrawlStrategy, FeedResult, FrontierState
from .delay import (
    CrawlDelayMechanism, CrawlDelayStrategy, FixedCrawlDelayMechanism,
    RandomCrawlDelayMechanism, AdaptiveCrawlDelayMechanism
)
from .browser import Browser, BrowserType, PlaywrightBrowser
from .fetcher import WebFetcher, HeadResponse
from .scheduler import CrawlerScheduler, CrawlerState

__all__ = [
    'CrawlerError', 'InvalidRequestError', 'InvalidConfigurationError',
    'EmptyFrontierError', 'CorruptStateError', 'CrawlerStateError', 'PageLoadTimeoutError',
    'CrawlRequest', 'CrawlRequestBuilder', 'CrawlCandidate',
    'CrawlFrontier', 'CrawlStrategy', 'FeedResult', 'FrontierState',
    'CrawlDelayMechanism', 'CrawlDelayStrategy', 'FixedCrawlDelayMechanism',
    'RandomCrawlDelayMechanism', 'AdaptiveCrawlDelayMechanism',
    'Browser', 'BrowserType', 'PlaywrightBrowser',
    'WebFetcher', 'HeadResponse',
    'CrawlerScheduler', 'CrawlerState'
]
