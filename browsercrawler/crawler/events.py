"""
Events passed to the crawler callbacks.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .request import CrawlCandidate, CrawlRequest

if TYPE_CHECKING:
    from .browser import Browser


@dataclass(frozen=True)
class PageLoadEvent:
    """The browser loaded the page of the candidate."""
    candidate: CrawlCandidate
    browser: 'Browser'


@dataclass(frozen=True)
class NonHtmlContentEvent:
    """The candidate points to content which is not HTML."""
    candidate: CrawlCandidate
    mime_type: str


@dataclass(frozen=True)
class RequestErrorEvent:
    """The HEAD request of the candidate failed."""
    candidate: CrawlCandidate
    error: BaseException


@dataclass(frozen=True)
class RequestRedirectEvent:
    """The candidate was redirected; a new request was fed for the target."""
    candidate: CrawlCandidate
    redirected_request: CrawlRequest


@dataclass(frozen=True)
class PageLoadTimeoutEvent:
    """The page did not load within the page load timeout."""
    candidate: CrawlCandidate
    error: BaseException
