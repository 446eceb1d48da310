"""
Crawl request value model.

A CrawlRequest describes a URL to visit; a CrawlCandidate is the read-only
projection of a request at the moment the frontier hands it out.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

import tldextract

from .exceptions import InvalidRequestError

# Upper bound for depths derived from a parent request
MAX_DEPTH_CEILING = 1000

ALLOWED_SCHEMES = ('http', 'https')

# Bundled public suffix snapshot only, no network fetch
_domain_extractor = tldextract.TLDExtract(suffix_list_urls=())


def get_top_private_domain(url: str) -> str:
    """Return the eTLD+1 of the URL, or its host when it has no public suffix."""
    host = (urlparse(url).hostname or '').lower()
    extracted = _domain_extractor(host)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}".lower()
    return host


@dataclass(frozen=True)
class CrawlRequest:
    """Represents a URL to be crawled."""
    url: str
    priority: int = 0
    depth: int = 0
    parent_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'url': self.url,
            'priority': self.priority,
            'depth': self.depth,
            'parent_url': self.parent_url,
            'metadata': copy.deepcopy(self.metadata)
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CrawlRequest':
        """Create CrawlRequest from dictionary, validating the URL again."""
        try:
            url = data['url']
            priority = data.get('priority', 0)
            depth = data.get('depth', 0)
        except (KeyError, TypeError, AttributeError) as e:
            raise InvalidRequestError(f"Malformed request data: {data!r}") from e

        _validate_url(url)
        _validate_priority(priority)
        if not isinstance(depth, int) or isinstance(depth, bool) or depth < 0:
            raise InvalidRequestError(f"Invalid crawl depth: {depth!r}")

        return cls(
            url=url,
            priority=priority,
            depth=depth,
            parent_url=data.get('parent_url'),
            metadata=copy.deepcopy(data.get('metadata'))
        )


@dataclass(frozen=True)
class CrawlCandidate:
    """A request selected for processing, enriched with its domain and depth."""
    request: CrawlRequest
    top_private_domain: str
    crawl_depth: int

    @property
    def url(self) -> str:
        return self.request.url

    @property
    def priority(self) -> int:
        return self.request.priority

    @property
    def metadata(self) -> Optional[Dict[str, Any]]:
        return self.request.metadata

    @property
    def parent_url(self) -> Optional[str]:
        return self.request.parent_url

    @classmethod
    def from_request(cls, request: CrawlRequest) -> 'CrawlCandidate':
        return cls(
            request=request,
            top_private_domain=get_top_private_domain(request.url),
            crawl_depth=request.depth
        )


def _validate_url(url: Any):
    if not isinstance(url, str) or not url.strip():
        raise InvalidRequestError(f"URL must be a non-empty string: {url!r}")

    try:
        parsed = urlparse(url)
        # Accessing port validates it
        parsed.port
    except ValueError as e:
        raise InvalidRequestError(f"Malformed URL: {url}") from e

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidRequestError(f"URL must be absolute with http or https scheme: {url}")
    if not parsed.hostname:
        raise InvalidRequestError(f"URL has no host: {url}")
    if any(ch.isspace() for ch in url):
        raise InvalidRequestError(f"URL contains whitespace: {url!r}")


def _validate_priority(priority: Any):
    if not isinstance(priority, int) or isinstance(priority, bool):
        raise InvalidRequestError(f"Priority must be an integer: {priority!r}")


class CrawlRequestBuilder:
    """
    Builds validated CrawlRequest instances.

    A parent request (or candidate) sets the depth to one below the parent
    and propagates its priority and metadata unless those are set explicitly.
    """

    def __init__(self, url: str):
        self._url = url
        self._priority: Optional[int] = None
        self._metadata: Optional[Dict[str, Any]] = None
        self._metadata_set = False
        self._parent: Optional[CrawlRequest] = None

    def set_priority(self, priority: int) -> 'CrawlRequestBuilder':
        self._priority = priority
        return self

    def set_metadata(self, metadata: Optional[Dict[str, Any]]) -> 'CrawlRequestBuilder':
        self._metadata = metadata
        self._metadata_set = True
        return self

    def set_parent(self, parent: Union[CrawlRequest, CrawlCandidate]) -> 'CrawlRequestBuilder':
        if isinstance(parent, CrawlCandidate):
            parent = parent.request
        if not isinstance(parent, CrawlRequest):
            raise InvalidRequestError(f"Parent must be a CrawlRequest: {parent!r}")
        self._parent = parent
        return self

    def build(self) -> CrawlRequest:
        _validate_url(self._url)

        priority = self._priority
        metadata = self._metadata
        depth = 0
        parent_url = None

        if self._parent is not None:
            depth = self._parent.depth + 1
            parent_url = self._parent.url
            if depth > MAX_DEPTH_CEILING:
                raise InvalidRequestError(
                    f"Crawl depth {depth} exceeds the ceiling of {MAX_DEPTH_CEILING}"
                )
            if priority is None:
                priority = self._parent.priority
            if not self._metadata_set:
                metadata = self._parent.metadata

        if priority is None:
            priority = 0
        _validate_priority(priority)

        if metadata is not None and not isinstance(metadata, dict):
            raise InvalidRequestError(f"Metadata must be a dictionary: {metadata!r}")

        return CrawlRequest(
            url=self._url,
            priority=priority,
            depth=depth,
            parent_url=parent_url,
            metadata=copy.deepcopy(metadata)
        )
