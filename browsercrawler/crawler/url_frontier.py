"""
URL Frontier implementation for managing URLs to crawl.
Implements admission control (depth, offsite, duplicates), priority
scheduling and snapshot/restore of the pending state.
"""

import heapq
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from .exceptions import CorruptStateError, EmptyFrontierError, InvalidRequestError
from .request import CrawlCandidate, CrawlRequest, get_top_private_domain
from ..storage.dedup_index import DeduplicationIndex, compute_key

STATE_VERSION = 1


class CrawlStrategy(Enum):
    """Ordering of pending requests."""
    PRIORITY = 'priority'
    BREADTH_FIRST = 'breadth_first'
    DEPTH_FIRST = 'depth_first'


class FeedResult(Enum):
    """Outcome of feeding a request to the frontier."""
    ADMITTED = 'admitted'
    DEPTH_EXCEEDED = 'depth_exceeded'
    OFFSITE = 'offsite'
    DUPLICATE = 'duplicate'


@dataclass
class PendingEntry:
    """A pending request together with its feed order."""
    sequence: int
    request: CrawlRequest

    def to_dict(self) -> dict:
        return {'sequence': self.sequence, 'request': self.request.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> 'PendingEntry':
        sequence = data['sequence']
        if not isinstance(sequence, int) or isinstance(sequence, bool):
            raise TypeError(f"Sequence number must be an integer: {sequence!r}")
        return cls(
            sequence=sequence,
            request=CrawlRequest.from_dict(data['request'])
        )


def _require_list(data: dict, name: str, default: Optional[list] = None) -> list:
    value = data[name] if default is None else data.get(name, default)
    if not isinstance(value, list):
        raise TypeError(f"'{name}' must be a list, got {type(value).__name__}")
    return value


@dataclass
class FrontierState:
    """Externalized frontier state: pending requests, seen keys and seed domains."""
    pending: List[PendingEntry] = field(default_factory=list)
    seen_keys: List[str] = field(default_factory=list)
    seed_domains: List[str] = field(default_factory=list)
    domains_sealed: bool = False
    next_sequence: int = 0
    served_count: int = 0
    crawl_strategy: CrawlStrategy = CrawlStrategy.PRIORITY

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dictionary."""
        return {
            'version': STATE_VERSION,
            'pending': [entry.to_dict() for entry in self.pending],
            'seen_keys': list(self.seen_keys),
            'seed_domains': list(self.seed_domains),
            'domains_sealed': self.domains_sealed,
            'next_sequence': self.next_sequence,
            'served_count': self.served_count,
            'crawl_strategy': self.crawl_strategy.value
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'FrontierState':
        """Create FrontierState from dictionary."""
        try:
            if data.get('version', STATE_VERSION) != STATE_VERSION:
                raise CorruptStateError(f"Unsupported state version: {data.get('version')}")
            return cls(
                pending=[PendingEntry.from_dict(item) for item in _require_list(data, 'pending')],
                seen_keys=list(_require_list(data, 'seen_keys')),
                seed_domains=list(_require_list(data, 'seed_domains', [])),
                domains_sealed=bool(data.get('domains_sealed', False)),
                next_sequence=int(data.get('next_sequence', 0)),
                served_count=int(data.get('served_count', 0)),
                crawl_strategy=CrawlStrategy(data.get('crawl_strategy', CrawlStrategy.PRIORITY.value))
            )
        except (KeyError, TypeError, ValueError, AttributeError, InvalidRequestError) as e:
            raise CorruptStateError(f"Malformed frontier state: {e}") from e


class CrawlFrontier:
    """
    Priority-ordered queue of requests waiting to be crawled.

    Requests are admitted in three steps: requests deeper than the maximum
    crawl depth are dropped, offsite requests are dropped when offsite
    filtering is enabled, and requests whose key was already seen are
    dropped. Pending requests are served by descending priority; equal
    priorities are served in feed order.

    The frontier is not thread-safe; callers serialize access.
    """

    def __init__(self, max_crawl_depth: Optional[int] = None,
                 offsite_filter_enabled: bool = False,
                 crawl_strategy: CrawlStrategy = CrawlStrategy.PRIORITY):
        self.max_crawl_depth = max_crawl_depth
        self.offsite_filter_enabled = offsite_filter_enabled
        self.crawl_strategy = crawl_strategy
        self.logger = logging.getLogger(__name__)

        self._queue: List[Tuple[tuple, int, str, CrawlRequest]] = []
        self._dedup_index = DeduplicationIndex()
        self._seed_domains: Set[str] = set()
        self._domains_sealed = False
        self._next_sequence = 0
        self.served_count = 0

    @property
    def seed_domains(self) -> FrozenSet[str]:
        return frozenset(self._seed_domains)

    def _sort_key(self, request: CrawlRequest) -> tuple:
        if self.crawl_strategy is CrawlStrategy.BREADTH_FIRST:
            return (request.depth, -request.priority)
        if self.crawl_strategy is CrawlStrategy.DEPTH_FIRST:
            return (-request.depth, -request.priority)
        return (-request.priority,)

    def _push(self, sequence: int, key: str, request: CrawlRequest):
        heapq.heappush(self._queue, (self._sort_key(request), sequence, key, request))

    def feed(self, request: CrawlRequest, is_seed: bool = False) -> FeedResult:
        """
        Feed a request to the frontier.
        Returns the admission outcome; rejected requests are dropped silently.
        """
        if self.max_crawl_depth is not None and request.depth > self.max_crawl_depth:
            self.logger.debug(f"Dropped request beyond max depth: {request.url}")
            return FeedResult.DEPTH_EXCEEDED

        domain = get_top_private_domain(request.url)
        if is_seed:
            if not self._domains_sealed:
                self._seed_domains.add(domain)
            elif domain not in self._seed_domains:
                self.logger.warning(f"Seed fed after crawl start does not extend allowed domains: {request.url}")
        elif self.offsite_filter_enabled and domain not in self._seed_domains:
            self.logger.debug(f"Dropped offsite request: {request.url}")
            return FeedResult.OFFSITE

        key = compute_key(request.url)
        if self._dedup_index.contains(key):
            self.logger.debug(f"Dropped duplicate request: {request.url}")
            return FeedResult.DUPLICATE

        self._dedup_index.add(key)
        self._push(self._next_sequence, key, request)
        self._next_sequence += 1

        self.logger.debug(f"Added request to frontier: {request.url}")
        return FeedResult.ADMITTED

    def has_next_candidate(self) -> bool:
        return bool(self._queue)

    def get_next_candidate(self) -> CrawlCandidate:
        """Remove and return the highest priority pending request."""
        if not self._queue:
            raise EmptyFrontierError("The frontier has no pending requests")

        # Seed domains are fixed once crawling begins
        self._domains_sealed = True

        _, _, _, request = heapq.heappop(self._queue)
        self.served_count += 1

        self.logger.debug(f"Retrieved request from frontier: {request.url}")
        return CrawlCandidate.from_request(request)

    def snapshot(self) -> FrontierState:
        """Capture the frontier state; pending entries are kept in feed order."""
        entries = sorted(self._queue, key=lambda item: item[1])
        return FrontierState(
            pending=[PendingEntry(sequence=seq, request=request) for _, seq, _, request in entries],
            seen_keys=self._dedup_index.keys(),
            seed_domains=sorted(self._seed_domains),
            domains_sealed=self._domains_sealed,
            next_sequence=self._next_sequence,
            served_count=self.served_count,
            crawl_strategy=self.crawl_strategy
        )

    @classmethod
    def restore(cls, state: FrontierState, max_crawl_depth: Optional[int] = None,
                offsite_filter_enabled: bool = False) -> 'CrawlFrontier':
        """
        Reconstruct a frontier from a snapshot.
        Raises CorruptStateError if the snapshot breaks the frontier invariants.
        """
        frontier = cls(
            max_crawl_depth=max_crawl_depth,
            offsite_filter_enabled=offsite_filter_enabled,
            crawl_strategy=state.crawl_strategy
        )
        seen_keys = set(state.seen_keys)
        pending_keys: Dict[str, str] = {}
        sequences: Set[int] = set()

        for entry in state.pending:
            request = entry.request
            key = compute_key(request.url)

            if key in pending_keys:
                raise CorruptStateError(
                    f"Duplicate pending requests: {pending_keys[key]} and {request.url}"
                )
            if key not in seen_keys:
                raise CorruptStateError(f"Pending request missing from the seen keys: {request.url}")
            if max_crawl_depth is not None and request.depth > max_crawl_depth:
                raise CorruptStateError(f"Pending request exceeds max crawl depth: {request.url}")
            if (not isinstance(entry.sequence, int) or isinstance(entry.sequence, bool)
                    or entry.sequence in sequences or not 0 <= entry.sequence < state.next_sequence):
                raise CorruptStateError(f"Invalid sequence number {entry.sequence} for {request.url}")

            pending_keys[key] = request.url
            sequences.add(entry.sequence)
            frontier._push(entry.sequence, key, request)

        frontier._dedup_index = DeduplicationIndex(seen_keys)
        frontier._seed_domains = set(state.seed_domains)
        frontier._domains_sealed = state.domains_sealed
        frontier._next_sequence = state.next_sequence
        frontier.served_count = state.served_count

        frontier.logger.info(
            f"Restored frontier with {len(frontier)} pending requests and "
            f"{len(frontier._dedup_index)} seen keys"
        )
        return frontier

    def get_stats(self) -> Dict[str, int]:
        """Get frontier statistics."""
        return {
            'total_queued': len(self._queue),
            'total_seen': len(self._dedup_index),
            'total_served': self.served_count,
            'seed_domains': len(self._seed_domains)
        }

    def __len__(self) -> int:
        return len(self._queue)
