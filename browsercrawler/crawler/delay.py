"""
Crawl delay mechanisms consulted by the scheduler between two candidates.
"""

import logging
import math
import random
from abc import ABC, abstractmethod
from enum import Enum
from numbers import Real
from typing import Any, Awaitable, Callable, Optional

from .exceptions import InvalidConfigurationError

# Page load duration reported by the browser, in milliseconds
PAGE_LOAD_TIME_SCRIPT = (
    "return performance.timing.loadEventEnd - performance.timing.navigationStart;"
)

ScriptExecutor = Callable[[str], Awaitable[Any]]


class CrawlDelayStrategy(Enum):
    """Supported crawl delay strategies."""
    FIXED = 'fixed'
    RANDOM = 'random'
    ADAPTIVE = 'adaptive'


def _validate_bounds(min_delay_ms: int, max_delay_ms: int):
    if min_delay_ms < 0 or max_delay_ms < 0:
        raise InvalidConfigurationError(
            f"Delay bounds must be non-negative: [{min_delay_ms}, {max_delay_ms}]"
        )
    if min_delay_ms > max_delay_ms:
        raise InvalidConfigurationError(
            f"Minimum delay ({min_delay_ms} ms) is greater than maximum delay ({max_delay_ms} ms)"
        )


class CrawlDelayMechanism(ABC):
    """Returns how long to wait before the next request."""

    @abstractmethod
    async def get_delay(self) -> int:
        """Return the delay in milliseconds."""


class FixedCrawlDelayMechanism(CrawlDelayMechanism):
    """Always waits the same amount of time."""

    def __init__(self, delay_ms: int):
        if delay_ms < 0:
            raise InvalidConfigurationError(f"Delay must be non-negative: {delay_ms}")
        self.delay_ms = delay_ms

    async def get_delay(self) -> int:
        return self.delay_ms


class RandomCrawlDelayMechanism(CrawlDelayMechanism):
    """Waits a uniformly random duration within the configured bounds (inclusive)."""

    def __init__(self, min_delay_ms: int, max_delay_ms: int, rng: Optional[random.Random] = None):
        _validate_bounds(min_delay_ms, max_delay_ms)
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms
        self._rng = rng or random.Random()

    async def get_delay(self) -> int:
        return self._rng.randint(self.min_delay_ms, self.max_delay_ms)


class AdaptiveCrawlDelayMechanism(CrawlDelayMechanism):
    """
    Waits as long as the current page took to load, clamped to the bounds.

    The page load time is read from the browser's navigation timing through
    the given script executor.
    """

    def __init__(self, min_delay_ms: int, max_delay_ms: int, script_executor: ScriptExecutor):
        _validate_bounds(min_delay_ms, max_delay_ms)
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms
        self.script_executor = script_executor
        self.logger = logging.getLogger(__name__)

    async def get_delay(self) -> int:
        try:
            observed = await self.script_executor(PAGE_LOAD_TIME_SCRIPT)
        except Exception as e:
            self.logger.warning(f"Could not read page load time, using minimum delay: {e}")
            return self.min_delay_ms

        if isinstance(observed, bool) or not isinstance(observed, Real) or not math.isfinite(observed):
            self.logger.warning(f"Page load time is not a number ({observed!r}), using minimum delay")
            return self.min_delay_ms

        if observed < self.min_delay_ms:
            return self.min_delay_ms
        if observed > self.max_delay_ms:
            return self.max_delay_ms
        return int(observed)


def create_crawl_delay_mechanism(strategy: CrawlDelayStrategy,
                                 fixed_delay_ms: int = 0,
                                 min_delay_ms: int = 0,
                                 max_delay_ms: int = 0,
                                 script_executor: Optional[ScriptExecutor] = None) -> CrawlDelayMechanism:
    """Create the crawl delay mechanism for the given strategy."""
    if strategy is CrawlDelayStrategy.FIXED:
        return FixedCrawlDelayMechanism(fixed_delay_ms)
    if strategy is CrawlDelayStrategy.RANDOM:
        return RandomCrawlDelayMechanism(min_delay_ms, max_delay_ms)
    if strategy is CrawlDelayStrategy.ADAPTIVE:
        if script_executor is None:
            raise InvalidConfigurationError("Adaptive crawl delay requires a browser script executor")
        return AdaptiveCrawlDelayMechanism(min_delay_ms, max_delay_ms, script_executor)

    raise InvalidConfigurationError(f"Unsupported crawl delay strategy: {strategy}")
