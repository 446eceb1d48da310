"""
Exception hierarchy for the crawler core.
"""


class CrawlerError(Exception):
    """Base class for all crawler errors."""
    pass


class InvalidRequestError(CrawlerError):
    """Raised when a crawl request cannot be built (malformed URL, bad input)."""
    pass


class InvalidConfigurationError(CrawlerError, ValueError):
    """Raised when configuration values are invalid."""
    pass


class EmptyFrontierError(CrawlerError):
    """Raised when a candidate is requested from an empty frontier."""
    pass


class CorruptStateError(CrawlerError):
    """Raised when a frontier snapshot violates the frontier invariants."""
    pass


class CrawlerStateError(CrawlerError):
    """Raised when a lifecycle operation is not allowed in the current state."""
    pass


class PageLoadTimeoutError(CrawlerError):
    """Raised by a browser when a page does not load within the timeout."""
    pass
