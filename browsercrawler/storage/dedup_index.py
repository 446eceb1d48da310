"""
URL fingerprinting and the seen-set used to suppress repeat visits.
"""

import hashlib
import re
from typing import Iterable, List, Optional, Set
from urllib.parse import urlsplit, urlunsplit

DEFAULT_PORTS = {'http': 80, 'https': 443}

_percent_escape_pattern = re.compile(r'%[0-9a-fA-F]{2}')


def _upper_percent_escapes(value: str) -> str:
    return _percent_escape_pattern.sub(lambda m: m.group(0).upper(), value)


def normalize_url(url: str) -> str:
    """
    Normalize URL for consistent fingerprinting.

    Scheme and host are lower-cased, default ports and the fragment are
    dropped, percent-escapes are upper-cased, a trailing slash is removed
    from non-root paths and query parameters are sorted.
    """
    parsed = urlsplit(url.strip())
    scheme = parsed.scheme.lower()

    host = (parsed.hostname or '').lower()
    if ':' in host:
        host = f"[{host}]"
    port = parsed.port
    netloc = host
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{host}:{port}"

    path = _upper_percent_escapes(parsed.path) or '/'
    if len(path) > 1 and path.endswith('/'):
        path = path[:-1]

    if parsed.query:
        # Escapes are kept as-is so undecodable bytes stay distinct
        params = [_upper_percent_escapes(param) for param in parsed.query.split('&') if param]
        query = '&'.join(sorted(params, key=lambda param: param.partition('=')[::2]))
    else:
        query = ''

    return urlunsplit((scheme, netloc, path, query, ''))


def compute_key(url: str) -> str:
    """Return the deduplication key of the URL."""
    return hashlib.sha256(normalize_url(url).encode('utf-8')).hexdigest()


class DeduplicationIndex:
    """
    Set of keys that were already admitted to the frontier.

    Keys are never removed: once seen, a URL stays seen for the lifetime of
    the index.
    """

    def __init__(self, keys: Optional[Iterable[str]] = None):
        self._keys: Set[str] = set(keys) if keys else set()

    def contains(self, key: str) -> bool:
        return key in self._keys

    def add(self, key: str):
        self._keys.add(key)

    def keys(self) -> List[str]:
        """Return all keys, sorted for stable snapshots."""
        return sorted(self._keys)

    def __contains__(self, key: str) -> bool:
        return self.contains(key)

    def __len__(self) -> int:
        return len(self._keys)
