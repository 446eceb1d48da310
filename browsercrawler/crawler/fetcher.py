"""
HTTP HEAD probing and file downloads.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import aiohttp
from aiohttp import ClientSession, ClientTimeout

DEFAULT_MIME_TYPE = 'text/plain'


@dataclass
class HeadResponse:
    """Result of a HEAD request."""
    url: str
    final_url: str
    status_code: int
    mime_type: str
    fetch_time: float = 0.0

    @property
    def is_redirected(self) -> bool:
        return self.final_url != self.url


def parse_mime_type(content_type: Optional[str]) -> str:
    """Return the MIME type of a Content-Type header value."""
    if not content_type:
        return DEFAULT_MIME_TYPE
    mime_type = content_type.split(';')[0].strip().lower()
    return mime_type or DEFAULT_MIME_TYPE


class WebFetcher:
    """
    Sends HEAD requests to determine availability, redirects and content type
    of URLs, and downloads files.
    """

    def __init__(self, user_agent: str, request_timeout: int = 30):
        self.user_agent = user_agent
        self.request_timeout = request_timeout

        self.logger = logging.getLogger(__name__)
        self.session: Optional[ClientSession] = None

        # Statistics
        self.stats = {
            'total_requests': 0,
            'successful_requests': 0,
            'failed_requests': 0,
            'redirected_requests': 0,
            'files_downloaded': 0
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize the fetcher session."""
        if self.session is None:
            timeout = ClientTimeout(total=self.request_timeout)
            headers = {'User-Agent': self.user_agent}

            self.session = aiohttp.ClientSession(timeout=timeout, headers=headers)
            self.logger.info("WebFetcher session started")

    async def close(self):
        """Close the fetcher session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("WebFetcher session closed")

    async def head(self, url: str) -> HeadResponse:
        """
        Send a HEAD request, following redirects.

        Raises:
            aiohttp.ClientError: if the request fails
            asyncio.TimeoutError: if the request times out
        """
        if self.session is None:
            await self.start()

        start_time = time.time()
        self.stats['total_requests'] += 1
        try:
            async with self.session.head(url, allow_redirects=True) as response:
                result = HeadResponse(
                    url=url,
                    final_url=str(response.url),
                    status_code=response.status,
                    mime_type=parse_mime_type(response.headers.get('Content-Type')),
                    fetch_time=time.time() - start_time
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.stats['failed_requests'] += 1
            self.logger.warning(f"HEAD request failed for {url}: {e!r}")
            raise

        self.stats['successful_requests'] += 1
        if result.is_redirected:
            self.stats['redirected_requests'] += 1
        self.logger.debug(f"HEAD {url}: {result.status_code} {result.mime_type} -> {result.final_url}")
        return result

    async def download_file(self, url: str, destination: Union[str, Path],
                            chunk_size: int = 8192) -> Path:
        """
        Download a file to the destination path.

        Raises:
            aiohttp.ClientError: if the request fails or returns an error status
        """
        if self.session is None:
            await self.start()

        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        # Partial downloads never appear at the destination
        part_path = destination.with_name(destination.name + '.part')

        try:
            async with self.session.get(url) as response:
                response.raise_for_status()
                with open(part_path, 'wb') as file:
                    async for chunk in response.content.iter_chunked(chunk_size):
                        file.write(chunk)
            part_path.replace(destination)
        finally:
            if part_path.exists():
                part_path.unlink()

        self.stats['files_downloaded'] += 1
        self.logger.info(f"Downloaded {url} to {destination}")
        return destination

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return self.stats.copy()
