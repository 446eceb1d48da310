#!/usr/bin/env python3
"""
Main entry point for the browser crawler.
"""

import asyncio
import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

import redis.asyncio as redis

from browsercrawler import __version__
from browsercrawler.crawler import CrawlerScheduler, InvalidRequestError
from browsercrawler.crawler.events import PageLoadEvent
from browsercrawler.crawler.fetcher import WebFetcher
from browsercrawler.storage.state_store import FileStateStore, RedisStateStore, StateStore
from browsercrawler.utils.config import Config, load_config
from browsercrawler.utils.logger import log_system_info, setup_logging
from browsercrawler.utils.monitoring import CrawlerMonitor, MetricsCollector

LINKS_SCRIPT = "return Array.from(document.links, link => link.href);"


class LinkFollowingCrawler(CrawlerScheduler):
    """Crawler that follows every http(s) link of the loaded pages."""

    async def on_page_load(self, event: PageLoadEvent):
        await super().on_page_load(event)

        links: Optional[List[str]] = await event.browser.execute_script(LINKS_SCRIPT)
        for link in links or []:
            if not isinstance(link, str) or not link.startswith(('http://', 'https://')):
                continue
            try:
                self.crawl(link)
            except InvalidRequestError as e:
                self.logger.debug(f"Skipping link {link}: {e}")


class CrawlerApp:
    """Main application class for the crawler."""

    def __init__(self):
        self.crawler: Optional[CrawlerScheduler] = None
        self.redis_client: Optional[redis.Redis] = None
        self.logger = logging.getLogger(__name__)

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            self.logger.info(f"Received signal {signum}, initiating shutdown...")
            if self.crawler:
                self.crawler.request_stop()

        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, signal_handler, signum)

    def create_state_store(self, config: Config) -> StateStore:
        """Create the state store configured for saving and resuming."""
        if config.state.backend == 'redis':
            self.redis_client = redis.Redis(
                host=config.redis.host,
                port=config.redis.port,
                db=config.redis.db,
                password=config.redis.password
            )
            return RedisStateStore(self.redis_client, config.state.redis_key)

        return FileStateStore(config.state.path)

    async def run(self, config_path: str, max_pages: Optional[int] = None,
                  resume: bool = False, save_state: bool = False, dry_run: bool = False):
        """Run the crawler."""
        try:
            config = load_config(config_path)
            if max_pages is not None:
                config.crawler.max_pages = max_pages

            setup_logging(config.logging)
            log_system_info()
            self.setup_signal_handlers()

            self.logger.info("=== BROWSER CRAWLER STARTING ===")
            self.logger.info(f"Configuration loaded from: {config_path}")
            self.logger.info(f"Seed URLs: {config.crawler.seed_urls}")
            self.logger.info(f"Max crawl depth: {config.crawler.max_crawl_depth}")
            self.logger.info(f"Crawl strategy: {config.crawler.crawl_strategy.value}")
            self.logger.info(f"Crawl delay strategy: {config.delay.strategy.value}")

            if dry_run:
                self.logger.info("DRY RUN MODE: No actual crawling will be performed")
                await self._dry_run(config)
                return 0

            monitor = None
            if config.monitoring.metrics_enabled:
                collector = MetricsCollector(
                    enable_server=True,
                    prometheus_port=config.monitoring.prometheus_port
                )
                collector.start_server()
                monitor = CrawlerMonitor(collector)

            state_store = self.create_state_store(config)
            self.crawler = LinkFollowingCrawler(config, monitor=monitor)

            if resume:
                state = await state_store.load()
                if state is None:
                    self.logger.error("No saved state found to resume")
                    return 1
                await self.crawler.resume(state)
            else:
                await self.crawler.start()

            if save_state:
                await state_store.save(self.crawler.save_state())

        except Exception as e:
            self.logger.error(f"Fatal error: {e}", exc_info=True)
            return 1

        finally:
            if self.redis_client:
                await self.redis_client.close()
            self.logger.info("=== BROWSER CRAWLER FINISHED ===")

        return 0

    async def _dry_run(self, config: Config):
        """Perform a dry run to test configuration and connections."""
        if config.state.backend == 'redis':
            self.logger.info("Testing Redis connection...")
            try:
                redis_client = redis.Redis(
                    host=config.redis.host,
                    port=config.redis.port,
                    db=config.redis.db,
                    password=config.redis.password
                )
                await redis_client.ping()
                await redis_client.close()
                self.logger.info("Redis connection successful")
            except Exception as e:
                self.logger.error(f"Redis connection failed: {e}")

        self.logger.info("Testing fetcher configuration...")
        try:
            async with WebFetcher(
                user_agent=config.crawler.user_agent,
                request_timeout=config.crawler.request_timeout
            ) as fetcher:
                test_url = config.crawler.seed_urls[0]
                result = await fetcher.head(test_url)
                self.logger.info(f"Test HEAD request successful: {result.status_code} {result.mime_type}")
        except Exception as e:
            self.logger.error(f"Fetcher test failed: {e}")

        self.logger.info("Dry run completed")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Browser Crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                           # Run with default config.yaml
  python main.py --config my_config.yaml   # Run with custom config
  python main.py --max-pages 100           # Limit to 100 pages
  python main.py --save-state              # Save the frontier when the crawl ends
  python main.py --resume --save-state     # Resume a saved crawl
  python main.py --dry-run                 # Test configuration only
        """
    )

    parser.add_argument(
        '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )

    parser.add_argument(
        '--max-pages',
        type=int,
        help='Maximum number of candidates to crawl'
    )

    parser.add_argument(
        '--resume',
        action='store_true',
        help='Resume from the saved frontier state'
    )

    parser.add_argument(
        '--save-state',
        action='store_true',
        help='Save the frontier state when the crawl ends'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Test configuration without actually crawling'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Browser Crawler {__version__}'
    )

    args = parser.parse_args()

    if not Path(args.config).exists():
        print(f"Error: Configuration file '{args.config}' not found.")
        print("Please create a config.yaml file or specify a different path with --config")
        return 1

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(
            config_path=args.config,
            max_pages=args.max_pages,
            resume=args.resume,
            save_state=args.save_state,
            dry_run=args.dry_run
        ))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
