"""
Configuration management for the crawler.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field

from ..crawler.browser import BrowserType
from ..crawler.delay import CrawlDelayStrategy
from ..crawler.exceptions import InvalidConfigurationError
from ..crawler.url_frontier import CrawlStrategy


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    seed_urls: List[str] = field(default_factory=list)
    max_crawl_depth: Optional[int] = None
    offsite_filter_enabled: bool = False
    crawl_strategy: CrawlStrategy = CrawlStrategy.PRIORITY
    page_load_timeout: float = 30.0
    request_timeout: int = 30
    user_agent: str = 'browsercrawler/1.0'
    browser: BrowserType = BrowserType.CHROMIUM
    headless: bool = True
    max_pages: Optional[int] = None

    def __post_init__(self):
        try:
            self.crawl_strategy = CrawlStrategy(self.crawl_strategy)
            self.browser = BrowserType(self.browser)
        except ValueError as e:
            raise InvalidConfigurationError(str(e)) from e


@dataclass
class DelayConfig:
    """Configuration for the crawl delay mechanism (milliseconds)."""
    strategy: CrawlDelayStrategy = CrawlDelayStrategy.FIXED
    fixed_delay_ms: int = 0
    min_delay_ms: int = 0
    max_delay_ms: int = 0

    def __post_init__(self):
        try:
            self.strategy = CrawlDelayStrategy(self.strategy)
        except ValueError as e:
            raise InvalidConfigurationError(str(e)) from e


@dataclass
class StateConfig:
    """Configuration for saving and resuming frontier state."""
    backend: str = 'file'
    path: str = 'state/crawl_state.json'
    redis_key: str = 'browsercrawler:frontier_state'


@dataclass
class RedisConfig:
    """Configuration for Redis."""
    host: str = 'localhost'
    port: int = 6379
    db: int = 0
    password: Optional[str] = None


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'INFO'
    file: str = 'logs/crawler.log'
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    delay: DelayConfig = field(default_factory=DelayConfig)
    state: StateConfig = field(default_factory=StateConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r') as file:
            config_data = yaml.safe_load(file) or {}

        self._config = parse_config(config_data)
        validate_config(self._config)
        return self._config

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def parse_config(config_data: Dict[str, Any]) -> Config:
    """Build a Config from a parsed YAML document."""
    sections = {
        'crawler': CrawlerConfig,
        'delay': DelayConfig,
        'state': StateConfig,
        'redis': RedisConfig,
        'logging': LoggingConfig,
        'monitoring': MonitoringConfig,
    }

    parsed = {}
    for name, section_class in sections.items():
        section_data = config_data.get(name) or {}
        try:
            parsed[name] = section_class(**section_data)
        except TypeError as e:
            raise InvalidConfigurationError(f"Invalid '{name}' section: {e}") from e

    return Config(**parsed)


def validate_config(config: Config):
    """Validate configuration values."""
    crawler = config.crawler

    if not crawler.seed_urls:
        raise InvalidConfigurationError("At least one seed URL must be provided")

    if crawler.max_crawl_depth is not None and crawler.max_crawl_depth < 0:
        raise InvalidConfigurationError("max_crawl_depth must be non-negative")

    if crawler.page_load_timeout <= 0:
        raise InvalidConfigurationError("page_load_timeout must be positive")

    if crawler.max_pages is not None and crawler.max_pages < 1:
        raise InvalidConfigurationError("max_pages must be at least 1")

    delay = config.delay
    if delay.fixed_delay_ms < 0 or delay.min_delay_ms < 0 or delay.max_delay_ms < 0:
        raise InvalidConfigurationError("Delay durations must be non-negative")

    if delay.strategy is not CrawlDelayStrategy.FIXED and delay.min_delay_ms > delay.max_delay_ms:
        raise InvalidConfigurationError("min_delay_ms must not be greater than max_delay_ms")

    if config.state.backend not in ['file', 'redis']:
        raise InvalidConfigurationError("State backend must be 'file' or 'redis'")

    logging.info("Configuration validation passed")


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config_manager.config


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from file."""
    global config_manager
    config_manager = ConfigManager(config_path)
    return config_manager.load_config()
