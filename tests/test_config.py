"""Tests for configuration loading and validation."""

import pytest
import yaml

from browsercrawler.crawler.browser import BrowserType
from browsercrawler.crawler.delay import CrawlDelayStrategy
from browsercrawler.crawler.exceptions import InvalidConfigurationError
from browsercrawler.crawler.url_frontier import CrawlStrategy
from browsercrawler.utils.config import ConfigManager, load_config, parse_config, validate_config


def write_config(tmp_path, data) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestConfigLoading:
    """Test cases for loading configuration files."""

    def test_load_full_config(self, tmp_path):
        path = write_config(tmp_path, {
            'crawler': {
                'seed_urls': ["https://example.com/"],
                'max_crawl_depth': 3,
                'offsite_filter_enabled': True,
                'crawl_strategy': 'breadth_first',
                'browser': 'firefox',
                'max_pages': 50,
            },
            'delay': {'strategy': 'random', 'min_delay_ms': 100, 'max_delay_ms': 500},
            'state': {'backend': 'redis', 'redis_key': 'crawl:state'},
            'logging': {'level': 'DEBUG', 'json': True},
        })

        config = load_config(path)

        assert config.crawler.seed_urls == ["https://example.com/"]
        assert config.crawler.max_crawl_depth == 3
        assert config.crawler.offsite_filter_enabled is True
        assert config.crawler.crawl_strategy is CrawlStrategy.BREADTH_FIRST
        assert config.crawler.browser is BrowserType.FIREFOX
        assert config.delay.strategy is CrawlDelayStrategy.RANDOM
        assert config.state.backend == 'redis'
        assert config.logging.json is True
        assert config.redis.port == 6379

    def test_defaults(self, tmp_path):
        config = load_config(write_config(tmp_path, {'crawler': {'seed_urls': ["https://example.com/"]}}))

        assert config.crawler.max_crawl_depth is None
        assert config.crawler.offsite_filter_enabled is False
        assert config.crawler.crawl_strategy is CrawlStrategy.PRIORITY
        assert config.delay.strategy is CrawlDelayStrategy.FIXED
        assert config.delay.fixed_delay_ms == 0
        assert config.state.backend == 'file'

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager(str(tmp_path / "nope.yaml")).load_config()

    def test_config_property_requires_loading(self):
        with pytest.raises(ValueError):
            _ = ConfigManager("unused.yaml").config

    def test_unknown_option(self):
        with pytest.raises(InvalidConfigurationError):
            parse_config({'crawler': {'seed_urls': ["https://example.com/"], 'threads': 4}})

    @pytest.mark.parametrize("section,values", [
        ('crawler', {'crawl_strategy': 'random_walk'}),
        ('crawler', {'browser': 'netscape'}),
        ('delay', {'strategy': 'sometimes'}),
    ])
    def test_unknown_enum_value(self, section, values):
        with pytest.raises(InvalidConfigurationError):
            parse_config({section: values})


class TestConfigValidation:
    """Test cases for validate_config."""

    @pytest.mark.parametrize("data", [
        {'crawler': {}},
        {'crawler': {'seed_urls': ["https://example.com/"], 'max_crawl_depth': -1}},
        {'crawler': {'seed_urls': ["https://example.com/"], 'page_load_timeout': 0}},
        {'crawler': {'seed_urls': ["https://example.com/"], 'max_pages': 0}},
        {'crawler': {'seed_urls': ["https://example.com/"]}, 'delay': {'fixed_delay_ms': -5}},
        {'crawler': {'seed_urls': ["https://example.com/"]},
         'delay': {'strategy': 'adaptive', 'min_delay_ms': 3000, 'max_delay_ms': 1000}},
        {'crawler': {'seed_urls': ["https://example.com/"]}, 'state': {'backend': 'sqlite'}},
    ])
    def test_invalid_values(self, data):
        with pytest.raises(InvalidConfigurationError):
            validate_config(parse_config(data))

    def test_fixed_strategy_ignores_bounds_order(self):
        config = parse_config({
            'crawler': {'seed_urls': ["https://example.com/"]},
            'delay': {'strategy': 'fixed', 'fixed_delay_ms': 10, 'min_delay_ms': 50, 'max_delay_ms': 5},
        })

        validate_config(config)
