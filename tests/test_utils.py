"""Tests for logging and monitoring utilities."""

import json
import logging

import pytest

from browsercrawler.utils.config import LoggingConfig
from browsercrawler.utils.logger import JSONFormatter, PerformanceFilter, get_crawler_logger, setup_logging
from browsercrawler.utils.monitoring import CrawlerMonitor, MetricsCollector


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield root_logger
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


class TestLogging:
    """Test cases for the logging setup."""

    def test_json_formatter_includes_crawler_context(self):
        record = logging.LogRecord('browsercrawler.test', logging.INFO, __file__, 10,
                                   "onPageLoad: %s", ("https://example.com/",), None)
        record.url = "https://example.com/"
        record.event_type = 'url_event'

        entry = json.loads(JSONFormatter().format(record))

        assert entry['message'] == "onPageLoad: https://example.com/"
        assert entry['level'] == 'INFO'
        assert entry['url'] == "https://example.com/"
        assert entry['event_type'] == 'url_event'
        assert 'stat_name' not in entry

    def test_adapter_adds_context(self, caplog):
        logger = get_crawler_logger('browsercrawler.test', crawler='TestCrawler')

        with caplog.at_level(logging.INFO, logger='browsercrawler.test'):
            logger.log_url_event(logging.INFO, "https://example.com/", "visited")
            logger.log_crawler_stat('page_loads', 3)

        url_record, stat_record = caplog.records
        assert url_record.url == "https://example.com/"
        assert url_record.crawler == 'TestCrawler'
        assert stat_record.stat_name == 'page_loads'
        assert stat_record.stat_value == 3

    def test_performance_filter(self):
        log_filter = PerformanceFilter()
        noisy = logging.LogRecord('aiohttp.access', logging.INFO, __file__, 1, "GET /", None, None)
        useful = logging.LogRecord('browsercrawler.crawler', logging.INFO, __file__, 1, "ok", None, None)

        assert not log_filter.filter(noisy)
        assert log_filter.filter(useful)

    def test_setup_logging_writes_files(self, tmp_path, restore_root_logger):
        config = LoggingConfig(level='DEBUG', file=str(tmp_path / "logs" / "crawler.log"), json=True)

        setup_logging(config)
        logging.getLogger('browsercrawler.test').error("something failed")
        for handler in restore_root_logger.handlers:
            handler.flush()

        lines = (tmp_path / "logs" / "crawler.log").read_text().splitlines()
        assert json.loads(lines[-1])['message'] == "something failed"
        assert "something failed" in (tmp_path / "logs" / "errors.log").read_text()


class TestMonitoring:
    """Test cases for CrawlerMonitor."""

    def test_records_metrics(self):
        collector = MetricsCollector()
        monitor = CrawlerMonitor(collector)

        monitor.record_candidate_served()
        monitor.record_candidate_served()
        monitor.record_feed('admitted')
        monitor.record_feed('offsite')
        monitor.record_event('page_load')
        monitor.record_error()
        monitor.record_delay(1500)
        monitor.update_queue_size(7)

        assert collector.get_value('crawler_requests_fed_total', {'outcome': 'offsite'}) == 1
        assert collector.get_value('crawler_events_total', {'event_type': 'page_load'}) == 1
        assert collector.get_value('crawler_crawl_delay_seconds_sum') == 1.5

        summary = monitor.get_summary()
        assert summary['candidates_served'] == 2
        assert summary['errors'] == 1
        assert summary['queue_size'] == 7

    def test_collectors_are_independent(self):
        first = MetricsCollector()
        second = MetricsCollector()

        CrawlerMonitor(first).record_error()

        assert first.get_value('crawler_errors_total') == 1
        assert second.get_value('crawler_errors_total') == 0
