"""
Monitoring and metrics collection for the crawler.
"""

import logging
import time
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server


class MetricsCollector:
    """Holds the Prometheus metrics of a crawler in a private registry."""

    def __init__(self, enable_server: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.enable_server = enable_server
        self.prometheus_port = prometheus_port
        self.registry = CollectorRegistry()

        self.candidates_served = Counter(
            'crawler_candidates_served_total',
            'Total number of candidates taken from the frontier',
            registry=self.registry
        )
        self.requests_fed = Counter(
            'crawler_requests_fed_total',
            'Requests fed to the frontier by admission outcome',
            ['outcome'],
            registry=self.registry
        )
        self.events = Counter(
            'crawler_events_total',
            'Callback events dispatched by type',
            ['event_type'],
            registry=self.registry
        )
        self.errors = Counter(
            'crawler_errors_total',
            'Errors raised while processing candidates',
            registry=self.registry
        )
        self.crawl_delay = Histogram(
            'crawler_crawl_delay_seconds',
            'Delay applied between two candidates',
            buckets=(0, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60),
            registry=self.registry
        )
        self.queue_size = Gauge(
            'crawler_queue_size',
            'Number of requests pending in the frontier',
            registry=self.registry
        )

        self.logger.info("Prometheus metrics initialized")

    def start_server(self):
        """Start the Prometheus metrics HTTP server."""
        if not self.enable_server:
            return

        try:
            start_http_server(self.prometheus_port, registry=self.registry)
            self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")
        except OSError as e:
            self.logger.error(f"Failed to start Prometheus server: {e}")

    def get_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Read a sample value from the registry; 0 when the sample does not exist."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0


class CrawlerMonitor:
    """High-level monitoring interface for the crawler."""

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        self.metrics = metrics_collector or MetricsCollector()
        self.start_time = time.time()

    def record_candidate_served(self):
        self.metrics.candidates_served.inc()

    def record_feed(self, outcome: str):
        self.metrics.requests_fed.labels(outcome=outcome).inc()

    def record_event(self, event_type: str):
        self.metrics.events.labels(event_type=event_type).inc()

    def record_error(self):
        self.metrics.errors.inc()

    def record_delay(self, delay_ms: int):
        self.metrics.crawl_delay.observe(delay_ms / 1000)

    def update_queue_size(self, size: int):
        self.metrics.queue_size.set(size)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of the collected metrics."""
        runtime = time.time() - self.start_time
        served = self.metrics.get_value('crawler_candidates_served_total')

        return {
            'runtime_seconds': runtime,
            'candidates_served': served,
            'errors': self.metrics.get_value('crawler_errors_total'),
            'queue_size': self.metrics.get_value('crawler_queue_size'),
            'candidates_per_minute': served / (runtime / 60) if runtime > 0 else 0,
        }
