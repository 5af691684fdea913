"""Tests for the metrics service."""

import sys
import threading
from pathlib import Path

import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.api.metrics import MetricsService, metrics_service


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics_service.reset()
    yield
    metrics_service.reset()


def test_metrics_service_is_singleton():
    assert MetricsService() is metrics_service


def test_empty_metrics():
    assert metrics_service.get_metrics() == {}


def test_record_latency():
    metrics_service.record("recommend", 2.0)
    metrics_service.record("recommend", 4.0)
    metrics_service.record("recommend", 9.0, failed=True)
    metrics_service.record("rank", 1.5)

    metrics = metrics_service.get_metrics()

    assert metrics["recommend"] == {
        "count": 3,
        "errors": 1,
        "average_latency_ms": 5.0,
        "min_latency_ms": 2.0,
        "max_latency_ms": 9.0,
    }
    assert metrics["rank"]["count"] == 1
    assert metrics["rank"]["errors"] == 0


def test_record_from_many_threads():
    """Test that concurrent records are all counted."""

    def worker():
        for _ in range(100):
            metrics_service.record("recommend", 1.0)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert metrics_service.get_metrics()["recommend"]["count"] == 800


def test_reset():
    metrics_service.record("rank", 3.0)
    metrics_service.reset()

    assert metrics_service.get_metrics() == {}
