"""Tests for the metrics aggregator."""

import asyncio
import threading
import time

import pytest

from webtop.collectors.sources import DataSourceError
from webtop.core.aggregator import CollectionError, MetricsAggregator
from webtop.core.config import CollectionConfig
from webtop.core.models import CpuCoreInfo, CpuCoreReading, SystemMetrics
from tests.conftest import FakeSource

HEADER_ONLY = "USER PID %CPU %MEM VSZ RSS TTY STAT START TIME COMMAND\n"


@pytest.fixture
def aggregator(source):
    aggregator = MetricsAggregator(source=source)
    yield aggregator
    aggregator.close()


class TestCollect:
    """Tests for sequential collection."""

    def test_snapshot_fields(self, aggregator):
        metrics = aggregator.collect()

        assert isinstance(metrics, SystemMetrics)
        assert metrics.hostname == "testhost"
        assert metrics.platform == "linux"
        assert metrics.arch == "x86_64"
        assert metrics.uptime == 3600.0
        assert metrics.load_avg == (1.0, 0.5, 0.25)
        assert metrics.cpu_count == 2
        assert metrics.cpu_model == "Test CPU @ 3.00GHz"
        assert [u.core for u in metrics.cpu_usage] == [0, 1]
        assert metrics.memory.strategy == "kernel-available"
        assert metrics.process_count == 2
        assert metrics.timestamp > 0

    def test_cpu_counters_fetched_once(self, source, aggregator):
        aggregator.collect()
        assert source.cpu_calls == 1

    def test_second_poll_uses_deltas(self, source, aggregator):
        aggregator.collect()
        source.readings = [
            CpuCoreReading(user=150, nice=0, system=80, idle=900, irq=0),
            CpuCoreReading(user=300, nice=0, system=100, idle=600, irq=0),
        ]

        metrics = aggregator.collect()

        assert metrics.cpu_usage[0].usage == 62
        assert metrics.cpu_usage[1].usage == 0
        assert metrics.cpu_usage[1].idle == 100

    def test_empty_process_output(self):
        aggregator = MetricsAggregator(source=FakeSource(ps_output=HEADER_ONLY))
        try:
            metrics = aggregator.collect()
        finally:
            aggregator.close()

        assert metrics.processes == []
        assert metrics.process_count == 0
        assert metrics.to_dict()["processCount"] == 0

    def test_process_failure_is_not_fatal(self):
        aggregator = MetricsAggregator(source=FakeSource(ps_output=DataSourceError("ps missing")))
        try:
            metrics = aggregator.collect()
        finally:
            aggregator.close()

        assert metrics.processes == []
        assert metrics.cpu_count == 2

    def test_cpu_failure_is_fatal(self, source, aggregator):
        source.fail_cpu = True
        with pytest.raises(CollectionError):
            aggregator.collect()

    def test_host_failure_is_fatal(self, source, aggregator):
        source.fail_host = True
        with pytest.raises(CollectionError):
            aggregator.collect()

    def test_payload_keys(self, aggregator):
        payload = aggregator.collect().to_dict()

        assert set(payload) == {
            "hostname", "platform", "arch", "uptime", "loadAvg", "cpuCount",
            "cpuModel", "cpuUsage", "totalMem", "freeMem", "usedMem",
            "memPercent", "memStrategy", "processes", "processCount", "timestamp",
        }
        assert payload["loadAvg"] == [1.0, 0.5, 0.25]
        assert payload["cpuUsage"][0] == {"core": 0, "usage": 15, "user": 10, "system": 5, "idle": 85}


class TestCollectAsync:
    """Tests for collection off the event loop."""

    def test_parallel_snapshot(self, aggregator):
        metrics = asyncio.run(aggregator.collect_async())

        assert metrics.cpu_count == 2
        assert metrics.process_count == 2
        assert metrics.memory.total == 16 * 1024 ** 3

    def test_sequential_mode(self, source):
        aggregator = MetricsAggregator(source=source, config=CollectionConfig(parallel=False))
        try:
            metrics = asyncio.run(aggregator.collect_async())
        finally:
            aggregator.close()

        assert metrics.cpu_count == 2

    def test_cpu_failure_raises_after_join(self, source, aggregator):
        source.fail_cpu = True
        with pytest.raises(CollectionError):
            asyncio.run(aggregator.collect_async())

    def test_process_failure_degrades(self):
        aggregator = MetricsAggregator(source=FakeSource(ps_output=DataSourceError("ps timed out")))
        try:
            metrics = asyncio.run(aggregator.collect_async())
        finally:
            aggregator.close()

        assert metrics.processes == []


class StallingSource(FakeSource):
    """Single-core source whose second counter fetch blocks until released."""

    def __init__(self):
        super().__init__(readings=[])
        self.sequence = iter([
            CpuCoreReading(user=100, idle=900),
            CpuCoreReading(user=200, idle=1000),
            CpuCoreReading(user=300, idle=1100),
        ])
        self.fetched = threading.Event()
        self.release = threading.Event()

    def raw_cpu_times(self):
        self.cpu_calls += 1
        reading = next(self.sequence)
        if self.cpu_calls == 2:
            self.fetched.set()
            self.release.wait(timeout=0.5)
        return [CpuCoreInfo(model=self.model, reading=reading)]


class TestOverlappingPolls:
    """Tests for polls that overlap across request threads."""

    def test_stalled_fetch_does_not_roll_back_cache(self):
        source = StallingSource()
        aggregator = MetricsAggregator(source=source)
        results = {}

        def poll(name):
            results[name] = aggregator._sample_cpu()[1][0]

        try:
            aggregator._sample_cpu()

            first = threading.Thread(target=poll, args=("first",))
            first.start()
            assert source.fetched.wait(timeout=1)

            second = threading.Thread(target=poll, args=("second",))
            second.start()
            time.sleep(0.05)
            source.release.set()

            first.join(timeout=2)
            second.join(timeout=2)
        finally:
            aggregator.close()

        assert results["first"].usage == 50
        assert results["second"].usage == 50
        assert aggregator.sampler.previous_reading(0).user == 300

    def test_overlapping_async_collections(self):
        source = StallingSource()
        aggregator = MetricsAggregator(source=source)
        source.release.set()

        async def two_polls():
            return await asyncio.gather(aggregator.collect_async(), aggregator.collect_async())

        try:
            aggregator.collect()
            first, second = asyncio.run(two_polls())
        finally:
            aggregator.close()

        assert first.cpu_usage[0].usage == 50
        assert second.cpu_usage[0].usage == 50
        assert aggregator.sampler.previous_reading(0).user == 300

    def test_unreadable_memory_is_not_fatal(self):
        source = FakeSource()
        source.fail_total = True
        aggregator = MetricsAggregator(source=source)
        try:
            metrics = asyncio.run(aggregator.collect_async())
        finally:
            aggregator.close()

        assert metrics.memory.strategy == "unavailable"
        assert metrics.cpu_count == 2
        assert metrics.to_dict()["totalMem"] == 0
