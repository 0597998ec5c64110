"""
Metrics Aggregator - composition layer for host metrics.

Runs the CPU, memory and process collectors and merges their
results with host facts into one SystemMetrics snapshot.
"""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..collectors.cpu_sampler import CpuTimeSampler
from ..collectors.memory import MemoryAccountant
from ..collectors.processes import ProcessSnapshot
from ..collectors.sources import DataSourceError, SystemDataSource
from .config import CollectionConfig
from .models import CpuCoreInfo, CpuUsage, MemoryInfo, ProcessInfo, SystemMetrics


logger = logging.getLogger(__name__)


class CollectionError(Exception):
    """Raised when a poll cycle cannot produce a snapshot."""


@dataclass(frozen=True)
class HostFacts:
    hostname: str
    platform: str
    arch: str
    uptime: float
    load_avg: Tuple[float, ...]


class MetricsAggregator:
    """
    Builds a fresh SystemMetrics snapshot on every call.

    Owns the CPU sampler, so one aggregator should live for the
    lifetime of the process serving polls.
    """

    def __init__(
        self,
        source: Optional[SystemDataSource] = None,
        config: Optional[CollectionConfig] = None,
        sampler: Optional[CpuTimeSampler] = None,
        memory: Optional[MemoryAccountant] = None,
        processes: Optional[ProcessSnapshot] = None,
    ):
        self.config = config or CollectionConfig()
        self.source = source or SystemDataSource(self.config.command_timeout_seconds)
        self.sampler = sampler or CpuTimeSampler(self.source)
        self.memory = memory or MemoryAccountant(self.source)
        self.processes = processes or ProcessSnapshot(self.source, self.config.process_limit)
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, self.config.max_workers),
            thread_name_prefix="webtop-collect",
        )

    def _sample_cpu(self) -> Tuple[List[CpuCoreInfo], List[CpuUsage]]:
        return self.sampler.sample_cores()

    def _host_facts(self) -> HostFacts:
        return HostFacts(
            hostname=self.source.hostname(),
            platform=self.source.os_family(),
            arch=self.source.arch(),
            uptime=self.source.uptime(),
            load_avg=tuple(self.source.load_average()),
        )

    def _build(
        self,
        host: HostFacts,
        cores: List[CpuCoreInfo],
        cpu_usage: List[CpuUsage],
        memory: MemoryInfo,
        processes: List[ProcessInfo],
    ) -> SystemMetrics:
        return SystemMetrics(
            hostname=host.hostname,
            platform=host.platform,
            arch=host.arch,
            uptime=host.uptime,
            load_avg=host.load_avg,
            cpu_count=len(cores),
            cpu_model=cores[0].model if cores else "Unknown",
            cpu_usage=cpu_usage,
            memory=memory,
            processes=processes,
            timestamp=int(time.time() * 1000),
        )

    def collect(self) -> SystemMetrics:
        """
        Collect a snapshot, running each collector in turn.

        Raises:
            CollectionError: If CPU counters or host facts are unreadable.
        """
        try:
            cores, cpu_usage = self._sample_cpu()
            host = self._host_facts()
        except DataSourceError as e:
            raise CollectionError(str(e)) from e

        memory = self.memory.measure()
        processes = self.processes.list()
        return self._build(host, cores, cpu_usage, memory, processes)

    async def collect_async(self) -> SystemMetrics:
        """
        Collect a snapshot without blocking the event loop.

        With ``parallel`` enabled the collectors run concurrently in the
        thread pool. All of them are joined before any failure is raised.
        """
        loop = asyncio.get_running_loop()

        if not self.config.parallel:
            return await loop.run_in_executor(self._executor, self.collect)

        results = await asyncio.gather(
            loop.run_in_executor(self._executor, self._sample_cpu),
            loop.run_in_executor(self._executor, self.memory.measure),
            loop.run_in_executor(self._executor, self.processes.list),
            loop.run_in_executor(self._executor, self._host_facts),
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, DataSourceError):
                raise CollectionError(str(result)) from result
            if isinstance(result, BaseException):
                raise result

        (cores, cpu_usage), memory, processes, host = results
        return self._build(host, cores, cpu_usage, memory, processes)

    def close(self):
        """Shut down the collector thread pool."""
        self._executor.shutdown(wait=False)
