"""
CPU Time Sampler.

Turns cumulative per-core time counters into usage percentages
by diffing against the reading taken on the previous poll.
"""

import logging
import math
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.models import CpuCoreInfo, CpuCoreReading, CpuUsage
from .sources import SystemDataSource


logger = logging.getLogger(__name__)


def round_percent(value: float) -> int:
    """Round half up to an integer percentage."""
    return int(math.floor(value + 0.5))


def _idle_usage(core: int) -> CpuUsage:
    return CpuUsage(core=core, usage=0, user=0, system=0, idle=100)


def compute_usage(
    core: int,
    current: CpuCoreReading,
    previous: Optional[CpuCoreReading] = None,
) -> CpuUsage:
    """
    Compute usage for one core.

    With a previous reading the percentages come from the counter
    deltas. Without one (first sample for the core) they come from
    the counters since boot. Each component is rounded on its own,
    so the parts may not add up to exactly 100.
    """
    if previous is None:
        total = current.total
        if total <= 0:
            return _idle_usage(core)
        return CpuUsage(
            core=core,
            usage=round_percent((total - current.idle) / total * 100),
            user=round_percent(current.user / total * 100),
            system=round_percent(current.system / total * 100),
            idle=round_percent(current.idle / total * 100),
        )

    total_diff = current.total - previous.total
    if total_diff <= 0:
        return _idle_usage(core)

    idle_diff = current.idle - previous.idle
    user_diff = current.user - previous.user
    system_diff = current.system - previous.system
    return CpuUsage(
        core=core,
        usage=round_percent((total_diff - idle_diff) / total_diff * 100),
        user=round_percent(user_diff / total_diff * 100),
        system=round_percent(system_diff / total_diff * 100),
        idle=round_percent(idle_diff / total_diff * 100),
    )


class CpuTimeSampler:
    """
    Per-core CPU usage sampler.

    Holds the previous reading for every core index for the lifetime
    of the sampler. The read-compute-commit cycle runs under a lock so
    overlapping polls never diff against a half-committed cache.
    """

    def __init__(self, source: SystemDataSource):
        self._source = source
        self._previous: Dict[int, CpuCoreReading] = {}
        self._lock = threading.Lock()

    def sample(self, cores: Optional[Sequence[CpuCoreInfo]] = None) -> List[CpuUsage]:
        """
        Sample usage for all cores.

        Args:
            cores: Raw per-core info already fetched by the caller. Fetched
                from the data source when omitted.

        Raises:
            DataSourceError: If the raw counters cannot be read. The cache
                is left untouched in that case.
        """
        with self._lock:
            if cores is None:
                cores = self._source.raw_cpu_times()
            usage = self._commit(cores)

        logger.debug(f"Sampled {len(usage)} cores")
        return usage

    def sample_cores(self) -> Tuple[List[CpuCoreInfo], List[CpuUsage]]:
        """
        Fetch the raw counters and sample them as one locked cycle.

        Returns the fetched per-core info along with the usage, so callers
        can reuse the core list without querying the OS again.
        """
        with self._lock:
            cores = self._source.raw_cpu_times()
            usage = self._commit(cores)

        logger.debug(f"Sampled {len(usage)} cores")
        return cores, usage

    def _commit(self, cores: Sequence[CpuCoreInfo]) -> List[CpuUsage]:
        # Caller holds self._lock
        usage = []
        pending = {}
        for index, info in enumerate(cores):
            usage.append(compute_usage(index, info.reading, self._previous.get(index)))
            pending[index] = info.reading

        self._previous.update(pending)
        return usage

    def previous_reading(self, core: int) -> Optional[CpuCoreReading]:
        """Get the cached reading for a core, if one has been taken."""
        with self._lock:
            return self._previous.get(core)
