"""
Memory Accountant.

Computes used/available memory with a platform-appropriate
accounting strategy, falling back to total minus raw free memory
when the platform query fails.
"""

import logging
import re
from typing import Optional

from ..core.models import MemoryInfo
from .cpu_sampler import round_percent
from .sources import DataSourceError, SystemDataSource


logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 16384
UNAVAILABLE = "unavailable"

_PAGE_SIZE_RE = re.compile(r"page size of (\d+) bytes")
_NUMBER_RE = re.compile(r"(\d+)")

# Page classes that are reclaimable without I/O
RECLAIMABLE_PAGE_LINES = (
    "Pages free:",
    "Pages inactive:",
    "Pages purgeable:",
    "Pages speculative:",
)


def parse_vm_stat(output: str) -> int:
    """
    Parse ``vm_stat`` output into available bytes.

    Available memory is the sum of free, inactive, purgeable and
    speculative pages times the page size.

    Raises:
        DataSourceError: If none of the page classes are present.
    """
    lines = output.splitlines()
    page_size = DEFAULT_PAGE_SIZE
    if lines:
        match = _PAGE_SIZE_RE.search(lines[0])
        if match:
            page_size = int(match.group(1))

    pages = 0
    found = 0
    for line in lines:
        for label in RECLAIMABLE_PAGE_LINES:
            if label in line:
                match = _NUMBER_RE.search(line.split(":", 1)[1])
                pages += int(match.group(1)) if match else 0
                found += 1
                break

    if not found:
        raise DataSourceError("vm_stat output has no page counts")

    return pages * page_size


def parse_meminfo_available(output: str) -> int:
    """
    Parse the ``MemAvailable`` figure from ``/proc/meminfo`` into bytes.

    Raises:
        DataSourceError: If the field is missing or zero.
    """
    for line in output.splitlines():
        if line.startswith("MemAvailable:"):
            match = _NUMBER_RE.search(line)
            available = int(match.group(1)) * 1024 if match else 0
            if available > 0:
                return available
            break
    raise DataSourceError("MemAvailable missing from /proc/meminfo")


class MemoryStrategy:
    """Base class for memory accounting strategies."""

    name = "fallback"

    def available(self, source: SystemDataSource) -> int:
        """Return available memory in bytes."""
        raise NotImplementedError


class PageClassificationStrategy(MemoryStrategy):
    """Counts reclaimable page classes reported by ``vm_stat``."""

    name = "page-classification"

    def available(self, source: SystemDataSource) -> int:
        return parse_vm_stat(source.raw_memory_pages())


class KernelAvailableStrategy(MemoryStrategy):
    """Uses the kernel's own ``MemAvailable`` estimate."""

    name = "kernel-available"

    def available(self, source: SystemDataSource) -> int:
        return parse_meminfo_available(source.raw_meminfo())


class FallbackStrategy(MemoryStrategy):
    """
    Total minus raw free memory.

    Overstates used memory wherever reclaimable cache counts as used.
    """

    name = "fallback"

    def available(self, source: SystemDataSource) -> int:
        return source.free_memory()


def select_strategy(os_family: str) -> MemoryStrategy:
    """Pick the accounting strategy for an OS family."""
    if os_family == "darwin":
        return PageClassificationStrategy()
    if os_family.startswith("linux"):
        return KernelAvailableStrategy()
    return FallbackStrategy()


def build_memory_info(total: int, available: int, strategy: str) -> MemoryInfo:
    used = total - available
    percent = round_percent(used / total * 100) if total > 0 else 0
    return MemoryInfo(
        total=total,
        free=available,
        used=used,
        percent=percent,
        strategy=strategy,
    )


class MemoryAccountant:
    """
    Measures memory usage once per poll.

    When no strategy is given, the strategy is selected from the
    host's OS family on every call.
    """

    def __init__(
        self,
        source: SystemDataSource,
        strategy: Optional[MemoryStrategy] = None,
    ):
        self._source = source
        self._strategy = strategy
        self._fallback = FallbackStrategy()

    def measure(self) -> MemoryInfo:
        """
        Compute memory usage. Platform query failures fall back silently.

        If psutil cannot report memory at all, an all-zero result tagged
        ``unavailable`` is returned so the rest of the poll still succeeds.
        """
        try:
            total = self._source.total_memory()
        except DataSourceError as e:
            logger.warning(f"Memory accounting unavailable: {e}")
            return MemoryInfo(strategy=UNAVAILABLE)

        strategy = self._strategy or select_strategy(self._source.os_family())

        if not isinstance(strategy, FallbackStrategy):
            try:
                available = strategy.available(self._source)
                return build_memory_info(total, available, strategy.name)
            except DataSourceError as e:
                logger.debug(f"{strategy.name} memory accounting failed, using fallback: {e}")

        try:
            available = self._fallback.available(self._source)
        except DataSourceError as e:
            logger.warning(f"Memory accounting unavailable: {e}")
            return MemoryInfo(total=total, strategy=UNAVAILABLE)
        return build_memory_info(total, available, self._fallback.name)
