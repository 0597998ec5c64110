"""
Local System Data Source.

Wraps every OS query used by the collectors: psutil counters,
external command output and kernel files. Collectors parse the
returned text so they can be tested against fixture output.
"""

import logging
import platform
import socket
import subprocess
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

import psutil

from ..core.models import CpuCoreInfo, CpuCoreReading


logger = logging.getLogger(__name__)

MEMINFO_PATH = Path("/proc/meminfo")
CPUINFO_PATH = Path("/proc/cpuinfo")


class DataSourceError(Exception):
    """Raised when an OS query or external command fails."""


def _to_ms(seconds: float) -> int:
    return int(round(seconds * 1000))


class SystemDataSource:
    """
    Provides raw host data to the collectors.

    Uses psutil for counters and host facts, and runs OS utilities
    (``vm_stat``, ``ps``) with a bounded timeout.
    """

    def __init__(self, command_timeout: float = 5.0):
        self.command_timeout = command_timeout
        self._cpu_model: Optional[str] = None

    def _run(self, args: List[str]) -> str:
        """Run a command and return its stdout."""
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.command_timeout,
                check=True,
            )
        except subprocess.TimeoutExpired as e:
            raise DataSourceError(f"{args[0]} timed out after {self.command_timeout}s") from e
        except subprocess.CalledProcessError as e:
            raise DataSourceError(f"{args[0]} exited with status {e.returncode}") from e
        except OSError as e:
            raise DataSourceError(f"{args[0]} could not be run: {e}") from e
        return result.stdout

    def os_family(self) -> str:
        """Operating system family, e.g. ``darwin`` or ``linux``."""
        return sys.platform

    def raw_cpu_times(self) -> List[CpuCoreInfo]:
        """Get cumulative time counters for every logical core."""
        try:
            per_cpu = psutil.cpu_times(percpu=True)
        except (psutil.Error, OSError) as e:
            raise DataSourceError(f"CPU counters unavailable: {e}") from e

        if not per_cpu:
            raise DataSourceError("CPU counters unavailable: no cores reported")

        model = self.cpu_model()
        cores = []
        for times in per_cpu:
            irq = getattr(times, "irq", getattr(times, "interrupt", 0.0))
            reading = CpuCoreReading(
                user=_to_ms(times.user),
                nice=_to_ms(getattr(times, "nice", 0.0)),
                system=_to_ms(times.system),
                idle=_to_ms(times.idle),
                irq=_to_ms(irq),
            )
            cores.append(CpuCoreInfo(model=model, reading=reading))
        return cores

    def cpu_model(self) -> str:
        """Get CPU model name, looked up once."""
        if self._cpu_model is None:
            self._cpu_model = self._lookup_cpu_model() or "Unknown"
        return self._cpu_model

    def _lookup_cpu_model(self) -> str:
        try:
            if self.os_family() == "darwin":
                return self._run(["sysctl", "-n", "machdep.cpu.brand_string"]).strip()
            elif self.os_family().startswith("linux"):
                with open(CPUINFO_PATH, "r") as f:
                    for line in f:
                        if line.startswith("model name"):
                            return line.split(":", 1)[1].strip()
        except (DataSourceError, OSError) as e:
            logger.debug(f"CPU model lookup failed: {e}")
        return platform.processor()

    def total_memory(self) -> int:
        try:
            return psutil.virtual_memory().total
        except (psutil.Error, OSError) as e:
            raise DataSourceError(f"Total memory unavailable: {e}") from e

    def free_memory(self) -> int:
        """Raw free memory as reported by the OS, excluding reclaimable caches."""
        try:
            return psutil.virtual_memory().free
        except (psutil.Error, OSError) as e:
            raise DataSourceError(f"Free memory unavailable: {e}") from e

    def raw_memory_pages(self) -> str:
        """Get ``vm_stat`` output (page counts by state)."""
        return self._run(["vm_stat"])

    def raw_meminfo(self) -> str:
        """Get the contents of ``/proc/meminfo``."""
        try:
            return MEMINFO_PATH.read_text()
        except OSError as e:
            raise DataSourceError(f"{MEMINFO_PATH} unreadable: {e}") from e

    def raw_process_list(self) -> str:
        """Get ``ps aux`` output sorted by CPU usage, descending."""
        if self.os_family() == "darwin":
            return self._run(["ps", "aux", "-r"])
        return self._run(["ps", "aux", "--sort=-%cpu"])

    def hostname(self) -> str:
        return socket.gethostname()

    def arch(self) -> str:
        return platform.machine()

    def uptime(self) -> float:
        """Seconds since boot."""
        try:
            return time.time() - psutil.boot_time()
        except (psutil.Error, OSError) as e:
            raise DataSourceError(f"Boot time unavailable: {e}") from e

    def load_average(self) -> Tuple[float, float, float]:
        """1, 5 and 15 minute load averages."""
        try:
            return psutil.getloadavg()
        except (AttributeError, OSError) as e:
            raise DataSourceError(f"Load average unavailable: {e}") from e
