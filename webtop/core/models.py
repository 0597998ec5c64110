"""
Data models for host metrics.

These dataclasses represent one poll cycle's view of the local
machine: raw CPU counters, derived CPU usage, memory accounting,
the top process list and the aggregate served to the dashboard.
"""

from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class CpuCoreReading:
    """Cumulative time counters for one core, in milliseconds since boot."""

    user: int = 0
    nice: int = 0
    system: int = 0
    idle: int = 0
    irq: int = 0

    @property
    def total(self) -> int:
        """Sum of all five counters."""
        return self.user + self.nice + self.system + self.idle + self.irq

    def as_tuple(self) -> Tuple[int, int, int, int, int]:
        return (self.user, self.nice, self.system, self.idle, self.irq)


@dataclass(frozen=True)
class CpuCoreInfo:
    """Raw per-core information as fetched from the OS."""

    model: str
    reading: CpuCoreReading


@dataclass(frozen=True)
class CpuUsage:
    """Point-in-time usage percentages for one core."""

    core: int
    usage: int = 0
    user: int = 0
    system: int = 0
    idle: int = 100

    def to_dict(self) -> dict:
        return {
            "core": self.core,
            "usage": self.usage,
            "user": self.user,
            "system": self.system,
            "idle": self.idle,
        }


@dataclass(frozen=True)
class MemoryInfo:
    """Memory usage computed by one accounting strategy."""

    total: int = 0
    free: int = 0
    used: int = 0
    percent: int = 0
    strategy: str = "fallback"  # page-classification, kernel-available, fallback, unavailable


@dataclass(frozen=True)
class ProcessInfo:
    """One row of the OS process table."""

    pid: int
    user: str
    cpu: float
    mem: float
    vsz: str
    rss: str
    tty: str
    stat: str
    start: str
    time: str
    command: str

    @property
    def state(self) -> str:
        """Canonical single-letter process state code."""
        return self.stat[:1]

    def to_dict(self) -> dict:
        return {
            "pid": self.pid,
            "user": self.user,
            "cpu": self.cpu,
            "mem": self.mem,
            "vsz": self.vsz,
            "rss": self.rss,
            "tty": self.tty,
            "stat": self.stat,
            "start": self.start,
            "time": self.time,
            "command": self.command,
        }


@dataclass(frozen=True)
class SystemMetrics:
    """Complete metrics snapshot for the local host at a point in time."""

    hostname: str
    platform: str
    arch: str
    uptime: float
    load_avg: Tuple[float, ...]
    cpu_count: int
    cpu_model: str
    cpu_usage: List[CpuUsage]
    memory: MemoryInfo
    processes: List[ProcessInfo] = field(default_factory=list)
    timestamp: int = 0  # milliseconds since epoch

    @property
    def process_count(self) -> int:
        return len(self.processes)

    def to_dict(self) -> dict:
        """Convert snapshot to the JSON payload polled by the dashboard."""
        return {
            "hostname": self.hostname,
            "platform": self.platform,
            "arch": self.arch,
            "uptime": self.uptime,
            "loadAvg": list(self.load_avg),
            "cpuCount": self.cpu_count,
            "cpuModel": self.cpu_model,
            "cpuUsage": [u.to_dict() for u in self.cpu_usage],
            "totalMem": self.memory.total,
            "freeMem": self.memory.free,
            "usedMem": self.memory.used,
            "memPercent": self.memory.percent,
            "memStrategy": self.memory.strategy,
            "processes": [p.to_dict() for p in self.processes],
            "processCount": self.process_count,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class EnvVariable:
    """A single environment variable as exposed over the API."""

    name: str
    value: str

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value}
