"""Collectors module for sampling local host metrics."""

from .sources import DataSourceError, SystemDataSource
from .cpu_sampler import CpuTimeSampler
from .memory import MemoryAccountant
from .processes import ProcessSnapshot
from .environment import EnvironmentInspector

__all__ = [
    "DataSourceError",
    "SystemDataSource",
    "CpuTimeSampler",
    "MemoryAccountant",
    "ProcessSnapshot",
    "EnvironmentInspector",
]
