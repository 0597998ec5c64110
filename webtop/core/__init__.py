"""Core module containing data models, configuration and aggregation."""

from .models import (
    CpuCoreReading,
    CpuCoreInfo,
    CpuUsage,
    MemoryInfo,
    ProcessInfo,
    SystemMetrics,
    EnvVariable,
)
from .config import Config

__all__ = [
    "CpuCoreReading",
    "CpuCoreInfo",
    "CpuUsage",
    "MemoryInfo",
    "ProcessInfo",
    "SystemMetrics",
    "EnvVariable",
    "Config",
]
