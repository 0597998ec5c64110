"""Shared fixtures: a data source fed with fixed readings and command text."""

import pytest

from webtop.collectors.sources import DataSourceError
from webtop.core.models import CpuCoreInfo, CpuCoreReading


VM_STAT_OUTPUT = """\
Mach Virtual Memory Statistics: (page size of 16384 bytes)
Pages free:                               10000.
Pages active:                            200000.
Pages inactive:                           20000.
Pages speculative:                         5000.
Pages throttled:                              0.
Pages wired down:                         90000.
Pages purgeable:                           1000.
"Translation faults":                 123456789.
"""

MEMINFO_OUTPUT = """\
MemTotal:       16384000 kB
MemFree:         1024000 kB
MemAvailable:    8192000 kB
Buffers:          204800 kB
Cached:          4096000 kB
"""

PS_OUTPUT = """\
USER         PID %CPU %MEM    VSZ   RSS TTY      STAT START   TIME COMMAND
root           1 12.5  0.3 168000 12288 ?        Ss   Oct16   0:05 /sbin/init splash
postgres-admin 4242  3.0  1.5 1048576 524288 pts/0 R+ 10:01 1:23 postgres: writer process
broken line
"""


class FakeSource:
    """In-memory stand-in for SystemDataSource."""

    def __init__(
        self,
        readings=None,
        os_family="linux",
        total=16 * 1024 ** 3,
        free=4 * 1024 ** 3,
        vm_stat=VM_STAT_OUTPUT,
        meminfo=MEMINFO_OUTPUT,
        ps_output=PS_OUTPUT,
        model="Test CPU @ 3.00GHz",
    ):
        self.readings = readings if readings is not None else [
            CpuCoreReading(user=100, nice=0, system=50, idle=850, irq=0),
            CpuCoreReading(user=300, nice=0, system=100, idle=600, irq=0),
        ]
        self._os_family = os_family
        self.total = total
        self.free = free
        self.vm_stat = vm_stat
        self.meminfo = meminfo
        self.ps_output = ps_output
        self.model = model
        self.cpu_calls = 0
        self.fail_cpu = False
        self.fail_host = False
        self.fail_total = False
        self.fail_free = False

    def os_family(self):
        return self._os_family

    def raw_cpu_times(self):
        self.cpu_calls += 1
        if self.fail_cpu:
            raise DataSourceError("CPU counters unavailable")
        return [CpuCoreInfo(model=self.model, reading=r) for r in self.readings]

    def cpu_model(self):
        return self.model

    def total_memory(self):
        if self.fail_total:
            raise DataSourceError("Total memory unavailable")
        return self.total

    def free_memory(self):
        if self.fail_free:
            raise DataSourceError("Free memory unavailable")
        return self.free

    def _text(self, value):
        if isinstance(value, Exception):
            raise value
        return value

    def raw_memory_pages(self):
        return self._text(self.vm_stat)

    def raw_meminfo(self):
        return self._text(self.meminfo)

    def raw_process_list(self):
        return self._text(self.ps_output)

    def hostname(self):
        return "testhost"

    def arch(self):
        return "x86_64"

    def uptime(self):
        if self.fail_host:
            raise DataSourceError("Boot time unavailable")
        return 3600.0

    def load_average(self):
        return (1.0, 0.5, 0.25)


@pytest.fixture
def source():
    return FakeSource()
