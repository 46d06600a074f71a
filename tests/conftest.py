"""Shared kernel-text fixtures."""

import itertools

import pytest

from procstat.monitor import StatMonitor
from procstat.reader import MemoryReader

PROC_STAT = """\
cpu  7969864 6735 1633028 43336958 48613 180 5043 0 0 0
cpu0 2036657 3176 538690 40502503 48123 180 4562 0 0 0
cpu1 1895483 1224 350858 947119 194 0 244 0 0 0
cpu2 2129079 1332 413982 937158 218 0 138 0 0 0
cpu3 1908644 1002 329497 950176 76 0 96 0 0 0
intr 114930548 113199788 3 0 5 263 0 4
ctxt 1990473
btime 1062191376
processes 2915
procs_running 1
procs_blocked 0
softirq 183433 0 21755 12 39 0 0 0 0 0 0
"""

PROC_MEMINFO = """\
MemTotal:       16384000 kB
MemFree:          512000 kB
MemAvailable:    8123456 kB
Buffers:          204800 kB
HugePages_Total:       0
Hugepagesize:       2048 kB
"""

PROC_LOADAVG = "0.50 0.40 0.30 2/150 12345\n"

PROC_UPTIME = "350735.47 234388.90\n"

PROC_NET_DEV = """\
Inter-|   Receive                                                |  Transmit
 face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed
    lo: 2776770   11307    0    0    0     0          0         0  2776770   11307    0    0    0     0       0          0
  eth0: 1215645    2751    1    2    0     0          0         0  1782404    4324    3    4    0   427       0          0
"""

PID_STAT = (
    "4242 (my worker) S 1 4242 4242 0 -1 4194560 1200 300 5 1 "
    "750 250 10 20 20 0 4 0 98765 123456789 2048 18446744073709551615 "
    "1 1 0 0 0 0 0 0 0 0 0 0 17 3 0 0 0 0 0\n"
)

PID_STATUS = """\
Name:\tmy worker
Umask:\t0022
State:\tS (sleeping)
Tgid:\t4242
Pid:\t4242
PPid:\t1
Uid:\t1000\t1000\t1000\t1000
VmPeak:\t  123456 kB
VmRSS:\t    8192 kB
Threads:\t4
Cpus_allowed:\tff
voluntary_ctxt_switches:\t150
nonvoluntary_ctxt_switches:\t7
"""


def proc_files(overrides: dict[str, str | Exception] | None = None) -> dict[str, str | Exception]:
    """Build a fake /proc tree, optionally replacing entries by relative path."""
    files: dict[str, str | Exception] = {
        "/proc/stat": PROC_STAT,
        "/proc/meminfo": PROC_MEMINFO,
        "/proc/loadavg": PROC_LOADAVG,
        "/proc/uptime": PROC_UPTIME,
        "/proc/net/dev": PROC_NET_DEV,
        "/proc/4242/stat": PID_STAT,
        "/proc/4242/status": PID_STATUS,
    }
    for relative, content in (overrides or {}).items():
        files["/proc/" + relative] = content
    return files


@pytest.fixture
def reader() -> MemoryReader:
    """In-memory reader serving the canned /proc tree."""
    return MemoryReader(proc_files())


@pytest.fixture
def monitor(reader: MemoryReader) -> StatMonitor:
    """Monitor over the canned tree with a clock ticking one second per call."""
    ticks = itertools.count(start=100.0)
    return StatMonitor(reader=reader, clock=lambda: next(ticks))
