"""Data models for procstat."""

import os
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import ClassVar, Mapping


class Unknown(Enum):
    """Marker for an optional field the kernel did not provide."""

    UNKNOWN = "unknown"

    def __repr__(self) -> str:
        return "UNKNOWN"


UNKNOWN = Unknown.UNKNOWN

Count = int | Unknown


def _empty() -> Mapping:
    return MappingProxyType({})


class SourceId(Enum):
    """Known stat sources."""

    CPU = "cpu"
    STAT_COUNTERS = "stat_counters"
    MEMINFO = "meminfo"
    LOADAVG = "loadavg"
    UPTIME = "uptime"
    PROCESS_STAT = "process_stat"
    PROCESS_STATUS = "process_status"
    NET_DEV = "net_dev"


@dataclass(slots=True, frozen=True)
class CpuTicks:
    """One ``cpu``/``cpuN`` row of /proc/stat, in clock ticks."""

    TICK_FIELDS: ClassVar[tuple[str, ...]] = (
        "user",
        "nice",
        "system",
        "idle",
        "iowait",
        "irq",
        "softirq",
        "steal",
        "guest",
        "guest_nice",
    )

    label: str  # 'cpu' for the aggregate, 'cpu0', 'cpu1', ... per core
    user: int
    nice: int
    system: int
    idle: int
    iowait: int
    irq: int
    softirq: int
    steal: Count = UNKNOWN  # Linux >= 2.6.11
    guest: Count = UNKNOWN  # Linux >= 2.6.24
    guest_nice: Count = UNKNOWN  # Linux >= 2.6.33

    @property
    def key(self) -> str:
        """Identity of this record within a snapshot."""
        return self.label

    @property
    def generation(self) -> None:
        """Never changes; counters only reset by going backwards."""
        return None

    @property
    def is_aggregate(self) -> bool:
        """Whether this is the all-cpu row."""
        return self.label == "cpu"

    def counters(self) -> dict[str, Count]:
        """Monotonic counters, by field name."""
        return {name: getattr(self, name) for name in self.TICK_FIELDS}

    def gauges(self) -> dict[str, Count]:
        """Point-in-time integer values, by field name."""
        return {}


@dataclass(slots=True, frozen=True)
class StatCounters:
    """Kernel activity rows of /proc/stat."""

    ctxt: int
    btime: int
    processes: int
    procs_running: Count = UNKNOWN
    procs_blocked: Count = UNKNOWN
    intr_total: Count = UNKNOWN
    softirq_total: Count = UNKNOWN

    @property
    def key(self) -> None:
        """Single-record source: always None."""
        return None

    @property
    def generation(self) -> int:
        """Changes when every counter of this record restarted."""
        # A changed boot time means every counter restarted.
        return self.btime

    def counters(self) -> dict[str, Count]:
        """Monotonic counters, by field name."""
        return {
            "ctxt": self.ctxt,
            "processes": self.processes,
            "intr_total": self.intr_total,
            "softirq_total": self.softirq_total,
        }

    def gauges(self) -> dict[str, Count]:
        """Point-in-time integer values, by field name."""
        return {"procs_running": self.procs_running, "procs_blocked": self.procs_blocked}


@dataclass(slots=True, frozen=True)
class MemInfo:
    """Contents of /proc/meminfo; values in kilobytes unless unit is empty."""

    values: Mapping[str, Count] = field(default_factory=_empty)
    units: Mapping[str, str] = field(default_factory=_empty)  # 'kB' or ''

    __hash__ = None  # Holds mappings

    @property
    def key(self) -> None:
        """Single-record source: always None."""
        return None

    @property
    def generation(self) -> None:
        """Never changes; counters only reset by going backwards."""
        return None

    def get(self, name: str) -> Count:
        """Get a metric, or UNKNOWN when this kernel does not report it."""
        return self.values.get(name, UNKNOWN)

    def kilobytes(self, name: str) -> Count:
        """Get a memory metric in kilobytes."""
        return self.get(name)

    def bytes(self, name: str) -> Count:
        """Get a memory metric in bytes; unit-less values are returned as-is."""
        value = self.get(name)
        if value is UNKNOWN or self.units.get(name) != "kB":
            return value
        return value * 1024

    def counters(self) -> dict[str, Count]:
        """Monotonic counters, by field name."""
        return {}

    def gauges(self) -> dict[str, Count]:
        """Point-in-time integer values, by field name."""
        return dict(self.values)


@dataclass(slots=True, frozen=True)
class LoadAvg:
    """Contents of /proc/loadavg."""

    one: float
    five: float
    fifteen: float
    runnable: int
    total_entities: int
    last_pid: int

    @property
    def key(self) -> None:
        """Single-record source: always None."""
        return None

    @property
    def generation(self) -> None:
        """Never changes; counters only reset by going backwards."""
        return None

    def counters(self) -> dict[str, Count]:
        """Monotonic counters, by field name."""
        return {}

    def gauges(self) -> dict[str, Count]:
        """Point-in-time integer values, by field name."""
        return {"runnable": self.runnable, "total_entities": self.total_entities}


@dataclass(slots=True, frozen=True)
class Uptime:
    """Contents of /proc/uptime."""

    seconds: float
    idle_seconds: float

    @property
    def key(self) -> None:
        """Single-record source: always None."""
        return None

    @property
    def generation(self) -> None:
        """Never changes; counters only reset by going backwards."""
        return None

    def counters(self) -> dict[str, Count]:
        """Monotonic counters, by field name."""
        return {}

    def gauges(self) -> dict[str, Count]:
        """Point-in-time integer values, by field name."""
        return {}


@dataclass(slots=True, frozen=True)
class ProcessStat:
    """Contents of /proc/<pid>/stat. Times are in clock ticks, rss in pages."""

    pid: int
    comm: str
    state: str  # 'R', 'S', 'Z', 'D', etc.
    ppid: int
    pgrp: int
    session: int
    flags: int
    minflt: int
    cminflt: int
    majflt: int
    cmajflt: int
    utime: int
    stime: int
    cutime: int
    cstime: int
    nice: int  # signed, -20..19
    num_threads: int
    starttime: int
    vsize: int  # Bytes
    rss: int  # Pages
    processor: Count = UNKNOWN  # Linux >= 2.2.8

    @property
    def key(self) -> int:
        """Identity of this record within a snapshot."""
        return self.pid

    @property
    def generation(self) -> int:
        """Changes when every counter of this record restarted."""
        # A reused pid shows up with a different start time.
        return self.starttime

    def rss_bytes(self, page_size: int | None = None) -> int:
        """Resident set size in bytes."""
        if page_size is None:
            page_size = os.sysconf("SC_PAGE_SIZE")
        return self.rss * page_size

    def counters(self) -> dict[str, Count]:
        """Monotonic counters, by field name."""
        return {
            "minflt": self.minflt,
            "cminflt": self.cminflt,
            "majflt": self.majflt,
            "cmajflt": self.cmajflt,
            "utime": self.utime,
            "stime": self.stime,
            "cutime": self.cutime,
            "cstime": self.cstime,
        }

    def gauges(self) -> dict[str, Count]:
        """Point-in-time integer values, by field name."""
        return {"num_threads": self.num_threads, "vsize": self.vsize, "rss": self.rss}


@dataclass(slots=True, frozen=True)
class ProcessStatus:
    """Contents of /proc/<pid>/status."""

    COUNTER_FIELDS: ClassVar[tuple[str, ...]] = (
        "voluntary_ctxt_switches",
        "nonvoluntary_ctxt_switches",
    )

    pid: int
    name: str
    state: str
    values: Mapping[str, int] = field(default_factory=_empty)  # kB-suffixed values in kB
    text: Mapping[str, str] = field(default_factory=_empty)

    __hash__ = None  # Holds mappings

    @property
    def key(self) -> int:
        """Identity of this record within a snapshot."""
        return self.pid

    @property
    def generation(self) -> None:
        """Never changes; counters only reset by going backwards."""
        return None

    def get(self, name: str) -> Count:
        """Get a numeric status field, or UNKNOWN when absent."""
        return self.values.get(name, UNKNOWN)

    def counters(self) -> dict[str, Count]:
        """Monotonic counters, by field name."""
        return {name: self.get(name) for name in self.COUNTER_FIELDS}

    def gauges(self) -> dict[str, Count]:
        """Point-in-time integer values, by field name."""
        return {
            name: value
            for name, value in self.values.items()
            if name not in self.COUNTER_FIELDS
        }


@dataclass(slots=True, frozen=True)
class NetDev:
    """One interface row of /proc/net/dev."""

    interface: str
    rx_bytes: int
    rx_packets: int
    rx_errors: int
    rx_drops: int
    tx_bytes: int
    tx_packets: int
    tx_errors: int
    tx_drops: int
    extra: Mapping[str, int] = field(default_factory=_empty)  # rx_fifo, tx_colls, ...

    __hash__ = None  # Holds mappings

    @property
    def key(self) -> str:
        """Identity of this record within a snapshot."""
        return self.interface

    @property
    def generation(self) -> None:
        """Never changes; counters only reset by going backwards."""
        return None

    @property
    def errors(self) -> int:
        """Receive plus transmit errors."""
        return self.rx_errors + self.tx_errors

    @property
    def drops(self) -> int:
        """Receive plus transmit drops."""
        return self.rx_drops + self.tx_drops

    def counters(self) -> dict[str, Count]:
        """Monotonic counters, by field name."""
        counters: dict[str, Count] = {
            "rx_bytes": self.rx_bytes,
            "rx_packets": self.rx_packets,
            "rx_errors": self.rx_errors,
            "rx_drops": self.rx_drops,
            "tx_bytes": self.tx_bytes,
            "tx_packets": self.tx_packets,
            "tx_errors": self.tx_errors,
            "tx_drops": self.tx_drops,
        }
        counters.update(self.extra)
        return counters

    def gauges(self) -> dict[str, Count]:
        """Point-in-time integer values, by field name."""
        return {}


TypedRecord = (
    CpuTicks | StatCounters | MemInfo | LoadAvg | Uptime | ProcessStat | ProcessStatus | NetDev
)


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Immutable point-in-time capture of one source."""

    source: SourceId
    timestamp: float  # Monotonic seconds
    records: tuple[TypedRecord, ...]

    __hash__ = None  # Records may hold mappings

    def by_key(self) -> dict[object, TypedRecord]:
        """Index records by their key, preserving source order."""
        return {record.key: record for record in self.records}

    def record(self, key: object = None) -> TypedRecord:
        """Get the record with ``key``; single-record sources use None."""
        for record in self.records:
            if record.key == key:
                return record
        raise KeyError(key)


@dataclass(slots=True, frozen=True)
class DeltaRecord:
    """Difference between two snapshots of the same source."""

    source: SourceId
    duration: float  # Seconds, > 0
    deltas: Mapping[str, int]
    reset_detected: frozenset[str] = frozenset()
    gauge_names: frozenset[str] = frozenset()  # Entries that are gauges, not counters

    __hash__ = None  # Holds mappings
