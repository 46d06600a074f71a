"""Counter deltas and derived rates between two snapshots."""

import logging
import os
from types import MappingProxyType

from procstat.errors import NonMonotonicSamples, SourceMismatch
from procstat.models import UNKNOWN, CpuTicks, DeltaRecord, Snapshot, SourceId, Unknown

logger = logging.getLogger(__name__)

# Guest time is already included in user and nice.
_CPU_TOTAL_FIELDS = tuple(
    name for name in CpuTicks.TICK_FIELDS if name not in ("guest", "guest_nice")
)
_CPU_IDLE_FIELDS = ("idle", "iowait")


def _name(key: object, field: str) -> str:
    return field if key is None else f"{key}.{field}"


def delta(earlier: Snapshot, later: Snapshot) -> DeltaRecord:
    """
    Compute per-counter deltas from ``earlier`` to ``later``.

    A counter that went backwards, or whose record changed generation (a
    restarted process, a reboot), is treated as restarted from zero: its
    delta is the later value and its name goes into ``reset_detected``.
    Counters UNKNOWN on either side, and records present on one side only,
    are left out of the result.

    Raises:
        SourceMismatch: The snapshots are of different sources.
        NonMonotonicSamples: ``later`` is not strictly newer than ``earlier``.
    """
    if earlier.source is not later.source:
        raise SourceMismatch(
            f"cannot pair {earlier.source.value} with {later.source.value}"
        )
    if not later.timestamp > earlier.timestamp:
        raise NonMonotonicSamples(
            f"{later.timestamp} is not after {earlier.timestamp}"
        )

    before = earlier.by_key()
    deltas: dict[str, int] = {}
    resets: set[str] = set()
    gauges: set[str] = set()

    for key, record in later.by_key().items():
        previous = before.get(key)
        if previous is None:
            continue
        restarted = previous.generation != record.generation

        old_counters = previous.counters()
        for field, value in record.counters().items():
            old = old_counters.get(field, UNKNOWN)
            if value is UNKNOWN or old is UNKNOWN:
                continue
            name = _name(key, field)
            change = value - old
            if restarted or change < 0:
                resets.add(name)
                change = value
            deltas[name] = change

        old_gauges = previous.gauges()
        for field, value in record.gauges().items():
            old = old_gauges.get(field, UNKNOWN)
            if value is UNKNOWN or old is UNKNOWN:
                continue
            name = _name(key, field)
            deltas[name] = value - old
            gauges.add(name)

    if resets:
        logger.debug("%s: counter reset on %s", later.source.value, sorted(resets))

    return DeltaRecord(
        source=later.source,
        duration=later.timestamp - earlier.timestamp,
        deltas=MappingProxyType(deltas),
        reset_detected=frozenset(resets),
        gauge_names=frozenset(gauges),
    )


def rates(record: DeltaRecord) -> dict[str, float]:
    """Per-second rate of every counter in ``record``."""
    return {
        name: change / record.duration
        for name, change in record.deltas.items()
        if name not in record.gauge_names
    }


def cpu_utilization(record: DeltaRecord, label: str = "cpu") -> float | Unknown:
    """
    Busy fraction of one cpu row over the interval, from 0.0 to 1.0.

    UNKNOWN when no ticks elapsed or the row is absent.
    """
    if record.source is not SourceId.CPU:
        raise SourceMismatch(f"{record.source.value} has no cpu ticks")

    ticks = {
        field: record.deltas[name]
        for field in _CPU_TOTAL_FIELDS
        if (name := f"{label}.{field}") in record.deltas
    }
    total = sum(ticks.values())
    if total == 0 or "idle" not in ticks:
        return UNKNOWN
    idle = sum(ticks.get(field, 0) for field in _CPU_IDLE_FIELDS)
    return (total - idle) / total


def core_utilization(record: DeltaRecord) -> dict[str, float | Unknown]:
    """Busy fraction per core, in source order, excluding the aggregate row."""
    labels = dict.fromkeys(name.split(".", 1)[0] for name in record.deltas)
    return {
        label: cpu_utilization(record, label) for label in labels if label != "cpu"
    }


def process_cpu_fraction(
    record: DeltaRecord, clock_ticks: int | None = None
) -> float | Unknown:
    """
    CPU time a process used per second of wall time (1.0 = one full core).

    Args:
        record: Delta of two PROCESS_STAT snapshots.
        clock_ticks: Ticks per second. Default sysconf(SC_CLK_TCK).
    """
    if record.source is not SourceId.PROCESS_STAT:
        raise SourceMismatch(f"{record.source.value} has no process times")

    used = [
        change
        for name, change in record.deltas.items()
        if name.endswith((".utime", ".stime"))
    ]
    if not used:
        return UNKNOWN
    if clock_ticks is None:
        clock_ticks = os.sysconf("SC_CLK_TCK")
    return sum(used) / clock_ticks / record.duration
