"""
Typed parsers, one per stat source.

Every parser takes the tokenized lines of a single read and returns the
records of that read in source order. A missing or unparseable required
field raises MalformedSource; a missing or unparseable known-optional field
becomes UNKNOWN.
"""

import re
from types import MappingProxyType

from procstat.errors import MalformedSource
from procstat.models import (
    UNKNOWN,
    Count,
    CpuTicks,
    LoadAvg,
    MemInfo,
    NetDev,
    ProcessStat,
    ProcessStatus,
    SourceId,
    StatCounters,
    Uptime,
)

Lines = list[list[str]]

_CPU_LABEL = re.compile(r"cpu\d*")
_FIXED_POINT = re.compile(r"\d+(\.\d+)?")
_SIGNED = re.compile(r"-?\d+")
_U64_MAX = 2**64 - 1


def _is_unsigned(token: str) -> bool:
    return token.isascii() and token.isdigit() and int(token) <= _U64_MAX


def _unsigned(source: SourceId, name: str, tokens: list[str], index: int) -> int:
    """Parse a required unsigned field."""
    if index >= len(tokens):
        raise MalformedSource(source.value, f"missing field {name!r}")
    token = tokens[index]
    if not _is_unsigned(token):
        raise MalformedSource(
            source.value, f"field {name!r}: {token!r} is not an unsigned 64-bit integer"
        )
    return int(token)


def _optional(tokens: list[str], index: int) -> Count:
    """Parse a known-optional unsigned field."""
    if index < len(tokens) and _is_unsigned(tokens[index]):
        return int(tokens[index])
    return UNKNOWN


def _fixed_point(source: SourceId, name: str, token: str) -> float:
    if not _FIXED_POINT.fullmatch(token):
        raise MalformedSource(source.value, f"field {name!r}: {token!r} is not a decimal")
    return float(token)


# /proc/stat


_CPU_REQUIRED = CpuTicks.TICK_FIELDS[:7]
_CPU_OPTIONAL = CpuTicks.TICK_FIELDS[7:]


def parse_cpu(lines: Lines) -> tuple[CpuTicks, ...]:
    """Parse the ``cpu`` rows of /proc/stat; the aggregate row comes first."""
    aggregate: CpuTicks | None = None
    cores: list[CpuTicks] = []

    for tokens in lines:
        label = tokens[0]
        if not _CPU_LABEL.fullmatch(label):
            continue

        fields: dict[str, Count] = {}
        for index, name in enumerate(_CPU_REQUIRED, start=1):
            fields[name] = _unsigned(SourceId.CPU, f"{label}.{name}", tokens, index)
        for index, name in enumerate(_CPU_OPTIONAL, start=len(_CPU_REQUIRED) + 1):
            fields[name] = _optional(tokens, index)
        ticks = CpuTicks(label=label, **fields)

        if label == "cpu":
            if aggregate is not None:
                raise MalformedSource(SourceId.CPU.value, "duplicate aggregate cpu row")
            aggregate = ticks
        else:
            cores.append(ticks)

    if aggregate is None:
        raise MalformedSource(SourceId.CPU.value, "no aggregate cpu row")
    return (aggregate, *cores)


def parse_stat_counters(lines: Lines) -> tuple[StatCounters, ...]:
    """Parse the kernel activity rows of /proc/stat."""
    rows = {tokens[0]: tokens for tokens in lines}

    def required(name: str) -> int:
        return _unsigned(SourceId.STAT_COUNTERS, name, rows.get(name, []), 1)

    def optional(name: str) -> Count:
        return _optional(rows.get(name, []), 1)

    return (
        StatCounters(
            ctxt=required("ctxt"),
            btime=required("btime"),
            processes=required("processes"),
            procs_running=optional("procs_running"),
            procs_blocked=optional("procs_blocked"),
            intr_total=optional("intr"),
            softirq_total=optional("softirq"),
        ),
    )


# Colon-key sources


def parse_meminfo(lines: Lines) -> tuple[MemInfo, ...]:
    """Parse /proc/meminfo. Only MemTotal is required."""
    values: dict[str, Count] = {}
    units: dict[str, str] = {}

    for tokens in lines:
        name = tokens[0]
        if name in values:
            continue
        values[name] = _optional(tokens, 1)
        units[name] = tokens[2] if len(tokens) > 2 else ""

    if values.get("MemTotal", UNKNOWN) is UNKNOWN:
        raise MalformedSource(SourceId.MEMINFO.value, "missing field 'MemTotal'")

    return (MemInfo(values=MappingProxyType(values), units=MappingProxyType(units)),)


# Names, states, octal umasks and hex masks stay text even when all digits.
_STATUS_TEXT = frozenset(
    {
        "Name",
        "State",
        "Umask",
        "SigPnd",
        "ShdPnd",
        "SigBlk",
        "SigIgn",
        "SigCgt",
        "CapInh",
        "CapPrm",
        "CapEff",
        "CapBnd",
        "CapAmb",
        "Cpus_allowed",
        "Mems_allowed",
    }
)


def parse_process_status(lines: Lines) -> tuple[ProcessStatus, ...]:
    """Parse /proc/<pid>/status."""
    source = SourceId.PROCESS_STATUS
    values: dict[str, int] = {}
    text: dict[str, str] = {}

    for tokens in lines:
        name, rest = tokens[0], tokens[1:]
        if name in values or name in text:
            continue
        if rest and name not in _STATUS_TEXT and _is_unsigned(rest[0]):
            values[name] = int(rest[0])
        else:
            text[name] = " ".join(rest)

    if "Pid" not in values:
        raise MalformedSource(source.value, "missing field 'Pid'")
    if "Name" not in text:
        raise MalformedSource(source.value, "missing field 'Name'")
    state = text.get("State", "")
    if not state:
        raise MalformedSource(source.value, "missing field 'State'")

    return (
        ProcessStatus(
            pid=values["Pid"],
            name=text["Name"],
            state=state.split()[0],
            values=MappingProxyType(values),
            text=MappingProxyType(text),
        ),
    )


# Whitespace single-line sources


def parse_loadavg(lines: Lines) -> tuple[LoadAvg, ...]:
    """Parse /proc/loadavg: ``one five fifteen runnable/total last_pid``."""
    source = SourceId.LOADAVG
    if len(lines) != 1 or len(lines[0]) != 5:
        raise MalformedSource(source.value, "expected exactly five fields")
    one, five, fifteen, entities, last_pid = lines[0]

    runnable, sep, total = entities.partition("/")
    if not sep:
        raise MalformedSource(source.value, f"{entities!r} is not a runnable/total pair")

    return (
        LoadAvg(
            one=_fixed_point(source, "one", one),
            five=_fixed_point(source, "five", five),
            fifteen=_fixed_point(source, "fifteen", fifteen),
            runnable=_unsigned(source, "runnable", [runnable], 0),
            total_entities=_unsigned(source, "total_entities", [total], 0),
            last_pid=_unsigned(source, "last_pid", [last_pid], 0),
        ),
    )


def parse_uptime(lines: Lines) -> tuple[Uptime, ...]:
    """Parse /proc/uptime: ``seconds idle_seconds``."""
    source = SourceId.UPTIME
    if not lines or len(lines[0]) < 2:
        raise MalformedSource(source.value, "expected two fields")
    seconds, idle_seconds = lines[0][:2]
    return (
        Uptime(
            seconds=_fixed_point(source, "seconds", seconds),
            idle_seconds=_fixed_point(source, "idle_seconds", idle_seconds),
        ),
    )


# Field numbers from proc(5), 1-based, counted from the state field (3).
_STAT_FIELDS = {
    "ppid": 4,
    "pgrp": 5,
    "session": 6,
    "flags": 9,
    "minflt": 10,
    "cminflt": 11,
    "majflt": 12,
    "cmajflt": 13,
    "utime": 14,
    "stime": 15,
    "cutime": 16,
    "cstime": 17,
    "num_threads": 20,
    "starttime": 22,
    "vsize": 23,
    "rss": 24,
}
_STAT_NICE = 19
_STAT_PROCESSOR = 39


def parse_process_stat(lines: Lines) -> tuple[ProcessStat, ...]:
    """
    Parse /proc/<pid>/stat.

    The comm field is wrapped in parentheses and may itself contain spaces,
    parentheses and newlines, so the record is read across all lines and
    comm ends at the last token ending in ')'.
    """
    source = SourceId.PROCESS_STAT
    tokens = [token for line in lines for token in line]
    if not tokens:
        raise MalformedSource(source.value, "empty stat")

    pid = _unsigned(source, "pid", tokens, 0)
    end = max(
        (index for index, token in enumerate(tokens) if token.endswith(")")),
        default=-1,
    )
    if end < 1 or not tokens[1].startswith("("):
        raise MalformedSource(source.value, "unterminated comm field")
    comm = " ".join(tokens[1 : end + 1])[1:-1]

    # rest[0] is field 3 (state)
    rest = tokens[end + 1 :]
    if not rest:
        raise MalformedSource(source.value, "missing field 'state'")

    fields = {
        name: _unsigned(source, name, rest, number - 3)
        for name, number in _STAT_FIELDS.items()
    }
    nice = rest[_STAT_NICE - 3] if len(rest) > _STAT_NICE - 3 else ""
    if not _SIGNED.fullmatch(nice):
        raise MalformedSource(source.value, f"field 'nice': {nice!r} is not an integer")

    return (
        ProcessStat(
            pid=pid,
            comm=comm,
            state=rest[0],
            nice=int(nice),
            processor=_optional(rest, _STAT_PROCESSOR - 3),
            **fields,
        ),
    )


# Header+table sources


_NETDEV_ALIASES = {"errs": "errors", "drop": "drops"}
_NETDEV_REQUIRED = (
    "rx_bytes",
    "rx_packets",
    "rx_errors",
    "rx_drops",
    "tx_bytes",
    "tx_packets",
    "tx_errors",
    "tx_drops",
)


def _netdev_columns(header: list[str]) -> list[str]:
    """Map the column header to rx_/tx_ names; receive columns come first."""
    columns = header[1:]
    try:
        split = columns.index("bytes", 1)
    except ValueError:
        raise MalformedSource(
            SourceId.NET_DEV.value, "header has no transmit column group"
        ) from None

    names = []
    for index, column in enumerate(columns):
        prefix = "rx" if index < split else "tx"
        names.append(f"{prefix}_{_NETDEV_ALIASES.get(column, column)}")

    missing = [name for name in _NETDEV_REQUIRED if name not in names]
    if missing:
        raise MalformedSource(
            SourceId.NET_DEV.value, f"header lacks columns {', '.join(missing)}"
        )
    return names


def parse_net_dev(lines: Lines) -> tuple[NetDev, ...]:
    """Parse /proc/net/dev, one record per interface in source order."""
    source = SourceId.NET_DEV
    header_index = next(
        (index for index, tokens in enumerate(lines) if "bytes" in tokens), None
    )
    if header_index is None:
        raise MalformedSource(source.value, "no column header")
    names = _netdev_columns(lines[header_index])

    records: list[NetDev] = []
    for tokens in lines[header_index + 1 :]:
        interface, values = tokens[0], tokens[1:]
        if len(values) != len(names):
            raise MalformedSource(
                source.value,
                f"{interface}: expected {len(names)} columns, got {len(values)}",
            )
        row = {
            name: _unsigned(source, f"{interface}.{name}", values, index)
            for index, name in enumerate(names)
        }
        core = {name: row.pop(name) for name in _NETDEV_REQUIRED}
        records.append(NetDev(interface=interface, extra=MappingProxyType(row), **core))

    return tuple(records)
