"""Mapping from each SourceId to its path, tokenizer rule and parser."""

from dataclasses import dataclass
from typing import Callable

from procstat import parsers
from procstat.models import SourceId, TypedRecord
from procstat.tokenizer import DelimiterRule


@dataclass(slots=True, frozen=True)
class SourceSpec:
    """How one source is read and parsed."""

    template: str  # Relative to the proc root; may contain '{target}'
    rule: DelimiterRule
    parse: Callable[[list[list[str]]], tuple[TypedRecord, ...]]
    takes_target: bool = False

    @property
    def substitutes_target(self) -> bool:
        """Whether the target goes into the path rather than filtering records."""
        return "{target}" in self.template

    def path(self, proc_root: str, target: str | None = None) -> str:
        relative = self.template.format(target=target) if target is not None else self.template
        return f"{proc_root.rstrip('/')}/{relative}"


SOURCES: dict[SourceId, SourceSpec] = {
    SourceId.CPU: SourceSpec("stat", DelimiterRule.WHITESPACE, parsers.parse_cpu),
    SourceId.STAT_COUNTERS: SourceSpec(
        "stat", DelimiterRule.WHITESPACE, parsers.parse_stat_counters
    ),
    SourceId.MEMINFO: SourceSpec("meminfo", DelimiterRule.COLON_KEY, parsers.parse_meminfo),
    SourceId.LOADAVG: SourceSpec("loadavg", DelimiterRule.WHITESPACE, parsers.parse_loadavg),
    SourceId.UPTIME: SourceSpec("uptime", DelimiterRule.WHITESPACE, parsers.parse_uptime),
    SourceId.PROCESS_STAT: SourceSpec(
        "{target}/stat",
        DelimiterRule.WHITESPACE,
        parsers.parse_process_stat,
        takes_target=True,
    ),
    SourceId.PROCESS_STATUS: SourceSpec(
        "{target}/status",
        DelimiterRule.COLON_KEY,
        parsers.parse_process_status,
        takes_target=True,
    ),
    SourceId.NET_DEV: SourceSpec(
        "net/dev",
        DelimiterRule.HEADER_TABLE,
        parsers.parse_net_dev,
        takes_target=True,
    ),
}
