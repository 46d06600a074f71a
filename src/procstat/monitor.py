"""Snapshot facade for procstat."""

import logging
import time
from typing import Callable

from procstat.errors import EntityVanished, NotFound, PermissionDenied
from procstat.models import Snapshot, SourceId
from procstat.reader import ProcReader, Reader
from procstat.sources import SOURCES
from procstat.tokenizer import tokenize

logger = logging.getLogger(__name__)

_PROCESS_SOURCES = (SourceId.PROCESS_STAT, SourceId.PROCESS_STATUS)


class StatMonitor:
    """
    Facade that snapshots stat sources by name.

    Every call re-reads and re-parses its source; nothing is cached and no
    state is shared between calls, so one monitor may serve many threads.
    """

    def __init__(
        self,
        reader: Reader | None = None,
        proc_root: str = "/proc",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the StatMonitor.

        Args:
            reader: Reader to fetch raw text with. Default ProcReader().
            proc_root: Mount point of procfs. Default /proc.
            clock: Source of snapshot timestamps, in seconds.
        """
        self._reader = reader if reader is not None else ProcReader()
        self._proc_root = proc_root.rstrip("/") or "/"
        self._clock = clock

    @property
    def proc_root(self) -> str:
        """Get the procfs mount point."""
        return self._proc_root

    def snapshot(self, source: SourceId, target: int | str | None = None) -> Snapshot:
        """
        Read and parse one source.

        Args:
            source: Which source to read.
            target: Process id or interface name for per-entity sources.

        Raises:
            NotFound, PermissionDenied, IoFailure: The read failed.
            ValueError: The target is missing, unexpected, or not a process id.
            EntityVanished: The target process or interface does not exist.
            MalformedSource: The content violates the expected format.
        """
        spec = SOURCES[source]
        if target is not None and not spec.takes_target:
            raise ValueError(f"{source.value} does not take a target")
        if target is None and spec.substitutes_target:
            raise ValueError(f"{source.value} requires a target")

        key = None if target is None else str(target)
        if spec.substitutes_target and not (key == "self" or (key.isascii() and key.isdigit())):
            raise ValueError(f"{source.value} target must be a process id, got {key!r}")
        path = spec.path(self._proc_root, key if spec.substitutes_target else None)
        try:
            text = self._reader.read(path)
        except NotFound as exc:
            if spec.substitutes_target:
                raise EntityVanished(source.value, key, path) from exc
            raise

        timestamp = self._clock()
        records = spec.parse(tokenize(text, spec.rule))

        if key is not None and not spec.substitutes_target:
            records = tuple(record for record in records if str(record.key) == key)
            if not records:
                raise EntityVanished(source.value, key, path)

        logger.debug("snapshot %s: %d records", source.value, len(records))
        return Snapshot(source=source, timestamp=timestamp, records=records)

    def pids(self) -> list[int]:
        """List the ids of all processes currently visible under the proc root."""
        return sorted(
            int(name) for name in self._reader.list_dir(self._proc_root) if name.isdigit()
        )

    def process_snapshots(
        self, source: SourceId = SourceId.PROCESS_STAT
    ) -> dict[int, Snapshot]:
        """
        Snapshot a per-process source for every running process.

        Processes that exit mid-scan or deny access are skipped.
        """
        if source not in _PROCESS_SOURCES:
            raise ValueError(f"{source.value} is not a per-process source")

        snapshots: dict[int, Snapshot] = {}
        for pid in self.pids():
            try:
                snapshots[pid] = self.snapshot(source, pid)
            except (EntityVanished, PermissionDenied) as exc:
                logger.debug("skipping pid %d: %s", pid, exc)
                continue
        return snapshots
