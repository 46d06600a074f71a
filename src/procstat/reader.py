"""Scoped, bounded reads of pseudo-filesystem files."""

import errno
import logging
import os
from typing import Mapping, Protocol

from procstat.errors import IoFailure, NotFound, PermissionDenied

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 4 * 1024 * 1024
MIN_MAX_BYTES = 4096


class Reader(Protocol):
    """The only filesystem-facing contract the engine needs."""

    def read(self, path: str) -> str: ...

    def list_dir(self, path: str) -> list[str]: ...


def _translate(path: str, exc: OSError) -> Exception:
    """Map an OSError onto the procstat error taxonomy."""
    if isinstance(exc, (FileNotFoundError, ProcessLookupError)):
        return NotFound(path)
    if isinstance(exc, PermissionError):
        return PermissionDenied(path)
    if exc.errno == errno.ESRCH:
        return NotFound(path)
    return IoFailure(path, exc.strerror or str(exc))


class ProcReader:
    """
    Reader backed by the real filesystem.

    Each read opens the file, reads at most ``max_bytes`` and closes it again.
    Files larger than the cap are reported as IoFailure rather than truncated,
    since a truncated kernel table would parse into a wrong record.
    """

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        """
        Initialize the ProcReader.

        Args:
            max_bytes: Upper bound on bytes read per file.
        """
        self._max_bytes = max(MIN_MAX_BYTES, max_bytes)

    @property
    def max_bytes(self) -> int:
        """Get the per-read byte cap."""
        return self._max_bytes

    @max_bytes.setter
    def max_bytes(self, value: int) -> None:
        """Set the per-read byte cap."""
        self._max_bytes = max(MIN_MAX_BYTES, value)

    def read(self, path: str) -> str:
        """Read the complete content of ``path`` as text."""
        try:
            with open(path, "rb") as fh:
                data = fh.read(self._max_bytes + 1)
        except OSError as exc:
            raise _translate(path, exc) from exc

        if len(data) > self._max_bytes:
            raise IoFailure(path, f"content exceeds {self._max_bytes} bytes")

        logger.debug("read %s (%d bytes)", path, len(data))
        return data.decode("utf-8", errors="replace")

    def list_dir(self, path: str) -> list[str]:
        """List the entry names of a directory."""
        try:
            return os.listdir(path)
        except OSError as exc:
            raise _translate(path, exc) from exc


class MemoryReader:
    """
    Reader serving fixed in-memory text, for tests and replay.

    Values are either the file content or an exception instance, which is
    raised on read to simulate a failure.
    """

    def __init__(self, files: Mapping[str, str | Exception] | None = None) -> None:
        """
        Initialize the MemoryReader.

        Args:
            files: Absolute path to content, or to the exception to raise.
        """
        self.files: dict[str, str | Exception] = dict(files or {})

    def read(self, path: str) -> str:
        """Return the stored content of ``path``."""
        try:
            content = self.files[path]
        except KeyError:
            raise NotFound(path) from None
        if isinstance(content, Exception):
            raise content
        return content

    def list_dir(self, path: str) -> list[str]:
        """List the names directly below ``path``."""
        prefix = path.rstrip("/") + "/"
        names: set[str] = set()
        for name in self.files:
            if name.startswith(prefix):
                names.add(name[len(prefix):].split("/", 1)[0])
        if not names:
            raise NotFound(path)
        return sorted(names)
