"""Error taxonomy for procstat."""


class ProcStatError(Exception):
    """Base class for every error raised by procstat."""


class NotFound(ProcStatError):
    """The path does not exist (source unsupported on this kernel/config)."""

    def __init__(self, path: str) -> None:
        super().__init__(f"{path}: not found")
        self.path = path


class PermissionDenied(ProcStatError):
    """The caller lacks access to the path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"{path}: permission denied")
        self.path = path


class IoFailure(ProcStatError):
    """A read failed for any other reason."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class EntityVanished(NotFound):
    """A per-entity target (process, interface) no longer exists."""

    def __init__(self, source: str, target: str, path: str = "") -> None:
        ProcStatError.__init__(self, f"{source}[{target}]: entity vanished")
        self.path = path
        self.source = source
        self.target = target


class MalformedSource(ProcStatError):
    """A required field is missing or unparseable."""

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"{source}: {detail}")
        self.source = source
        self.detail = detail


class SourceMismatch(ProcStatError):
    """Two snapshots of different sources were paired."""


class NonMonotonicSamples(ProcStatError):
    """The later snapshot is not strictly newer than the earlier one."""
