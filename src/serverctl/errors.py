"""Error types raised by serverctl commands."""

from __future__ import annotations

from pathlib import Path


class ServerctlError(Exception):
    """Base class for fatal command errors."""

    exit_code = 1


class ConfigError(ServerctlError):
    """Invalid flags, missing config files or malformed properties."""

    exit_code = 2


class LaunchError(ServerctlError):
    """The server launch command could not be assembled."""


class PidFileIOError(ServerctlError, IOError):
    """Creating, locking, reading or writing the pid file failed."""


class LockStateError(ServerctlError):
    """A pid file operation was called in the wrong lock state."""


class NotLocked(LockStateError):
    """A mutation was attempted without holding the pid file lock."""


class CorruptPidFile(ServerctlError):
    """The pid file does not contain a positive integer."""

    def __init__(self, path: Path, content: str, reason: str) -> None:
        self.path = path
        self.content = content
        super().__init__(f"pid file '{path}' {reason}: {content!r}")


class SignalDeliveryError(ServerctlError):
    """Sending a signal failed for a reason other than a missing process."""

    def __init__(self, pid: int, signum: int, cause: OSError) -> None:
        self.pid = pid
        self.signum = signum
        super().__init__(f"signaling pid {pid} with {signum} failed: {cause}")


class ProcessProbeError(SignalDeliveryError):
    """The signal 0 liveness probe failed unexpectedly."""


class ProcessReplacementError(ServerctlError):
    """The server executable could not be executed."""


class TerminationTimeout(ServerctlError):
    """The server did not exit before the stop timeout."""

    def __init__(self, pid: int, timeout: float) -> None:
        self.pid = pid
        self.timeout = timeout
        super().__init__(f"pid {pid} still running after {timeout:g}s")
