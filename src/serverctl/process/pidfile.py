"""PID file used as both the server lock and its liveness oracle.

The exclusive ``flock`` on the open descriptor is the source of truth for
"the server is running": whoever holds it is the server (or the invocation
about to become it). The file content only records which pid to signal.
The descriptor is inheritable so an ``execve`` replacement, or a child
spawned with it in ``pass_fds``, keeps holding the lock.
"""

from __future__ import annotations

import errno
import fcntl
import logging
import os
import re
from pathlib import Path

from serverctl.errors import CorruptPidFile, LockStateError, NotLocked, PidFileIOError, ProcessProbeError
from serverctl.observability.logging import get_logger, log_event


_LOGGER = get_logger("serverctl.pidfile")

DIR_MODE = 0o700
FILE_MODE = 0o600
_PID_PATTERN = re.compile(r"-?[0-9]+")


def _try_lock(fd: int) -> bool:
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        return False
    except OSError as exc:
        raise PidFileIOError(f"locking pid file failed: {exc}") from exc
    return True


class PidFile:
    """Handle on the pid file owned by one serverctl invocation."""

    def __init__(self, path: Path, fd: int) -> None:
        self.path = path
        self._fd: int | None = fd
        self.locked = False

    @classmethod
    def open(cls, path: Path | str) -> PidFile:
        """Open (creating if needed) the pid file and try to lock it."""

        path = Path(path).absolute()
        try:
            path.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        except OSError as exc:
            raise PidFileIOError(f"creating directory '{path.parent}' failed: {exc}") from exc
        try:
            fd = os.open(path, os.O_RDWR | os.O_CREAT, FILE_MODE)
        except OSError as exc:
            raise PidFileIOError(f"opening pid file '{path}' failed: {exc}") from exc
        os.set_inheritable(fd, True)

        handle = cls(path, fd)
        handle.refresh()
        log_event(_LOGGER, "pidfile_opened", level=logging.DEBUG, path=str(path), locked=handle.locked)
        return handle

    def fileno(self) -> int:
        if self._fd is None:
            raise PidFileIOError(f"pid file '{self.path}' is closed")
        return self._fd

    def refresh(self) -> bool:
        """Re-try the lock and return the updated ``locked`` flag."""

        self.locked = _try_lock(self.fileno())
        return self.locked

    def is_alive(self) -> bool:
        """Return True if another process holds the lock and its pid answers signal 0."""

        if self.refresh():
            return False
        pid = self.read_pid()
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            # The lock is held, but not by the recorded pid.
            log_event(
                _LOGGER,
                "stale_lock_holder",
                level=logging.WARNING,
                path=str(self.path),
                recorded_pid=pid,
            )
            return False
        except OSError as exc:
            raise ProcessProbeError(pid, 0, exc) from exc
        return True

    def read_pid(self) -> int:
        """Return the pid recorded by the process holding the lock."""

        if self.locked:
            raise LockStateError(f"pid file '{self.path}' is locked by us")
        try:
            content = os.pread(self.fileno(), 4096, 0).decode("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PidFileIOError(f"reading pid file '{self.path}' failed: {exc}") from exc

        text = content.split("\n", 1)[0]
        if not text:
            raise CorruptPidFile(self.path, text, "is empty")
        if not _PID_PATTERN.fullmatch(text):
            raise CorruptPidFile(self.path, text, "contains garbage")
        pid = int(text)
        if pid <= 0:
            raise CorruptPidFile(self.path, text, "contains an invalid pid")
        return pid

    def write_pid(self, pid: int) -> None:
        """Replace the content with ``pid`` and sync it to disk."""

        self.clear()
        data = f"{pid}\n".encode("utf-8")
        try:
            os.lseek(self.fileno(), 0, os.SEEK_SET)
            written = os.write(self.fileno(), data)
            if written != len(data):
                raise OSError(errno.EIO, f"short write ({written} of {len(data)} bytes)")
            os.fsync(self.fileno())
        except OSError as exc:
            raise PidFileIOError(f"writing pid file '{self.path}' failed: {exc}") from exc
        log_event(_LOGGER, "pid_written", level=logging.DEBUG, path=str(self.path), server_pid=pid)

    def clear(self) -> None:
        """Truncate the content, keeping the file and the lock."""

        if not self.locked:
            raise NotLocked(f"pid file '{self.path}' not locked by us")
        try:
            os.ftruncate(self.fileno(), 0)
        except OSError as exc:
            raise PidFileIOError(f"truncating pid file '{self.path}' failed: {exc}") from exc
        log_event(_LOGGER, "pid_cleared", level=logging.DEBUG, path=str(self.path))

    def close(self) -> None:
        """Close the descriptor; the lock goes once no process shares it."""

        if self._fd is None:
            return
        os.close(self._fd)
        self._fd = None
        self.locked = False

    def __enter__(self) -> PidFile:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
