"""Lifecycle commands for the supervised server process."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import signal
import subprocess
import time
from typing import Callable

from serverctl.config.schema import LauncherOptions
from serverctl.errors import (
    LockStateError,
    PidFileIOError,
    ProcessReplacementError,
    SignalDeliveryError,
    TerminationTimeout,
)
from serverctl.launch.layout import create_app_symlinks
from serverctl.launch.spec import LaunchSpec
from serverctl.observability.logging import get_logger, log_event
from serverctl.process.pidfile import PidFile


_LOGGER = get_logger("serverctl.controller")

NOT_RUNNING_EXIT_CODE = 3
ALREADY_RUNNING_EXIT_CODE = 1
POLL_INTERVAL = 0.1

LaunchBuilder = Callable[[bool], LaunchSpec]


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of a lifecycle command that did not fail."""

    message: str
    exit_code: int = 0
    pid: int | None = None


def _makedirs(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise PidFileIOError(f"creating directory '{path}' failed: {exc}") from exc


def _enter_data_dir(data_dir: Path) -> None:
    _makedirs(data_dir)
    try:
        os.chdir(data_dir)
    except OSError as exc:
        raise PidFileIOError(f"changing directory to '{data_dir}' failed: {exc}") from exc


def _redirect_stdin_to_devnull() -> None:
    fd = os.open(os.devnull, os.O_RDONLY)
    try:
        os.dup2(fd, 0)
    finally:
        os.close(fd)


class LifecycleController:
    """Run, start, stop, kill and report on a single server process."""

    def __init__(
        self,
        pid_file: PidFile,
        options: LauncherOptions,
        build_launch: LaunchBuilder,
        prepare: Callable[[LauncherOptions], None] = create_app_symlinks,
    ) -> None:
        self.pid_file = pid_file
        self.options = options
        self.build_launch = build_launch
        self.prepare = prepare

    def _already_running(self, exit_code: int) -> CommandResult | None:
        if not self.pid_file.is_alive():
            if not self.pid_file.locked:
                raise LockStateError(
                    f"pid file '{self.pid_file.path}' is locked by a process other than the recorded pid"
                )
            return None
        pid = self.pid_file.read_pid()
        return CommandResult(f"Already running as {pid}", exit_code=exit_code, pid=pid)

    def status(self) -> CommandResult:
        if not self.pid_file.is_alive():
            return CommandResult("Not running", exit_code=NOT_RUNNING_EXIT_CODE)
        pid = self.pid_file.read_pid()
        return CommandResult(f"Running as {pid}", pid=pid)

    def run(self) -> CommandResult:
        """Replace this process with the server; returns only if it is already running."""

        running = self._already_running(ALREADY_RUNNING_EXIT_CODE)
        if running is not None:
            return running

        self.prepare(self.options)
        spec = self.build_launch(False)

        _enter_data_dir(self.options.data_dir)
        self.pid_file.write_pid(os.getpid())
        _redirect_stdin_to_devnull()

        log_event(_LOGGER, "server_exec", executable=spec.executable, server_pid=os.getpid())
        try:
            os.execve(spec.executable, spec.args, spec.env)
        except OSError as exc:
            raise ProcessReplacementError(f"failed to run process {spec.executable}: {exc}") from exc

    def start(self) -> CommandResult:
        """Spawn the server detached in a new session and record its pid."""

        running = self._already_running(0)
        if running is not None:
            return running

        self.prepare(self.options)
        spec = self.build_launch(True)

        _makedirs(self.options.launcher_log.parent)
        try:
            log = self.options.launcher_log.open("ab")
        except OSError as exc:
            raise PidFileIOError(f"opening log '{self.options.launcher_log}' failed: {exc}") from exc

        _enter_data_dir(self.options.data_dir)
        try:
            # The child inherits our locked pid file description and keeps the
            # lock after this invocation exits.
            process = subprocess.Popen(
                spec.args,
                executable=spec.executable,
                env=spec.env,
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=log,
                start_new_session=True,
                pass_fds=(self.pid_file.fileno(),),
            )
        except OSError as exc:
            raise ProcessReplacementError(f"failed to run process {spec.executable}: {exc}") from exc
        finally:
            log.close()

        self.pid_file.write_pid(process.pid)
        log_event(_LOGGER, "server_spawned", executable=spec.executable, server_pid=process.pid)
        return CommandResult(f"Started as {process.pid}", pid=process.pid)

    def terminate(self, signum: int, message: str) -> CommandResult:
        """Signal the server until it exits, then clear the pid file."""

        if not self.pid_file.is_alive():
            return CommandResult("Not running")

        pid = self.pid_file.read_pid()
        timeout = self.options.stop_timeout
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            try:
                os.kill(pid, signum)
                log_event(_LOGGER, "signal_sent", level=logging.DEBUG, server_pid=pid, signal=signum)
            except ProcessLookupError:
                pass
            except OSError as exc:
                raise SignalDeliveryError(pid, signum, exc) from exc

            if not self.pid_file.is_alive():
                if self.pid_file.locked:
                    self.pid_file.clear()
                break

            if deadline is not None and time.monotonic() >= deadline:
                raise TerminationTimeout(pid, timeout)
            time.sleep(POLL_INTERVAL)

        log_event(_LOGGER, "terminated", server_pid=pid, signal=signum)
        return CommandResult(f"{message} {pid}", pid=pid)

    def stop(self) -> CommandResult:
        return self.terminate(signal.SIGTERM, "Stopped")

    def kill(self) -> CommandResult:
        return self.terminate(signal.SIGKILL, "Killed")

    def restart(self) -> list[CommandResult]:
        return [self.stop(), self.start()]
