"""Tyro CLI application entrypoint."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import sys
from typing import Annotated

import tyro

from serverctl.config.loader import resolve_options
from serverctl.config.schema import LauncherFlags, format_options
from serverctl.errors import ServerctlError
from serverctl.launch.spec import build_java_launch
from serverctl.observability.logging import configure_logging, get_logger, log_event
from serverctl.process.controller import CommandResult, LifecycleController
from serverctl.process.pidfile import PidFile


_LOGGER = get_logger("serverctl.cli")


@dataclass(slots=True)
class RunCommand(LauncherFlags):
    """Run the server in the foreground, replacing this process."""


@dataclass(slots=True)
class StartCommand(LauncherFlags):
    """Start the server as a daemon."""


@dataclass(slots=True)
class StopCommand(LauncherFlags):
    """Stop the server gracefully (SIGTERM)."""


@dataclass(slots=True)
class RestartCommand(LauncherFlags):
    """Stop the server, then start it as a daemon."""


@dataclass(slots=True)
class KillCommand(LauncherFlags):
    """Hard stop the server (SIGKILL)."""


@dataclass(slots=True)
class StatusCommand(LauncherFlags):
    """Check whether the server is running (exit 3 if not)."""


TopLevelCommand = Annotated[
    RunCommand,
    tyro.conf.subcommand(name="run"),
] | Annotated[
    StartCommand,
    tyro.conf.subcommand(name="start"),
] | Annotated[
    StopCommand,
    tyro.conf.subcommand(name="stop"),
] | Annotated[
    RestartCommand,
    tyro.conf.subcommand(name="restart"),
] | Annotated[
    KillCommand,
    tyro.conf.subcommand(name="kill"),
] | Annotated[
    StatusCommand,
    tyro.conf.subcommand(name="status"),
]


def transform_args(argv: list[str]) -> list[str]:
    """Rewrite launcher shorthands (``-Dk=v``, ``-Jopt``, ``-v``) into long flags."""

    out: list[str] = []
    pending: str | None = None
    for arg in argv:
        if pending is not None:
            out.append(f"{pending}={arg}")
            pending = None
        elif arg == "-v":
            out.append("--verbose")
        elif arg in ("-D", "-J"):
            pending = "--system-property" if arg == "-D" else "--jvm-option"
        elif arg.startswith("-D"):
            out.append(f"--system-property={arg[2:]}")
        elif arg.startswith("-J"):
            out.append(f"--jvm-option={arg[2:]}")
        else:
            out.append(arg)
    if pending is not None:
        out.append(pending)
    return out


def _run_command(command: LauncherFlags, controller: LifecycleController) -> list[CommandResult]:
    if isinstance(command, RunCommand):
        return [controller.run()]
    if isinstance(command, StartCommand):
        return [controller.start()]
    if isinstance(command, StopCommand):
        return [controller.stop()]
    if isinstance(command, RestartCommand):
        return controller.restart()
    if isinstance(command, KillCommand):
        return [controller.kill()]
    if isinstance(command, StatusCommand):
        return [controller.status()]
    raise TypeError(f"Unsupported command type: {type(command).__name__}")


def dispatch(command: LauncherFlags) -> int:
    """Execute a parsed command and return the process exit code."""

    configure_logging("DEBUG" if command.verbose else None)
    try:
        options = resolve_options(command)
        if options.verbose:
            print(format_options(options))
        with PidFile.open(options.pid_file) as pid_file:
            controller = LifecycleController(
                pid_file,
                options,
                lambda daemon: build_java_launch(options, daemon),
            )
            results = _run_command(command, controller)
    except ServerctlError as exc:
        log_event(
            _LOGGER,
            "command_failed",
            level=logging.DEBUG,
            command=type(command).__name__,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code

    for result in results:
        print(result.message)
    return results[-1].exit_code


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and run requested command."""

    args = transform_args(sys.argv[1:] if argv is None else argv)
    command = tyro.cli(TopLevelCommand, args=args)
    return dispatch(command)
