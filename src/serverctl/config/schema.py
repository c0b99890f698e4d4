"""Dataclass-based launcher flags and resolved options."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated

import tyro


@dataclass(slots=True)
class LauncherFlags:
    """Flags shared by all lifecycle commands, before defaulting."""

    verbose: bool = False
    """Run verbosely."""
    install_path: Path | None = None
    """Defaults to the parent of the directory holding the launcher script (bin/)."""
    etc_dir: Path | None = None
    """Defaults to INSTALL_PATH/etc."""
    launcher_config: Path | None = None
    """Defaults to INSTALL_PATH/bin/launcher.properties."""
    node_config: Path | None = None
    """Defaults to ETC_DIR/node.properties."""
    jvm_config: Path | None = None
    """Defaults to ETC_DIR/jvm.config."""
    config: Path | None = None
    """Defaults to ETC_DIR/config.properties."""
    log_levels_file: Path | None = None
    """Defaults to ETC_DIR/log.properties."""
    data_dir: Path | None = None
    """Defaults to node.data-dir from node.properties, then INSTALL_PATH."""
    pid_file: Path | None = None
    """Defaults to DATA_DIR/var/run/launcher.pid."""
    launcher_log_file: Path | None = None
    """Defaults to DATA_DIR/var/log/launcher.log (only in daemon mode)."""
    server_log_file: Path | None = None
    """Defaults to DATA_DIR/var/log/server.log (only in daemon mode)."""
    jvm_option: Annotated[tuple[str, ...], tyro.conf.UseAppendAction] = ()
    """Set a JVM option (also -J<option>)."""
    system_property: Annotated[tuple[str, ...], tyro.conf.UseAppendAction] = ()
    """Set a Java system property as key=value (also -Dkey=value)."""
    stop_timeout: float | None = None
    """Seconds to wait for the server to exit on stop/kill; unbounded if unset."""


@dataclass(frozen=True, slots=True)
class LauncherOptions:
    """Resolved options shared by every lifecycle command."""

    install_path: Path
    launcher_config: Path
    etc_dir: Path
    node_config: Path
    jvm_config: Path
    config_path: Path
    log_levels: Path
    data_dir: Path
    pid_file: Path
    launcher_log: Path
    server_log: Path
    log_levels_set: bool = False
    jvm_options: tuple[str, ...] = ()
    system_properties: dict[str, str] = field(default_factory=dict)
    stop_timeout: float | None = None
    verbose: bool = False


def format_options(options: LauncherOptions) -> str:
    """Render options as aligned ``name = value`` lines."""

    rows = [
        ("verbose", options.verbose),
        ("install_path", options.install_path),
        ("launcher_config", options.launcher_config),
        ("etc_dir", options.etc_dir),
        ("node_config", options.node_config),
        ("jvm_config", options.jvm_config),
        ("config_path", options.config_path),
        ("log_levels", options.log_levels),
        ("log_levels_set", options.log_levels_set),
        ("jvm_options", list(options.jvm_options)),
        ("data_dir", options.data_dir),
        ("pid_file", options.pid_file),
        ("launcher_log", options.launcher_log),
        ("server_log", options.server_log),
        ("system_properties", dict(sorted(options.system_properties.items()))),
        ("stop_timeout", options.stop_timeout),
    ]
    return "\n".join(f"{name:<17} = {value}" for name, value in rows) + "\n"
