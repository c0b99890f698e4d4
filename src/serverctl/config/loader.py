"""Resolve launcher flags and property files into LauncherOptions."""

from __future__ import annotations

from pathlib import Path
import sys

from serverctl.config.schema import LauncherFlags, LauncherOptions
from serverctl.errors import ConfigError


RESERVED_PROPERTIES = {
    "config": "--config",
    "log.output-file": "--server-log-file",
    "log.levels-file": "--log-levels-file",
}


def load_lines(path: Path) -> list[str]:
    """Load stripped lines, skipping blank lines and ``#`` comments."""

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read '{path}': {exc}") from exc
    lines = []
    for raw in text.splitlines():
        line = raw.strip()
        if line and not line.startswith("#"):
            lines.append(line)
    return lines


def load_properties(path: Path) -> dict[str, str]:
    """Load ``key=value`` pairs from a properties file."""

    properties: dict[str, str] = {}
    for line in load_lines(path):
        if "=" not in line:
            raise ConfigError(f"property line in '{path}' is malformed: {line}")
        key, value = line.split("=", maxsplit=1)
        properties[key.strip()] = value.strip()
    return properties


def parse_system_properties(values: tuple[str, ...] | list[str]) -> dict[str, str]:
    """Parse ``-D`` style ``key=value`` arguments."""

    properties: dict[str, str] = {}
    for arg in values:
        if "=" not in arg:
            raise ConfigError(f"property is malformed: {arg}")
        key, value = arg.split("=", maxsplit=1)
        key = key.strip()
        if key in RESERVED_PROPERTIES:
            raise ConfigError(
                f"cannot specify {key} using -D option (use {RESERVED_PROPERTIES[key]})"
            )
        properties[key] = value.strip()
    return properties


def find_install_path(script: Path | None = None) -> Path:
    """Return the install root, the parent of the ``bin`` dir holding the launcher."""

    if script is None:
        script = Path(sys.argv[0])
    bin_dir = script.resolve().parent
    if bin_dir.name != "bin":
        raise ConfigError(
            f"expected launcher '{script}' to live in a 'bin' directory "
            f"(not '{bin_dir.name}'); pass --install-path"
        )
    return bin_dir.parent


def _resolve(primary: Path | None, default_name: str, base: Path) -> Path:
    path = primary if primary is not None else base / default_name
    return path.expanduser().absolute()


def resolve_options(flags: LauncherFlags, script: Path | None = None) -> LauncherOptions:
    """Apply defaults and node properties to parsed flags."""

    if flags.install_path is not None:
        install_path = flags.install_path.expanduser().absolute()
    else:
        install_path = find_install_path(script)

    etc_dir = _resolve(flags.etc_dir, "etc", install_path)
    node_config = _resolve(flags.node_config, "node.properties", etc_dir)
    if flags.node_config is not None and not node_config.exists():
        raise ConfigError(f"Node config file is missing: {node_config}")

    node_properties: dict[str, str] = {}
    if node_config.exists():
        node_properties = load_properties(node_config)

    if flags.data_dir is not None:
        data_dir = flags.data_dir
    elif node_properties.get("node.data-dir"):
        data_dir = Path(node_properties["node.data-dir"])
    else:
        data_dir = install_path
    data_dir = data_dir.expanduser().absolute()

    system_properties = parse_system_properties(flags.system_property)
    for key, value in node_properties.items():
        system_properties.setdefault(key, value)

    return LauncherOptions(
        install_path=install_path,
        launcher_config=_resolve(flags.launcher_config, "bin/launcher.properties", install_path),
        etc_dir=etc_dir,
        node_config=node_config,
        jvm_config=_resolve(flags.jvm_config, "jvm.config", etc_dir),
        config_path=_resolve(flags.config, "config.properties", etc_dir),
        log_levels=_resolve(flags.log_levels_file, "log.properties", etc_dir),
        log_levels_set=flags.log_levels_file is not None,
        data_dir=data_dir,
        pid_file=_resolve(flags.pid_file, "var/run/launcher.pid", data_dir),
        launcher_log=_resolve(flags.launcher_log_file, "var/log/launcher.log", data_dir),
        server_log=_resolve(flags.server_log_file, "var/log/server.log", data_dir),
        jvm_options=tuple(option.strip() for option in flags.jvm_option),
        system_properties=system_properties,
        stop_timeout=flags.stop_timeout,
        verbose=flags.verbose,
    )
