"""Build the Java command line and environment for the server."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
import platform
import shutil
import subprocess
import sys

from serverctl.config.loader import load_lines, load_properties
from serverctl.config.schema import LauncherOptions
from serverctl.errors import LaunchError


@dataclass(frozen=True, slots=True)
class LaunchSpec:
    """Executable, argument vector and environment for the server process."""

    executable: str
    args: list[str]
    env: dict[str, str] = field(default_factory=dict)


def _system_name() -> str:
    arch = {"x86_64": "amd64", "aarch64": "arm64"}.get(platform.machine(), platform.machine())
    return f"{sys.platform}-{arch}"


def _require(path_ok: bool, message: str) -> None:
    if not path_ok:
        raise LaunchError(message)


def _java_executable() -> str:
    java = shutil.which("java")
    if java is None:
        raise LaunchError("Java is not installed")
    try:
        subprocess.run(
            [java, "-version"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        raise LaunchError(f"Java is not installed: {exc}") from exc
    return java


def build_java_launch(options: LauncherOptions, daemon: bool) -> LaunchSpec:
    """Return the launch spec for ``java ... <main-class>``."""

    _require(options.config_path.exists(), f"Config file is missing: {options.config_path}")
    _require(options.jvm_config.exists(), f"JVM config file is missing: {options.jvm_config}")
    _require(
        options.launcher_config.exists(),
        f"Launcher config file is missing: {options.launcher_config}",
    )
    if options.log_levels_set:
        _require(options.log_levels.exists(), f"Log levels file is missing: {options.log_levels}")

    java = _java_executable()

    properties = dict(options.system_properties)
    if options.log_levels.exists():
        properties["log.levels-file"] = str(options.log_levels)
    if daemon:
        properties["log.output-file"] = str(options.server_log)
        properties["log.enable-console"] = "false"
    properties["config"] = str(options.config_path)

    jvm_properties = load_lines(options.jvm_config)
    launcher_properties = load_properties(options.launcher_config)
    main_class = launcher_properties.get("main-class")
    if not main_class:
        raise LaunchError("Launcher config is missing 'main-class' property")

    classpath = str(options.install_path / "lib" / "*")
    args = ["java", "-cp", classpath, *jvm_properties, *options.jvm_options]
    args += [f"-D{key}={value}" for key, value in sorted(properties.items())]
    args.append(main_class)

    if options.verbose:
        print(" ".join(args))
        print()

    env = dict(os.environ)
    process_name = launcher_properties.get("process-name", "")
    if process_name:
        shim = options.install_path / "bin" / "procname" / _system_name() / "libprocname.so"
        if options.verbose:
            print(f"Procname: {shim}")
            print()
        if shim.exists():
            preload = env.get("LD_PRELOAD", "")
            env["LD_PRELOAD"] = f"{preload}:{shim}" if preload else str(shim)
            env["PROCNAME"] = process_name

    if options.verbose:
        print("Env vars: " + " ".join(f"{key}={value}" for key, value in sorted(env.items())))
        print()

    return LaunchSpec(executable=java, args=args, env=env)
