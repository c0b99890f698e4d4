import os
import signal
import sys
from pathlib import Path

import pytest

SRC = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC))

from serverctl.config.schema import LauncherOptions
from serverctl.launch.spec import LaunchSpec


@pytest.fixture
def options_factory(tmp_path):
    def factory(**overrides):
        install = tmp_path / "install"
        etc = install / "etc"
        data = tmp_path / "data"
        values = dict(
            install_path=install,
            launcher_config=install / "bin" / "launcher.properties",
            etc_dir=etc,
            node_config=etc / "node.properties",
            jvm_config=etc / "jvm.config",
            config_path=etc / "config.properties",
            log_levels=etc / "log.properties",
            data_dir=data,
            pid_file=data / "var" / "run" / "launcher.pid",
            launcher_log=data / "var" / "log" / "launcher.log",
            server_log=data / "var" / "log" / "server.log",
        )
        values.update(overrides)
        return LauncherOptions(**values)

    return factory


@pytest.fixture
def python_launch():
    """Build a launch spec that runs a Python snippet instead of a JVM."""

    def factory(code="import time; time.sleep(60)"):
        return LaunchSpec(
            executable=sys.executable,
            args=[sys.executable, "-c", code],
            env=dict(os.environ),
        )

    return factory


@pytest.fixture
def reap():
    """Collect pids spawned by a test and SIGKILL whatever is left afterwards."""

    pids = []
    yield pids
    for pid in pids:
        try:
            os.kill(pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
