import pytest

from serverctl.config.loader import resolve_options
from serverctl.config.schema import LauncherFlags
from serverctl.errors import LaunchError
from serverctl.launch import spec as spec_module
from serverctl.launch.layout import create_app_symlinks
from serverctl.launch.spec import build_java_launch


@pytest.fixture
def install(tmp_path, monkeypatch):
    root = tmp_path / "install"
    (root / "etc").mkdir(parents=True)
    (root / "bin").mkdir()
    (root / "etc" / "config.properties").write_text("http-server.http.port=8080\n")
    (root / "etc" / "jvm.config").write_text("-server\n# heap\n-Xmx1G\n")
    (root / "bin" / "launcher.properties").write_text("main-class=com.example.Server\n")
    monkeypatch.setattr(spec_module, "_java_executable", lambda: "/usr/bin/java")
    return root


def _options(install, **flags):
    return resolve_options(LauncherFlags(install_path=install, **flags))


def test_foreground_launch(install):
    options = _options(install, jvm_option=("-Dfoo=bar",), system_property=("node.environment=test",))
    launch = build_java_launch(options, daemon=False)

    assert launch.executable == "/usr/bin/java"
    assert launch.args[:5] == ["java", "-cp", str(install / "lib" / "*"), "-server", "-Xmx1G"]
    assert launch.args[5] == "-Dfoo=bar"
    assert f"-Dconfig={install / 'etc' / 'config.properties'}" in launch.args
    assert "-Dnode.environment=test" in launch.args
    assert not any(arg.startswith("-Dlog.output-file=") for arg in launch.args)
    assert launch.args[-1] == "com.example.Server"


def test_daemon_launch_redirects_server_log(install):
    options = _options(install)
    launch = build_java_launch(options, daemon=True)

    assert f"-Dlog.output-file={options.server_log}" in launch.args
    assert "-Dlog.enable-console=false" in launch.args


def test_log_levels_file_is_passed_when_present(install):
    levels = install / "etc" / "log.properties"
    levels.write_text("com.example=DEBUG\n")
    launch = build_java_launch(_options(install), daemon=False)
    assert f"-Dlog.levels-file={levels}" in launch.args


def test_explicit_log_levels_file_must_exist(install, tmp_path):
    options = _options(install, log_levels_file=tmp_path / "missing.properties")
    with pytest.raises(LaunchError, match="Log levels file is missing"):
        build_java_launch(options, daemon=False)


@pytest.mark.parametrize(
    ("relative", "message"),
    [
        ("etc/config.properties", "Config file is missing"),
        ("etc/jvm.config", "JVM config file is missing"),
        ("bin/launcher.properties", "Launcher config file is missing"),
    ],
)
def test_required_files(install, relative, message):
    (install / relative).unlink()
    with pytest.raises(LaunchError, match=message):
        build_java_launch(_options(install), daemon=False)


def test_missing_main_class(install):
    (install / "bin" / "launcher.properties").write_text("process-name=server\n")
    with pytest.raises(LaunchError, match="main-class"):
        build_java_launch(_options(install), daemon=False)


def test_procname_shim(install, monkeypatch):
    monkeypatch.setenv("LD_PRELOAD", "/lib/other.so")
    (install / "bin" / "launcher.properties").write_text(
        "main-class=com.example.Server\nprocess-name=example-server\n"
    )
    shim = install / "bin" / "procname" / spec_module._system_name() / "libprocname.so"
    shim.parent.mkdir(parents=True)
    shim.write_bytes(b"")

    launch = build_java_launch(_options(install), daemon=False)
    assert launch.env["LD_PRELOAD"] == f"/lib/other.so:{shim}"
    assert launch.env["PROCNAME"] == "example-server"


def test_procname_without_shim(install, monkeypatch):
    monkeypatch.delenv("PROCNAME", raising=False)
    (install / "bin" / "launcher.properties").write_text(
        "main-class=com.example.Server\nprocess-name=example-server\n"
    )
    launch = build_java_launch(_options(install), daemon=False)
    assert "PROCNAME" not in launch.env


def test_verbose_prints_command(install, capsys):
    build_java_launch(_options(install, verbose=True), daemon=False)
    out = capsys.readouterr().out
    assert "java -cp" in out
    assert "Env vars:" in out


def test_app_symlinks(install, tmp_path):
    (install / "plugin").mkdir()
    data = tmp_path / "data"
    options = _options(install, data_dir=data)

    create_app_symlinks(options)
    assert (data / "etc").is_symlink()
    assert (data / "etc").resolve() == (install / "etc").resolve()
    assert (data / "plugin").resolve() == (install / "plugin").resolve()

    create_app_symlinks(options)
    assert (data / "etc").is_symlink()


def test_app_symlinks_skip_missing_source(install, tmp_path):
    data = tmp_path / "data"
    create_app_symlinks(_options(install, data_dir=data))
    assert not (data / "plugin").exists()
    assert not (data / "plugin").is_symlink()


def test_app_symlinks_refuse_to_replace_real_files(install, tmp_path):
    data = tmp_path / "data"
    (data / "etc").mkdir(parents=True)
    with pytest.raises(LaunchError, match="not a symlink"):
        create_app_symlinks(_options(install, data_dir=data))


def test_app_symlinks_noop_in_install_dir(install):
    create_app_symlinks(_options(install))
    assert not (install / "plugin").is_symlink()
