"""Application layout symlinks inside the data directory."""

from __future__ import annotations

from pathlib import Path

from serverctl.config.schema import LauncherOptions
from serverctl.errors import LaunchError


def _symlink_exists(path: Path) -> bool:
    if not path.is_symlink():
        if path.exists():
            raise LaunchError(f"Path exists and is not a symlink: {path}")
        return False
    return True


def create_symlink(source: Path, target: Path) -> None:
    """Point ``target`` at ``source``, replacing an existing symlink."""

    try:
        if _symlink_exists(target):
            target.unlink()
        if source.exists():
            target.parent.mkdir(parents=True, exist_ok=True)
            target.symlink_to(source)
    except OSError as exc:
        raise LaunchError(f"cannot link '{target}' to '{source}': {exc}") from exc


def create_app_symlinks(options: LauncherOptions) -> None:
    """Symlink ``etc`` and ``plugin`` into the data dir.

    Servers resolve config entries such as ``log.levels-file=etc/log.properties``
    relative to their working directory, which is the data dir.
    """

    if options.etc_dir != options.data_dir / "etc":
        create_symlink(options.etc_dir, options.data_dir / "etc")
    if options.install_path != options.data_dir:
        create_symlink(options.install_path / "plugin", options.data_dir / "plugin")
