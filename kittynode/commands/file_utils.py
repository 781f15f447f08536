"""
Filesystem helpers: atomic writes and secure permission checks.
"""

import contextlib
import logging
import os
import shutil
import stat
import tempfile
from pathlib import Path
from typing import Optional, Union

from kittynode.commands.errors import PermissionTooLooseError

logger = logging.getLogger(__name__)

SECURE_DIR_MODE = 0o700
SECURE_FILE_MODE = 0o600


def atomic_write(
    path: Union[str, Path], data: Union[str, bytes], mode: Optional[int] = None
) -> None:
    """Write ``data`` to ``path`` through a temp file in the same directory.

    Readers see either the previous file or the complete new one. On failure
    the temp file is removed and the previous file is left intact.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = data.encode("utf-8") if isinstance(data, str) else data

    tmp = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    try:
        with tmp:
            tmp.write(payload)
            tmp.flush()
            os.fsync(tmp.fileno())
        if mode is not None:
            os.chmod(tmp.name, mode)
        os.replace(tmp.name, path)
    except Exception:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp.name)
        raise


def _posix() -> bool:
    return os.name == "posix"


def ensure_secure_dir(path: Union[str, Path]) -> Path:
    """Create ``path`` with mode 0700, or verify an existing one is not writable by others."""
    path = Path(path)
    if not _posix():
        logger.warning(
            "Permission checks are not supported on this platform; skipping %s", path
        )
        path.mkdir(parents=True, exist_ok=True)
        return path

    if path.exists():
        mode = stat.S_IMODE(path.stat().st_mode)
        if mode & (stat.S_IWGRP | stat.S_IWOTH):
            raise PermissionTooLooseError(
                f"Directory {path} is writable by group or others (mode {oct(mode)}); "
                f"restrict it to {oct(SECURE_DIR_MODE)}",
                path=str(path),
                mode=mode,
            )
        return path

    path.mkdir(parents=True, exist_ok=True)
    os.chmod(path, SECURE_DIR_MODE)
    return path


def check_secure_file(path: Union[str, Path]) -> None:
    """Refuse an existing file that group or others can read."""
    path = Path(path)
    if not _posix():
        logger.warning(
            "Permission checks are not supported on this platform; skipping %s", path
        )
        return
    if not path.exists():
        return
    mode = stat.S_IMODE(path.stat().st_mode)
    if mode & (stat.S_IRGRP | stat.S_IROTH):
        raise PermissionTooLooseError(
            f"File {path} is readable by group or others (mode {oct(mode)}); "
            f"restrict it to {oct(SECURE_FILE_MODE)}",
            path=str(path),
            mode=mode,
        )


def write_secure_file(path: Union[str, Path], data: Union[str, bytes]) -> None:
    """Atomically write a validator artifact with 0600 inside a 0700 directory."""
    path = Path(path)
    ensure_secure_dir(path.parent)
    check_secure_file(path)
    atomic_write(path, data, mode=SECURE_FILE_MODE if _posix() else None)


def remove_path(path: Union[str, Path]) -> bool:
    """Delete a file or directory tree. Returns False when nothing was there."""
    path = Path(path)
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
