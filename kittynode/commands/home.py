"""
Home - resolves the kittynode data root and every path derived from it.

The data root is the test override when one is active, otherwise
``$HOME/.kittynode`` (``%USERPROFILE%\\.kittynode`` on Windows). Directories are
never created here; callers that write create what they need.
"""

import logging
import os
import shutil
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

from kittynode.commands.constants import (
    CONFIG_FILE_NAME,
    EPHEMERY_NETWORK_NAME,
    JWT_FILE_NAME,
    KITTYNODE_DIR_NAME,
    LIGHTHOUSE_DIR_NAME,
    PACKAGES_DIR_NAME,
    RUNTIME_DIR_NAME,
    WEB_SERVICE_LOG_FILE,
    WEB_SERVICE_STATE_FILE,
)
from kittynode.commands.errors import HomeResolutionError

logger = logging.getLogger(__name__)

# Only one holder of the override at a time; tests serialise on this lock.
_OVERRIDE_GUARD = threading.Lock()
_home_override: Optional[Path] = None


@contextmanager
def override_home(path: Union[str, Path]) -> Iterator["Home"]:
    """Point every Home lookup at ``path`` for the duration of the block."""
    global _home_override
    with _OVERRIDE_GUARD:
        previous = _home_override
        _home_override = Path(path)
        try:
            yield Home(Path(path))
        finally:
            _home_override = previous


def _user_home() -> Path:
    var = "USERPROFILE" if sys.platform == "win32" else "HOME"
    value = os.environ.get(var, "").strip()
    if value:
        return Path(value)
    try:
        return Path.home()
    except RuntimeError as e:
        raise HomeResolutionError() from e


@dataclass(frozen=True)
class Home:
    """Anchor for all on-disk kittynode state."""

    base: Path

    @classmethod
    def try_default(cls) -> "Home":
        if _home_override is not None:
            return cls(_home_override)
        return cls(_user_home() / KITTYNODE_DIR_NAME)

    @property
    def config_path(self) -> Path:
        return self.base / CONFIG_FILE_NAME

    def package_dir(self, package_name: str) -> Path:
        return self.base / PACKAGES_DIR_NAME / package_name

    def package_config_path(self, package_name: str) -> Path:
        return self.package_dir(package_name) / CONFIG_FILE_NAME

    @property
    def jwt_path(self) -> Path:
        return self.base / JWT_FILE_NAME

    @property
    def lighthouse_dir(self) -> Path:
        return self.base / LIGHTHOUSE_DIR_NAME

    @property
    def ephemery_dir(self) -> Path:
        return self.base / "networks" / EPHEMERY_NETWORK_NAME

    @property
    def ephemery_current_dir(self) -> Path:
        return self.ephemery_dir / "current"

    @property
    def ephemery_metadata_dir(self) -> Path:
        return self.ephemery_current_dir / "metadata"

    @property
    def ephemery_tag_path(self) -> Path:
        return self.ephemery_dir / "current_tag"

    @property
    def runtime_dir(self) -> Path:
        return self.base / RUNTIME_DIR_NAME

    @property
    def web_state_path(self) -> Path:
        return self.runtime_dir / WEB_SERVICE_STATE_FILE

    @property
    def web_log_path(self) -> Path:
        return self.runtime_dir / WEB_SERVICE_LOG_FILE

    def delete_kittynode(self) -> None:
        """Remove the whole data root. A missing root is not an error."""
        if not self.base.exists():
            logger.info("Kittynode data root %s does not exist", self.base)
            return
        shutil.rmtree(self.base)
        logger.info("Deleted kittynode data root %s", self.base)
