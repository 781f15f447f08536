"""
Ephemery metadata cache.

Ephemery resets weekly, so the genesis, fork schedule and bootnodes are
fetched from the latest ``ephemery-genesis`` release and cached under
``networks/ephemery/current``. A refresh is staged next to the active copy and
promoted by rename; a failed promotion puts the previous copy back.
"""

import logging
import re
import shutil
import tarfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import requests

from kittynode.commands.constants import (
    EPHEMERY_ARCHIVE_NAME,
    EPHEMERY_CONSENSUS_BOOTNODES_FILE,
    EPHEMERY_DOWNLOAD_CHUNK_SIZE,
    EPHEMERY_DOWNLOAD_TIMEOUT,
    EPHEMERY_DOWNLOAD_URL_TEMPLATE,
    EPHEMERY_EXECUTION_BOOTNODES_FILE,
    EPHEMERY_LATEST_RELEASE_URL,
    HTTP_USER_AGENT,
)
from kittynode.commands.errors import KittynodeError, NetworkFetchError
from kittynode.commands.file_utils import atomic_write
from kittynode.commands.home import Home

logger = logging.getLogger(__name__)

_TAG_PATTERN = re.compile(r"/tag/([^/?#]+)")


@dataclass
class EphemeryConfig:
    """The promoted Ephemery release and its bootnodes."""

    tag: str
    metadata_dir: Path
    execution_bootnodes: list[str] = field(default_factory=list)
    consensus_bootnodes: list[str] = field(default_factory=list)


def read_lines(path: Path) -> list[str]:
    """Return trimmed, non-empty lines of ``path``; a missing file yields []."""
    if not path.exists():
        return []
    return [
        line.strip()
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]


def parse_release_tag(url: str) -> Optional[str]:
    """Extract ``<tag>`` from a ``.../releases/tag/<tag>`` URL."""
    match = _TAG_PATTERN.search(url)
    return match.group(1) if match else None


def _safe_members(archive: tarfile.TarFile, destination: Path):
    root = destination.resolve()
    for member in archive.getmembers():
        if member.issym() or member.islnk() or member.isdev():
            logger.warning("Skipping link or device entry %s in Ephemery archive", member.name)
            continue
        target = (destination / member.name).resolve()
        if target != root and root not in target.parents:
            raise KittynodeError(
                f"Ephemery archive entry {member.name!r} escapes the extraction directory"
            )
        yield member


class EphemeryCache:
    """Fetches, validates, promotes and serves the Ephemery network config."""

    def __init__(self, home: Home, session: Optional[requests.Session] = None):
        self.home = home
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", HTTP_USER_AGENT)

    @property
    def base_dir(self) -> Path:
        return self.home.ephemery_dir

    @property
    def current_dir(self) -> Path:
        return self.home.ephemery_current_dir

    @property
    def staging_dir(self) -> Path:
        return self.base_dir / "current.staging"

    @property
    def backup_dir(self) -> Path:
        return self.base_dir / "current.backup"

    def cached_tag(self) -> Optional[str]:
        tag_file = self.home.ephemery_tag_path
        if not tag_file.exists():
            return None
        tag = tag_file.read_text(encoding="utf-8").strip()
        return tag or None

    def cache_complete(self) -> bool:
        return self.cached_tag() is not None and self.home.ephemery_metadata_dir.is_dir()

    def resolve_latest_tag(self) -> str:
        """Follow the "latest" release redirect and read the tag from the final URL."""
        try:
            response = self.session.get(
                EPHEMERY_LATEST_RELEASE_URL,
                allow_redirects=True,
                timeout=EPHEMERY_DOWNLOAD_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise NetworkFetchError(
                f"Failed to fetch Ephemery release metadata: {e}",
                url=EPHEMERY_LATEST_RELEASE_URL,
            ) from e

        tag = parse_release_tag(response.url)
        if not tag:
            raise NetworkFetchError(
                f"Could not determine the latest Ephemery release from {response.url}",
                url=response.url,
            )
        return tag

    def ensure(self) -> EphemeryConfig:
        """Refresh the cache when stale and return the active config.

        Network failures are tolerated when a complete cached copy exists.
        """
        self.base_dir.mkdir(parents=True, exist_ok=True)
        cached_tag = self.cached_tag()
        complete = self.cache_complete()

        try:
            latest_tag = self.resolve_latest_tag()
            if cached_tag != latest_tag or not complete:
                logger.info("Updating Ephemery network configuration to %s", latest_tag)
                self._download_and_promote(latest_tag)
                atomic_write(self.home.ephemery_tag_path, latest_tag)
        except NetworkFetchError as e:
            if not complete:
                raise NetworkFetchError(
                    "Unable to download Ephemery configuration and no cached copy "
                    f"is available: {e.message}",
                    url=e.url,
                ) from e
            logger.warning(
                "Failed to check for Ephemery updates, continuing with cached config: %s",
                e.message,
            )

        config = self.load_cached()
        if config is None:
            raise KittynodeError(
                f"Ephemery metadata directory missing at {self.home.ephemery_metadata_dir}"
            )
        return config

    def load_cached(self) -> Optional[EphemeryConfig]:
        """Read the promoted config from disk without touching the network."""
        tag = self.cached_tag()
        metadata_dir = self.home.ephemery_metadata_dir
        if tag is None or not metadata_dir.is_dir():
            return None
        return EphemeryConfig(
            tag=tag,
            metadata_dir=metadata_dir,
            execution_bootnodes=read_lines(
                metadata_dir / EPHEMERY_EXECUTION_BOOTNODES_FILE
            ),
            consensus_bootnodes=read_lines(
                metadata_dir / EPHEMERY_CONSENSUS_BOOTNODES_FILE
            ),
        )

    def _download_archive(self, url: str, destination: Path) -> None:
        try:
            with self.session.get(
                url, stream=True, timeout=EPHEMERY_DOWNLOAD_TIMEOUT
            ) as response:
                response.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(
                        chunk_size=EPHEMERY_DOWNLOAD_CHUNK_SIZE
                    ):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise NetworkFetchError(
                f"Failed to download Ephemery archive: {e}", url=url
            ) from e

    def _download_and_promote(self, tag: str) -> None:
        if self.staging_dir.exists():
            shutil.rmtree(self.staging_dir)
        self.staging_dir.mkdir(parents=True)

        url = EPHEMERY_DOWNLOAD_URL_TEMPLATE.format(tag=tag, archive=EPHEMERY_ARCHIVE_NAME)
        archive_path = self.staging_dir / EPHEMERY_ARCHIVE_NAME
        try:
            self._download_archive(url, archive_path)
            with tarfile.open(archive_path, "r:gz") as archive:
                archive.extractall(
                    self.staging_dir, members=_safe_members(archive, self.staging_dir)
                )
            archive_path.unlink()

            if not (self.staging_dir / "metadata").is_dir():
                raise KittynodeError(
                    "Downloaded Ephemery archive missing metadata directory at "
                    f"{self.staging_dir / 'metadata'}"
                )
        except (tarfile.TarError, OSError, KittynodeError):
            shutil.rmtree(self.staging_dir, ignore_errors=True)
            raise

        self._promote_staging()

    def _promote_staging(self) -> None:
        if self.backup_dir.exists():
            shutil.rmtree(self.backup_dir)
        if self.current_dir.exists():
            self.current_dir.rename(self.backup_dir)

        try:
            self.staging_dir.rename(self.current_dir)
        except OSError:
            if self.backup_dir.exists():
                self.backup_dir.rename(self.current_dir)
            raise

        if self.backup_dir.exists():
            shutil.rmtree(self.backup_dir, ignore_errors=True)
