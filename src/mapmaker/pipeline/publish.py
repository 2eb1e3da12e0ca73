"""
Finalizer - Archive delivery

Moves the finished archive to its destination, removes the working directory
and hands the map to the optional deployment hook.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional, Protocol

from ..cleanup import remove_working_dir
from ..domain.models import MAX_ZOOM, MIN_ZOOM, Bounds
from ..types import ArtifactMissingError, DeploymentError, FilesystemError
from ..utils import ensure_directory

logger = logging.getLogger(__name__)


class Uploader(Protocol):
    """Deployment hook invoked after a successful run."""

    def upload(self, name: str, min_zoom: int, max_zoom: int, bounds: list[float]) -> object:
        ...


class Finalizer:
    """
    Delivers a packaged map.

    Args:
        destination_dir: Directory the archive is moved to
        uploader: Optional deployment hook; None disables notification
    """

    def __init__(self, destination_dir: Path, uploader: Optional[Uploader] = None):
        self.destination_dir = destination_dir
        self.uploader = uploader

    def relocate(self, archive_path: Path) -> Path:
        """
        Move the archive into the destination directory.

        Raises:
            ArtifactMissingError: If the archive is not at the expected location
        """
        if not archive_path.is_file():
            raise ArtifactMissingError(archive_path, "Source zip file does not exist")

        try:
            ensure_directory(self.destination_dir)
        except OSError as e:
            raise FilesystemError(f"Could not create destination directory {self.destination_dir}: {e}") from e

        target = self.destination_dir / archive_path.name
        if target.exists():
            logger.warning(f"Replacing existing archive {target}")

        try:
            shutil.move(str(archive_path), str(target))
        except OSError as e:
            raise FilesystemError(f"Could not move {archive_path} to {target}: {e}") from e

        logger.info(f"Saved map archive to {target}")
        return target

    def cleanup(self, working_dir: Path) -> None:
        remove_working_dir(working_dir)

    def notify(self, name: str, bounds: Bounds) -> bool:
        """
        Invoke the deployment hook if one is configured.

        Returns:
            True if the hook was called, False when none is configured
        """
        if self.uploader is None:
            logger.debug("No deployment hook configured, skipping upload")
            return False

        logger.info(f"Handing {name} to deployment hook")
        try:
            self.uploader.upload(name, MIN_ZOOM, MAX_ZOOM, list(bounds))
        except Exception as e:
            raise DeploymentError(f"Deployment hook failed for {name}: {e}") from e
        return True

    def finalize(self, archive_path: Path, working_dir: Path, name: str, bounds: Bounds) -> Path:
        """
        Relocate, clean up and notify in one call.

        Nothing is removed and no hook is called if the archive is missing.

        Returns:
            Final location of the archive
        """
        delivered = self.relocate(archive_path)
        self.cleanup(working_dir)
        self.notify(name, bounds)
        return delivered
