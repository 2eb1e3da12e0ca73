"""
Source - Region bundle acquisition

Downloads the zipped shapefile bundle for a region, extracts it into the
working directory and clips it to the job's bounding box with mapcutter.
"""

import asyncio
import logging
import zipfile
from collections.abc import Sequence
from pathlib import Path

from ..domain.models import SHAPEFILE_EXTENSION, JobContext, format_bounds
from ..tools import ExternalTool, HttpDownloader
from ..types import ArtifactMissingError, FilesystemError, ToolInvocationError

logger = logging.getLogger(__name__)


async def fetch_bundle(ctx: JobContext, downloader: HttpDownloader) -> Path:
    """
    Download the region bundle and extract it into the working directory.

    Returns:
        The working directory holding the extracted shapefiles
    """
    bundle = await downloader.fetch(ctx.url, ctx.bundle_path)
    extracted = await asyncio.to_thread(extract_bundle, bundle, ctx.working_dir)

    shapefiles = [path for path in extracted if path.suffix == SHAPEFILE_EXTENSION]
    logger.info(f"Extracted {len(extracted)} files ({len(shapefiles)} shapefiles) from {bundle.name}")
    return ctx.working_dir


def extract_bundle(archive_path: Path, target_dir: Path) -> list[Path]:
    """
    Extract a zip archive.

    Raises:
        ArtifactMissingError: If the archive does not exist
        ToolInvocationError: If the archive is corrupt
        FilesystemError: If the archive cannot be written out
    """
    if not archive_path.is_file():
        raise ArtifactMissingError(archive_path, "Downloaded bundle not found")

    try:
        with zipfile.ZipFile(archive_path) as archive:
            members = [info for info in archive.infolist() if not info.is_dir()]
            archive.extractall(target_dir)
    except zipfile.BadZipFile as e:
        raise ToolInvocationError("unzip", f"{archive_path.name} is not a valid zip archive: {e}") from e
    except OSError as e:
        raise FilesystemError(f"Could not extract {archive_path.name} into {target_dir}: {e}") from e

    return [target_dir / member.filename for member in members]


async def clip_region(ctx: JobContext, mapcutter: ExternalTool, layers: Sequence[str]) -> Path:
    """
    Clip the extracted shapefiles to the job bounds.

    mapcutter reads the shapefiles from its working directory and writes the
    clipped copies to ``clipped/``.

    Returns:
        Path to the clipped shapefile directory

    Raises:
        ArtifactMissingError: If the clipped directory or any layer is missing
    """
    logger.info(f"Cutting map to bounds {format_bounds(ctx.bounds)}")
    logger.info("This might take a few minutes")

    await mapcutter.run(["-b=", format_bounds(ctx.bounds)], cwd=ctx.working_dir)

    clipped_dir = ctx.clipped_dir
    if not clipped_dir.is_dir():
        raise ArtifactMissingError(clipped_dir, "mapcutter produced no clipped directory")

    missing = [layer for layer in layers if not (clipped_dir / f"{layer}{SHAPEFILE_EXTENSION}").is_file()]
    if missing:
        raise ArtifactMissingError(
            clipped_dir,
            f"Bundle is missing {len(missing)} required layers ({', '.join(missing)})"
        )

    return clipped_dir
