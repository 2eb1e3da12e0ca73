"""
Exporter - Tile tree packaging

Explodes the MBTiles database into a z/x/y tile tree, decompresses the tiles,
restores their .pbf suffix and packages the tree together with the map
descriptor into a single zip archive.
"""

import asyncio
import functools
import logging
import zipfile
from pathlib import Path

from ..domain.models import (
    ARCHIVE_EXTENSION,
    DESCRIPTOR_FILENAME,
    TILE_SUFFIX,
    Bounds,
    Descriptor,
    JobContext,
)
from ..tools import ExternalTool
from ..types import ArtifactMissingError, FilesystemError
from ..utils import list_files
from .fanout import FanOutTask, join_all

logger = logging.getLogger(__name__)


async def package_tiles(ctx: JobContext, mbtiles_path: Path, mbutil: ExternalTool, gzip: ExternalTool) -> Path:
    """
    Explode the tile database into ``<working_dir>/<name>/`` and decompress it.

    mb-util writes gzip-compressed tiles named ``<y>.pbf``; ``gzip -d -S .pbf``
    decompresses them in place and drops the suffix.

    Returns:
        Path to the exploded tile tree
    """
    if not mbtiles_path.is_file():
        raise ArtifactMissingError(mbtiles_path, "Tile database not found")

    await mbutil.run(["--image_format=pbf", mbtiles_path.name, ctx.name], cwd=ctx.working_dir)

    if not ctx.tiles_dir.is_dir():
        raise ArtifactMissingError(ctx.tiles_dir, "mb-util produced no tile directory")

    await gzip.run(["-d", "-r", "-S", TILE_SUFFIX, ctx.name], cwd=ctx.working_dir)
    return ctx.tiles_dir


async def add_suffix(tiles_dir: Path, suffix: str = TILE_SUFFIX) -> Path:
    """
    Append the format suffix to every file under the tile tree.

    One rename task per file, all joined before returning. Files that already
    carry the suffix are left alone, so running the step twice is harmless.

    Raises:
        FanOutError: If any rename failed
        FilesystemError: If a file is left without the suffix exactly once
    """
    if not tiles_dir.is_dir():
        raise ArtifactMissingError(tiles_dir, "Tile directory not found")

    files = list_files(tiles_dir)
    tasks = [
        FanOutTask(str(path.relative_to(tiles_dir)), functools.partial(_suffix_file, path, suffix))
        for path in files
    ]
    outcome = await join_all(tasks, "Tile suffixing")
    outcome.raise_for_failures()

    verify_suffixes(tiles_dir, suffix)
    logger.info(f"Suffixed {len(files)} tile files with {suffix}")
    return tiles_dir


async def _suffix_file(path: Path, suffix: str) -> Path:
    if path.name.endswith(suffix):
        return path
    target = path.with_name(path.name + suffix)
    try:
        await asyncio.to_thread(path.rename, target)
    except OSError as e:
        raise FilesystemError(f"Could not rename {path}: {e}") from e
    return target


def verify_suffixes(tiles_dir: Path, suffix: str = TILE_SUFFIX) -> None:
    """Check that every file under tiles_dir ends with suffix exactly once."""
    bad = [
        path for path in list_files(tiles_dir)
        if not path.name.endswith(suffix) or path.name.endswith(suffix * 2)
    ]
    if bad:
        sample = ", ".join(str(path.relative_to(tiles_dir)) for path in bad[:5])
        raise FilesystemError(f"{len(bad)} files under {tiles_dir} are not suffixed with {suffix} once: {sample}")


# =============================================================================
# Packager
# =============================================================================

def write_descriptor(tiles_dir: Path, descriptor: Descriptor) -> Path:
    """Write the descriptor as config.json; the file is closed on return."""
    descriptor_path = tiles_dir / DESCRIPTOR_FILENAME
    try:
        with open(descriptor_path, 'w', encoding='utf-8') as f:
            f.write(descriptor.to_json())
    except OSError as e:
        raise FilesystemError(f"Could not write descriptor {descriptor_path}: {e}") from e
    logger.debug(f"Wrote descriptor {descriptor_path}")
    return descriptor_path


def build_archive(source_dir: Path, archive_path: Path, root_name: str) -> Path:
    """
    Zip source_dir recursively with entries rooted at ``root_name/``.

    Returns:
        Path to the created archive
    """
    files = list_files(source_dir)
    try:
        with zipfile.ZipFile(archive_path, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
            for path in files:
                archive.write(path, arcname=f"{root_name}/{path.relative_to(source_dir).as_posix()}")
    except OSError as e:
        raise FilesystemError(f"Could not write archive {archive_path}: {e}") from e

    logger.info(f"Archived {len(files)} files into {archive_path.name}")
    return archive_path


def package(working_dir: Path, name: str, bounds: Bounds) -> Path:
    """
    Write the map descriptor into the tile tree and archive the tree.

    Returns:
        Path to ``<working_dir>/<name>.zip``
    """
    tiles_dir = working_dir / name
    if not tiles_dir.is_dir():
        raise ArtifactMissingError(tiles_dir, "Tile directory not found")

    write_descriptor(tiles_dir, Descriptor.for_map(name, bounds))
    return build_archive(tiles_dir, working_dir / f"{name}{ARCHIVE_EXTENSION}", name)
