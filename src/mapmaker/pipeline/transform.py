"""
Transformer - Layer conversion and tile building

Converts each clipped shapefile to GeoJSON (one ogr2ogr process per layer,
all running concurrently) and merges the GeoJSON layers into a single
MBTiles database with tippecanoe.
"""

import functools
import logging
from collections.abc import Sequence
from pathlib import Path

from ..domain.models import (
    JSON_EXTENSION,
    MAX_ZOOM,
    MIN_ZOOM,
    SHAPEFILE_EXTENSION,
    JobContext,
)
from ..tools import ExternalTool
from ..types import ArtifactMissingError
from .fanout import FanOutTask, join_all

logger = logging.getLogger(__name__)


async def convert_layers(clipped_dir: Path, ogr2ogr: ExternalTool, layers: Sequence[str]) -> list[Path]:
    """
    Convert every layer shapefile to GeoJSON.

    All conversions are launched together and joined. A failed conversion
    does not stop its siblings, but fails the stage once all have finished.

    Returns:
        GeoJSON paths in Layer Set order

    Raises:
        FanOutError: If any conversion failed
        ArtifactMissingError: If a conversion exited cleanly without output
    """
    tasks = [
        FanOutTask(layer, functools.partial(_convert_layer, ogr2ogr, clipped_dir, layer))
        for layer in layers
    ]
    outcome = await join_all(tasks, "Layer conversion")
    outcome.raise_for_failures()

    outputs = [clipped_dir / f"{layer}{JSON_EXTENSION}" for layer in layers]
    for output in outputs:
        if not output.is_file():
            raise ArtifactMissingError(output, "Converted layer not found")

    return outputs


async def _convert_layer(ogr2ogr: ExternalTool, clipped_dir: Path, layer: str) -> None:
    await ogr2ogr.run(
        ["-f", "GeoJSON", f"{layer}{JSON_EXTENSION}", f"{layer}{SHAPEFILE_EXTENSION}"],
        cwd=clipped_dir
    )
    logger.debug(f"Converted {layer}")


async def build_tiles(ctx: JobContext, tippecanoe: ExternalTool, layer_files: Sequence[Path]) -> Path:
    """
    Build the MBTiles database for the fixed zoom range from all layers.

    Returns:
        Path to the MBTiles database

    Raises:
        ArtifactMissingError: If tippecanoe exited cleanly without output
    """
    inputs = [str(path.relative_to(ctx.working_dir)) for path in layer_files]
    args = ["-z", str(MAX_ZOOM), "-Z", str(MIN_ZOOM), "-o", ctx.mbtiles_path.name, *inputs]

    logger.info(f"Building tiles for zoom {MIN_ZOOM}-{MAX_ZOOM} from {len(inputs)} layers")
    await tippecanoe.run(args, cwd=ctx.working_dir)

    if not ctx.mbtiles_path.is_file():
        raise ArtifactMissingError(ctx.mbtiles_path, "Tile database not found")

    return ctx.mbtiles_path
