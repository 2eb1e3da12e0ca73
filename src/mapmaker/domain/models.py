"""
Pipeline Domain Models

Pydantic models for type safety and validation across the pipeline.
The job context is frozen on creation: bounds and name never change for the
lifetime of a run.
"""

import json
from collections.abc import Sequence
from pathlib import Path
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils import is_filesystem_safe, validate_bbox

# Zoom range is fixed for every map produced by the system
MIN_ZOOM = 14
MAX_ZOOM = 16

SHAPEFILE_EXTENSION = ".shp"
JSON_EXTENSION = ".json"
MBTILES_EXTENSION = ".mbtiles"
ARCHIVE_EXTENSION = ".zip"
TILE_SUFFIX = ".pbf"
CLIPPED_DIRNAME = "clipped"
DESCRIPTOR_FILENAME = "config" + JSON_EXTENSION

Bounds = tuple[float, float, float, float]


def parse_bounds(value: str | Sequence[float]) -> Bounds:
    """
    Parse a bounding box given as "[west,south,east,north]" or a 4-sequence.

    Args:
        value: Bracketed comma-separated string or sequence of numbers

    Returns:
        Tuple of four floats (west, south, east, north)

    Raises:
        ValueError: If the value does not hold exactly four numbers
    """
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("[") and text.endswith("]"):
            text = text[1:-1]
        parts = [part.strip() for part in text.split(",")]
    else:
        parts = list(value)

    if len(parts) != 4:
        raise ValueError(f"Bounds must have 4 values [west,south,east,north], got {len(parts)}")

    try:
        return tuple(float(part) for part in parts)  # type: ignore[return-value]
    except (TypeError, ValueError) as e:
        raise ValueError(f"Bounds must be numeric: {value}") from e


def format_bounds(bounds: Bounds) -> str:
    """Render bounds in the bracketed form accepted by the clipping tool."""
    return "[" + ",".join(str(coordinate) for coordinate in bounds) + "]"


class JobContext(BaseModel):
    """Immutable state of one pipeline run."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Map name, used for the working directory and archive")
    url: str = Field(..., description="URL of the zipped shapefile bundle for the region")
    bounds: Bounds = Field(..., description="Bounding box (west, south, east, north)")
    work_root: Path = Field(..., description="Parent directory of per-job working directories")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Name cannot be empty")
        if not is_filesystem_safe(value):
            raise ValueError(f"Name '{value}' is not safe to use as a file name")
        return value

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("URL cannot be empty")
        if not value.startswith(("http://", "https://")):
            raise ValueError("URL must include protocol (http:// or https://)")
        if not bundle_filename(value):
            raise ValueError(f"URL does not name a file to download: {value}")
        return value

    @field_validator("bounds", mode="before")
    @classmethod
    def _parse_bounds(cls, value):
        return parse_bounds(value)

    @field_validator("bounds")
    @classmethod
    def _check_bounds(cls, value: Bounds) -> Bounds:
        if not validate_bbox(list(value)):
            raise ValueError(
                f"Bounds {format_bounds(value)} must satisfy west < east and south < north "
                "within longitude/latitude range"
            )
        return value

    @property
    def working_dir(self) -> Path:
        return self.work_root / self.name

    @property
    def bundle_path(self) -> Path:
        return self.working_dir / bundle_filename(self.url)

    @property
    def clipped_dir(self) -> Path:
        return self.working_dir / CLIPPED_DIRNAME

    @property
    def mbtiles_path(self) -> Path:
        return self.working_dir / f"{self.name}{MBTILES_EXTENSION}"

    @property
    def tiles_dir(self) -> Path:
        return self.working_dir / self.name

    @property
    def archive_path(self) -> Path:
        return self.working_dir / f"{self.name}{ARCHIVE_EXTENSION}"


class Descriptor(BaseModel):
    """Map descriptor consumed by the rendering client."""
    model_config = ConfigDict(frozen=True)

    maptiles_url: str = Field(..., description="Archive file name the tiles are shipped in")
    min_zoom: int = Field(default=MIN_ZOOM, description="Lowest zoom level in the tile set")
    max_zoom: int = Field(default=MAX_ZOOM, description="Highest zoom level in the tile set")
    bounds: Bounds = Field(..., description="Bounding box (west, south, east, north)")

    @classmethod
    def for_map(cls, name: str, bounds: Bounds) -> "Descriptor":
        return cls(maptiles_url=f"{name}{ARCHIVE_EXTENSION}", bounds=bounds)

    def to_json(self) -> str:
        """Compact JSON with keys in declaration order."""
        return json.dumps(self.model_dump(mode="json"), separators=(",", ":"))


def bundle_filename(url: str) -> str:
    """File name of the downloaded bundle: the last path segment of the URL."""
    return Path(urlparse(url).path).name
