"""
Pipeline Enumerations

Core enums for type safety and clear interface definitions across the pipeline.
"""

from enum import Enum


class StageName(str, Enum):
    """Pipeline stages, in execution order."""
    FETCH = "fetch"                 # Download and extract the region bundle
    CLIP = "clip"                   # Cut shapefiles to the bounding box
    CONVERT_LAYERS = "convert-layers"  # Shapefile -> GeoJSON, one task per layer
    BUILD_TILES = "build-tiles"     # GeoJSON layers -> MBTiles database
    PACKAGE_TILES = "package-tiles" # MBTiles -> exploded, decompressed tile tree
    ADD_SUFFIX = "add-suffix"       # Restore the .pbf suffix on every tile file
    ARCHIVE = "archive"             # Descriptor + zip archive
    RELOCATE = "relocate"           # Move archive to its destination
    CLEANUP = "cleanup"             # Remove the working directory
    NOTIFY = "notify"               # Optional deployment hook


class ErrorKind(str, Enum):
    """Failure categories reported by stages."""
    INPUT = "input"             # Malformed or missing run arguments
    TOOL = "tool"               # External process or download failed
    FILESYSTEM = "filesystem"   # Expected artifact missing or filesystem operation failed
