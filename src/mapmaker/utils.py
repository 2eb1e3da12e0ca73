"""
Consolidated Utilities

Helper functions shared across the pipeline modules.

Sections:
- Logging and timing utilities
- Filesystem and path operations
- Bbox helpers
"""

import logging
import os
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# =============================================================================
# Logging and Timing Utilities
# =============================================================================

def setup_logging(
    verbose: bool,
    job_name: Optional[str] = None,
    enable_file_logging: bool = False
) -> Optional[Path]:
    """
    Configure logging with optional timestamped file output.

    Args:
        verbose: Enable debug-level logging if True
        job_name: Map name for log file naming
        enable_file_logging: Create timestamped log files when True

    Returns:
        Path of the log file when file logging is enabled, else None
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_file = None

    if enable_file_logging:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = logs_dir / f"{clean_filename(job_name or 'mapmaker')}_{timestamp}.log"

        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
        print(f"Logging to: {log_file}")

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=True
    )
    return log_file


def log_phase(title: str, level: int = logging.INFO) -> None:
    """Log a banner marking the start of a pipeline phase."""
    logging.log(level, "=" * 50)
    logging.log(level, title)
    logging.log(level, "=" * 50)


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    return f"{minutes}m {secs:.1f}s"


# =============================================================================
# Filesystem and Path Operations
# =============================================================================

def ensure_directory(path: Path) -> Path:
    """
    Ensure directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure

    Returns:
        Path object for the directory
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def clean_filename(filename: str) -> str:
    """
    Clean filename for cross-platform compatibility.

    Args:
        filename: Original filename

    Returns:
        Cleaned filename safe for all platforms
    """
    # Replace problematic characters
    cleaned = re.sub(r'[<>:"/\\|?*\x00-\x1f]', '_', filename)
    # Remove multiple underscores
    cleaned = re.sub(r'_+', '_', cleaned)
    # Trim underscores from ends
    return cleaned.strip('_')


def is_filesystem_safe(name: str) -> bool:
    """
    Check that a name can be used verbatim as a single path component.

    Rejects separators, reserved characters, relative components ('.', '..'),
    leading dots or dashes and surrounding whitespace.
    """
    if not name or name != name.strip():
        return False
    if name in (".", "..") or name.startswith((".", "-")):
        return False
    return clean_filename(name) == name


def list_files(root: Path) -> list[Path]:
    """Recursively list regular files under root, following symlinked directories."""
    files = []
    for dirpath, _dirnames, filenames in os.walk(root, followlinks=True):
        for filename in filenames:
            files.append(Path(dirpath) / filename)
    return sorted(files)


def get_dir_size(path: Path) -> int:
    """Get total size of a directory tree in bytes."""
    if not path.exists():
        return 0

    total_size = 0
    for item in path.rglob("*"):
        if item.is_file():
            try:
                total_size += item.stat().st_size
            except OSError:
                pass

    return total_size


# =============================================================================
# Bbox Helpers
# =============================================================================

def validate_bbox(bbox: list[float]) -> bool:
    """
    Validate bounding box coordinates.

    Args:
        bbox: Bounding box as [west, south, east, north]

    Returns:
        True if valid, False otherwise
    """
    if len(bbox) != 4:
        return False

    west, south, east, north = bbox

    # Check longitude bounds
    if not (-180 <= west <= 180) or not (-180 <= east <= 180):
        return False

    # Check latitude bounds
    if not (-90 <= south <= 90) or not (-90 <= north <= 90):
        return False

    # Check min < max
    return not (west >= east or south >= north)
