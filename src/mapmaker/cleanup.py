"""Working directory management for pipeline runs."""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Optional

from .types import FilesystemError
from .utils import get_dir_size

# Written into every working directory this package creates; the purge only
# ever touches directories that carry it
JOB_MARKER = ".mapmaker-job"


def reset_working_dir(working_dir: Path) -> Path:
    """
    Give a job a fresh, empty working directory.

    A directory left by an earlier run with the same name is deleted first,
    so no stale artifact can leak into the new run. The new directory is
    tagged with the job marker.
    """
    try:
        if working_dir.exists():
            logging.info(f"Removing stale working directory: {working_dir}")
            shutil.rmtree(working_dir)
        working_dir.mkdir(parents=True)
        (working_dir / JOB_MARKER).write_text(f"{working_dir.name}\n", encoding='utf-8')
    except OSError as e:
        raise FilesystemError(f"Could not reset working directory {working_dir}: {e}") from e

    logging.debug(f"Working directory ready: {working_dir}")
    return working_dir


def is_job_dir(path: Path) -> bool:
    """Check whether path is a working directory created by reset_working_dir."""
    return path.is_dir() and (path / JOB_MARKER).is_file()


def remove_working_dir(working_dir: Path) -> None:
    """Delete a job's working directory recursively."""
    if not working_dir.exists():
        logging.debug(f"Working directory already removed: {working_dir}")
        return

    size_mb = get_dir_size(working_dir) / (1024 ** 2)
    try:
        shutil.rmtree(working_dir)
    except OSError as e:
        raise FilesystemError(f"Could not remove working directory {working_dir}: {e}") from e

    logging.info(f"Removed working directory {working_dir} ({size_mb:.1f} MB)")


def cleanup_stale_working_dirs(work_root: Path, retention_hours: int, keep: Optional[Path] = None) -> int:
    """
    Remove working directories abandoned by failed runs.

    Failed runs leave their working directory in place for diagnosis. Only
    directories tagged with the job marker are considered, and their age is
    the age of the marker, i.e. the start of the run that created them.

    Args:
        work_root: Parent directory of job working directories
        retention_hours: Directories older than this will be removed
        keep: Directory to leave untouched regardless of age

    Returns:
        Number of directories removed
    """
    if not work_root.is_dir():
        return 0

    cutoff_time = time.time() - (retention_hours * 3600)
    cleaned_count = 0

    for item in work_root.iterdir():
        if not is_job_dir(item) or (keep is not None and item.resolve() == keep.resolve()):
            continue
        try:
            if (item / JOB_MARKER).stat().st_mtime < cutoff_time:
                shutil.rmtree(item)
                cleaned_count += 1
                logging.debug(f"Removed abandoned working directory: {item}")
        except OSError as e:
            logging.warning(f"Could not remove abandoned working directory {item}: {e}")

    if cleaned_count > 0:
        logging.info(f"Cleaned up {cleaned_count} abandoned working directories (>{retention_hours}h)")

    return cleaned_count
