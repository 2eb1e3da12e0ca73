"""
Configuration management for the mapmaker pipeline.

Usage:
    from mapmaker.config.settings import Config
    config = Config()
    work_root = config.paths.work_root

Environment Variables:
    MAPMAKER_WORK_ROOT: Parent directory of per-job working directories
    MAPMAKER_DESTINATION: Directory the finished archive is moved to (default $HOME/Desktop)
    MAPMAKER_MAPCUTTER / _OGR2OGR / _TIPPECANOE / _MBUTIL / _GZIP: Tool commands
    MAPMAKER_DOWNLOAD_TIMEOUT: HTTP timeout in seconds for the bundle download
    MAPMAKER_RETENTION_HOURS: Age after which abandoned working directories are purged
        (unset: never purge)
    MAPMAKER_UPLOADER: Optional deployment hook as "module" or "module:attribute"
"""

import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class PathsConfig:
    """Filesystem locations used by a run."""
    work_root: Path
    destination: Path

    def __post_init__(self):
        """Validate path configuration."""
        self.work_root = Path(self.work_root).expanduser()
        self.destination = Path(self.destination).expanduser()

        if self.work_root.exists() and not self.work_root.is_dir():
            raise ValueError(f"Work root is not a directory: {self.work_root}")

        if self.destination.exists() and not self.destination.is_dir():
            raise ValueError(f"Destination is not a directory: {self.destination}")


@dataclass
class ToolsConfig:
    """Command prefixes for the external geodata tools."""
    mapcutter: str = "mapcutter"
    ogr2ogr: str = "ogr2ogr"
    tippecanoe: str = "tippecanoe"
    mbutil: str = "mb-util"
    gzip: str = "gzip"

    def __post_init__(self):
        """Validate that every tool has a parseable command."""
        for tool_name in ("mapcutter", "ogr2ogr", "tippecanoe", "mbutil", "gzip"):
            try:
                command = shlex.split(getattr(self, tool_name))
            except ValueError as e:
                raise ValueError(f"Command for {tool_name} cannot be parsed: {e}")
            if not command:
                raise ValueError(f"Command for {tool_name} cannot be empty")

    def command(self, tool_name: str) -> list[str]:
        """Return the argv prefix for a tool."""
        return shlex.split(getattr(self, tool_name))


@dataclass
class DownloadConfig:
    """HTTP download configuration."""
    timeout_s: int = 300
    chunk_size: int = 8192

    def __post_init__(self):
        """Validate download configuration."""
        if self.timeout_s < 1:
            raise ValueError("Download timeout must be at least 1 second")
        if self.chunk_size < 1:
            raise ValueError("Chunk size must be positive")


@dataclass
class TempConfig:
    """Working directory retention configuration.

    retention_hours of None disables the purge of abandoned working directories.
    """
    retention_hours: Optional[int] = None

    def __post_init__(self):
        """Validate retention configuration."""
        if self.retention_hours is not None and self.retention_hours < 0:
            raise ValueError("Retention hours must be non-negative")


class ConfigurationError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


class Config:
    """
    Centralized configuration management for the mapmaker pipeline.

    Environment variables loaded (in order of preference):
    1. Explicit environment file passed to constructor
    2. .env.{ENVIRONMENT} (where ENVIRONMENT=development|production|staging)
    3. .env file in project root
    4. System environment variables

    Explicit ``work_root`` and ``destination`` arguments (from the CLI)
    take precedence over the environment.

    Example:
        config = Config()
        config = Config(destination=Path("/srv/maps"))
    """

    def __init__(self,
                 environment: Optional[str] = None,
                 env_file: Optional[Path] = None,
                 work_root: Optional[Path] = None,
                 destination: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            environment: Target environment (development|staging|production)
            env_file: Explicit path to environment file
            work_root: Override for the working directory parent
            destination: Override for the archive destination directory
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "development")
        self.project_root = self._find_project_root()

        self._load_environment_variables(env_file)

        self._load_paths_config(work_root, destination)
        self._load_tools_config()
        self._load_download_config()
        self._load_temp_config()
        self.uploader = os.getenv("MAPMAKER_UPLOADER") or None

    def _find_project_root(self) -> Path:
        """Find project root directory containing pyproject.toml or .git."""
        current = Path(__file__).resolve()

        for parent in current.parents:
            if any((parent / marker).exists() for marker in ['pyproject.toml', '.git']):
                return parent

        for parent in current.parents:
            if (parent / '.env').exists():
                return parent

        return Path.cwd()

    def _load_environment_variables(self, env_file: Optional[Path]) -> None:
        """Load environment variables from appropriate source."""
        loaded_files = []

        if env_file:
            if env_file.exists():
                load_dotenv(env_file)
                loaded_files.append(str(env_file))
                logger.info(f"Loaded configuration from {env_file}")
            else:
                raise ConfigurationError(f"Specified env file not found: {env_file}")

        else:
            env_specific_file = self.project_root / f".env.{self.environment}"
            if env_specific_file.exists():
                load_dotenv(env_specific_file)
                loaded_files.append(str(env_specific_file))
                logger.info(f"Loaded environment-specific config: {env_specific_file}")

            generic_env_file = self.project_root / ".env"
            if generic_env_file.exists():
                load_dotenv(generic_env_file)
                loaded_files.append(str(generic_env_file))
                logger.info(f"Loaded generic config: {generic_env_file}")

        if not loaded_files:
            logger.debug("No .env files found, using system environment variables only")

        self._loaded_env_files = loaded_files

    def _load_paths_config(self, work_root: Optional[Path], destination: Optional[Path]) -> None:
        """Load working and destination directories."""
        work_root = work_root or os.getenv("MAPMAKER_WORK_ROOT") or self.project_root / "temp"
        destination = destination or os.getenv("MAPMAKER_DESTINATION") or self._default_destination()

        try:
            self.paths = PathsConfig(work_root=Path(work_root), destination=Path(destination))
        except ValueError as e:
            raise ConfigurationError(f"Invalid path configuration: {e}")

    def _default_destination(self) -> Path:
        home = os.getenv("HOME")
        if not home:
            raise ConfigurationError(
                "HOME is not set, so the default destination ($HOME/Desktop) is unknown.\n"
                "Set MAPMAKER_DESTINATION or pass --destination."
            )
        return Path(home) / "Desktop"

    def _load_tools_config(self) -> None:
        """Load external tool commands."""
        try:
            self.tools = ToolsConfig(
                mapcutter=os.getenv("MAPMAKER_MAPCUTTER", "mapcutter"),
                ogr2ogr=os.getenv("MAPMAKER_OGR2OGR", "ogr2ogr"),
                tippecanoe=os.getenv("MAPMAKER_TIPPECANOE", "tippecanoe"),
                mbutil=os.getenv("MAPMAKER_MBUTIL", "mb-util"),
                gzip=os.getenv("MAPMAKER_GZIP", "gzip")
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid tool configuration: {e}")

    def _load_download_config(self) -> None:
        """Load HTTP download configuration."""
        try:
            self.download = DownloadConfig(
                timeout_s=_int_env("MAPMAKER_DOWNLOAD_TIMEOUT", 300)
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid download configuration: {e}")

    def _load_temp_config(self) -> None:
        """Load working directory retention configuration."""
        try:
            self.temp = TempConfig(
                retention_hours=_int_env("MAPMAKER_RETENTION_HOURS", None)
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid temp management configuration: {e}")

    def get_summary(self) -> dict[str, Any]:
        """
        Get configuration summary for run logs.

        Returns:
            Dictionary of the effective settings
        """
        return {
            'environment': self.environment,
            'loaded_env_files': self._loaded_env_files,
            'work_root': str(self.paths.work_root),
            'destination': str(self.paths.destination),
            'download_timeout_s': self.download.timeout_s,
            'retention_hours': self.temp.retention_hours,
            'uploader': self.uploader,
        }

    def __repr__(self) -> str:
        return (
            f"Config(environment={self.environment}, "
            f"work_root={self.paths.work_root}, "
            f"destination={self.paths.destination})"
        )


def _int_env(key: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got '{raw}'")
