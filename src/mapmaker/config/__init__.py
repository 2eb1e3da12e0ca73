"""
Configuration module for the mapmaker pipeline.
"""

from .settings import (
    Config,
    ConfigurationError,
    DownloadConfig,
    PathsConfig,
    TempConfig,
    ToolsConfig,
)

__all__ = [
    'Config',
    'ConfigurationError',
    'PathsConfig',
    'ToolsConfig',
    'DownloadConfig',
    'TempConfig'
]
