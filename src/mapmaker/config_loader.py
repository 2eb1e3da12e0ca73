"""
Configuration loading for static pipeline data.

This module loads:
- data/layers.yml (the Layer Set every region bundle must provide)
- the optional deployment hook named by MAPMAKER_UPLOADER
"""

import importlib
from pathlib import Path
from typing import Any, Optional

import yaml

from .config.settings import ConfigurationError

DEFAULT_LAYERS_FILE = Path(__file__).parent / "data" / "layers.yml"


def load_layers(layers_path: Optional[Path] = None) -> tuple[str, ...]:
    """
    Load the ordered Layer Set.

    Args:
        layers_path: Path to a layers YAML file (defaults to data/layers.yml)

    Returns:
        Tuple of layer names in processing order

    Raises:
        FileNotFoundError: If the layers file does not exist
        ConfigurationError: If the file is malformed or names are duplicated
    """
    layers_path = Path(layers_path) if layers_path else DEFAULT_LAYERS_FILE

    if not layers_path.exists():
        raise FileNotFoundError(f"Layers file not found: {layers_path}")

    try:
        with open(layers_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {layers_path}: {e}") from e

    entries = data.get('layers') if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ConfigurationError(f"'layers' list is required in {layers_path}")

    names = []
    for entry in entries:
        name = entry.get('name') if isinstance(entry, dict) else entry
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError(f"Layer entry without a name in {layers_path}: {entry!r}")
        if name in names:
            raise ConfigurationError(f"Duplicate layer '{name}' in {layers_path}")
        names.append(name)

    return tuple(names)


def load_uploader(reference: Optional[str]) -> Optional[Any]:
    """
    Resolve the deployment hook from a "module" or "module:attribute" reference.

    The resolved object must expose ``upload(name, min_zoom, max_zoom, bounds)``.
    A module exposing a top-level ``upload`` function qualifies as-is.

    Returns:
        The hook object, or None when no reference is configured
    """
    if not reference:
        return None

    module_name, _, attribute = reference.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import uploader module '{module_name}': {e}") from e

    hook = getattr(module, attribute, None) if attribute else module
    if hook is None:
        raise ConfigurationError(f"Module '{module_name}' has no attribute '{attribute}'")
    if not callable(getattr(hook, "upload", None)):
        raise ConfigurationError(f"Uploader '{reference}' does not provide an upload() callable")

    return hook
