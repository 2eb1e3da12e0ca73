"""
Domain Models and Types

This module contains the core domain models and enumerations used throughout the pipeline.

Models:
- JobContext: Immutable state of one run (name, source URL, bounds, working directory)
- Descriptor: Persisted map descriptor written into the final package

Enums:
- StageName: Pipeline stages in execution order
- ErrorKind: Failure categories (input, tool, filesystem)
"""

from .enums import ErrorKind, StageName
from .models import MAX_ZOOM, MIN_ZOOM, Descriptor, JobContext, format_bounds, parse_bounds

__all__ = [
    "JobContext", "Descriptor", "StageName", "ErrorKind",
    "MIN_ZOOM", "MAX_ZOOM", "parse_bounds", "format_bounds"
]
