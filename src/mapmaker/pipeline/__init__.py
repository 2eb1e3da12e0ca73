"""
mapmaker Pipeline Components

Stages run in a fixed order: fetch -> clip -> convert-layers -> build-tiles ->
package-tiles -> add-suffix -> archive -> relocate -> cleanup -> notify.

Components:
- source: bundle download, extraction and clipping
- transform: per-layer GeoJSON conversion and tile building
- export: tile tree packaging and the archive Packager
- publish: Finalizer (relocation, cleanup, deployment hook)
- fanout: wait group and join for concurrent per-layer / per-file tasks
- orchestrator: Pipeline and run()
"""

from .fanout import FanOutTask, JoinOutcome, WaitGroup, join_all
from .orchestrator import Pipeline, build_context, run
from .publish import Finalizer
from .stages import PIPELINE_STAGES, StageEnvironment

__all__ = [
    "Pipeline", "run", "build_context", "Finalizer",
    "PIPELINE_STAGES", "StageEnvironment",
    "WaitGroup", "FanOutTask", "JoinOutcome", "join_all"
]
