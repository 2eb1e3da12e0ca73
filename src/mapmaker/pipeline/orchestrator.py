"""
Pipeline orchestrator.

Validates the run arguments, resets the job's working directory and runs the
stage functions strictly in order on a single asyncio event loop. The first
failing stage ends the run; its working directory is then left in place for
inspection. A successful run removes it.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..cleanup import cleanup_stale_working_dirs, reset_working_dir
from ..config.settings import Config
from ..config_loader import load_layers
from ..domain.enums import ErrorKind, StageName
from ..domain.models import JobContext, format_bounds
from ..tools import Toolchain
from ..types import FilesystemError, InputError, PipelineError, RunReport, StageResult
from ..utils import format_duration, log_phase
from .publish import Finalizer, Uploader
from .stages import PIPELINE_STAGES, StageEnvironment, StageFunction

logger = logging.getLogger(__name__)


def build_context(url: Any, bounds: Any, name: Any, work_root: Path) -> JobContext:
    """
    Validate run arguments and create the job context.

    Raises:
        InputError: If url, bounds or name are missing or malformed
    """
    if url is None or (isinstance(url, str) and not url.strip()):
        raise InputError("URL is undefined")
    if bounds is None:
        raise InputError("Bounds are undefined")
    if name is None:
        raise InputError("Name is undefined")

    try:
        return JobContext(name=name, url=url, bounds=bounds, work_root=work_root)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise InputError(f"Invalid input - {problems}") from e


class Pipeline:
    """
    Runs the map-making stages for one job at a time.

    Args:
        config: Effective configuration
        toolchain: External tool adapters (built from config if omitted)
        uploader: Optional deployment hook called after cleanup
        layers: Layer Set override (loaded from data/layers.yml if omitted)
        stages: Stage sequence override
    """

    def __init__(self,
                 config: Config,
                 toolchain: Optional[Toolchain] = None,
                 uploader: Optional[Uploader] = None,
                 layers: Optional[Sequence[str]] = None,
                 stages: Sequence[tuple[StageName, StageFunction]] = PIPELINE_STAGES):
        self.config = config
        self.toolchain = toolchain or Toolchain.from_config(config)
        self.layers = tuple(layers) if layers is not None else load_layers()
        self.finalizer = Finalizer(config.paths.destination, uploader)
        self.stages = tuple(stages)

    @property
    def work_root(self) -> Path:
        return self.config.paths.work_root

    def run(self, url: Any, bounds: Any, name: Any, check_tools: bool = False) -> RunReport:
        """
        Make a map from the bundle at url, clipped to bounds, saved as name.

        Input errors and missing tools are reported before anything is
        written to disk.

        Args:
            url: URL of the zipped shapefile bundle
            bounds: "[west,south,east,north]" or a 4-sequence of numbers
            name: Map name
            check_tools: Verify every external tool is on PATH first

        Returns:
            RunReport describing every stage that ran
        """
        start_time = time.time()
        try:
            ctx = build_context(url, bounds, name, self.work_root)
        except InputError as e:
            logger.error(f"Error: {e}")
            return RunReport(
                name=str(name),
                stages=(StageResult.failure("input", ErrorKind.INPUT, str(e)),),
                duration_s=time.time() - start_time
            )

        if check_tools:
            missing = self.toolchain.missing_tools()
            if missing:
                message = f"Required tools not found on PATH: {', '.join(missing)}"
                logger.error(message)
                return RunReport(
                    name=ctx.name,
                    stages=(StageResult.failure("preflight", ErrorKind.TOOL, message),),
                    duration_s=time.time() - start_time
                )

        return asyncio.run(self.execute(ctx))

    async def execute(self, ctx: JobContext) -> RunReport:
        """Reset the working directory and run every stage in order."""
        start_time = time.time()
        logger.info(f"Making map '{ctx.name}' for bounds {format_bounds(ctx.bounds)}")
        logger.info(f"Execution timestamp: {datetime.now()}")
        logger.info(f"Source bundle: {ctx.url}")
        logger.debug(f"Configuration: {self.config.get_summary()}")

        retention_hours = self.config.temp.retention_hours
        if retention_hours is not None:
            cleanup_stale_working_dirs(self.work_root, retention_hours, keep=ctx.working_dir)
        try:
            reset_working_dir(ctx.working_dir)
        except FilesystemError as e:
            logger.error(f"Error: {e}")
            return RunReport(
                name=ctx.name,
                stages=(StageResult.failure("prepare", e.kind, str(e)),),
                duration_s=time.time() - start_time
            )

        env = StageEnvironment(tools=self.toolchain, layers=self.layers, finalizer=self.finalizer)
        results: list[StageResult] = []
        previous = StageResult.success("prepare", ctx.working_dir)

        for stage_name, stage_fn in self.stages:
            result = await _run_stage(stage_name, stage_fn, ctx, previous, env)
            results.append(result)
            if not result.ok:
                break
            previous = result

        report = RunReport(
            name=ctx.name,
            stages=tuple(results),
            archive_path=_delivered_archive(results),
            duration_s=time.time() - start_time
        )
        _log_summary(ctx, report)
        return report


async def _run_stage(
    stage_name: StageName,
    stage_fn: StageFunction,
    ctx: JobContext,
    previous: StageResult,
    env: StageEnvironment
) -> StageResult:
    label = stage_name.value if isinstance(stage_name, StageName) else str(stage_name)
    log_phase(f"{label.upper().replace('-', ' ')} STAGE")

    start_time = time.time()
    try:
        result = await stage_fn(ctx, previous, env)
    except PipelineError as e:
        logger.error(f"Stage {label} failed ({e.kind.value} error): {e}")
        return StageResult.failure(stage_name, e.kind, str(e), duration_s=time.time() - start_time)
    except OSError as e:
        logger.error(f"Stage {label} failed (filesystem error): {e}")
        return StageResult.failure(stage_name, ErrorKind.FILESYSTEM, str(e), duration_s=time.time() - start_time)

    duration = time.time() - start_time
    logger.info(f"Stage {label} completed in {format_duration(duration)}")
    return dataclasses.replace(result, duration_s=duration)


def _delivered_archive(results: Sequence[StageResult]) -> Optional[Path]:
    for result in results:
        if result.stage == StageName.RELOCATE.value and result.ok:
            return result.artifact
    return None


def _log_summary(ctx: JobContext, report: RunReport) -> None:
    failure = report.failure
    if failure is None:
        log_phase(f"MAP {ctx.name} COMPLETED SUCCESSFULLY")
        logger.info(f"Total execution time: {format_duration(report.duration_s)}")
        logger.info(f"Archive: {report.archive_path}")
        return

    log_phase(f"MAP {ctx.name} FAILED", level=logging.ERROR)
    logger.error(f"Failed stage: {failure.stage}")
    logger.error(f"Error kind: {failure.error_kind.value if failure.error_kind else 'unknown'}")
    logger.error(f"Error message: {failure.message}")
    logger.error(f"Completed stages: {', '.join(report.completed_stages) or 'none'}")
    if ctx.working_dir.exists():
        logger.error(f"Working directory kept for inspection: {ctx.working_dir}")


def run(url: Any, bounds: Any, name: Any, config: Optional[Config] = None,
        uploader: Optional[Uploader] = None, check_tools: bool = False) -> RunReport:
    """Run the pipeline once with default collaborators."""
    pipeline = Pipeline(config or Config(), uploader=uploader)
    return pipeline.run(url, bounds, name, check_tools=check_tools)
