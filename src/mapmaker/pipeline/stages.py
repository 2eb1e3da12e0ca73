"""
Stage functions, in pipeline order.

Every stage takes the job context, the previous stage's result and the run
environment, and returns a StageResult whose artifacts feed the next stage.
Stages signal failure by raising a PipelineError; the orchestrator turns it
into a failed StageResult.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..domain.enums import StageName
from ..domain.models import JobContext
from ..tools import Toolchain
from ..types import StageResult
from .export import add_suffix as suffix_tiles
from .export import package, package_tiles as explode_tiles
from .publish import Finalizer
from .source import clip_region, fetch_bundle
from .transform import build_tiles as build_tile_database
from .transform import convert_layers as convert_layer_files


@dataclass(frozen=True)
class StageEnvironment:
    """Collaborators shared by all stages of a run."""
    tools: Toolchain
    layers: tuple[str, ...]
    finalizer: Finalizer


StageFunction = Callable[[JobContext, StageResult, StageEnvironment], Awaitable[StageResult]]


async def fetch(ctx: JobContext, previous: StageResult, env: StageEnvironment) -> StageResult:
    bundle_dir = await fetch_bundle(ctx, env.tools.downloader)
    return StageResult.success(StageName.FETCH, bundle_dir)


async def clip(ctx: JobContext, previous: StageResult, env: StageEnvironment) -> StageResult:
    clipped_dir = await clip_region(ctx, env.tools.mapcutter, env.layers)
    return StageResult.success(StageName.CLIP, clipped_dir)


async def convert_layers(ctx: JobContext, previous: StageResult, env: StageEnvironment) -> StageResult:
    layer_files = await convert_layer_files(previous.artifact, env.tools.ogr2ogr, env.layers)
    return StageResult.success(StageName.CONVERT_LAYERS, *layer_files)


async def build_tiles(ctx: JobContext, previous: StageResult, env: StageEnvironment) -> StageResult:
    mbtiles = await build_tile_database(ctx, env.tools.tippecanoe, previous.artifacts)
    return StageResult.success(StageName.BUILD_TILES, mbtiles)


async def package_tiles(ctx: JobContext, previous: StageResult, env: StageEnvironment) -> StageResult:
    tiles_dir = await explode_tiles(ctx, previous.artifact, env.tools.mbutil, env.tools.gzip)
    return StageResult.success(StageName.PACKAGE_TILES, tiles_dir)


async def add_suffix(ctx: JobContext, previous: StageResult, env: StageEnvironment) -> StageResult:
    tiles_dir = await suffix_tiles(previous.artifact)
    return StageResult.success(StageName.ADD_SUFFIX, tiles_dir)


async def archive(ctx: JobContext, previous: StageResult, env: StageEnvironment) -> StageResult:
    archive_path = package(ctx.working_dir, ctx.name, ctx.bounds)
    return StageResult.success(StageName.ARCHIVE, archive_path)


async def relocate(ctx: JobContext, previous: StageResult, env: StageEnvironment) -> StageResult:
    delivered = env.finalizer.relocate(previous.artifact)
    return StageResult.success(StageName.RELOCATE, delivered)


async def cleanup(ctx: JobContext, previous: StageResult, env: StageEnvironment) -> StageResult:
    env.finalizer.cleanup(ctx.working_dir)
    return StageResult.success(StageName.CLEANUP, *previous.artifacts)


async def notify(ctx: JobContext, previous: StageResult, env: StageEnvironment) -> StageResult:
    env.finalizer.notify(ctx.name, ctx.bounds)
    return StageResult.success(StageName.NOTIFY, *previous.artifacts)


PIPELINE_STAGES: tuple[tuple[StageName, StageFunction], ...] = (
    (StageName.FETCH, fetch),
    (StageName.CLIP, clip),
    (StageName.CONVERT_LAYERS, convert_layers),
    (StageName.BUILD_TILES, build_tiles),
    (StageName.PACKAGE_TILES, package_tiles),
    (StageName.ADD_SUFFIX, add_suffix),
    (StageName.ARCHIVE, archive),
    (StageName.RELOCATE, relocate),
    (StageName.CLEANUP, cleanup),
    (StageName.NOTIFY, notify),
)
