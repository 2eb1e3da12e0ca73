"""
Type definitions for the mapmaker pipeline.

This module provides the result objects passed between pipeline stages and
the exception hierarchy raised by stages, tool adapters and the finalizer.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .domain.enums import ErrorKind, StageName


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one external tool invocation."""
    tool: str
    args: tuple[str, ...]
    exit_status: int
    stdout: tuple[str, ...] = ()
    stderr: tuple[str, ...] = ()
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


@dataclass(frozen=True)
class StageResult:
    """Result of a single pipeline stage.

    A successful result carries the artifact path(s) consumed by the next
    stage; a failed one carries the error kind and a diagnostic message.
    """
    stage: str
    ok: bool
    artifacts: tuple[Path, ...] = ()
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    duration_s: float = 0.0

    @classmethod
    def success(cls, stage: StageName | str, *artifacts: Path, duration_s: float = 0.0) -> StageResult:
        return cls(stage=_stage_label(stage), ok=True, artifacts=tuple(artifacts), duration_s=duration_s)

    @classmethod
    def failure(
        cls,
        stage: StageName | str,
        error_kind: ErrorKind,
        message: str,
        duration_s: float = 0.0
    ) -> StageResult:
        return cls(
            stage=_stage_label(stage),
            ok=False,
            error_kind=error_kind,
            message=message,
            duration_s=duration_s
        )

    @property
    def artifact(self) -> Path:
        """The primary artifact of a successful stage."""
        if not self.artifacts:
            raise ValueError(f"Stage '{self.stage}' produced no artifact")
        return self.artifacts[0]


@dataclass(frozen=True)
class RunReport:
    """Summary of one pipeline run.

    Stage results are recorded in execution order and stop at the first
    failure.
    """
    name: str
    stages: tuple[StageResult, ...] = ()
    archive_path: Optional[Path] = None
    duration_s: float = 0.0

    @property
    def failure(self) -> Optional[StageResult]:
        return next((stage for stage in self.stages if not stage.ok), None)

    @property
    def ok(self) -> bool:
        return bool(self.stages) and self.failure is None

    @property
    def completed_stages(self) -> list[str]:
        return [stage.stage for stage in self.stages if stage.ok]


def _stage_label(stage: StageName | str) -> str:
    return stage.value if isinstance(stage, StageName) else str(stage)


# Pipeline exception hierarchy
class PipelineError(Exception):
    """Base exception for pipeline stages."""
    kind: ErrorKind = ErrorKind.TOOL


class InputError(PipelineError):
    """Run arguments are missing or malformed."""
    kind = ErrorKind.INPUT


class ToolInvocationError(PipelineError):
    """An external tool could not be started or exited unsuccessfully."""
    kind = ErrorKind.TOOL

    def __init__(self, tool: str, message: str, exit_status: Optional[int] = None,
                 stderr: tuple[str, ...] = ()):
        self.tool = tool
        self.exit_status = exit_status
        self.stderr = stderr
        detail = f"{tool}: {message}"
        if stderr:
            detail += f" (last output: {stderr[-1]})"
        super().__init__(detail)


class FilesystemError(PipelineError):
    """A filesystem operation on pipeline artifacts failed."""
    kind = ErrorKind.FILESYSTEM


class ArtifactMissingError(FilesystemError):
    """An artifact expected from a previous step does not exist."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{message}: {path}")


class FanOutError(PipelineError):
    """One or more fan-out tasks of a stage failed."""

    def __init__(self, description: str, failed: int, total: int, first_error: Exception):
        self.failed = failed
        self.total = total
        self.first_error = first_error
        if isinstance(first_error, PipelineError):
            self.kind = first_error.kind
        super().__init__(f"{description}: {failed} of {total} tasks failed; first failure: {first_error}")


class DeploymentError(PipelineError):
    """The deployment collaborator raised while publishing the map."""
    kind = ErrorKind.TOOL
