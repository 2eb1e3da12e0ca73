"""
External tool adapters.

Every piece of geodata work is delegated to an external engine. The adapters
here only start the process with an argument list (never a shell string),
relay its output to the log and report the exit status. Tool output is not
parsed.

Tools:
- mapcutter: clips the region shapefiles to a bounding box
- ogr2ogr: converts a shapefile to GeoJSON
- tippecanoe: builds an MBTiles database from GeoJSON layers
- mb-util: explodes an MBTiles database into a z/x/y tile tree
- gzip: decompresses the exploded tiles
The region bundle itself is fetched over HTTP with requests.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests

from .config.settings import Config, DownloadConfig, ToolsConfig
from .types import ToolInvocationError, ToolResult

logger = logging.getLogger(__name__)

# asyncio's default 64 KiB line limit is too small for tools that report
# progress with carriage returns on a single line
STREAM_LIMIT = 1024 * 1024


class ExternalTool:
    """
    Adapter for one external command-line tool.

    Args:
        name: Display name used in logs and errors
        command: argv prefix (executable plus any fixed arguments)
    """

    def __init__(self, name: str, command: Sequence[str]):
        if not command:
            raise ValueError(f"Command for {name} cannot be empty")
        self.name = name
        self.command = tuple(str(part) for part in command)

    @property
    def executable(self) -> str:
        return self.command[0]

    def is_available(self) -> bool:
        """Check whether the executable can be found."""
        return shutil.which(self.executable) is not None

    async def invoke(self, args: Sequence[str | Path], cwd: Path) -> ToolResult:
        """
        Run the tool to completion and collect both output channels.

        Args:
            args: Arguments appended to the command prefix
            cwd: Working directory for the process

        Returns:
            ToolResult with exit status and captured output lines

        Raises:
            ToolInvocationError: If the process cannot be started
        """
        argv = [*self.command, *(str(arg) for arg in args)]
        logger.debug(f"Running {self.name} in {cwd}: {argv}")
        start_time = time.time()

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LIMIT
            )
        except FileNotFoundError as e:
            raise ToolInvocationError(self.name, f"executable not found: {self.executable}") from e
        except OSError as e:
            raise ToolInvocationError(self.name, f"could not be started: {e}") from e

        stdout, stderr = await asyncio.gather(
            self._drain(process.stdout, logging.DEBUG),
            self._drain(process.stderr, logging.WARNING)
        )
        exit_status = await process.wait()

        result = ToolResult(
            tool=self.name,
            args=tuple(argv[len(self.command):]),
            exit_status=exit_status,
            stdout=stdout,
            stderr=stderr,
            duration_s=time.time() - start_time
        )
        logger.debug(f"{self.name} exited with status {exit_status} after {result.duration_s:.2f}s")
        return result

    async def run(self, args: Sequence[str | Path], cwd: Path) -> ToolResult:
        """Invoke the tool and raise ToolInvocationError on a non-zero exit."""
        result = await self.invoke(args, cwd)
        if not result.ok:
            raise ToolInvocationError(
                self.name,
                f"exited with status {result.exit_status}",
                exit_status=result.exit_status,
                stderr=result.stderr
            )
        return result

    async def _drain(self, stream: Optional[asyncio.StreamReader], level: int) -> tuple[str, ...]:
        lines: list[str] = []
        if stream is None:
            return ()
        async for raw in stream:
            line = raw.decode(errors="replace").rstrip()
            if line:
                lines.append(line)
                logger.log(level, f"[{self.name}] {line}")
        return tuple(lines)

    def __repr__(self) -> str:
        return f"ExternalTool(name={self.name!r}, command={list(self.command)!r})"


class HttpDownloader:
    """Streams a remote file to disk with requests."""

    name = "download"

    def __init__(self, timeout_s: int = 300, chunk_size: int = 8192):
        self.timeout_s = timeout_s
        self.chunk_size = chunk_size

    @classmethod
    def from_config(cls, download_config: DownloadConfig) -> HttpDownloader:
        return cls(timeout_s=download_config.timeout_s, chunk_size=download_config.chunk_size)

    async def fetch(self, url: str, destination: Path) -> Path:
        """Download url to destination without blocking the event loop."""
        return await asyncio.to_thread(self._fetch, url, destination)

    def _fetch(self, url: str, destination: Path) -> Path:
        logger.info(f"Downloading from url {url}")
        try:
            with requests.get(url, stream=True, timeout=self.timeout_s) as response:
                response.raise_for_status()

                written = 0
                with open(destination, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            f.write(chunk)
                            written += len(chunk)
        except requests.RequestException as e:
            raise ToolInvocationError(self.name, f"failed to fetch {url}: {e}") from e
        except OSError as e:
            raise ToolInvocationError(self.name, f"could not write {destination}: {e}") from e

        logger.info(f"Downloaded {written / (1024 ** 2):.1f} MB to {destination}")
        return destination


@dataclass(frozen=True)
class Toolchain:
    """The set of external collaborators a pipeline run delegates to."""
    downloader: HttpDownloader
    mapcutter: ExternalTool
    ogr2ogr: ExternalTool
    tippecanoe: ExternalTool
    mbutil: ExternalTool
    gzip: ExternalTool

    @classmethod
    def from_config(cls, config: Config) -> Toolchain:
        tools: ToolsConfig = config.tools
        return cls(
            downloader=HttpDownloader.from_config(config.download),
            mapcutter=ExternalTool("mapcutter", tools.command("mapcutter")),
            ogr2ogr=ExternalTool("ogr2ogr", tools.command("ogr2ogr")),
            tippecanoe=ExternalTool("tippecanoe", tools.command("tippecanoe")),
            mbutil=ExternalTool("mb-util", tools.command("mbutil")),
            gzip=ExternalTool("gzip", tools.command("gzip"))
        )

    def command_line_tools(self) -> tuple[ExternalTool, ...]:
        return (self.mapcutter, self.ogr2ogr, self.tippecanoe, self.mbutil, self.gzip)

    def missing_tools(self) -> list[str]:
        """Names of tools whose executable is not on PATH."""
        return [tool.name for tool in self.command_line_tools() if not tool.is_available()]
