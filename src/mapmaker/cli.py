import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

# Load environment variables BEFORE importing local modules that use them
load_dotenv()

from . import __version__
from .config.settings import Config, ConfigurationError
from .config_loader import load_uploader
from .pipeline.orchestrator import Pipeline
from .utils import setup_logging

HELP_EPILOG = """
\b
1. URL: find the .shp.zip URL of your region at http://download.geofabrik.de.
   Select the smallest subregion that covers your area.
2. BOUNDS: find the bounding box at https://boundingbox.klokantech.com and
   copy the CSV RAW values into brackets: [westlimit,southlimit,eastlimit,northlimit]
3. NAME: a name for the map, preferably the English title.

\b
Example of a map for Montreal:
  mapmaker http://download.geofabrik.de/north-america/canada/quebec-latest-free.shp.zip [-73.986345,45.410246,-73.474260,45.705838] Montreal
"""

app = typer.Typer(
    help="Creates a vector map of the bounded area from the shapefiles at the given URL.",
    add_completion=False
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"mapmaker version: {__version__}")
        raise typer.Exit()


@app.command(epilog=HELP_EPILOG)
def make_map(
    ctx: typer.Context,
    url: Annotated[Optional[str], typer.Argument(help="URL of the region's zipped shapefile bundle")] = None,
    bounds: Annotated[Optional[str], typer.Argument(help="Bounding box as [west,south,east,north]")] = None,
    name: Annotated[Optional[str], typer.Argument(help="Name of the map and its archive")] = None,
    destination: Annotated[Optional[Path], typer.Option("--destination", "-d", help="Directory to save the archive to (default: ~/Desktop)")] = None,
    work_root: Annotated[Optional[Path], typer.Option("--work-root", help="Parent directory for working files")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable detailed logging output")] = False,
    log_to_file: Annotated[bool, typer.Option("--log-to-file", help="Create timestamped log files")] = False,
    skip_tool_check: Annotated[bool, typer.Option("--skip-tool-check", help="Do not check that external tools are installed")] = False,
    version: Annotated[Optional[bool], typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit")] = None,
):
    """
    Create a zoom 14-16 vector tile package clipped to BOUNDS from the
    shapefiles at URL, and save it as NAME.zip.
    """
    # No positional arguments: show help, like a bare invocation of any subcommand
    if url is None and bounds is None and name is None:
        typer.echo(ctx.get_help(), err=True)
        raise typer.Exit(2)

    setup_logging(verbose, name, log_to_file)

    try:
        config = Config(work_root=work_root, destination=destination)
        uploader = load_uploader(config.uploader)
    except ConfigurationError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(1)

    pipeline = Pipeline(config, uploader=uploader)
    report = pipeline.run(url, bounds, name, check_tools=not skip_tool_check)

    if not report.ok:
        failure = report.failure
        typer.echo(f"ERROR: {failure.message if failure else 'map creation failed'}", err=True)
        raise typer.Exit(1)

    logging.info("Done making map")
    typer.echo(f"Map saved to: {report.archive_path}")


if __name__ == "__main__":
    app()
