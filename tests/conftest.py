"""
Shared fixtures for the mapmaker test suite.

External tools are replaced by the Python scripts in tests/fake_tools, run
through the current interpreter, and the bundle download is served from an
in-memory zip by patching requests.get.
"""

import io
import logging
import shlex
import sys
import zipfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from mapmaker.config.settings import Config
from mapmaker.config_loader import load_layers

FAKE_TOOLS_DIR = Path(__file__).parent / "fake_tools"

MONTREAL_URL = "http://download.geofabrik.de/north-america/canada/quebec-latest-free.shp.zip"
MONTREAL_BOUNDS = "[-73.986345,45.410246,-73.474260,45.705838]"

FAKE_TOOL_ENV = {
    "MAPMAKER_MAPCUTTER": "mapcutter.py",
    "MAPMAKER_OGR2OGR": "ogr2ogr.py",
    "MAPMAKER_TIPPECANOE": "tippecanoe.py",
    "MAPMAKER_MBUTIL": "mb_util.py",
    "MAPMAKER_GZIP": "gzip_d.py",
}


def fake_tool_command(script: str) -> str:
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(FAKE_TOOLS_DIR / script))}"


@pytest.fixture
def work_root(tmp_path) -> Path:
    return tmp_path / "work"


@pytest.fixture
def destination(tmp_path) -> Path:
    return tmp_path / "Desktop"


@pytest.fixture
def fake_env(monkeypatch, work_root, destination):
    """Point every tool at its fake and every directory under tmp_path."""
    for key, script in FAKE_TOOL_ENV.items():
        monkeypatch.setenv(key, fake_tool_command(script))
    monkeypatch.setenv("MAPMAKER_WORK_ROOT", str(work_root))
    monkeypatch.setenv("MAPMAKER_DESTINATION", str(destination))
    monkeypatch.delenv("MAPMAKER_UPLOADER", raising=False)
    monkeypatch.delenv("MAPMAKER_RETENTION_HOURS", raising=False)
    monkeypatch.delenv("MAPMAKER_DOWNLOAD_TIMEOUT", raising=False)
    monkeypatch.delenv("FAKE_OGR2OGR_FAIL", raising=False)


@pytest.fixture
def config(fake_env) -> Config:
    return Config()


@pytest.fixture
def layers() -> tuple[str, ...]:
    return load_layers()


def make_bundle(layer_names) -> bytes:
    """Zip holding one (empty) shapefile plus sidecar per layer."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for layer in layer_names:
            archive.writestr(f"{layer}.shp", b"shp")
            archive.writestr(f"{layer}.dbf", b"dbf")
        archive.writestr("README", "OpenStreetMap data (c) OpenStreetMap contributors")
    return buffer.getvalue()


@pytest.fixture
def bundle_bytes(layers) -> bytes:
    return make_bundle(layers)


def mock_response(content: bytes, status_error: Exception = None) -> MagicMock:
    response = MagicMock()
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    response.iter_content.side_effect = lambda chunk_size=8192: (
        content[i:i + chunk_size] for i in range(0, len(content), chunk_size)
    )
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    return response


@pytest.fixture
def mock_download(bundle_bytes):
    """Serve the bundle for any URL requested by the downloader."""
    with patch("mapmaker.tools.requests.get", return_value=mock_response(bundle_bytes)) as mocked:
        yield mocked


@pytest.fixture(autouse=True)
def restore_root_logging():
    """The CLI reconfigures the root logger; put the original handlers back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
