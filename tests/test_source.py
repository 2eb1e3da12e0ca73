"""Tests for region bundle extraction."""

import pytest

from conftest import make_bundle
from mapmaker.pipeline.source import extract_bundle
from mapmaker.types import ArtifactMissingError, FilesystemError, ToolInvocationError


@pytest.fixture
def bundle(tmp_path):
    path = tmp_path / "region.shp.zip"
    path.write_bytes(make_bundle(["gis_osm_roads_free_1"]))
    return path


def test_extracts_every_member(bundle, tmp_path):
    target = tmp_path / "work"
    target.mkdir()

    extracted = extract_bundle(bundle, target)

    assert sorted(path.name for path in extracted) == [
        "README", "gis_osm_roads_free_1.dbf", "gis_osm_roads_free_1.shp"
    ]
    assert (target / "gis_osm_roads_free_1.shp").is_file()


def test_missing_bundle(tmp_path):
    with pytest.raises(ArtifactMissingError):
        extract_bundle(tmp_path / "absent.zip", tmp_path)


def test_corrupt_bundle(tmp_path):
    corrupt = tmp_path / "region.shp.zip"
    corrupt.write_bytes(b"<html>not found</html>")

    with pytest.raises(ToolInvocationError) as exc_info:
        extract_bundle(corrupt, tmp_path)
    assert exc_info.value.tool == "unzip"


def test_unwritable_target(bundle, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(FilesystemError, match="Could not extract"):
        extract_bundle(bundle, blocker / "work")
