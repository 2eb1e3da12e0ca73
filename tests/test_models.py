"""Tests for the job context, bounds parsing and map descriptor."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from mapmaker.domain.models import (
    Descriptor,
    JobContext,
    bundle_filename,
    format_bounds,
    parse_bounds,
)

URL = "http://download.geofabrik.de/north-america/canada/quebec-latest-free.shp.zip"


class TestParseBounds:
    def test_bracketed_string(self):
        assert parse_bounds("[-73.986345,45.410246,-73.474260,45.705838]") == (
            -73.986345, 45.410246, -73.47426, 45.705838
        )

    def test_whitespace_and_no_brackets(self):
        assert parse_bounds(" 1, 2 ,3,4 ") == (1.0, 2.0, 3.0, 4.0)

    def test_sequence(self):
        assert parse_bounds([1, 2, 3, 4]) == (1.0, 2.0, 3.0, 4.0)

    @pytest.mark.parametrize("value", ["[1,2,3]", "[1,2,3,4,5]", "[a,b,c,d]", ""])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            parse_bounds(value)

    def test_format_round_trips_clip_argument(self):
        assert format_bounds((-73.986345, 45.410246, -73.47426, 45.705838)) == \
            "[-73.986345,45.410246,-73.47426,45.705838]"


class TestJobContext:
    def test_derived_paths(self, tmp_path):
        ctx = JobContext(name="Montreal", url=URL, bounds="[-74,45,-73,46]", work_root=tmp_path)

        assert ctx.working_dir == tmp_path / "Montreal"
        assert ctx.bundle_path == tmp_path / "Montreal" / "quebec-latest-free.shp.zip"
        assert ctx.clipped_dir == tmp_path / "Montreal" / "clipped"
        assert ctx.mbtiles_path == tmp_path / "Montreal" / "Montreal.mbtiles"
        assert ctx.tiles_dir == tmp_path / "Montreal" / "Montreal"
        assert ctx.archive_path == tmp_path / "Montreal" / "Montreal.zip"

    def test_is_frozen(self, tmp_path):
        ctx = JobContext(name="Montreal", url=URL, bounds=[-74, 45, -73, 46], work_root=tmp_path)
        with pytest.raises(ValidationError):
            ctx.name = "Quebec"

    @pytest.mark.parametrize("name", ["", "  ", "../escape", "a/b", ".hidden", "-flag", "bad:name"])
    def test_rejects_unsafe_names(self, tmp_path, name):
        with pytest.raises(ValidationError):
            JobContext(name=name, url=URL, bounds=[-74, 45, -73, 46], work_root=tmp_path)

    @pytest.mark.parametrize("url", ["ftp://example.com/a.zip", "example.com/a.zip", "http://example.com/"])
    def test_rejects_bad_urls(self, tmp_path, url):
        with pytest.raises(ValidationError):
            JobContext(name="Montreal", url=url, bounds=[-74, 45, -73, 46], work_root=tmp_path)

    @pytest.mark.parametrize("bounds", [
        "[-73,45,-74,46]",     # west > east
        "[-74,46,-73,45]",     # south > north
        "[-200,45,-73,46]",
        "[-74,45,-73]",
    ])
    def test_rejects_bad_bounds(self, tmp_path, bounds):
        with pytest.raises(ValidationError):
            JobContext(name="Montreal", url=URL, bounds=bounds, work_root=tmp_path)


class TestDescriptor:
    def test_montreal_json(self):
        descriptor = Descriptor.for_map("Montreal", (-73.986345, 45.410246, -73.474260, 45.705838))

        assert descriptor.to_json() == (
            '{"maptiles_url":"Montreal.zip","min_zoom":14,"max_zoom":16,'
            '"bounds":[-73.986345,45.410246,-73.47426,45.705838]}'
        )

    def test_key_order(self):
        payload = json.loads(Descriptor.for_map("X", (0, 0, 1, 1)).to_json())
        assert list(payload) == ["maptiles_url", "min_zoom", "max_zoom", "bounds"]


def test_bundle_filename_ignores_query():
    assert bundle_filename("https://example.com/data/region.shp.zip?token=1") == "region.shp.zip"
    assert Path(bundle_filename(URL)).name == "quebec-latest-free.shp.zip"
