"""Tests for configuration, the Layer Set and the deployment hook loader."""

import sys
import types

import pytest

from mapmaker.config.settings import Config, ConfigurationError, ToolsConfig
from mapmaker.config_loader import load_layers, load_uploader


class TestConfig:
    def test_environment_overrides(self, fake_env, work_root, destination, monkeypatch):
        monkeypatch.setenv("MAPMAKER_DOWNLOAD_TIMEOUT", "30")
        monkeypatch.setenv("MAPMAKER_RETENTION_HOURS", "1")
        monkeypatch.setenv("MAPMAKER_UPLOADER", "mapmaker_hooks:s3")

        config = Config()

        assert config.paths.work_root == work_root
        assert config.paths.destination == destination
        assert config.download.timeout_s == 30
        assert config.temp.retention_hours == 1
        assert config.uploader == "mapmaker_hooks:s3"
        assert config.get_summary()["retention_hours"] == 1

    def test_arguments_beat_environment(self, fake_env, tmp_path):
        config = Config(work_root=tmp_path / "w", destination=tmp_path / "d")

        assert config.paths.work_root == tmp_path / "w"
        assert config.paths.destination == tmp_path / "d"

    def test_default_destination_is_desktop(self, monkeypatch, tmp_path):
        monkeypatch.delenv("MAPMAKER_DESTINATION", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))

        assert Config().paths.destination == tmp_path / "Desktop"

    def test_no_home_and_no_destination(self, monkeypatch):
        monkeypatch.delenv("MAPMAKER_DESTINATION", raising=False)
        monkeypatch.delenv("HOME", raising=False)

        with pytest.raises(ConfigurationError, match="HOME"):
            Config()

    @pytest.mark.parametrize("key, value", [
        ("MAPMAKER_RETENTION_HOURS", "-1"),
        ("MAPMAKER_RETENTION_HOURS", "soon"),
        ("MAPMAKER_DOWNLOAD_TIMEOUT", "0"),
        ("MAPMAKER_GZIP", "'unbalanced"),
    ])
    def test_invalid_values(self, fake_env, monkeypatch, key, value):
        monkeypatch.setenv(key, value)

        with pytest.raises(ConfigurationError):
            Config()

    def test_destination_must_be_directory(self, fake_env, tmp_path):
        not_a_dir = tmp_path / "file"
        not_a_dir.write_text("")

        with pytest.raises(ConfigurationError):
            Config(destination=not_a_dir)

    def test_missing_env_file(self, fake_env, tmp_path):
        with pytest.raises(ConfigurationError):
            Config(env_file=tmp_path / ".env.missing")


def test_tools_config_command_splits():
    assert ToolsConfig(mbutil="python -m mbutil").command("mbutil") == ["python", "-m", "mbutil"]


class TestLoadLayers:
    def test_default_layer_set(self):
        layers = load_layers()

        assert len(layers) == 8
        assert layers[0] == "gis_osm_roads_free_1"
        assert "gis_osm_buildings_a_free_1" in layers

    def test_custom_file(self, tmp_path):
        path = tmp_path / "layers.yml"
        path.write_text("layers:\n  - name: roads\n  - water\n")

        assert load_layers(path) == ("roads", "water")

    @pytest.mark.parametrize("content", [
        "layers: roads",
        "other: []",
        "layers:\n  - name: roads\n  - name: roads\n",
        "layers: [\n",
    ])
    def test_invalid_files(self, tmp_path, content):
        path = tmp_path / "layers.yml"
        path.write_text(content)

        with pytest.raises(ConfigurationError):
            load_layers(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_layers(tmp_path / "absent.yml")


class TestLoadUploader:
    @pytest.fixture
    def hooks_module(self, monkeypatch):
        module = types.ModuleType("mapmaker_test_hooks")

        def upload(name, min_zoom, max_zoom, bounds):
            return name

        class S3Uploader:
            def upload(self, name, min_zoom, max_zoom, bounds):
                return name

        module.upload = upload
        module.s3 = S3Uploader()
        module.not_a_hook = 42
        monkeypatch.setitem(sys.modules, "mapmaker_test_hooks", module)
        return module

    def test_none(self):
        assert load_uploader(None) is None
        assert load_uploader("") is None

    def test_module_with_upload_function(self, hooks_module):
        assert load_uploader("mapmaker_test_hooks") is hooks_module

    def test_module_attribute(self, hooks_module):
        assert load_uploader("mapmaker_test_hooks:s3") is hooks_module.s3

    @pytest.mark.parametrize("reference", [
        "mapmaker_test_hooks:absent",
        "mapmaker_test_hooks:not_a_hook",
        "no_such_module_for_mapmaker",
    ])
    def test_invalid_references(self, hooks_module, reference):
        with pytest.raises(ConfigurationError):
            load_uploader(reference)


def test_purge_is_off_by_default(fake_env):
    assert Config().temp.retention_hours is None
