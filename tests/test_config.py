"""
Tests for web map configuration.
"""

import json
from pathlib import Path

import pytest

from webmap.assets import TEMPLATE_DIR
from webmap.config import (
    DEFAULT_BIND_PREFIX,
    WebMapConfig,
    config_from_dict,
    get_or_create_subdirectory,
    load_config,
)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "webmap.json"
    path.write_text(json.dumps({
        "WebMapPath": "live",
        "WebServerUrlPrefix": "http://+:9090/",
        "MapApiDataPath": "api",
        "OverwriteAssets": True,
    }), encoding="utf-8")
    return path


class TestDefaults:
    def test_defaults(self):
        cfg = WebMapConfig()
        assert cfg.bind_prefix == DEFAULT_BIND_PREFIX
        assert cfg.map_api_data_path == "data"
        assert cfg.asset_dir == TEMPLATE_DIR
        assert not cfg.overwrite_assets
        assert not cfg.concurrent

    def test_overrides_skip_none(self):
        cfg = WebMapConfig().with_overrides(bind_prefix="http://+:1/", web_root=None)
        assert cfg.bind_prefix == "http://+:1/"
        assert cfg.web_root == WebMapConfig().web_root


class TestLoadConfig:
    def test_keys_mapped(self, config_file, tmp_path):
        cfg = load_config(config_file)
        assert cfg.web_root == tmp_path.resolve() / "live"
        assert cfg.bind_prefix == "http://+:9090/"
        assert cfg.map_api_data_path == "api"
        assert cfg.overwrite_assets is True

    def test_absolute_path_kept(self, tmp_path):
        cfg = config_from_dict({"web_root": "/srv/map"}, base_dir=tmp_path)
        assert cfg.web_root == Path("/srv/map")

    def test_field_names_accepted(self):
        cfg = config_from_dict({"concurrent": True, "poll_interval": 0.25})
        assert cfg.concurrent is True
        assert cfg.poll_interval == 0.25

    def test_request_timeout(self):
        assert config_from_dict({"RequestTimeout": 3}).request_timeout == 3.0

    def test_unknown_key_warns(self, caplog):
        with caplog.at_level("WARNING", logger="webmap.config"):
            cfg = config_from_dict({"TileZoomLevels": 5})
        assert cfg == WebMapConfig()
        assert "TileZoomLevels" in caplog.text

    @pytest.mark.parametrize("raw", [
        {"OverwriteAssets": "yes"},
        {"PollInterval": 0},
        {"PollInterval": "fast"},
        {"RequestTimeout": -1},
    ])
    def test_bad_values(self, raw):
        with pytest.raises(ValueError):
            config_from_dict(raw)

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            load_config(path)


class TestSubdirectory:
    def test_creates_nested(self, tmp_path):
        d = get_or_create_subdirectory(tmp_path, "a/b")
        assert d.is_dir()
        assert d == (tmp_path / "a" / "b").resolve()

    def test_existing_is_fine(self, tmp_path):
        assert get_or_create_subdirectory(tmp_path) == tmp_path.resolve()
