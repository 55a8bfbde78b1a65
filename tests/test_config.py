from __future__ import annotations

import json

import pytest

from panelcore.core.config import ConfigLoader, ConfigPaths, PanelConfig
from panelcore.core.errors import ConfigError


def test_defaults():
    cfg = PanelConfig()
    assert cfg.sessions.timeout_ms == 900000
    assert cfg.sessions.cleanup_interval_ms == 60000
    assert cfg.sessions.cookie_max_age_seconds == 900
    assert cfg.locks.timeout_ms == 1800000
    assert cfg.locks.cleanup_interval_ms == 300000
    assert cfg.locks.store_path.replace("\\", "/") == "locks/active_locks.json"
    assert cfg.locks.clear_on_start is True


def test_missing_file_gives_defaults_and_ensure_writes_it(tmp_path):
    loader = ConfigLoader(ConfigPaths(str(tmp_path / "config")))
    assert loader.load() == PanelConfig()
    loader.ensure_default()
    with open(loader.paths.panel, "r", encoding="utf-8") as f:
        assert json.load(f)["sessions"]["timeout_ms"] == 900000


def test_partial_file_overrides(tmp_path):
    paths = ConfigPaths(str(tmp_path))
    with open(paths.panel, "w", encoding="utf-8") as f:
        json.dump({"locks": {"timeout_ms": 0}, "web": {"https_only": True}}, f)
    cfg = ConfigLoader(paths).load()
    assert cfg.locks.timeout_ms == 0
    assert cfg.web.https_only is True
    assert cfg.sessions.timeout_ms == 900000


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        json.dumps({"sessions": {"timeout_ms": 0}}),
        json.dumps({"unknown_section": {}}),
    ],
)
def test_invalid_files_raise_config_error(tmp_path, content):
    paths = ConfigPaths(str(tmp_path))
    with open(paths.panel, "w", encoding="utf-8") as f:
        f.write(content)
    with pytest.raises(ConfigError) as ei:
        ConfigLoader(paths).load()
    assert ei.value.code == "config_error"


def test_save_round_trip(tmp_path):
    loader = ConfigLoader(ConfigPaths(str(tmp_path)))
    cfg = PanelConfig()
    cfg.web.port = 8080
    loader.save(cfg)
    assert loader.load().web.port == 8080
