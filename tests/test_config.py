from __future__ import annotations

import json
from pathlib import Path

from musictagger.config import AppConfig, config_path, load_config, save_config


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    assert load_config(tmp_path / "none.json") == AppConfig()


def test_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "cfg" / "config.json"
    save_config(AppConfig(project_file="/x/lib.mtproj", volume=70, repeat=True), path)
    cfg = load_config(path)
    assert cfg.project_file == "/x/lib.mtproj"
    assert cfg.volume == 70
    assert cfg.repeat is True
    assert not path.with_suffix(".json.tmp").exists()


def test_bad_values_fall_back(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"volume": "loud", "random": 1, "unknown": True}), encoding="utf-8")
    cfg = load_config(path)
    assert cfg.volume == 50
    assert cfg.random is True


def test_env_override(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("MUSICTAGGER_CONFIG", str(tmp_path / "env.json"))
    assert config_path() == tmp_path / "env.json"
