"""Tests for configuration loading."""

from pathlib import Path

import yaml

from chessmentor.config import settings as settings_module
from chessmentor.config.settings import DEFAULT_DATA_DIR, Settings
from chessmentor.state.store import StateStore


def test_defaults():
    settings = Settings()
    assert settings.difficulty.initial == 5.0
    assert settings.difficulty.history_limit == 1000
    assert settings.feedback.buffer_size == 10
    assert settings.feedback.forced_moves == [1, 10, 20, 40]
    assert settings.rating.k_factor == 32
    assert DEFAULT_DATA_DIR == Path.home() / ".chessmentor"
    assert settings.state_path == DEFAULT_DATA_DIR / "state.db"
    assert settings.config_path == DEFAULT_DATA_DIR / "config.yaml"


def test_missing_file_gives_defaults(tmp_path):
    settings = Settings.load(tmp_path / "absent.yaml")
    assert settings.player_name == "Apprentice"


def test_load_partial_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "player_name": "Morgana",
        "seed": 11,
        "difficulty": {"initial": 3.5, "min_games_between_adjustments": 2},
        "feedback": {"random_chance": 0.5},
    }))
    settings = Settings.load(path)
    assert settings.player_name == "Morgana"
    assert settings.seed == 11
    assert settings.difficulty.initial == 3.5
    assert settings.difficulty.min_games_between_adjustments == 2
    assert settings.difficulty.maximum == 10.0
    assert settings.feedback.random_chance == 0.5


def test_save_round_trip(tmp_path):
    settings = Settings(data_dir=tmp_path, player_name="Nimue")
    settings.difficulty.initial = 7.0
    settings.save()

    loaded = Settings.load(tmp_path / "config.yaml")
    assert loaded.player_name == "Nimue"
    assert loaded.difficulty.initial == 7.0
    assert loaded.data_dir == tmp_path


def test_load_without_path_reads_default_data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings_module, "DEFAULT_DATA_DIR", tmp_path)
    (tmp_path / "config.yaml").write_text(yaml.dump({"player_name": "Vivian"}))
    assert Settings.load().player_name == "Vivian"


def test_store_default_path_follows_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(Settings, "state_path", property(lambda self: tmp_path / "state.db"))
    assert StateStore().db_path == tmp_path / "state.db"
