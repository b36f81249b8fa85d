"""Configuration model for ChessMentor."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_DATA_DIR = Path.home() / ".chessmentor"
CONFIG_FILE = "config.yaml"


class DifficultyConfig(BaseModel):
    initial: float = 5.0
    minimum: float = 1.0
    maximum: float = 10.0
    adaptation_enabled: bool = True
    history_limit: int = 1000
    adjustment_limit: int = 100
    metrics_window: int = 20
    # Samples that must be recorded after an adjustment before the next one
    min_games_between_adjustments: int = 0


class FeedbackConfig(BaseModel):
    buffer_size: int = 10
    max_age_seconds: float = 300.0
    prune_interval_seconds: float = 60.0
    repeat_window_seconds: float = 45.0
    random_chance: float = 0.15
    forced_moves: list[int] = Field(default_factory=lambda: [1, 10, 20, 40])
    periodic_every: int = 15


class RatingConfig(BaseModel):
    k_factor: float = 32.0
    initial_rating: int = 1200
    default_opponent_rating: int = 1200
    floor: int = 800
    ceiling: int = 2800
    leaderboard_size: int = 100


class Settings(BaseModel):
    data_dir: Path = DEFAULT_DATA_DIR
    player_name: str = "Apprentice"
    seed: Optional[int] = None
    difficulty: DifficultyConfig = Field(default_factory=DifficultyConfig)
    feedback: FeedbackConfig = Field(default_factory=FeedbackConfig)
    rating: RatingConfig = Field(default_factory=RatingConfig)

    @property
    def state_path(self) -> Path:
        return self.data_dir / "state.db"

    @property
    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILE

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        config_path = config_path or (DEFAULT_DATA_DIR / CONFIG_FILE)
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()

    def save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
