"""Data model shared by the adaptive difficulty and coaching engine.

Every persisted entity has a ``to_dict``/``from_dict`` pair. ``from_dict``
is forgiving: missing or malformed fields fall back to their defaults so
an older or partially corrupted snapshot still loads.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class Outcome(str, Enum):
    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


class TriggerEvent(str, Enum):
    WIN_STREAK = "win_streak"
    LOSS_STREAK = "loss_streak"
    PERFORMANCE_IMPROVEMENT = "performance_improvement"
    PERFORMANCE_DECLINE = "performance_decline"
    TIME_BASED = "time_based"


class Trend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"
    MASTER = "master"


class GameMode(str, Enum):
    PVP = "pvp"
    CAMPAIGN = "campaign"


class TimeRange(str, Enum):
    HOUR = "1h"
    SIX_HOURS = "6h"
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"

    @property
    def seconds(self) -> float:
        return {
            "1h": 3600.0,
            "6h": 6 * 3600.0,
            "24h": 24 * 3600.0,
            "7d": 7 * 24 * 3600.0,
            "30d": 30 * 24 * 3600.0,
        }[self.value]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _num(data: dict, key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def _enum(enum_cls, data: dict, key: str, default):
    try:
        return enum_cls(data.get(key, default))
    except ValueError:
        return default


@dataclass(frozen=True)
class PerformanceSample:
    """One finished game as seen by the difficulty progression."""
    timestamp: float
    difficulty: float
    outcome: Outcome
    game_length_ms: float
    performance_score: int
    ai_response_time_ms: float
    move_accuracy_pct: float

    def to_dict(self) -> dict:
        d = asdict(self)
        d["outcome"] = self.outcome.value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Optional["PerformanceSample"]:
        if not isinstance(data, dict):
            return None
        try:
            outcome = Outcome(data.get("outcome"))
        except ValueError:
            return None
        return cls(
            timestamp=_num(data, "timestamp", 0.0),
            difficulty=clamp(_num(data, "difficulty", 5.0), 1.0, 10.0),
            outcome=outcome,
            game_length_ms=max(0.0, _num(data, "game_length_ms", 0.0)),
            performance_score=int(clamp(_num(data, "performance_score", 50), 0, 100)),
            ai_response_time_ms=max(0.0, _num(data, "ai_response_time_ms", 0.0)),
            move_accuracy_pct=clamp(_num(data, "move_accuracy_pct", 0.0), 0.0, 100.0),
        )


@dataclass(frozen=True)
class DifficultyAdjustment:
    timestamp: float
    old_difficulty: float
    new_difficulty: float
    reason: str
    trigger_event: TriggerEvent

    def to_dict(self) -> dict:
        d = asdict(self)
        d["trigger_event"] = self.trigger_event.value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Optional["DifficultyAdjustment"]:
        if not isinstance(data, dict):
            return None
        return cls(
            timestamp=_num(data, "timestamp", 0.0),
            old_difficulty=_num(data, "old_difficulty", 5.0),
            new_difficulty=_num(data, "new_difficulty", 5.0),
            reason=str(data.get("reason", "")),
            trigger_event=_enum(TriggerEvent, data, "trigger_event", TriggerEvent.TIME_BASED),
        )


@dataclass
class PerformanceMetrics:
    """Rolling statistics derived from the sample history. Never persisted."""
    average_game_time_ms: float = 0.0
    win_rate_pct: float = 0.0
    current_streak: int = 0
    best_streak: int = 0
    average_accuracy_pct: float = 0.0
    improvement_trend: Trend = Trend.STABLE
    skill_level: SkillLevel = SkillLevel.BEGINNER
    games_played: int = 0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["improvement_trend"] = self.improvement_trend.value
        d["skill_level"] = self.skill_level.value
        return d


@dataclass
class PvPRecord:
    player_id: str
    player_name: str
    updated_at: float = 0.0
    total_wins: int = 0
    total_losses: int = 0
    total_draws: int = 0
    total_games: int = 0
    win_rate_pct: float = 0.0
    current_streak: int = 0
    best_streak: int = 0
    average_game_length_ms: float = 0.0
    fastest_win_ms: Optional[float] = None
    rating: int = 1200

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["PvPRecord"]:
        if not isinstance(data, dict) or not data.get("player_id"):
            return None
        fastest = data.get("fastest_win_ms")
        return cls(
            player_id=str(data["player_id"]),
            player_name=str(data.get("player_name", "")),
            updated_at=_num(data, "updated_at", 0.0),
            total_wins=int(_num(data, "total_wins", 0)),
            total_losses=int(_num(data, "total_losses", 0)),
            total_draws=int(_num(data, "total_draws", 0)),
            total_games=int(_num(data, "total_games", 0)),
            win_rate_pct=_num(data, "win_rate_pct", 0.0),
            current_streak=int(_num(data, "current_streak", 0)),
            best_streak=int(_num(data, "best_streak", 0)),
            average_game_length_ms=_num(data, "average_game_length_ms", 0.0),
            fastest_win_ms=fastest if isinstance(fastest, (int, float)) else None,
            rating=int(clamp(_num(data, "rating", 1200), 800, 2800)),
        )


@dataclass
class CampaignRecord:
    player_id: str
    player_name: str
    updated_at: float = 0.0
    current_level: int = 1
    total_wins: int = 0
    total_games: int = 0
    win_rate_pct: float = 0.0
    highest_level_reached: int = 1
    average_game_time_ms: float = 0.0
    best_game_time_ms: Optional[float] = None
    total_experience: int = 0
    campaign_score: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["CampaignRecord"]:
        if not isinstance(data, dict) or not data.get("player_id"):
            return None
        best = data.get("best_game_time_ms")
        return cls(
            player_id=str(data["player_id"]),
            player_name=str(data.get("player_name", "")),
            updated_at=_num(data, "updated_at", 0.0),
            current_level=int(_num(data, "current_level", 1)),
            total_wins=int(_num(data, "total_wins", 0)),
            total_games=int(_num(data, "total_games", 0)),
            win_rate_pct=_num(data, "win_rate_pct", 0.0),
            highest_level_reached=int(_num(data, "highest_level_reached", 1)),
            average_game_time_ms=_num(data, "average_game_time_ms", 0.0),
            best_game_time_ms=best if isinstance(best, (int, float)) else None,
            total_experience=int(_num(data, "total_experience", 0)),
            campaign_score=int(_num(data, "campaign_score", 0)),
        )


@dataclass
class LeaderboardEntry:
    rank: int
    record: PvPRecord | CampaignRecord
    is_current_player: bool = False

    @property
    def score(self) -> int:
        if isinstance(self.record, PvPRecord):
            return self.record.rating
        return self.record.campaign_score


@dataclass
class SessionProgress:
    started_at: float = 0.0
    games_played: int = 0
    milestones: list[str] = field(default_factory=list)
