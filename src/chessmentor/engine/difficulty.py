"""Rule-based difficulty controller and the opponent profile table."""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from chessmentor.config.settings import DifficultyConfig
from chessmentor.engine.metrics import mean
from chessmentor.engine.models import (
    DifficultyAdjustment,
    Outcome,
    Trend,
    TriggerEvent,
    clamp,
)
from chessmentor.engine.performance import PerformanceRecorder

logger = logging.getLogger(__name__)

STREAK_WINDOW = 5
PREDICTION_WINDOW = 10


@dataclass(frozen=True)
class OpponentProfile:
    """Search parameters handed to the external move-selection component."""
    level: int
    search_depth: int
    thinking_time_ms: int
    skill_multiplier: float
    name: str


# level: (search depth, thinking time ms, skill multiplier, name)
OPPONENT_LEVELS: dict[int, tuple[int, int, float, str]] = {
    1: (1, 500, 0.10, "Novice"),
    2: (1, 700, 0.15, "Beginner"),
    3: (2, 900, 0.20, "Apprentice"),
    4: (2, 1100, 0.25, "Student"),
    5: (2, 1300, 0.30, "Amateur"),
    6: (3, 1500, 0.35, "Competitor"),
    7: (3, 1700, 0.40, "Challenger"),
    8: (3, 1900, 0.45, "Tactician"),
    9: (4, 2100, 0.50, "Strategist"),
    10: (4, 2300, 0.55, "Skilled"),
    11: (4, 2500, 0.60, "Advanced"),
    12: (5, 2700, 0.65, "Veteran"),
    13: (5, 2900, 0.70, "Elite"),
    14: (5, 3100, 0.75, "Expert"),
    15: (6, 3300, 0.80, "Master"),
    16: (6, 3500, 0.85, "Grandmaster"),
    17: (7, 3700, 0.90, "Champion"),
    18: (7, 3900, 0.93, "Legend"),
    19: (8, 4100, 0.96, "Mythical"),
    20: (9, 4500, 1.00, "Wizard Master"),
}


def round_half(value: float) -> float:
    """Round to the nearest 0.5, halves rounding up."""
    return math.floor(value * 2 + 0.5) / 2


def opponent_profile(difficulty: float) -> OpponentProfile:
    """Map a 1-10 difficulty onto the 20-step opponent table."""
    level = int(clamp(math.floor(clamp(difficulty, 1, 10) * 2 + 0.5), 2, 20))
    depth, thinking, multiplier, name = OPPONENT_LEVELS[level]
    return OpponentProfile(
        level=level,
        search_depth=depth,
        thinking_time_ms=thinking,
        skill_multiplier=multiplier,
        name=f"{name} (Level {level})",
    )


class DifficultyController:
    """Raises or lowers the opponent difficulty from recent performance.

    Rules are evaluated in a fixed order and the first match wins:

    1. last five games all won        -> +1 (win_streak)
    2. last five games all lost       -> -1 (loss_streak)
    3. avg score > 75 and win rate > 70 -> +1 (performance_improvement)
    4. avg score < 30 and win rate < 30 -> -1 (performance_decline)
    """

    def __init__(
        self,
        recorder: PerformanceRecorder,
        config: Optional[DifficultyConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.recorder = recorder
        self.config = config or DifficultyConfig()
        self.clock = clock
        self.current_difficulty: float = self._clamp(self.config.initial)
        self.adaptation_enabled: bool = self.config.adaptation_enabled
        self._adjustments: deque[DifficultyAdjustment] = deque(
            maxlen=self.config.adjustment_limit
        )
        self._games_at_last_adjustment: Optional[int] = None

    @property
    def adjustments(self) -> list[DifficultyAdjustment]:
        return list(self._adjustments)

    def _clamp(self, value: float) -> float:
        return clamp(float(value), self.config.minimum, self.config.maximum)

    def _cooling_down(self) -> bool:
        cooldown = self.config.min_games_between_adjustments
        if cooldown <= 0 or self._games_at_last_adjustment is None:
            return False
        played = self.recorder.total_recorded - self._games_at_last_adjustment
        return played < cooldown

    def evaluate_rules(self) -> Optional[tuple[int, str, TriggerEvent]]:
        """Return ``(step, reason, trigger)`` for the first matching rule."""
        recent = self.recorder.recent(STREAK_WINDOW)
        if len(recent) < STREAK_WINDOW:
            return None

        metrics = self.recorder.metrics
        avg = mean([s.performance_score for s in recent])
        streak = abs(metrics.current_streak)

        if all(s.outcome == Outcome.WIN for s in recent):
            return 1, f"Win streak of {streak} games", TriggerEvent.WIN_STREAK
        if all(s.outcome == Outcome.LOSS for s in recent):
            return -1, f"Loss streak of {streak} games", TriggerEvent.LOSS_STREAK
        if avg > 75 and metrics.win_rate_pct > 70:
            return (
                1,
                f"High performance detected ({avg:.1f} avg score, "
                f"{metrics.win_rate_pct:.1f}% win rate)",
                TriggerEvent.PERFORMANCE_IMPROVEMENT,
            )
        if avg < 30 and metrics.win_rate_pct < 30:
            return (
                -1,
                f"Low performance detected ({avg:.1f} avg score, "
                f"{metrics.win_rate_pct:.1f}% win rate)",
                TriggerEvent.PERFORMANCE_DECLINE,
            )
        return None

    def check_for_adjustment(self, bias: float = 0.0) -> Optional[DifficultyAdjustment]:
        """Apply the first matching rule, shifted by ``bias``.

        The bias can enlarge the rule's step but never cancel or reverse it.
        Returns the recorded adjustment, or None when nothing changed.
        """
        if self._cooling_down():
            logger.debug("Adjustment suppressed during cooldown")
            return None

        rule = self.evaluate_rules()
        if rule is None:
            return None

        step, reason, trigger = rule
        delta = step + bias
        if delta * step <= 0:
            delta = step
        new_difficulty = self._clamp(self.current_difficulty + delta)
        if new_difficulty == self.current_difficulty:
            return None
        return self.adjust_difficulty(new_difficulty, reason, trigger)

    def adjust_difficulty(
        self, new_difficulty: float, reason: str, trigger: TriggerEvent | str
    ) -> DifficultyAdjustment:
        adjustment = DifficultyAdjustment(
            timestamp=self.clock(),
            old_difficulty=self.current_difficulty,
            new_difficulty=self._clamp(new_difficulty),
            reason=reason,
            trigger_event=TriggerEvent(trigger),
        )
        self.current_difficulty = adjustment.new_difficulty
        self._adjustments.append(adjustment)
        self._games_at_last_adjustment = self.recorder.total_recorded
        logger.info(
            "Difficulty %.1f -> %.1f (%s): %s",
            adjustment.old_difficulty, adjustment.new_difficulty,
            adjustment.trigger_event.value, reason,
        )
        return adjustment

    def get_predicted_difficulty(self) -> float:
        """Short-horizon forecast; does not modify any state."""
        recent = self.recorder.recent(PREDICTION_WINDOW)
        if len(recent) < 3:
            return self.current_difficulty

        trend = self.recorder.metrics.improvement_trend
        avg = mean([s.performance_score for s in recent])
        prediction = self.current_difficulty
        if trend == Trend.IMPROVING and avg > 60:
            prediction += 0.5
        elif trend == Trend.DECLINING and avg < 40:
            prediction -= 0.5
        return self._clamp(round_half(prediction))

    def opponent_profile(self) -> OpponentProfile:
        return opponent_profile(self.current_difficulty)

    def toggle_adaptation(self) -> bool:
        self.adaptation_enabled = not self.adaptation_enabled
        logger.info("Adaptive difficulty %s", "enabled" if self.adaptation_enabled else "disabled")
        return self.adaptation_enabled

    def load(
        self,
        difficulty: float,
        adaptation_enabled: bool,
        adjustments: Iterable[DifficultyAdjustment],
    ) -> None:
        self.current_difficulty = self._clamp(difficulty)
        self.adaptation_enabled = adaptation_enabled
        self._adjustments = deque(adjustments, maxlen=self.config.adjustment_limit)
        self._games_at_last_adjustment = None

    def reset(self) -> None:
        self.current_difficulty = self._clamp(self.config.initial)
        self._adjustments.clear()
        self._games_at_last_adjustment = None
