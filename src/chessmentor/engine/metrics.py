"""Rolling statistics over the performance sample history."""

from __future__ import annotations

from typing import Sequence

from chessmentor.engine.models import (
    Outcome,
    PerformanceMetrics,
    PerformanceSample,
    SkillLevel,
    Trend,
)

# (minimum score, tier), checked top-down
SKILL_THRESHOLDS: list[tuple[float, SkillLevel]] = [
    (80, SkillLevel.MASTER),
    (65, SkillLevel.EXPERT),
    (50, SkillLevel.ADVANCED),
    (30, SkillLevel.INTERMEDIATE),
]

TREND_MARGIN = 5.0


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def compute_streaks(history: Sequence[PerformanceSample]) -> tuple[int, int]:
    """Return ``(current_streak, best_streak)`` over the full history.

    The current streak is signed: positive for a run of wins, negative for
    a run of losses, zero when the latest game was a draw. The best streak
    is the longest run of identical outcomes anywhere in the history.
    """
    if not history:
        return 0, 0

    latest = history[-1].outcome
    current = 0
    for sample in reversed(history):
        if sample.outcome != latest:
            break
        current += 1

    best = 0
    run = 0
    previous = None
    for sample in history:
        run = run + 1 if sample.outcome == previous else 1
        previous = sample.outcome
        best = max(best, run)

    if latest == Outcome.LOSS:
        current = -current
    elif latest == Outcome.DRAW:
        current = 0
    return current, best


def improvement_trend(history: Sequence[PerformanceSample]) -> Trend:
    """Compare the last 10 scores against the 10 before them."""
    if len(history) < 5:
        return Trend.STABLE

    recent = history[-10:]
    older = history[-20:-10]
    if not recent or not older:
        return Trend.STABLE

    delta = mean([s.performance_score for s in recent]) - mean(
        [s.performance_score for s in older]
    )
    if delta > TREND_MARGIN:
        return Trend.IMPROVING
    if delta < -TREND_MARGIN:
        return Trend.DECLINING
    return Trend.STABLE


def skill_level_for(
    win_rate_pct: float,
    average_accuracy_pct: float,
    best_streak: int,
    current_streak: int,
) -> SkillLevel:
    score = (
        win_rate_pct * 0.4
        + average_accuracy_pct * 0.3
        + best_streak * 2
        + current_streak * 0.3
    )
    for threshold, level in SKILL_THRESHOLDS:
        if score >= threshold:
            return level
    return SkillLevel.BEGINNER


class MetricsAggregator:
    """Derives ``PerformanceMetrics`` from a sample history.

    Rates and averages use the most recent ``window`` samples; streaks and
    the trend look further back. The result is a pure function of the
    history passed in.
    """

    def __init__(self, window: int = 20):
        self.window = max(1, window)

    def compute(self, history: Sequence[PerformanceSample]) -> PerformanceMetrics:
        history = list(history)
        if not history:
            return PerformanceMetrics()

        recent = history[-self.window:]
        wins = sum(1 for s in recent if s.outcome == Outcome.WIN)
        win_rate = wins / len(recent) * 100
        avg_time = mean([s.game_length_ms for s in recent])
        avg_accuracy = mean([s.move_accuracy_pct for s in recent])
        current, best = compute_streaks(history)

        return PerformanceMetrics(
            average_game_time_ms=avg_time,
            win_rate_pct=win_rate,
            current_streak=current,
            best_streak=best,
            average_accuracy_pct=avg_accuracy,
            improvement_trend=improvement_trend(history),
            skill_level=skill_level_for(win_rate, avg_accuracy, best, current),
            games_played=len(history),
        )
