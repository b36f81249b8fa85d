"""Tests for rolling performance metrics."""

from chessmentor.engine.metrics import (
    MetricsAggregator,
    compute_streaks,
    improvement_trend,
    skill_level_for,
)
from chessmentor.engine.models import (
    Outcome,
    PerformanceMetrics,
    PerformanceSample,
    SkillLevel,
    Trend,
)


def _sample(outcome, score=50, accuracy=50.0, length=60000.0, ts=0.0):
    return PerformanceSample(
        timestamp=ts,
        difficulty=5.0,
        outcome=Outcome(outcome),
        game_length_ms=length,
        performance_score=score,
        ai_response_time_ms=0.0,
        move_accuracy_pct=accuracy,
    )


def test_empty_history_is_beginner_with_zero_win_rate():
    metrics = MetricsAggregator().compute([])
    assert metrics == PerformanceMetrics()
    assert metrics.skill_level == SkillLevel.BEGINNER
    assert metrics.win_rate_pct == 0


def test_current_streak_is_signed():
    wins = [_sample("loss"), _sample("win"), _sample("win"), _sample("win")]
    assert compute_streaks(wins) == (3, 3)

    losses = [_sample("win"), _sample("loss"), _sample("loss")]
    assert compute_streaks(losses) == (-2, 2)


def test_draw_resets_current_streak():
    history = [_sample("win"), _sample("win"), _sample("draw")]
    current, best = compute_streaks(history)
    assert current == 0
    assert best == 2


def test_best_streak_found_anywhere_in_history():
    outcomes = ["loss"] * 4 + ["win", "draw", "win", "win"]
    current, best = compute_streaks([_sample(o) for o in outcomes])
    assert current == 2
    assert best == 4


def test_trend_stable_with_fewer_than_five_samples():
    history = [_sample("win", score=100)] * 4
    assert improvement_trend(history) == Trend.STABLE


def test_trend_needs_an_older_window():
    # Ten samples leave nothing to compare against
    history = [_sample("win", score=90)] * 10
    assert improvement_trend(history) == Trend.STABLE


def test_trend_improving_and_declining():
    older = [_sample("loss", score=40)] * 10
    newer = [_sample("win", score=60)] * 10
    assert improvement_trend(older + newer) == Trend.IMPROVING
    assert improvement_trend(newer + older) == Trend.DECLINING


def test_trend_within_margin_is_stable():
    older = [_sample("win", score=50)] * 10
    newer = [_sample("win", score=55)] * 10
    assert improvement_trend(older + newer) == Trend.STABLE


def test_skill_thresholds():
    assert skill_level_for(0, 0, 0, 0) == SkillLevel.BEGINNER
    assert skill_level_for(50, 40, 0, 0) == SkillLevel.INTERMEDIATE  # 32
    assert skill_level_for(80, 60, 0, 0) == SkillLevel.ADVANCED  # 50
    assert skill_level_for(100, 90, 0, 0) == SkillLevel.EXPERT  # 67
    assert skill_level_for(100, 100, 5, 5) == SkillLevel.MASTER


def test_window_limits_rates_but_not_streaks():
    history = [_sample("win", accuracy=100.0)] * 30 + [_sample("loss", accuracy=0.0)] * 10
    metrics = MetricsAggregator(window=20).compute(history)
    assert metrics.win_rate_pct == 50.0
    assert metrics.average_accuracy_pct == 50.0
    assert metrics.current_streak == -10
    assert metrics.best_streak == 30
    assert metrics.games_played == 40


def test_averages_over_recent_games():
    history = [_sample("win", length=1000.0), _sample("loss", length=3000.0)]
    metrics = MetricsAggregator().compute(history)
    assert metrics.average_game_time_ms == 2000.0
    assert metrics.win_rate_pct == 50.0
