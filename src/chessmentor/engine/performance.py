"""Converts finished games into a bounded history of performance samples."""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Callable, Iterable, Optional

from chessmentor.engine.metrics import MetricsAggregator
from chessmentor.engine.models import (
    Outcome,
    PerformanceMetrics,
    PerformanceSample,
    TimeRange,
    clamp,
)

logger = logging.getLogger(__name__)

OUTCOME_BONUS = {Outcome.WIN: 30, Outcome.DRAW: 10, Outcome.LOSS: -20}


def calculate_performance_score(
    outcome: Outcome, game_length_ms: float, move_accuracy_pct: float
) -> int:
    """Score a single game on a 0-100 scale.

    Fast wins earn up to 20 extra points, long losses lose up to 10, and
    accuracy moves the score by half its distance from 50%.
    """
    outcome = Outcome(outcome)
    score = 50.0 + OUTCOME_BONUS[outcome]
    if outcome == Outcome.WIN:
        score += max(0.0, 20 - game_length_ms / 60000)
    elif outcome == Outcome.LOSS:
        score += min(0.0, game_length_ms / 120000 - 10)
    score += (move_accuracy_pct - 50) * 0.5
    return int(round(clamp(score, 0, 100)))


class PerformanceRecorder:
    """Owns the append-only sample history and the metrics derived from it."""

    def __init__(
        self,
        limit: int = 1000,
        aggregator: Optional[MetricsAggregator] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.aggregator = aggregator or MetricsAggregator()
        self.clock = clock
        self._history: deque[PerformanceSample] = deque(maxlen=limit)
        self.metrics = PerformanceMetrics()
        self.last_ai_response_ms: float = 0.0
        # Monotonic count of games recorded; unaffected by the history cap
        self.total_recorded: int = 0

    @property
    def history(self) -> list[PerformanceSample]:
        return list(self._history)

    def __len__(self) -> int:
        return len(self._history)

    def recent(self, count: int) -> list[PerformanceSample]:
        if count <= 0:
            return []
        return list(self._history)[-count:]

    def note_ai_response(self, latency_ms: float) -> None:
        """Remember how long the opponent took to answer, for the next sample."""
        self.last_ai_response_ms = max(0.0, float(latency_ms))

    def record_game_result(
        self,
        outcome: Outcome | str,
        game_length_ms: float,
        move_accuracy_pct: float,
        difficulty: float,
    ) -> PerformanceSample:
        outcome = Outcome(outcome)
        game_length_ms = max(0.0, float(game_length_ms))
        move_accuracy_pct = clamp(float(move_accuracy_pct), 0.0, 100.0)

        sample = PerformanceSample(
            timestamp=self.clock(),
            difficulty=difficulty,
            outcome=outcome,
            game_length_ms=game_length_ms,
            performance_score=calculate_performance_score(
                outcome, game_length_ms, move_accuracy_pct
            ),
            ai_response_time_ms=self.last_ai_response_ms,
            move_accuracy_pct=move_accuracy_pct,
        )
        self._history.append(sample)
        self.total_recorded += 1
        self.refresh_metrics()
        logger.debug(
            "Recorded %s (score=%d, accuracy=%.1f, samples=%d)",
            outcome.value, sample.performance_score, move_accuracy_pct, len(self._history),
        )
        return sample

    def refresh_metrics(self) -> PerformanceMetrics:
        self.metrics = self.aggregator.compute(self._history)
        return self.metrics

    def filtered_history(self, time_range: TimeRange | str) -> list[PerformanceSample]:
        """Samples recorded within ``time_range`` of now."""
        window = TimeRange(time_range).seconds
        now = self.clock()
        return [s for s in self._history if now - s.timestamp <= window]

    def load(self, samples: Iterable[PerformanceSample]) -> None:
        self._history = deque(samples, maxlen=self.limit)
        self.total_recorded = len(self._history)
        self.refresh_metrics()

    def reset(self) -> None:
        self._history.clear()
        self.total_recorded = 0
        self.metrics = PerformanceMetrics()
