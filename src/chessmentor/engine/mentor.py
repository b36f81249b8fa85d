"""Composition root: wires the recorder, controller, coach and ratings together."""

from __future__ import annotations

import asyncio
import json
import logging
import random
import sqlite3
import time
from typing import Callable, Optional

from chessmentor.config.settings import Settings
from chessmentor.engine.difficulty import DifficultyController, OpponentProfile
from chessmentor.engine.feedback import (
    WELCOME_MESSAGE,
    FeedbackGenerator,
    FeedbackType,
    GamePhase,
    GameSnapshot,
    MentorFeedback,
    MoveDescriptor,
    Priority,
)
from chessmentor.engine.metrics import MetricsAggregator
from chessmentor.engine.models import (
    DifficultyAdjustment,
    GameMode,
    LeaderboardEntry,
    Outcome,
    PerformanceMetrics,
    PerformanceSample,
    SessionProgress,
    TriggerEvent,
)
from chessmentor.engine.performance import PerformanceRecorder
from chessmentor.engine.rating import RatingEngine
from chessmentor.engine.strategy import CoachingStrategy, StrategySelector
from chessmentor.state.store import StateStore

logger = logging.getLogger(__name__)

STATE_KEY = "engine"


class MentorEngine:
    """The adaptive difficulty and coaching core.

    All mutating entry points run to completion on the calling thread. A
    multi-threaded host must route them through a single owner.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[StateStore] = None,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or Settings.load()
        self.store = store
        self.clock = clock
        self.rng = rng or random.Random(self.settings.seed)

        diff_cfg = self.settings.difficulty
        self.recorder = PerformanceRecorder(
            limit=diff_cfg.history_limit,
            aggregator=MetricsAggregator(window=diff_cfg.metrics_window),
            clock=clock,
        )
        self.controller = DifficultyController(self.recorder, config=diff_cfg, clock=clock)
        self.selector = StrategySelector()
        self.feedback = FeedbackGenerator(config=self.settings.feedback, rng=self.rng, clock=clock)
        self.ratings = RatingEngine(config=self.settings.rating, clock=clock)
        self.ratings.ensure_player(self.settings.player_name)

        self.session = SessionProgress(started_at=clock())
        self.is_active = True
        self._prune_task: Optional[asyncio.Task] = None

        if self.store is not None:
            self.load()

    # --- Outbound reads ---

    @property
    def current_difficulty(self) -> float:
        return self.controller.current_difficulty

    @property
    def metrics(self) -> PerformanceMetrics:
        return self.recorder.metrics

    @property
    def strategy(self) -> CoachingStrategy:
        return self.selector.current

    def current_feedback(self) -> list[MentorFeedback]:
        return self.feedback.current_feedback

    def feedback_for_phase(self, phase: GamePhase | str) -> list[MentorFeedback]:
        return self.feedback.feedback_for_phase(phase)

    def leaderboard(self, mode: GameMode | str = GameMode.PVP) -> list[LeaderboardEntry]:
        return self.ratings.leaderboard(mode)

    def predicted_difficulty(self) -> float:
        return self.controller.get_predicted_difficulty()

    def opponent_profile(self) -> OpponentProfile:
        return self.controller.opponent_profile()

    # --- Inbound events ---

    def on_game_completed(
        self,
        outcome: Outcome | str,
        game_length_ms: float,
        move_accuracy_pct: float,
        mode: GameMode | str = GameMode.PVP,
        opponent_rating: Optional[float] = None,
        campaign_level: Optional[int] = None,
    ) -> PerformanceSample:
        outcome = Outcome(outcome)
        sample = self._record_game(outcome, game_length_ms, move_accuracy_pct)
        if GameMode(mode) == GameMode.CAMPAIGN:
            self.ratings.record_campaign_game(
                outcome == Outcome.WIN, game_length_ms, campaign_level or 1
            )
        else:
            self.ratings.record_pvp_game(outcome, game_length_ms, opponent_rating)
        self.save()
        return sample

    def on_move_made(
        self, snapshot: GameSnapshot, move: MoveDescriptor
    ) -> Optional[MentorFeedback]:
        if not self.is_active:
            return None
        return self.feedback.analyze_move(snapshot, move, self.selector.current)

    def note_ai_response(self, latency_ms: float) -> None:
        self.recorder.note_ai_response(latency_ms)

    # --- Difficulty progression ---

    def record_game_result(
        self,
        outcome: Outcome | str,
        game_length_ms: float,
        move_accuracy_pct: float,
    ) -> PerformanceSample:
        """Record a finished game, reselect the strategy and maybe adjust difficulty."""
        sample = self._record_game(outcome, game_length_ms, move_accuracy_pct)
        self.save()
        return sample

    def _record_game(self, outcome, game_length_ms, move_accuracy_pct) -> PerformanceSample:
        sample = self.recorder.record_game_result(
            outcome, game_length_ms, move_accuracy_pct, difficulty=self.current_difficulty
        )
        self.session.games_played += 1

        strategy, switched = self.selector.select_optimal_strategy(self.recorder.metrics)
        if self.controller.adaptation_enabled:
            bias = 0
            if switched and not self.selector.fell_back:
                bias = strategy.interventions.difficulty_bias
            adjustment = self.controller.check_for_adjustment(bias=bias)
            if adjustment is not None:
                self._announce_adjustment(adjustment)
        return sample

    def check_for_adjustment(self) -> Optional[DifficultyAdjustment]:
        adjustment = self.controller.check_for_adjustment()
        if adjustment is not None:
            self._announce_adjustment(adjustment)
            self.save()
        return adjustment

    def adjust_difficulty(
        self,
        new_difficulty: float,
        reason: str,
        trigger: TriggerEvent | str = TriggerEvent.TIME_BASED,
    ) -> DifficultyAdjustment:
        adjustment = self.controller.adjust_difficulty(new_difficulty, reason, trigger)
        self.save()
        return adjustment

    def toggle_adaptation(self) -> bool:
        enabled = self.controller.toggle_adaptation()
        self.save()
        return enabled

    def _announce_adjustment(self, adjustment: DifficultyAdjustment) -> None:
        direction = "enhanced" if adjustment.new_difficulty > adjustment.old_difficulty else "eased"
        self.feedback.notice(
            f"I have {direction} the challenge to better suit your growing "
            "abilities, young chess warrior.",
            fb_type=FeedbackType.ANALYSIS,
            learning_point="Adaptive difficulty adjustment",
        )

    # --- Session and lifecycle ---

    def activate(self) -> None:
        """Start a coaching session and, inside an event loop, the prune timer."""
        self.is_active = True
        self.session = SessionProgress(started_at=self.clock())
        self.feedback.clear()
        self.selector.select_optimal_strategy(self.recorder.metrics)
        self.feedback.notice(
            WELCOME_MESSAGE,
            fb_type=FeedbackType.ENCOURAGEMENT,
            learning_point="Mentor system activated",
        )
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; feedback pruning left to the caller")
        else:
            self.start_pruning()
        logger.info("Mentor activated with strategy %s", self.selector.current.id)

    def deactivate(self) -> None:
        self.is_active = False
        self.stop_pruning()
        logger.info("Mentor deactivated")

    def start_pruning(self) -> asyncio.Task:
        if self._prune_task is None or self._prune_task.done():
            self._prune_task = asyncio.get_running_loop().create_task(self._prune_loop())
        return self._prune_task

    def stop_pruning(self) -> None:
        if self._prune_task is not None:
            self._prune_task.cancel()
            self._prune_task = None

    async def _prune_loop(self) -> None:
        interval = self.settings.feedback.prune_interval_seconds
        while True:
            await asyncio.sleep(interval)
            self.feedback.clear_old_feedback()

    def record_milestone(self, milestone: str) -> MentorFeedback:
        self.session.milestones.append(milestone)
        return self.feedback.notice(
            f"Milestone achieved: {milestone}!",
            fb_type=FeedbackType.CELEBRATION,
            priority=Priority.HIGH,
            learning_point=milestone,
        )

    def session_improvement(self) -> float:
        hours = max(0.0, self.clock() - self.session.started_at) / 3600
        return min(
            100.0,
            self.session.games_played * 5 + hours * 10 + len(self.session.milestones) * 15,
        )

    def set_player_name(self, name: str) -> None:
        self.ratings.set_player_name(name)
        self.save()

    # --- Persistence ---

    def export_state(self) -> dict:
        return {
            "difficulty": {
                "current": self.controller.current_difficulty,
                "adaptation_enabled": self.controller.adaptation_enabled,
                "history": [s.to_dict() for s in self.recorder.history],
                "adjustments": [a.to_dict() for a in self.controller.adjustments],
            },
            "strategy_id": self.selector.current.id,
            "feedback": [f.to_dict() for f in self.feedback.current_feedback],
            "ratings": self.ratings.to_dict(),
        }

    def import_state(self, blob: object) -> None:
        """Restore from ``export_state`` output; missing pieces fall back to defaults."""
        if not isinstance(blob, dict):
            logger.warning("Ignoring state snapshot of type %s", type(blob).__name__)
            blob = {}
        diff = blob.get("difficulty")
        if not isinstance(diff, dict):
            diff = {}
        cfg = self.settings.difficulty

        samples = [PerformanceSample.from_dict(d) for d in _as_list(diff.get("history"))]
        adjustments = [DifficultyAdjustment.from_dict(d) for d in _as_list(diff.get("adjustments"))]
        feedback = [MentorFeedback.from_dict(d) for d in _as_list(blob.get("feedback"))]
        dropped = samples.count(None) + adjustments.count(None) + feedback.count(None)
        if dropped:
            logger.warning("Discarded %d malformed entries while importing state", dropped)

        current = diff.get("current")
        if isinstance(current, bool) or not isinstance(current, (int, float)):
            current = cfg.initial
        enabled = diff.get("adaptation_enabled")
        if not isinstance(enabled, bool):
            enabled = cfg.adaptation_enabled

        self.recorder.load(s for s in samples if s is not None)
        self.controller.load(current, enabled, (a for a in adjustments if a is not None))
        self.feedback.load(f for f in feedback if f is not None)
        self.selector.restore(blob.get("strategy_id"))
        self.ratings.load(blob.get("ratings") or {})
        self.ratings.ensure_player(self.settings.player_name)

    def save(self) -> bool:
        if self.store is None:
            return False
        try:
            self.store.save(STATE_KEY, self.export_state())
        except (sqlite3.Error, OSError) as e:
            logger.warning("Failed to save mentor state: %s", e)
            return False
        return True

    def load(self) -> bool:
        if self.store is None:
            return False
        try:
            payload = self.store.load(STATE_KEY)
        except (sqlite3.Error, OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load mentor state, using defaults: %s", e)
            return False
        if payload is None:
            return False
        self.import_state(payload)
        return True

    def reset(self) -> None:
        """Forget the difficulty progression and feedback; ratings are kept."""
        self.recorder.reset()
        self.controller.reset()
        self.feedback.clear()
        self.selector.restore(None)
        self.save()

    def reset_ratings(self) -> None:
        self.ratings.reset()
        self.ratings.ensure_player(self.settings.player_name)
        self.save()


def _as_list(value) -> list:
    return value if isinstance(value, list) else []
