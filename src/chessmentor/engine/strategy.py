"""Coaching strategy catalog and first-match selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from chessmentor.engine.models import PerformanceMetrics, SkillLevel

logger = logging.getLogger(__name__)


class FeedbackFrequency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnalysisDepth(str, Enum):
    BASIC = "basic"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"


@dataclass(frozen=True)
class TriggerConditions:
    min_games_played: int
    performance_threshold: float  # minimum average accuracy, percent
    win_rate_range: tuple[float, float]
    skill_level: SkillLevel  # descriptive; not part of matching

    def matches(self, metrics: PerformanceMetrics) -> bool:
        low, high = self.win_rate_range
        return (
            metrics.games_played >= self.min_games_played
            and metrics.average_accuracy_pct >= self.performance_threshold
            and low <= metrics.win_rate_pct <= high
        )


@dataclass(frozen=True)
class Interventions:
    difficulty_bias: int
    feedback_frequency: FeedbackFrequency
    hint_available: bool
    analysis_depth: AnalysisDepth


@dataclass(frozen=True)
class CoachingStrategy:
    id: str
    name: str
    description: str
    trigger_conditions: TriggerConditions
    interventions: Interventions


# Scanned top-down; the first entry whose conditions hold is selected.
COACHING_STRATEGIES: list[CoachingStrategy] = [
    CoachingStrategy(
        id="beginner-encouragement",
        name="Encouraging Beginner",
        description="Focus on positive reinforcement and basic concepts",
        trigger_conditions=TriggerConditions(
            min_games_played=0,
            performance_threshold=40,
            win_rate_range=(0, 30),
            skill_level=SkillLevel.BEGINNER,
        ),
        interventions=Interventions(
            difficulty_bias=-1,
            feedback_frequency=FeedbackFrequency.HIGH,
            hint_available=True,
            analysis_depth=AnalysisDepth.BASIC,
        ),
    ),
    CoachingStrategy(
        id="intermediate-challenge",
        name="Progressive Challenge",
        description="Gradually increase complexity with strategic insights",
        trigger_conditions=TriggerConditions(
            min_games_played=5,
            performance_threshold=60,
            win_rate_range=(30, 70),
            skill_level=SkillLevel.INTERMEDIATE,
        ),
        interventions=Interventions(
            difficulty_bias=0,
            feedback_frequency=FeedbackFrequency.MEDIUM,
            hint_available=True,
            analysis_depth=AnalysisDepth.DETAILED,
        ),
    ),
    CoachingStrategy(
        id="advanced-mastery",
        name="Mastery Focus",
        description="Advanced tactics and minimal guidance",
        trigger_conditions=TriggerConditions(
            min_games_played=20,
            performance_threshold=80,
            win_rate_range=(70, 100),
            skill_level=SkillLevel.ADVANCED,
        ),
        interventions=Interventions(
            difficulty_bias=1,
            feedback_frequency=FeedbackFrequency.LOW,
            hint_available=False,
            analysis_depth=AnalysisDepth.COMPREHENSIVE,
        ),
    ),
]


class StrategySelector:
    """Holds the active coaching strategy and reselects it from metrics."""

    def __init__(self, catalog: Optional[list[CoachingStrategy]] = None):
        self.catalog = list(COACHING_STRATEGIES if catalog is None else catalog)
        if not self.catalog:
            raise ValueError("Strategy catalog must not be empty")
        self.default = self.catalog[0]
        self.current: CoachingStrategy = self.default
        # True when the last selection matched no entry and used the default
        self.fell_back = False

    def find(self, metrics: PerformanceMetrics) -> Optional[CoachingStrategy]:
        for strategy in self.catalog:
            if strategy.trigger_conditions.matches(metrics):
                return strategy
        return None

    def match(self, metrics: PerformanceMetrics) -> CoachingStrategy:
        return self.find(metrics) or self.default

    def select_optimal_strategy(self, metrics: PerformanceMetrics) -> tuple[CoachingStrategy, bool]:
        """Select and activate a strategy; returns ``(strategy, switched)``."""
        found = self.find(metrics)
        self.fell_back = found is None
        strategy = found or self.default
        switched = strategy.id != self.current.id
        if switched:
            logger.info("Coaching strategy %s -> %s", self.current.id, strategy.id)
        self.current = strategy
        return strategy, switched

    def by_id(self, strategy_id: str) -> Optional[CoachingStrategy]:
        for strategy in self.catalog:
            if strategy.id == strategy_id:
                return strategy
        return None

    def restore(self, strategy_id: Optional[str]) -> None:
        self.current = self.by_id(strategy_id or "") or self.default
