"""Per-move coaching feedback: sampling, move quality and message selection."""

from __future__ import annotations

import logging
import random
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from chessmentor.config.settings import FeedbackConfig
from chessmentor.engine.models import clamp
from chessmentor.engine.strategy import (
    AnalysisDepth,
    CoachingStrategy,
    FeedbackFrequency,
)

logger = logging.getLogger(__name__)


class GamePhase(str, Enum):
    OPENING = "opening"
    MIDDLE = "middle"
    ENDGAME = "endgame"


class FeedbackType(str, Enum):
    ENCOURAGEMENT = "encouragement"
    STRATEGY = "strategy"
    WARNING = "warning"
    CELEBRATION = "celebration"
    ANALYSIS = "analysis"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Quality(str, Enum):
    EXCELLENT = "excellent"
    AVERAGE = "average"
    POOR = "poor"


HIGH_VALUE_PIECES = frozenset({"queen"})

CAPTURE_BONUS = 15
TELEPORT_BONUS = 10
RANGED_ATTACK_BONUS = 20
CASTLING_BONUS = 12
NOISE = 10

MESSAGES: dict[GamePhase, dict[Quality, list[str]]] = {
    GamePhase.OPENING: {
        Quality.EXCELLENT: [
            "Excellent opening strategy! You're developing your pieces effectively.",
            "Superb opening play! Your development is textbook perfect.",
            "Magnificent start! Your pieces are positioned beautifully.",
            "Outstanding opening! You're controlling the center masterfully.",
        ],
        Quality.POOR: [
            "Consider developing your knights and bishops before advancing pawns too aggressively.",
            "Focus on piece development over pawn storms in the opening.",
            "Try developing your minor pieces before launching attacks.",
            "Remember: knights before bishops, and castle early for safety.",
        ],
        Quality.AVERAGE: [
            "Good opening development. Try to control the center squares.",
            "Solid opening moves. Consider improving your piece coordination.",
            "Decent development. Look for central control opportunities.",
            "Good progress. Focus on completing your development.",
        ],
    },
    GamePhase.MIDDLE: {
        Quality.EXCELLENT: [
            "Brilliant tactical play! Your pieces are working together beautifully.",
            "Magnificent tactics! Your coordination is exceptional.",
            "Superb strategic play! You're creating powerful threats.",
            "Outstanding combination! Your pieces dance in harmony.",
        ],
        Quality.POOR: [
            "Look for tactical opportunities - can you create threats or improve piece coordination?",
            "Search for tactical motifs and improve your piece activity.",
            "Consider reorganizing your pieces for better coordination.",
            "Look for forcing moves - checks, captures, and threats!",
        ],
        Quality.AVERAGE: [
            "The middlegame is where tactics shine. Look for wizard teleport opportunities!",
            "Good positioning. Consider tactical combinations with your wizards.",
            "Solid play. Watch for tactical opportunities to break through.",
            "Nice development. Look for ways to increase piece activity.",
        ],
    },
    GamePhase.ENDGAME: {
        Quality.EXCELLENT: [
            "Outstanding endgame technique! You're converting your advantage perfectly.",
            "Masterful endgame play! Your technique is impeccable.",
            "Brilliant endgame! You're demonstrating excellent precision.",
            "Superb endgame technique! Victory is within your grasp.",
        ],
        Quality.POOR: [
            "In the endgame, every move counts. Calculate carefully and activate your king.",
            "Endgame precision is crucial. Activate your king and advance carefully.",
            "Every move matters now. Calculate deeply and avoid mistakes.",
            "Focus on king activity and pawn advancement in the endgame.",
        ],
        Quality.AVERAGE: [
            "Endgame precision is key. Consider pawn promotion possibilities.",
            "Good endgame positioning. Look for breakthrough opportunities.",
            "Solid endgame play. Focus on king and pawn coordination.",
            "Nice technique. Consider creating passed pawns.",
        ],
    },
}

FALLBACK_TONE = {
    Quality.EXCELLENT: "excellent",
    Quality.AVERAGE: "steady",
    Quality.POOR: "thoughtful",
}

# Used in order when the chosen variant was emitted within the repeat window
FALLBACK_TEMPLATES = [
    "Wise move, young apprentice. Continue with such {tone} play.",
    "The ancient runes approve of {tone} play. Press on, young apprentice.",
    "Keep to this {tone} path, young apprentice; the board rewards patience.",
]

PHASE_HINTS = {
    GamePhase.OPENING: "Develop a knight or bishop toward the center before moving the same piece twice.",
    GamePhase.MIDDLE: "Check every capture and check available to both sides before committing.",
    GamePhase.ENDGAME: "Bring your king forward; it is a strong piece once the queens are gone.",
}

WELCOME_MESSAGE = (
    "Greetings, young apprentice! I am Merlin the Wise. I shall guide your "
    "chess journey with ancient wisdom and magical insights."
)


@dataclass(frozen=True)
class GameSnapshot:
    """The parts of the live game state the mentor looks at."""
    move_count: int
    is_check: bool = False


@dataclass(frozen=True)
class MoveDescriptor:
    captured: Optional[str] = None  # piece type taken by this move, if any
    is_teleport: bool = False
    is_ranged_attack: bool = False
    is_castling: bool = False


@dataclass
class FeedbackContext:
    game_phase: Optional[GamePhase] = None
    performance_score: Optional[float] = None
    learning_point: str = ""
    hint: Optional[str] = None


@dataclass
class MentorFeedback:
    id: str
    type: FeedbackType
    message: str
    priority: Priority
    timestamp: float
    context: FeedbackContext = field(default_factory=FeedbackContext)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "message": self.message,
            "priority": self.priority.value,
            "timestamp": self.timestamp,
            "context": {
                "game_phase": self.context.game_phase.value if self.context.game_phase else None,
                "performance_score": self.context.performance_score,
                "learning_point": self.context.learning_point,
                "hint": self.context.hint,
            },
        }

    @classmethod
    def from_dict(cls, data) -> Optional["MentorFeedback"]:
        if not isinstance(data, dict) or not isinstance(data.get("message"), str):
            return None
        ctx = data.get("context")
        if not isinstance(ctx, dict):
            ctx = {}
        try:
            phase = GamePhase(ctx["game_phase"]) if ctx.get("game_phase") else None
            fb_type = FeedbackType(data.get("type", "encouragement"))
            priority = Priority(data.get("priority", "medium"))
        except ValueError:
            return None
        timestamp = data.get("timestamp")
        score = ctx.get("performance_score")
        hint = ctx.get("hint")
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex),
            type=fb_type,
            message=data["message"],
            priority=priority,
            timestamp=float(timestamp) if isinstance(timestamp, (int, float)) else 0.0,
            context=FeedbackContext(
                game_phase=phase,
                performance_score=score if isinstance(score, (int, float)) else None,
                learning_point=str(ctx.get("learning_point", "")),
                hint=hint if isinstance(hint, str) else None,
            ),
        )


def assess_game_phase(snapshot: GameSnapshot) -> GamePhase:
    if snapshot.move_count < 20:
        return GamePhase.OPENING
    if snapshot.move_count < 40:
        return GamePhase.MIDDLE
    return GamePhase.ENDGAME


def bucket_quality(quality: float) -> Quality:
    if quality > 70:
        return Quality.EXCELLENT
    if quality < 40:
        return Quality.POOR
    return Quality.AVERAGE


def is_special_move(move: MoveDescriptor) -> bool:
    return (
        move.is_teleport
        or move.is_ranged_attack
        or move.is_castling
        or (move.captured or "").lower() in HIGH_VALUE_PIECES
    )


class FeedbackGenerator:
    """Decides when to comment on a move and what to say.

    Randomness (the sampling gate, quality noise and message variant) all
    comes from the injected ``rng`` so a seeded source replays exactly.
    """

    def __init__(
        self,
        config: Optional[FeedbackConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or FeedbackConfig()
        self.rng = rng or random.Random()
        self.clock = clock
        self._buffer: deque[MentorFeedback] = deque(maxlen=self.config.buffer_size)

    @property
    def current_feedback(self) -> list[MentorFeedback]:
        return list(self._buffer)

    # --- Sampling and scoring ---

    def should_provide_feedback(self, snapshot: GameSnapshot, move: MoveDescriptor) -> bool:
        n = snapshot.move_count
        every = self.config.periodic_every
        return (
            n in self.config.forced_moves
            or (every > 0 and n > 0 and n % every == 0)
            or is_special_move(move)
            or snapshot.is_check
            or self.rng.random() < self.config.random_chance
        )

    def score_move(self, move: MoveDescriptor) -> float:
        quality = 50.0
        if move.captured:
            quality += CAPTURE_BONUS
        if move.is_teleport:
            quality += TELEPORT_BONUS
        if move.is_ranged_attack:
            quality += RANGED_ATTACK_BONUS
        if move.is_castling:
            quality += CASTLING_BONUS
        quality += self.rng.uniform(-NOISE, NOISE)
        return clamp(quality, 0, 100)

    # --- Message construction ---

    def recent_messages(self) -> set[str]:
        cutoff = self.clock() - self.config.repeat_window_seconds
        return {f.message for f in self._buffer if f.timestamp >= cutoff}

    def generate_contextual_feedback(
        self,
        snapshot: GameSnapshot,
        quality: float,
        strategy: CoachingStrategy,
    ) -> MentorFeedback:
        phase = assess_game_phase(snapshot)
        bucket = bucket_quality(quality)

        message = self.rng.choice(MESSAGES[phase][bucket])
        recent = self.recent_messages()
        if message in recent:
            message = self._fallback_message(bucket, recent)

        if bucket == Quality.EXCELLENT:
            fb_type = FeedbackType.CELEBRATION
        elif bucket == Quality.POOR:
            fb_type = FeedbackType.STRATEGY
        elif phase == GamePhase.OPENING:
            fb_type = FeedbackType.ENCOURAGEMENT
        else:
            fb_type = FeedbackType.ANALYSIS

        interventions = strategy.interventions
        if snapshot.is_check or quality < 40:
            priority = Priority.URGENT
        elif interventions.feedback_frequency == FeedbackFrequency.LOW:
            priority = Priority.LOW
        else:
            priority = Priority.MEDIUM

        if interventions.analysis_depth == AnalysisDepth.BASIC:
            learning_point = f"{phase.value} phase improvement"
        elif interventions.analysis_depth == AnalysisDepth.DETAILED:
            learning_point = f"{phase.value} phase: {bucket.value} move"
        else:
            learning_point = f"{phase.value} phase: {bucket.value} move ({quality:.0f}/100)"

        hint = None
        if interventions.hint_available and bucket == Quality.POOR:
            hint = PHASE_HINTS[phase]

        return MentorFeedback(
            id=f"feedback-{uuid.uuid4().hex[:12]}",
            type=fb_type,
            message=message,
            priority=priority,
            timestamp=self.clock(),
            context=FeedbackContext(
                game_phase=phase,
                performance_score=round(quality, 1),
                learning_point=learning_point,
                hint=hint,
            ),
        )

    def _fallback_message(self, bucket: Quality, recent: set[str]) -> str:
        candidates = [t.format(tone=FALLBACK_TONE[bucket]) for t in FALLBACK_TEMPLATES]
        for candidate in candidates:
            if candidate not in recent:
                return candidate
        # All used recently: reuse the one said longest ago
        last_said = {f.message: f.timestamp for f in self._buffer}
        return min(candidates, key=lambda c: last_said.get(c, 0.0))

    def analyze_move(
        self,
        snapshot: GameSnapshot,
        move: MoveDescriptor,
        strategy: CoachingStrategy,
    ) -> Optional[MentorFeedback]:
        """Run the full pipeline for one move; None when the move is skipped."""
        if not self.should_provide_feedback(snapshot, move):
            logger.debug("Skipping feedback for move %d", snapshot.move_count)
            return None
        quality = self.score_move(move)
        feedback = self.generate_contextual_feedback(snapshot, quality, strategy)
        self.add_feedback(feedback)
        return feedback

    def notice(
        self,
        message: str,
        fb_type: FeedbackType = FeedbackType.ANALYSIS,
        priority: Priority = Priority.MEDIUM,
        learning_point: str = "",
    ) -> MentorFeedback:
        """Emit a feedback record that is not tied to a particular move."""
        feedback = MentorFeedback(
            id=f"{fb_type.value}-{uuid.uuid4().hex[:12]}",
            type=fb_type,
            message=message,
            priority=priority,
            timestamp=self.clock(),
            context=FeedbackContext(learning_point=learning_point),
        )
        self.add_feedback(feedback)
        return feedback

    # --- Buffer management ---

    def add_feedback(self, feedback: MentorFeedback) -> None:
        self._buffer.append(feedback)

    def clear_old_feedback(self) -> int:
        """Drop entries older than the maximum age; returns how many went."""
        cutoff = self.clock() - self.config.max_age_seconds
        kept = [f for f in self._buffer if f.timestamp > cutoff]
        removed = len(self._buffer) - len(kept)
        self._buffer = deque(kept, maxlen=self.config.buffer_size)
        if removed:
            logger.debug("Pruned %d stale feedback entries", removed)
        return removed

    def feedback_for_phase(self, phase: GamePhase | str) -> list[MentorFeedback]:
        phase = GamePhase(phase)
        return [f for f in self._buffer if f.context.game_phase == phase]

    def load(self, entries: Iterable[MentorFeedback]) -> None:
        self._buffer = deque(entries, maxlen=self.config.buffer_size)

    def clear(self) -> None:
        self._buffer.clear()
