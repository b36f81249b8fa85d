"""Tests for per-move feedback generation."""

import random

import pytest

from chessmentor.config.settings import FeedbackConfig
from chessmentor.engine.feedback import (
    FeedbackGenerator,
    FeedbackType,
    GamePhase,
    GameSnapshot,
    MentorFeedback,
    MoveDescriptor,
    Priority,
    Quality,
    assess_game_phase,
    bucket_quality,
    is_special_move,
)
from chessmentor.engine.strategy import StrategySelector

from conftest import ScriptedRandom

BEGINNER = StrategySelector().by_id("beginner-encouragement")
INTERMEDIATE = StrategySelector().by_id("intermediate-challenge")
ADVANCED = StrategySelector().by_id("advanced-mastery")


@pytest.fixture
def generator(clock, rng):
    return FeedbackGenerator(config=FeedbackConfig(), rng=rng, clock=clock)


@pytest.mark.parametrize(
    "moves,phase",
    [(0, GamePhase.OPENING), (19, GamePhase.OPENING), (20, GamePhase.MIDDLE),
     (39, GamePhase.MIDDLE), (40, GamePhase.ENDGAME), (120, GamePhase.ENDGAME)],
)
def test_assess_game_phase(moves, phase):
    assert assess_game_phase(GameSnapshot(move_count=moves)) == phase


@pytest.mark.parametrize(
    "quality,bucket",
    [(71, Quality.EXCELLENT), (70, Quality.AVERAGE), (40, Quality.AVERAGE), (39.9, Quality.POOR)],
)
def test_bucket_quality(quality, bucket):
    assert bucket_quality(quality) == bucket


def test_special_moves():
    assert is_special_move(MoveDescriptor(captured="Queen"))
    assert is_special_move(MoveDescriptor(is_castling=True))
    assert not is_special_move(MoveDescriptor(captured="pawn"))
    assert not is_special_move(MoveDescriptor())


class TestSampling:

    @pytest.mark.parametrize("move", [1, 10, 20, 40])
    def test_forced_moves_always_commented(self, generator, move):
        assert generator.should_provide_feedback(GameSnapshot(move), MoveDescriptor())

    def test_periodic_moves(self, generator):
        assert generator.should_provide_feedback(GameSnapshot(45), MoveDescriptor())

    def test_quiet_move_skipped_when_gate_fails(self, generator):
        assert generator.analyze_move(GameSnapshot(3), MoveDescriptor(), BEGINNER) is None
        assert generator.current_feedback == []

    def test_quiet_move_commented_when_gate_passes(self, clock):
        gen = FeedbackGenerator(rng=ScriptedRandom(gate=0.01), clock=clock)
        assert gen.analyze_move(GameSnapshot(3), MoveDescriptor(), BEGINNER) is not None

    def test_check_and_special_moves_commented(self, generator):
        assert generator.should_provide_feedback(GameSnapshot(7, is_check=True), MoveDescriptor())
        assert generator.should_provide_feedback(GameSnapshot(7), MoveDescriptor(is_teleport=True))

    def test_seeded_generators_replay(self, clock):
        a = FeedbackGenerator(rng=random.Random(42), clock=clock)
        b = FeedbackGenerator(rng=random.Random(42), clock=clock)
        runs = []
        for gen in (a, b):
            out = []
            for n in range(2, 40):
                fb = gen.analyze_move(GameSnapshot(n), MoveDescriptor(), BEGINNER)
                out.append(fb.message if fb else None)
            runs.append(out)
        assert runs[0] == runs[1]


class TestScoring:

    def test_bonuses_stack(self, generator):
        move = MoveDescriptor(captured="queen", is_teleport=True, is_ranged_attack=True)
        assert generator.score_move(move) == 95

    def test_castling_bonus(self, generator):
        assert generator.score_move(MoveDescriptor(is_castling=True)) == 62

    def test_score_clamped(self, clock):
        gen = FeedbackGenerator(rng=ScriptedRandom(noise=10), clock=clock)
        move = MoveDescriptor(captured="queen", is_teleport=True,
                              is_ranged_attack=True, is_castling=True)
        assert gen.score_move(move) == 100


class TestContent:

    def test_average_opening_move(self, generator):
        fb = generator.analyze_move(GameSnapshot(1), MoveDescriptor(), BEGINNER)
        assert fb.message == "Good opening development. Try to control the center squares."
        assert fb.type == FeedbackType.ENCOURAGEMENT
        assert fb.priority == Priority.MEDIUM
        assert fb.context.game_phase == GamePhase.OPENING
        assert fb.context.learning_point == "opening phase improvement"
        assert fb.context.hint is None

    def test_excellent_move_is_celebrated(self, generator):
        move = MoveDescriptor(captured="queen", is_ranged_attack=True)
        fb = generator.analyze_move(GameSnapshot(25), move, INTERMEDIATE)
        assert fb.type == FeedbackType.CELEBRATION
        assert fb.message.startswith("Brilliant tactical play!")
        assert fb.context.learning_point == "middle phase: excellent move"

    def test_poor_move_is_urgent_with_hint(self, clock):
        gen = FeedbackGenerator(rng=ScriptedRandom(noise=-15), clock=clock)
        fb = gen.analyze_move(GameSnapshot(40), MoveDescriptor(), BEGINNER)
        assert fb.type == FeedbackType.STRATEGY
        assert fb.priority == Priority.URGENT
        assert fb.context.hint is not None

    def test_check_is_urgent(self, generator):
        fb = generator.analyze_move(GameSnapshot(1, is_check=True), MoveDescriptor(), INTERMEDIATE)
        assert fb.priority == Priority.URGENT

    def test_poor_move_under_quiet_strategy(self, clock):
        gen = FeedbackGenerator(rng=ScriptedRandom(noise=-15), clock=clock)
        fb = gen.analyze_move(GameSnapshot(20), MoveDescriptor(), ADVANCED)
        assert fb.priority == Priority.URGENT
        assert fb.context.hint is None

    def test_low_frequency_strategy(self, generator):
        fb = generator.analyze_move(GameSnapshot(20), MoveDescriptor(), ADVANCED)
        assert fb.priority == Priority.LOW
        assert fb.type == FeedbackType.ANALYSIS
        assert fb.context.learning_point == "middle phase: average move (50/100)"


class TestRepeats:

    def test_repeat_within_window_uses_fallback(self, generator, clock):
        first = generator.analyze_move(GameSnapshot(1), MoveDescriptor(), BEGINNER)
        clock.advance(10)
        second = generator.analyze_move(GameSnapshot(10), MoveDescriptor(), BEGINNER)
        assert second.message != first.message
        assert second.message == "Wise move, young apprentice. Continue with such steady play."

    def test_fallback_is_not_repeated_back_to_back(self, generator, clock):
        messages = []
        for move in [1, 10, 15]:
            messages.append(generator.analyze_move(GameSnapshot(move), MoveDescriptor(), BEGINNER).message)
            clock.advance(10)
        assert len(set(messages)) == 3
        assert messages[1] == "Wise move, young apprentice. Continue with such steady play."

    def test_exhausted_fallbacks_rotate_oldest_first(self, generator, clock):
        messages = []
        for _ in range(5):
            snapshot = GameSnapshot(5, is_check=True)
            messages.append(generator.analyze_move(snapshot, MoveDescriptor(), BEGINNER).message)
            clock.advance(5)
        assert all(a != b for a, b in zip(messages, messages[1:]))
        assert messages[4] == messages[1]

    def test_repeat_allowed_after_window(self, generator, clock):
        first = generator.analyze_move(GameSnapshot(1), MoveDescriptor(), BEGINNER)
        clock.advance(46)
        second = generator.analyze_move(GameSnapshot(10), MoveDescriptor(), BEGINNER)
        assert second.message == first.message


class TestBuffer:

    def test_buffer_keeps_newest_ten(self, generator):
        for i in range(12):
            generator.notice(f"note {i}")
        messages = [f.message for f in generator.current_feedback]
        assert len(messages) == 10
        assert messages[0] == "note 2"
        assert messages[-1] == "note 11"

    def test_clear_old_feedback(self, generator, clock):
        generator.notice("old")
        clock.advance(200)
        generator.notice("fresh")
        clock.advance(150)
        assert generator.clear_old_feedback() == 1
        assert [f.message for f in generator.current_feedback] == ["fresh"]

    def test_feedback_for_phase(self, generator, clock):
        generator.analyze_move(GameSnapshot(1), MoveDescriptor(), BEGINNER)
        clock.advance(60)
        generator.analyze_move(GameSnapshot(20), MoveDescriptor(), BEGINNER)
        generator.notice("phase-less")
        assert len(generator.feedback_for_phase("opening")) == 1
        assert len(generator.feedback_for_phase(GamePhase.MIDDLE)) == 1
        assert generator.feedback_for_phase(GamePhase.ENDGAME) == []


class TestSerialization:

    def test_feedback_survives_dict_form(self, generator):
        fb = generator.analyze_move(GameSnapshot(1), MoveDescriptor(), BEGINNER)
        assert MentorFeedback.from_dict(fb.to_dict()) == fb

    @pytest.mark.parametrize(
        "data",
        [None, "text", {}, {"message": 3}, {"message": "x", "type": "shout"}],
    )
    def test_malformed_entries_rejected(self, data):
        assert MentorFeedback.from_dict(data) is None

    @pytest.mark.parametrize("context", ["oops", 7, ["opening"]])
    def test_non_mapping_context_uses_defaults(self, context):
        fb = MentorFeedback.from_dict({"message": "hello", "context": context})
        assert fb.message == "hello"
        assert fb.context.game_phase is None
        assert fb.context.learning_point == ""
