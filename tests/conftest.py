"""Shared fixtures for ChessMentor tests."""

from __future__ import annotations

import random

import pytest

from chessmentor.config.settings import Settings
from chessmentor.engine.mentor import MentorEngine
from chessmentor.state.store import StateStore


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedRandom(random.Random):
    """Never passes the random gate, adds no noise and picks the first variant."""

    def __init__(self, gate: float = 0.99, noise: float = 0.0):
        super().__init__(0)
        self.gate = gate
        self.noise = noise

    def random(self) -> float:
        return self.gate

    def uniform(self, a, b) -> float:
        return self.noise

    def choice(self, seq):
        return seq[0]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return ScriptedRandom()


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data", player_name="Tester", seed=7)


@pytest.fixture
def store(settings):
    return StateStore(db_path=settings.state_path)


@pytest.fixture
def engine(settings, clock, rng):
    return MentorEngine(settings=settings, clock=clock, rng=rng)


@pytest.fixture
def stored_engine(settings, store, clock, rng):
    return MentorEngine(settings=settings, store=store, clock=clock, rng=rng)


def play(engine, outcomes, length_ms=300000, accuracy=80.0, clock=None):
    """Record a sequence of outcome strings through the engine."""
    for outcome in outcomes:
        engine.record_game_result(outcome, length_ms, accuracy)
        if clock is not None:
            clock.advance(60)
