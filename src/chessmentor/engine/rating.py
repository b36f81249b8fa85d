"""Elo-style PvP ratings, campaign scores and leaderboard views."""

from __future__ import annotations

import logging
import math
import time
import uuid
from typing import Callable, Iterable, Optional

from chessmentor.config.settings import RatingConfig
from chessmentor.engine.models import (
    CampaignRecord,
    GameMode,
    LeaderboardEntry,
    Outcome,
    PvPRecord,
    clamp,
)

logger = logging.getLogger(__name__)

ACTUAL_SCORE = {Outcome.WIN: 1.0, Outcome.DRAW: 0.5, Outcome.LOSS: 0.0}


def expected_score(rating: float, opponent_rating: float) -> float:
    return 1 / (1 + 10 ** ((opponent_rating - rating) / 400))


def calculate_rating(
    rating: float,
    opponent_rating: float,
    result: Outcome | str,
    k_factor: float = 32,
    floor: int = 800,
    ceiling: int = 2800,
) -> int:
    actual = ACTUAL_SCORE[Outcome(result)]
    rating = clamp(rating, floor, ceiling)
    opponent_rating = clamp(opponent_rating, floor, ceiling)
    new_rating = rating + k_factor * (actual - expected_score(rating, opponent_rating))
    return int(clamp(math.floor(new_rating + 0.5), floor, ceiling))


def calculate_campaign_score(record: CampaignRecord) -> int:
    score = (
        record.highest_level_reached * 100
        + record.total_wins * 50
        + (record.win_rate_pct / 100) * 200
    )
    if record.best_game_time_ms is not None:
        score += max(0.0, 300 - record.best_game_time_ms / 1000)
    return int(round(score))


def _new_player_id() -> str:
    return f"player_{uuid.uuid4().hex[:12]}"


class RatingEngine:
    """Owns the local player's rating records and the stored leaderboards."""

    def __init__(
        self,
        config: Optional[RatingConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or RatingConfig()
        self.clock = clock
        self.player_name: str = ""
        self.pvp: Optional[PvPRecord] = None
        self.campaign: Optional[CampaignRecord] = None
        self._boards: dict[GameMode, list] = {GameMode.PVP: [], GameMode.CAMPAIGN: []}

    def set_player_name(self, name: str) -> None:
        """Start fresh PvP and campaign records under a new player id."""
        player_id = _new_player_id()
        now = self.clock()
        self.player_name = name
        self.pvp = PvPRecord(
            player_id=player_id,
            player_name=name,
            updated_at=now,
            rating=self.config.initial_rating,
        )
        self.campaign = CampaignRecord(player_id=player_id, player_name=name, updated_at=now)

    def ensure_player(self, name: str) -> None:
        if self.pvp is None or self.campaign is None:
            self.set_player_name(self.player_name or name)

    # --- PvP ---

    def record_pvp_game(
        self,
        result: Outcome | str,
        game_length_ms: float,
        opponent_rating: Optional[float] = None,
    ) -> PvPRecord:
        result = Outcome(result)
        self.ensure_player("Player")
        rec = self.pvp
        game_length_ms = max(0.0, float(game_length_ms))
        if opponent_rating is None:
            opponent_rating = self.config.default_opponent_rating
        opponent_rating = clamp(float(opponent_rating), self.config.floor, self.config.ceiling)

        previous_games = rec.total_games
        rec.total_games += 1
        if result == Outcome.WIN:
            rec.total_wins += 1
            rec.current_streak = rec.current_streak + 1 if rec.current_streak > 0 else 1
            if rec.fastest_win_ms is None or game_length_ms < rec.fastest_win_ms:
                rec.fastest_win_ms = game_length_ms
        elif result == Outcome.LOSS:
            rec.total_losses += 1
            rec.current_streak = rec.current_streak - 1 if rec.current_streak < 0 else -1
        else:
            rec.total_draws += 1
            rec.current_streak = 0

        rec.best_streak = max(rec.best_streak, abs(rec.current_streak))
        rec.win_rate_pct = rec.total_wins / rec.total_games * 100
        rec.average_game_length_ms = (
            rec.average_game_length_ms * previous_games + game_length_ms
        ) / rec.total_games

        old_rating = rec.rating
        rec.rating = calculate_rating(
            rec.rating,
            opponent_rating,
            result,
            k_factor=self.config.k_factor,
            floor=self.config.floor,
            ceiling=self.config.ceiling,
        )
        rec.updated_at = self.clock()
        logger.info(
            "PvP %s vs %d: rating %d -> %d", result.value, opponent_rating, old_rating, rec.rating
        )
        return rec

    # --- Campaign ---

    def record_campaign_game(self, won: bool, game_time_ms: float, level: int) -> CampaignRecord:
        self.ensure_player("Player")
        rec = self.campaign
        game_time_ms = max(0.0, float(game_time_ms))
        level = max(1, int(level))

        previous_games = rec.total_games
        rec.total_games += 1
        if won:
            rec.total_wins += 1
        rec.win_rate_pct = rec.total_wins / rec.total_games * 100
        rec.average_game_time_ms = (
            rec.average_game_time_ms * previous_games + game_time_ms
        ) / rec.total_games
        if rec.best_game_time_ms is None or game_time_ms < rec.best_game_time_ms:
            rec.best_game_time_ms = game_time_ms
        rec.current_level = level
        rec.highest_level_reached = max(rec.highest_level_reached, level)
        rec.total_experience += level * 100 if won else level * 25
        rec.campaign_score = calculate_campaign_score(rec)
        rec.updated_at = self.clock()
        logger.info("Campaign level %d %s: score %d", level, "won" if won else "lost", rec.campaign_score)
        return rec

    # --- Leaderboards ---

    def submit_entries(self, mode: GameMode | str, records: Iterable) -> int:
        """Merge externally supplied records into a stored board by player id."""
        mode = GameMode(mode)
        record_cls = PvPRecord if mode == GameMode.PVP else CampaignRecord
        board = {r.player_id: r for r in self._boards[mode]}
        added = 0
        for raw in records:
            record = raw if isinstance(raw, record_cls) else record_cls.from_dict(raw)
            if record is None:
                continue
            board[record.player_id] = record
            added += 1
        self._boards[mode] = list(board.values())
        return added

    def leaderboard(self, mode: GameMode | str) -> list[LeaderboardEntry]:
        mode = GameMode(mode)
        own = self.pvp if mode == GameMode.PVP else self.campaign
        records = list(self._boards[mode])
        if own is not None:
            # The live record wins over any stale stored copy
            records = [r for r in records if r.player_id != own.player_id] + [own]

        if mode == GameMode.PVP:
            records.sort(key=lambda r: r.rating, reverse=True)
        else:
            records.sort(key=lambda r: r.campaign_score, reverse=True)

        own_id = own.player_id if own is not None else None
        return [
            LeaderboardEntry(rank=i + 1, record=r, is_current_player=r.player_id == own_id)
            for i, r in enumerate(records[: self.config.leaderboard_size])
        ]

    def player_rank(self, mode: GameMode | str) -> Optional[int]:
        for entry in self.leaderboard(mode):
            if entry.is_current_player:
                return entry.rank
        return None

    # --- State ---

    def to_dict(self) -> dict:
        return {
            "player_name": self.player_name,
            "pvp": self.pvp.to_dict() if self.pvp else None,
            "campaign": self.campaign.to_dict() if self.campaign else None,
            "pvp_leaderboard": [r.to_dict() for r in self._boards[GameMode.PVP]],
            "campaign_leaderboard": [r.to_dict() for r in self._boards[GameMode.CAMPAIGN]],
        }

    def load(self, data: dict) -> None:
        if not isinstance(data, dict):
            data = {}
        self.player_name = str(data.get("player_name") or "")
        self.pvp = PvPRecord.from_dict(data.get("pvp"))
        self.campaign = CampaignRecord.from_dict(data.get("campaign"))
        if self.pvp is not None:
            self.pvp.rating = int(clamp(self.pvp.rating, self.config.floor, self.config.ceiling))
        self._boards = {GameMode.PVP: [], GameMode.CAMPAIGN: []}
        for mode in GameMode:
            entries = data.get(f"{mode.value}_leaderboard")
            if isinstance(entries, list):
                self.submit_entries(mode, entries)

    def reset(self) -> None:
        self.pvp = None
        self.campaign = None
        self._boards = {GameMode.PVP: [], GameMode.CAMPAIGN: []}
