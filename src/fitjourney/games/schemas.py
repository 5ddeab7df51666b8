"""Pydantic models for mini-game endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class GameSessionResponse(BaseModel):
    id: int
    game_type: str
    score: int
    coins_earned: int
    completed: bool
    started_at: datetime
    completed_at: datetime | None = None
    duration_seconds: int | None = None


class CompleteGameRequest(BaseModel):
    score: int = Field(0, ge=0)
    game_data: dict = Field(default_factory=dict)


class CompleteGameResponse(BaseModel):
    session: GameSessionResponse
    coins_earned: int
    is_high_score: bool
    previous_best: int | None = None
    rank: int
    badges: list[str] = []


class GameStatusEntry(BaseModel):
    game_type: str
    name: str
    description: str
    played_today: int
    daily_limit: int
    remaining: int
    can_play: bool


class GameStatusResponse(BaseModel):
    games: list[GameStatusEntry]


class GameStatsEntry(BaseModel):
    total_games: int
    high_score: int
    average_score: float
    total_coins: int
    remaining_today: int


class GameStatsResponse(BaseModel):
    stats: dict[str, GameStatsEntry]


class GameLeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    username: str | None = None
    name: str | None = None
    level: int
    score: int
    games_played: int
    percentile: float


class GameLeaderboardResponse(BaseModel):
    game_type: str
    period: str
    entries: list[GameLeaderboardEntry]
