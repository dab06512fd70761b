"""Pydantic models for leaderboard endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    username: str
    total_amount: float


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
    current_user: LeaderboardEntry | None = None
    total_ranked: int


class RankResponse(BaseModel):
    rank: int | None = None
    total_ranked: int
