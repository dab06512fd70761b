"""Pydantic models for earnings endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class EarningsSummaryResponse(BaseModel):
    total_unclaimed_reward: float
    total_earnings: float
    total_balance: float
    task_completed: int
    by_source: dict[str, float] = {}


class EarningEntry(BaseModel):
    id: int
    amount: float
    source: str
    is_claimed: bool
    claimed_at: datetime | None = None
    description: str | None = None
    metadata: dict = {}
    created_at: datetime | None = None


class EarningHistoryResponse(BaseModel):
    entries: list[EarningEntry]
    total: int
    page: int
    per_page: int
