"""Pydantic models for task completion."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class TaskCompleteRequest(BaseModel):
    task_id: str = Field(min_length=1, max_length=128)
    task_type: str = Field(min_length=1, max_length=32)
    # Passed through unparsed; the service rejects and logs anything but an int
    reward_amount: Any
    hardware_tier: str | None = None
    multiplier: float | None = None


class RoyaltyEntry(BaseModel):
    tier: int
    beneficiary_id: int
    amount: float
    credited: bool


class TaskCompleteResponse(BaseModel):
    unclaimed_reward_delta: float
    total_unclaimed_reward: float
    task_count: int
    royalties: list[RoyaltyEntry] = []


class TaskStatsResponse(BaseModel):
    total_tasks: int
    total_earnings: float
    today_tasks: int
    today_earnings: float
    average_per_task: float
