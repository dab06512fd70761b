"""Pydantic models for daily check-ins."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel


class CheckinResponse(BaseModel):
    checked_in: bool
    message: str
    current_streak: int
    day_number: int
    reward: float
    next_reward_day: int


class StreakResponse(BaseModel):
    current_streak: int
    can_check_in_today: bool
    next_day_number: int
    next_reward: float
    last_checkin_date: date | None = None
