"""Pydantic models for subscription endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class UpgradeRequest(BaseModel):
    plan: str = Field(min_length=1, max_length=32)


class SubscriptionResponse(BaseModel):
    plan: str
    max_uptime: int
    max_daily_earnings: int


class UpgradeResponse(SubscriptionResponse):
    success: bool = True
    devices_reset: int
