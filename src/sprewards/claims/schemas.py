"""Pydantic models for the claim endpoint."""

from __future__ import annotations

from pydantic import BaseModel


class ClaimData(BaseModel):
    claimed_amount: float
    new_total_earnings: float | None = None


class ClaimResponse(BaseModel):
    success: bool
    message: str
    data: ClaimData
