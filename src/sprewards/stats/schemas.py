"""Pydantic models for platform statistics."""

from __future__ import annotations

from pydantic import BaseModel


class GlobalStatsResponse(BaseModel):
    global_sp: float
    total_users: int
    global_compute_generated: float
    tasks_by_type: dict[str, int] = {}
