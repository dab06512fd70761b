"""Pydantic models for device endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class DeviceCreateRequest(BaseModel):
    device_name: str = Field(min_length=1, max_length=128)
    device_type: str = Field(default="desktop", max_length=32)
    gpu_model: str | None = None
    uptime_mode: Literal["countdown", "accumulate"] = "countdown"


class RemainingRequest(BaseModel):
    remaining_seconds: int


class ElapsedRequest(BaseModel):
    elapsed_seconds: int = Field(ge=0)


class StatusRequest(BaseModel):
    status: Literal["offline", "online", "busy"]


class DeviceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    device_name: str
    device_type: str
    gpu_model: str | None = None
    status: str
    uptime_seconds: int
    uptime_mode: str
    last_seen_at: datetime | None = None
    created_at: datetime | None = None


class DeviceListResponse(BaseModel):
    devices: list[DeviceResponse]
    total: int
