"""Pydantic models for referral endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from sprewards.accounts.codes import MAX_CODE_LENGTH, MIN_CODE_LENGTH


class ReferralCodeRequest(BaseModel):
    code: str = Field(min_length=MIN_CODE_LENGTH, max_length=MAX_CODE_LENGTH)


class ReferrerInfo(BaseModel):
    id: int
    username: str


class VerifyResponse(BaseModel):
    valid: bool
    referrer: ReferrerInfo | None = None


class UseReferralResponse(BaseModel):
    success: bool
    message: str
    referrer_id: int
    bonus: float


class ReferralEntry(BaseModel):
    referred_id: int
    referral_code: str
    status: str
    reward_amount: float
    created_at: datetime | None = None


class ReferralListResponse(BaseModel):
    referral_code: str
    referrals: list[ReferralEntry]
    total: int


class ReferralStatsResponse(BaseModel):
    referral_code: str
    total_referrals: int
    active_referrals: int
    total_signup_rewards: float
    total_royalties: float
    royalties_by_tier: dict[int, float]
