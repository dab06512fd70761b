"""Referral endpoints. Code verification is public; the rest need a bearer token."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.auth.dependencies import get_current_account
from sprewards.config import get_settings
from sprewards.database import get_session
from sprewards.db.models import Account
from sprewards.referrals.schemas import (
    ReferralCodeRequest,
    ReferralEntry,
    ReferralListResponse,
    ReferralStatsResponse,
    UseReferralResponse,
    VerifyResponse,
)
from sprewards.referrals.service import (
    get_referral_stats,
    list_referrals,
    use_referral_code,
    verify_referral_code,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/referrals", tags=["Referrals"])


# ── Public ──


@router.post("/verify", response_model=VerifyResponse)
async def verify(body: ReferralCodeRequest, db: AsyncSession = Depends(get_session)) -> VerifyResponse:
    """Check a referral code before signup."""
    return VerifyResponse(**await verify_referral_code(db, body.code))


# ── Authenticated ──


@router.post("/use", response_model=UseReferralResponse)
async def use(
    body: ReferralCodeRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> UseReferralResponse:
    """Redeem someone else's referral code after signup."""
    user_id = account.id
    edge = await use_referral_code(db, user_id, body.code)
    logger.info("referral_used", user_id=user_id, referrer_id=edge.referrer_id)
    return UseReferralResponse(
        success=True,
        message="Referral code applied",
        referrer_id=edge.referrer_id,
        bonus=float(get_settings().referred_signup_bonus),
    )


@router.get("", response_model=ReferralListResponse)
async def my_referrals(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> ReferralListResponse:
    code = account.referral_code
    edges = await list_referrals(db, account.id)
    return ReferralListResponse(
        referral_code=code,
        referrals=[
            ReferralEntry(
                referred_id=e.referred_id,
                referral_code=e.referral_code,
                status=e.status,
                reward_amount=float(e.reward_amount),
                created_at=e.created_at,
            )
            for e in edges
        ],
        total=len(edges),
    )


@router.get("/stats", response_model=ReferralStatsResponse)
async def referral_stats(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> ReferralStatsResponse:
    code = account.referral_code
    stats = await get_referral_stats(db, account.id)
    return ReferralStatsResponse(
        referral_code=code,
        total_referrals=stats["total_referrals"],
        active_referrals=stats["active_referrals"],
        total_signup_rewards=float(stats["total_signup_rewards"]),
        total_royalties=float(stats["total_royalties"]),
        royalties_by_tier={tier: float(v) for tier, v in stats["royalties_by_tier"].items()},
    )
