"""Claim endpoint."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.auth.dependencies import get_current_account
from sprewards.claims.schemas import ClaimData, ClaimResponse
from sprewards.claims.service import claim_rewards
from sprewards.database import get_session
from sprewards.db.models import Account
from sprewards.redis_client import get_optional_redis

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Claims"])


@router.post("/claim-rewards", response_model=ClaimResponse)
async def claim(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_optional_redis),
) -> ClaimResponse:
    """Move the caller's whole unclaimed balance into their claimed total."""
    user_id = account.id
    result = await claim_rewards(db, user_id, redis)
    if result.claimed:
        logger.info("rewards_claimed", user_id=user_id, amount=str(result.claimed_amount))

    return ClaimResponse(
        success=result.claimed,
        message=result.message,
        data=ClaimData(
            claimed_amount=float(result.claimed_amount),
            new_total_earnings=float(result.new_total) if result.new_total is not None else None,
        ),
    )
