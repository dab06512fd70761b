"""Subscription endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.auth.dependencies import get_current_account
from sprewards.database import get_session
from sprewards.db.models import Account
from sprewards.subscriptions.schemas import SubscriptionResponse, UpgradeRequest, UpgradeResponse
from sprewards.subscriptions.service import change_plan, get_subscription

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/subscriptions", tags=["Subscriptions"])


@router.get("/current", response_model=SubscriptionResponse)
async def current(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> SubscriptionResponse:
    return SubscriptionResponse(**await get_subscription(db, account.id))


@router.post("/upgrade", response_model=UpgradeResponse)
async def upgrade(
    body: UpgradeRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> UpgradeResponse:
    """Change plan; every owned device gets the new plan's full quota."""
    user_id = account.id
    previous = account.subscription_tier
    result = await change_plan(db, user_id, body.plan)
    logger.info("plan_changed", user_id=user_id, previous=previous, plan=result["plan"])
    return UpgradeResponse(
        plan=result["plan"],
        max_uptime=result["max_uptime"],
        max_daily_earnings=result["max_daily_earnings"],
        devices_reset=result["devices_reset"],
    )
