"""Subscription plans: read the current plan, change it, reset quotas."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.accounts.tiers import normalize_tier, plan_limits
from sprewards.db.models import Account
from sprewards.errors import AccountNotFound
from sprewards.uptime.service import reset_user_devices

logger = logging.getLogger(__name__)


async def get_subscription(db: AsyncSession, user_id: int) -> dict:
    """Current plan and its limits."""
    result = await db.execute(
        select(Account.subscription_tier).where(Account.id == user_id)
    )
    tier = result.scalar_one_or_none()
    if tier is None:
        msg = f"Account {user_id} not found"
        raise AccountNotFound(msg)

    limits = plan_limits(tier)
    return {
        "plan": tier,
        "max_uptime": limits["max_uptime"],
        "max_daily_earnings": limits["max_daily_earnings"],
    }


async def change_plan(db: AsyncSession, user_id: int, plan: str) -> dict:
    """Switch ``user_id`` to ``plan`` and restore full uptime on their devices.

    The tier change and the device reset commit together, so devices never
    see the new plan with the old quota.

    Raises:
        RewardsError: Unknown plan name.
        AccountNotFound: No such account.
    """
    tier = normalize_tier(plan)

    try:
        result = await db.execute(
            update(Account).where(Account.id == user_id).values(subscription_tier=tier)
        )
        if result.rowcount == 0:
            msg = f"Account {user_id} not found"
            raise AccountNotFound(msg)

        devices_reset = await reset_user_devices(db, user_id, tier)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("User %d moved to %s plan; %d device(s) reset", user_id, tier, devices_reset)
    limits = plan_limits(tier)
    return {
        "plan": tier,
        "max_uptime": limits["max_uptime"],
        "max_daily_earnings": limits["max_daily_earnings"],
        "devices_reset": devices_reset,
        "changed_at": datetime.now(timezone.utc),
    }
