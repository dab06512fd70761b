"""Royalty cascade: pay a share of every task reward up the referral chain.

Tier 1 is the earner's direct referrer, tier 2 that user's referrer, and so
on up to tier 3. Each tier credit commits on its own: a failure at tier N
stops the walk but leaves tiers 1..N-1 in place. Credits carry the key
``royalty:{user_id}:{task_id}:{tier}`` so replaying a cascade only fills in the gaps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.earnings.service import ROYALTY_SOURCES, credit_reward
from sprewards.referrals.service import get_referrer_id

logger = logging.getLogger(__name__)

TIER_PERCENTAGES: dict[int, Decimal] = {
    1: Decimal("0.10"),
    2: Decimal("0.05"),
    3: Decimal("0.025"),
}
MAX_TIERS = len(TIER_PERCENTAGES)


@dataclass(frozen=True)
class RoyaltyCredit:
    tier: int
    beneficiary_id: int
    amount: Decimal
    credited: bool  # False when this tier had already been paid for the task


def royalty_amount(earned_amount: Decimal | int, tier: int) -> Decimal:
    """Unrounded royalty for ``tier``."""
    return Decimal(earned_amount) * TIER_PERCENTAGES[tier]


async def distribute_royalty(
    db: AsyncSession,
    user_id: int,
    earned_amount: Decimal | int,
    task_id: str,
) -> list[RoyaltyCredit]:
    """Credit up to three ancestors of ``user_id`` for a task reward.

    Returns the tiers reached, in order. Raises nothing: a broken link is
    logged and ends the walk.
    """
    credits: list[RoyaltyCredit] = []
    if Decimal(earned_amount) <= 0:
        return credits

    current = user_id
    seen = {user_id}
    for tier in range(1, MAX_TIERS + 1):
        try:
            beneficiary = await get_referrer_id(db, current)
        except Exception:
            logger.exception("Royalty lookup failed at tier %d for user %d (task %s)", tier, user_id, task_id)
            await db.rollback()
            break

        if beneficiary is None:
            break
        if beneficiary in seen:
            logger.warning("Referral chain of user %d loops back at tier %d; stopping", user_id, tier)
            break
        seen.add(beneficiary)

        amount = royalty_amount(earned_amount, tier)
        try:
            record = await credit_reward(
                db,
                beneficiary,
                amount,
                ROYALTY_SOURCES[tier],
                f"Tier {tier} royalty from user {user_id}",
                {"triggered_by": user_id, "tier": tier, "task_id": task_id},
                f"royalty:{user_id}:{task_id}:{tier}",
            )
            await db.commit()
        except IntegrityError:
            # A concurrent replay of the same cascade wrote this tier first
            await db.rollback()
            record = None
        except Exception:
            await db.rollback()
            logger.exception(
                "Royalty credit failed at tier %d (beneficiary %d, task %s); stopping cascade",
                tier, beneficiary, task_id,
            )
            break

        credits.append(RoyaltyCredit(tier=tier, beneficiary_id=beneficiary, amount=amount, credited=record is not None))
        current = beneficiary

    if credits:
        logger.info(
            "Royalty cascade for task %s from user %d reached %d tier(s)", task_id, user_id, len(credits),
        )
    return credits
