"""Claim engine: drain the unclaimed balance into the running total exactly once.

The only concurrency control is a compare-and-swap on the account row:

1. Read unclaimed_reward -> X
2. X <= 0 -> nothing to claim
3. UPDATE users SET unclaimed_reward = 0 WHERE id = :uid AND unclaimed_reward = :X
   Zero rows means a concurrent claim (or a new reward) got there first.
4. Same transaction: ledger_totals.total_amount += X
5. Best effort: flag the records seen in step 3's transaction as claimed,
   publish, drop cache
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.db.base import dialect_insert
from sprewards.db.models import Account, LedgerTotal
from sprewards.earnings.service import mark_claimed, unclaimed_record_ids

logger = logging.getLogger(__name__)

NOTHING_TO_CLAIM = "No rewards to claim"
CLAIM_CHANNEL = "pubsub:reward_claimed"


@dataclass(frozen=True)
class ClaimResult:
    """Outcome of a claim request. ``claimed`` is False for the no-op branch."""

    claimed: bool
    claimed_amount: Decimal = Decimal(0)
    new_total: Decimal | None = None
    message: str = NOTHING_TO_CLAIM


async def read_unclaimed(db: AsyncSession, user_id: int) -> Decimal:
    """Current unclaimed balance; 0 for unknown accounts."""
    result = await db.execute(
        select(Account.unclaimed_reward).where(Account.id == user_id)
    )
    value = result.scalar_one_or_none()
    return Decimal(value) if value is not None else Decimal(0)


async def reset_unclaimed_if_unchanged(db: AsyncSession, user_id: int, expected: Decimal) -> bool:
    """Zero the balance only if it still equals ``expected``. True if this call won."""
    result = await db.execute(
        update(Account)
        .where(Account.id == user_id, Account.unclaimed_reward == expected)
        .values(unclaimed_reward=0)
    )
    return result.rowcount == 1


async def add_to_ledger_total(db: AsyncSession, user_id: int, amount: Decimal, now: datetime) -> Decimal:
    """Insert-or-increment the running total and return the new value."""
    insert = dialect_insert(db, LedgerTotal)
    stmt = insert.values(user_id=user_id, total_amount=amount, updated_at=now)
    stmt = stmt.on_conflict_do_update(
        index_elements=[LedgerTotal.user_id],
        set_={
            "total_amount": LedgerTotal.total_amount + amount,
            "updated_at": now,
        },
    )
    await db.execute(stmt)

    result = await db.execute(
        select(LedgerTotal.total_amount).where(LedgerTotal.user_id == user_id)
    )
    return Decimal(result.scalar_one())


async def claim_rewards(db: AsyncSession, user_id: int, redis: object = None) -> ClaimResult:
    """Claim the user's whole unclaimed balance.

    A lost race is the expected outcome of a duplicate request and returns the
    same no-op result as an empty balance.
    """
    amount = await read_unclaimed(db, user_id)
    if amount <= 0:
        return ClaimResult(claimed=False)

    now = datetime.now(timezone.utc)
    try:
        if not await reset_unclaimed_if_unchanged(db, user_id, amount):
            await db.rollback()
            logger.info("Claim for user %d lost the race (snapshot %s)", user_id, amount)
            return ClaimResult(claimed=False)

        # Records visible while the swap holds the account row are exactly the
        # ones covered by ``amount``
        record_ids = await unclaimed_record_ids(db, user_id)
        new_total = await add_to_ledger_total(db, user_id, amount, now)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Claim failed for user %d", user_id)
        raise

    logger.info("User %d claimed %s (total %s)", user_id, amount, new_total)

    # Bookkeeping only; the financial effect is already committed.
    try:
        flagged = await mark_claimed(db, record_ids, now)
        await db.commit()
        logger.debug("Flagged %d earning records claimed for user %d", flagged, user_id)
    except Exception:
        await db.rollback()
        logger.warning("Failed to flag earning records for user %d", user_id, exc_info=True)

    await _announce_claim(redis, user_id, amount, new_total)

    return ClaimResult(
        claimed=True,
        claimed_amount=amount,
        new_total=new_total,
        message="Rewards claimed successfully",
    )


async def _announce_claim(redis: object, user_id: int, amount: Decimal, new_total: Decimal) -> None:
    """Publish the claim and invalidate cached leaderboards."""
    if redis is None:
        return
    from sprewards.leaderboard.service import invalidate_leaderboard_cache

    try:
        await redis.publish(  # type: ignore[union-attr]
            CLAIM_CHANNEL,
            json.dumps({
                "user_id": user_id,
                "claimed_amount": str(amount),
                "new_total": str(new_total),
            }),
        )
        await invalidate_leaderboard_cache(redis)
    except Exception:
        logger.warning("Failed to publish reward_claimed event", exc_info=True)
