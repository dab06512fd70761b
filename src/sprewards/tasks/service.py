"""Task completion: validate the reported reward and credit it.

Order of effects:

1. ``task`` earning record keyed ``task:{user_id}:{task_id}`` plus native
   increments of unclaimed_reward and task_completed, committed together
2. per-type platform counter (only for a first completion)
3. royalty cascade up the referral chain

Steps 2 and 3 never undo step 1. A replayed task_id credits nothing but still
runs the cascade, which fills in any tier a previous attempt missed.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.accounts.service import get_balance
from sprewards.config import get_settings
from sprewards.db.models import EarningRecord
from sprewards.earnings.service import SOURCE_TASK, credit_reward
from sprewards.errors import RewardsError, TaskRewardRejected
from sprewards.referrals.royalty import distribute_royalty
from sprewards.stats.service import increment_stat, normalize_task_type, stat_id_for_task_type

logger = logging.getLogger(__name__)
security_log = structlog.get_logger()


def validate_task_reward(amount: object, user_id: int | None = None) -> int:
    """Accept only integer rewards in (0, max_task_reward].

    Raises:
        TaskRewardRejected: For floats, bools, strings, non-positive or
            oversized amounts.
    """
    limit = get_settings().max_task_reward
    if isinstance(amount, bool) or not isinstance(amount, int):
        reason = "not_an_integer"
    elif amount <= 0:
        reason = "non_positive"
    elif amount > limit:
        reason = "above_maximum"
    else:
        return amount

    security_log.warning(
        "task_reward_rejected",
        user_id=user_id,
        amount=repr(amount),
        reason=reason,
        max_task_reward=limit,
    )
    msg = f"Task reward must be an integer between 1 and {limit}"
    raise TaskRewardRejected(msg)


async def complete_task(
    db: AsyncSession,
    user_id: int,
    amount: object,
    task_id: str,
    task_type: str,
    tier: str | None = None,
    multiplier: float | None = None,
) -> dict:
    """Record a completed task and credit its reward.

    Returns ``{unclaimed_reward_delta, total_unclaimed_reward, task_count,
    royalties}``; the delta is 0 when ``task_id`` was already credited.
    """
    reward = validate_task_reward(amount, user_id)
    task_type = normalize_task_type(task_type)

    try:
        record = await credit_reward(
            db,
            user_id,
            reward,
            SOURCE_TASK,
            f"Completed {task_type} task",
            {"task_id": task_id, "task_type": task_type, "tier": tier, "multiplier": multiplier},
            f"task:{user_id}:{task_id}",
            tasks=1,
        )
        await db.commit()
    except IntegrityError:
        # Same task_id credited by a concurrent request
        await db.rollback()
        record = None
    except RewardsError:
        await db.rollback()
        raise

    delta = Decimal(reward) if record is not None else Decimal(0)
    if record is None:
        logger.info("Task %s for user %d already credited", task_id, user_id)
    else:
        logger.info("User %d completed %s task %s for %d SP", user_id, task_type, task_id, reward)
        try:
            await increment_stat(db, stat_id_for_task_type(task_type))
        except Exception:
            await db.rollback()
            logger.warning("Failed to update task counter for %s", task_type, exc_info=True)

    royalties = []
    try:
        royalties = await distribute_royalty(db, user_id, reward, task_id)
    except Exception:
        await db.rollback()
        logger.exception("Royalty cascade failed for task %s (user %d)", task_id, user_id)

    unclaimed, task_count = await get_balance(db, user_id)
    return {
        "unclaimed_reward_delta": delta,
        "total_unclaimed_reward": unclaimed,
        "task_count": task_count,
        "royalties": royalties,
    }


async def get_task_stats(db: AsyncSession, user_id: int, today: date | None = None) -> dict:
    """Lifetime and today's task totals for a user."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    day_start = datetime.combine(today, time.min, tzinfo=timezone.utc)
    day_end = day_start + timedelta(days=1)

    base = [EarningRecord.user_id == user_id, EarningRecord.source == SOURCE_TASK]

    total_result = await db.execute(
        select(func.count(), func.coalesce(func.sum(EarningRecord.amount), 0)).where(*base)
    )
    total_tasks, total_earnings = total_result.one()

    today_result = await db.execute(
        select(func.count(), func.coalesce(func.sum(EarningRecord.amount), 0)).where(
            *base,
            EarningRecord.created_at >= day_start,
            EarningRecord.created_at < day_end,
        )
    )
    today_tasks, today_earnings = today_result.one()

    total_earnings = Decimal(total_earnings)
    return {
        "total_tasks": total_tasks,
        "total_earnings": total_earnings,
        "today_tasks": today_tasks,
        "today_earnings": Decimal(today_earnings),
        "average_per_task": total_earnings / total_tasks if total_tasks else Decimal(0),
    }
