"""Daily check-in streaks on a 7-day reward cycle.

Streak state is derived from the most recent check-in row:

- no row                 -> streak 0, next day 1
- last check-in today    -> already checked in
- last check-in yesterday-> streak continues, next day (last_day % 7) + 1
- anything older         -> streak broken, back to 0 / day 1

Dates are UTC calendar dates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.db.models import CheckinRecord
from sprewards.earnings.service import SOURCE_DAILY_CHECKIN, credit_reward

logger = logging.getLogger(__name__)

CYCLE_LENGTH = 7
# Reward in SP for day 1..7 of the cycle
DAILY_REWARDS = (5, 10, 15, 20, 25, 30, 50)

ALREADY_CHECKED_IN = "You have already checked in today"


@dataclass(frozen=True)
class StreakInfo:
    current_streak: int
    can_check_in_today: bool
    next_day_number: int
    last_checkin_date: date | None = None
    last_day_number: int | None = None


@dataclass(frozen=True)
class CheckinResult:
    checked_in: bool
    current_streak: int
    day_number: int
    reward: Decimal
    next_reward_day: int
    message: str


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def next_cycle_day(day_number: int) -> int:
    """Day that follows ``day_number`` in the 7-day cycle."""
    return (day_number % CYCLE_LENGTH) + 1


def reward_for_day(day_number: int) -> Decimal:
    """Check-in reward for a cycle day (1-7)."""
    if not 1 <= day_number <= CYCLE_LENGTH:
        msg = f"Cycle day must be 1-{CYCLE_LENGTH}, got {day_number}"
        raise ValueError(msg)
    return Decimal(DAILY_REWARDS[day_number - 1])


def compute_streak(last: CheckinRecord | None, today: date) -> StreakInfo:
    """Derive streak state from the most recent check-in (pure)."""
    if last is None:
        return StreakInfo(current_streak=0, can_check_in_today=True, next_day_number=1)

    if last.checkin_date >= today:
        return StreakInfo(
            current_streak=last.streak_count,
            can_check_in_today=False,
            next_day_number=next_cycle_day(last.day_number),
            last_checkin_date=last.checkin_date,
            last_day_number=last.day_number,
        )

    if last.checkin_date == today - timedelta(days=1):
        return StreakInfo(
            current_streak=last.streak_count,
            can_check_in_today=True,
            next_day_number=next_cycle_day(last.day_number),
            last_checkin_date=last.checkin_date,
            last_day_number=last.day_number,
        )

    # Missed at least one day
    return StreakInfo(
        current_streak=0,
        can_check_in_today=True,
        next_day_number=1,
        last_checkin_date=last.checkin_date,
    )


async def get_latest_checkin(db: AsyncSession, user_id: int) -> CheckinRecord | None:
    result = await db.execute(
        select(CheckinRecord)
        .where(CheckinRecord.user_id == user_id)
        .order_by(CheckinRecord.checkin_date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_streak(db: AsyncSession, user_id: int, today: date | None = None) -> StreakInfo:
    """Current streak and whether the user may check in today."""
    if today is None:
        today = utc_today()
    return compute_streak(await get_latest_checkin(db, user_id), today)


async def perform_checkin(db: AsyncSession, user_id: int, today: date | None = None) -> CheckinResult:
    """Check in for ``today`` and credit the cycle-day reward.

    A second call on the same date returns ``checked_in=False`` without
    crediting anything; the (user_id, checkin_date) unique constraint gives
    the same answer to a concurrent duplicate.
    """
    if today is None:
        today = utc_today()

    streak = await get_streak(db, user_id, today)
    if not streak.can_check_in_today:
        return CheckinResult(
            checked_in=False,
            current_streak=streak.current_streak,
            day_number=streak.last_day_number or 0,
            reward=Decimal(0),
            next_reward_day=streak.next_day_number,
            message=ALREADY_CHECKED_IN,
        )

    new_streak = streak.current_streak + 1
    day_number = streak.next_day_number
    reward = reward_for_day(day_number)

    try:
        db.add(CheckinRecord(
            user_id=user_id,
            checkin_date=today,
            streak_count=new_streak,
            day_number=day_number,
            reward_amount=reward,
            created_at=datetime.now(timezone.utc),
        ))
        await db.flush()

        await credit_reward(
            db, user_id, reward, SOURCE_DAILY_CHECKIN,
            f"Daily check-in Day {day_number} - {new_streak} day streak",
            {"day_number": day_number, "streak": new_streak, "date": today.isoformat()},
            f"checkin:{user_id}:{today.isoformat()}",
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Concurrent check-in for user %d on %s rejected", user_id, today)
        latest = await get_streak(db, user_id, today)
        return CheckinResult(
            checked_in=False,
            current_streak=latest.current_streak,
            day_number=day_number,
            reward=Decimal(0),
            next_reward_day=latest.next_day_number,
            message=ALREADY_CHECKED_IN,
        )

    logger.info("User %d checked in: day %d, streak %d, reward %s", user_id, day_number, new_streak, reward)
    return CheckinResult(
        checked_in=True,
        current_streak=new_streak,
        day_number=day_number,
        reward=reward,
        next_reward_day=next_cycle_day(day_number),
        message=f"Check-in successful! Day {day_number} reward: {reward} SP",
    )
