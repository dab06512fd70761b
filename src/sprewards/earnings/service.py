"""Earning record log: append reward events, read history and summaries."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.accounts.service import credit_unclaimed
from sprewards.db.models import Account, EarningRecord, LedgerTotal

logger = logging.getLogger(__name__)

# --- Source tags ---
SOURCE_TASK = "task"
SOURCE_DAILY_CHECKIN = "daily_checkin"
SOURCE_REFERRAL_SIGNUP = "referral_signup"
SOURCE_OTHER = "other"
ROYALTY_SOURCES = {
    1: "referral_royalty_tier1",
    2: "referral_royalty_tier2",
    3: "referral_royalty_tier3",
}

EARNING_SOURCES = frozenset(
    {SOURCE_TASK, SOURCE_DAILY_CHECKIN, SOURCE_REFERRAL_SIGNUP, SOURCE_OTHER, *ROYALTY_SOURCES.values()}
)


async def earning_exists(db: AsyncSession, idempotency_key: str) -> bool:
    """True if a record with this idempotency key was already written."""
    result = await db.execute(
        select(EarningRecord.id).where(EarningRecord.idempotency_key == idempotency_key)
    )
    return result.scalar_one_or_none() is not None


async def credit_reward(
    db: AsyncSession,
    user_id: int,
    amount: Decimal | int,
    source: str,
    description: str,
    attribution: dict[str, Any] | None = None,
    idempotency_key: str | None = None,
    *,
    tasks: int = 0,
) -> EarningRecord | None:
    """Log a reward event and add it to the user's unclaimed balance.

    Returns the new record, or None if ``idempotency_key`` was already used.
    Flushes but does not commit; the caller owns the unit of work. A
    concurrent writer with the same key surfaces as IntegrityError at flush.
    """
    if source not in EARNING_SOURCES:
        msg = f"Unknown earning source: {source}"
        raise ValueError(msg)
    amount = Decimal(amount)
    if amount <= 0:
        msg = "Earning amount must be positive"
        raise ValueError(msg)

    if idempotency_key is not None and await earning_exists(db, idempotency_key):
        return None

    record = EarningRecord(
        user_id=user_id,
        amount=amount,
        source=source,
        is_claimed=False,
        description=description,
        attribution=attribution or {},
        idempotency_key=idempotency_key,
        created_at=datetime.now(timezone.utc),
    )
    db.add(record)
    await db.flush()

    await credit_unclaimed(db, user_id, amount, tasks=tasks)
    return record


async def unclaimed_record_ids(db: AsyncSession, user_id: int) -> list[int]:
    """Ids of the user's committed, not yet flagged records."""
    result = await db.execute(
        select(EarningRecord.id).where(
            EarningRecord.user_id == user_id,
            EarningRecord.is_claimed.is_(False),
        )
    )
    return list(result.scalars().all())


async def mark_claimed(db: AsyncSession, record_ids: list[int], claimed_at: datetime) -> int:
    """Flag exactly ``record_ids`` as claimed. Returns count."""
    if not record_ids:
        return 0
    result = await db.execute(
        update(EarningRecord)
        .where(EarningRecord.id.in_(record_ids), EarningRecord.is_claimed.is_(False))
        .values(is_claimed=True, claimed_at=claimed_at)
    )
    return result.rowcount


async def get_earning_history(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 50,
    source: str | None = None,
) -> tuple[list[EarningRecord], int]:
    """Paginated earning history, newest first. Returns (records, total)."""
    filters = [EarningRecord.user_id == user_id]
    if source is not None:
        filters.append(EarningRecord.source == source)

    total_result = await db.execute(
        select(func.count()).select_from(EarningRecord).where(*filters)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(EarningRecord)
        .where(*filters)
        .order_by(EarningRecord.created_at.desc(), EarningRecord.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def get_earnings_summary(db: AsyncSession, user_id: int) -> dict:
    """Unclaimed balance, claimed total and lifetime earnings per source."""
    account_result = await db.execute(
        select(Account.unclaimed_reward, Account.task_completed).where(Account.id == user_id)
    )
    account_row = account_result.one_or_none()
    unclaimed = Decimal(account_row.unclaimed_reward) if account_row else Decimal(0)

    ledger_result = await db.execute(
        select(LedgerTotal.total_amount).where(LedgerTotal.user_id == user_id)
    )
    claimed_total = ledger_result.scalar_one_or_none()
    claimed_total = Decimal(claimed_total) if claimed_total is not None else Decimal(0)

    by_source_result = await db.execute(
        select(EarningRecord.source, func.sum(EarningRecord.amount))
        .where(EarningRecord.user_id == user_id)
        .group_by(EarningRecord.source)
    )
    by_source = {row[0]: Decimal(row[1] or 0) for row in by_source_result}

    return {
        "total_unclaimed_reward": unclaimed,
        "total_earnings": claimed_total,
        "total_balance": claimed_total + unclaimed,
        "task_completed": account_row.task_completed if account_row else 0,
        "by_source": by_source,
    }
