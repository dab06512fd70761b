"""Leaderboard over claimed totals.

Ordering is total_amount desc, then updated_at asc (whoever reached the total
first), then user_id asc. Rank is competition style: tied totals share a
rank, so rank = number of strictly greater totals + 1.

The top list is cached in Redis under ``leaderboard:top:{limit}`` and dropped
whenever a claim changes a total.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal

from redis.asyncio import Redis
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.config import get_settings
from sprewards.db.models import Account, LedgerTotal

logger = logging.getLogger(__name__)

CACHE_PREFIX = "leaderboard:top:"


def cache_key(limit: int) -> str:
    return f"{CACHE_PREFIX}{limit}"


def _entry(rank: int, user_id: int, username: str, total: Decimal) -> dict:
    return {"rank": rank, "user_id": user_id, "username": username, "total_amount": str(Decimal(total))}


async def top_earners(db: AsyncSession, limit: int = 10) -> list[dict]:
    """Highest claimed totals with their ranks."""
    result = await db.execute(
        select(LedgerTotal.user_id, LedgerTotal.total_amount, Account.username)
        .join(Account, Account.id == LedgerTotal.user_id)
        .order_by(
            LedgerTotal.total_amount.desc(),
            LedgerTotal.updated_at.asc(),
            LedgerTotal.user_id.asc(),
        )
        .limit(limit)
    )
    rows = result.all()

    entries = []
    rank = 0
    previous: Decimal | None = None
    for position, row in enumerate(rows, start=1):
        total = Decimal(row.total_amount)
        if total != previous:
            rank = position
            previous = total
        entries.append(_entry(rank, row.user_id, row.username, total))
    return entries


async def get_user_rank(db: AsyncSession, user_id: int) -> int | None:
    """Competition rank of ``user_id``; None if they have never claimed."""
    mine_result = await db.execute(
        select(LedgerTotal.total_amount).where(LedgerTotal.user_id == user_id)
    )
    mine = mine_result.scalar_one_or_none()
    if mine is None:
        return None

    ahead_result = await db.execute(
        select(func.count()).select_from(LedgerTotal).where(LedgerTotal.total_amount > mine)
    )
    return ahead_result.scalar_one() + 1


async def count_ranked(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(LedgerTotal))
    return result.scalar_one()


async def _cached_top(db: AsyncSession, limit: int, redis: Redis | None) -> list[dict]:
    key = cache_key(limit)
    if redis is not None:
        try:
            cached = await redis.get(key)
            if cached:
                return json.loads(cached)
        except Exception:
            logger.warning("Leaderboard cache read failed", exc_info=True)

    entries = await top_earners(db, limit)

    if redis is not None:
        try:
            await redis.set(key, json.dumps(entries), ex=get_settings().leaderboard_cache_ttl_seconds)
        except Exception:
            logger.warning("Leaderboard cache write failed", exc_info=True)
    return entries


async def get_leaderboard(
    db: AsyncSession,
    user_id: int | None = None,
    limit: int = 10,
    redis: Redis | None = None,
) -> dict:
    """Top list, plus the caller's own entry when it falls outside it."""
    entries = await _cached_top(db, limit, redis)

    current_user = None
    if user_id is not None and not any(e["user_id"] == user_id for e in entries):
        rank = await get_user_rank(db, user_id)
        if rank is not None:
            result = await db.execute(
                select(LedgerTotal.total_amount, Account.username)
                .join(Account, Account.id == LedgerTotal.user_id)
                .where(LedgerTotal.user_id == user_id)
            )
            row = result.one()
            current_user = _entry(rank, user_id, row.username, row.total_amount)

    return {
        "entries": entries,
        "current_user": current_user,
        "total_ranked": await count_ranked(db),
    }


async def invalidate_leaderboard_cache(redis: Redis | None) -> int:
    """Drop every cached top list. Returns keys deleted."""
    if redis is None:
        return 0
    keys = [key async for key in redis.scan_iter(match=f"{CACHE_PREFIX}*")]
    if not keys:
        return 0
    return await redis.delete(*keys)
