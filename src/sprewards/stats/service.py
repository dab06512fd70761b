"""Platform-wide counters (tasks completed per type) and global totals."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.accounts.service import count_accounts
from sprewards.db.base import dialect_insert
from sprewards.db.models import Account, GlobalStat, LedgerTotal

logger = logging.getLogger(__name__)

TASK_TYPES = ("text", "image", "three_d", "video")

# Compute units generated per completed task, by task type
COMPUTE_MULTIPLIERS: dict[str, Decimal] = {
    "text": Decimal("0.12"),
    "image": Decimal("0.4"),
    "three_d": Decimal("0.8"),
    "video": Decimal("1.6"),
}

_TYPE_ALIASES = {"3d": "three_d", "3-d": "three_d"}


def normalize_task_type(task_type: str) -> str:
    name = task_type.strip().lower()
    return _TYPE_ALIASES.get(name, name)


def stat_id_for_task_type(task_type: str) -> str:
    """Counter key for a task type, e.g. ``image`` -> ``TOTAL_IMAGE_TASKS``.

    ``3d`` and ``three_d`` share ``TOTAL_3D_TASKS``.
    """
    name = normalize_task_type(task_type)
    if name == "three_d":
        return "TOTAL_3D_TASKS"
    return f"TOTAL_{name.upper()}_TASKS"


async def increment_stat(db: AsyncSession, stat_id: str, by: int = 1) -> int:
    """Atomically add ``by`` to a counter, creating it on first use. Commits."""
    now = datetime.now(timezone.utc)
    insert = dialect_insert(db, GlobalStat)
    stmt = insert.values(id=stat_id, total=by, updated_at=now)
    stmt = stmt.on_conflict_do_update(
        index_elements=[GlobalStat.id],
        set_={"total": GlobalStat.total + by, "updated_at": now},
    )
    await db.execute(stmt)
    await db.commit()

    result = await db.execute(select(GlobalStat.total).where(GlobalStat.id == stat_id))
    return result.scalar_one()


async def get_stat(db: AsyncSession, stat_id: str) -> int:
    result = await db.execute(select(GlobalStat.total).where(GlobalStat.id == stat_id))
    return result.scalar_one_or_none() or 0


async def get_global_stats(db: AsyncSession) -> dict:
    """Platform totals: SP in circulation, users and compute generated."""
    unclaimed_result = await db.execute(select(func.coalesce(func.sum(Account.unclaimed_reward), 0)))
    claimed_result = await db.execute(select(func.coalesce(func.sum(LedgerTotal.total_amount), 0)))
    global_sp = Decimal(unclaimed_result.scalar_one()) + Decimal(claimed_result.scalar_one())

    counters_result = await db.execute(select(GlobalStat.id, GlobalStat.total))
    counters = {row.id: row.total for row in counters_result}

    compute = Decimal(0)
    tasks_by_type: dict[str, int] = {}
    for task_type, multiplier in COMPUTE_MULTIPLIERS.items():
        count = counters.get(stat_id_for_task_type(task_type), 0)
        tasks_by_type[task_type] = count
        compute += multiplier * count

    return {
        "global_sp": global_sp,
        "total_users": await count_accounts(db),
        "global_compute_generated": compute,
        "tasks_by_type": tasks_by_type,
    }
