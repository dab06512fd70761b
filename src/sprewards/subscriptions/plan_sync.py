"""Pull subscription plans from the external plan source.

Only recently active users are synced, and only users whose plan actually
changed are written (through ``change_plan``, so their devices get the new
quota straight away).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.accounts.tiers import normalize_tier
from sprewards.config import get_settings
from sprewards.db.models import Account
from sprewards.errors import RewardsError
from sprewards.subscriptions.service import change_plan

logger = logging.getLogger(__name__)

# emails -> {email: plan}
PlanFetcher = Callable[[list[str]], Awaitable[dict[str, str]]]


class HttpPlanSource:
    """Plan lookup over HTTP: POST {"emails": [...]} -> {"plans": {email: plan}}."""

    def __init__(self, url: str, api_key: str = "", timeout: float = 10.0) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    async def __call__(self, emails: list[str]) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, headers=headers, json={"emails": emails})
            response.raise_for_status()
            payload = response.json()

        plans = payload.get("plans", {})
        return {email: plan for email, plan in plans.items() if isinstance(plan, str)}


def plan_source_from_settings() -> HttpPlanSource | None:
    """The configured plan source, or None when plan sync is not configured."""
    settings = get_settings()
    if not settings.plan_sync_url:
        return None
    return HttpPlanSource(settings.plan_sync_url, settings.plan_sync_api_key)


async def get_active_accounts(
    db: AsyncSession,
    active_window_hours: int,
    max_users: int,
) -> list[tuple[int, str, str]]:
    """(id, email, tier) of users who logged in recently, most recent first."""
    since = datetime.now(timezone.utc) - timedelta(hours=active_window_hours)
    result = await db.execute(
        select(Account.id, Account.email, Account.subscription_tier)
        .where(Account.email.isnot(None), Account.last_login_at >= since)
        .order_by(Account.last_login_at.desc())
        .limit(max_users)
    )
    return [(row.id, row.email, row.subscription_tier) for row in result]


async def sync_plans(
    db: AsyncSession,
    fetch_plans: PlanFetcher,
    *,
    active_window_hours: int | None = None,
    max_users: int | None = None,
    batch_size: int | None = None,
) -> int:
    """Apply plan changes reported by ``fetch_plans``. Returns users updated.

    A fetch failure aborts the run; a failure for one user is logged and the
    rest of the batch continues.
    """
    settings = get_settings()
    if active_window_hours is None:
        active_window_hours = settings.plan_sync_active_window_hours
    if max_users is None:
        max_users = settings.plan_sync_max_users
    if batch_size is None:
        batch_size = settings.plan_sync_batch_size

    accounts = await get_active_accounts(db, active_window_hours, max_users)
    if not accounts:
        logger.info("Plan sync: no active users")
        return 0

    plans = await fetch_plans([email for _, email, _ in accounts])

    changes: list[tuple[int, str, str]] = []
    for user_id, email, current in accounts:
        reported = plans.get(email)
        if reported is None:
            continue
        try:
            tier = normalize_tier(reported)
        except RewardsError:
            logger.warning("Plan sync: ignoring unknown plan %r for user %d", reported, user_id)
            continue
        if tier != current:
            changes.append((user_id, current, tier))

    updated = 0
    for start in range(0, len(changes), batch_size):
        for user_id, current, tier in changes[start:start + batch_size]:
            try:
                await change_plan(db, user_id, tier)
                updated += 1
                logger.info("Plan sync: user %d %s -> %s", user_id, current, tier)
            except Exception:
                logger.exception("Plan sync failed for user %d", user_id)

    logger.info("Plan sync complete: %d/%d users updated", updated, len(accounts))
    return updated
