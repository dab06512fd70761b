"""Account store: lookups, registration and native balance increments."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update

from sprewards.accounts.codes import generate_unique_referral_code, normalize_referral_code
from sprewards.accounts.tiers import DEFAULT_TIER, normalize_tier
from sprewards.db.models import Account
from sprewards.errors import AccountNotFound, RewardsError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_account(db: AsyncSession, user_id: int) -> Account | None:
    """Get an account by id."""
    result = await db.execute(select(Account).where(Account.id == user_id))
    return result.scalar_one_or_none()


async def get_account_by_referral_code(db: AsyncSession, code: str) -> Account | None:
    """Get the account owning a referral code (case-insensitive)."""
    result = await db.execute(
        select(Account).where(Account.referral_code == normalize_referral_code(code))
    )
    return result.scalar_one_or_none()


async def register_account(
    db: AsyncSession,
    username: str,
    email: str | None = None,
    referral_code: str | None = None,
    subscription_tier: str = DEFAULT_TIER,
) -> Account:
    """
    Create an account with a fresh referral code.

    When ``referral_code`` is given the signup referral is recorded as well.
    A bad signup code never blocks registration: it is logged and skipped.
    """
    account = Account(
        username=username,
        email=email,
        referral_code=await generate_unique_referral_code(db),
        unclaimed_reward=Decimal(0),
        task_completed=0,
        subscription_tier=normalize_tier(subscription_tier),
        created_at=datetime.now(timezone.utc),
    )
    db.add(account)
    await db.commit()
    user_id = account.id
    logger.info("account_registered", user_id=user_id, has_referral_code=referral_code is not None)

    if referral_code:
        from sprewards.referrals.service import use_referral_code

        try:
            await use_referral_code(db, user_id, referral_code)
        except RewardsError as e:
            logger.warning("signup_referral_skipped", user_id=user_id, reason=str(e))

    return account


async def credit_unclaimed(
    db: AsyncSession,
    user_id: int,
    amount: Decimal,
    *,
    tasks: int = 0,
) -> None:
    """
    Add ``amount`` to the unclaimed balance (and ``tasks`` to the task counter).

    Issued as a single ``SET x = x + :d`` so concurrent producers never lose
    an increment. Does not commit.

    Raises:
        AccountNotFound: If the account does not exist.
    """
    values: dict[str, object] = {"unclaimed_reward": Account.unclaimed_reward + amount}
    if tasks:
        values["task_completed"] = Account.task_completed + tasks
    result = await db.execute(
        update(Account).where(Account.id == user_id).values(**values)
    )
    if result.rowcount == 0:
        msg = f"Account {user_id} not found"
        raise AccountNotFound(msg)


async def get_balance(db: AsyncSession, user_id: int) -> tuple[Decimal, int]:
    """Return (unclaimed_reward, task_completed) as currently stored."""
    result = await db.execute(
        select(Account.unclaimed_reward, Account.task_completed).where(Account.id == user_id)
    )
    row = result.one_or_none()
    if row is None:
        msg = f"Account {user_id} not found"
        raise AccountNotFound(msg)
    return Decimal(row.unclaimed_reward), row.task_completed


async def count_accounts(db: AsyncSession) -> int:
    """Total registered accounts."""
    result = await db.execute(select(func.count()).select_from(Account))
    return result.scalar_one()
