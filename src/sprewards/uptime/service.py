"""Device uptime against the owner's subscription quota.

A device's ``uptime_mode`` is fixed at registration and decides what
``uptime_seconds`` means:

- countdown:  remaining allowance; clients report it with ``set_remaining``
- accumulate: elapsed online time; clients report deltas with ``add_elapsed``

A reset (daily, or on a plan change) makes the full tier quota available in
both readings: countdown devices go to the tier ceiling, accumulate devices
go to 0.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.accounts.tiers import max_uptime_for_tier
from sprewards.db.models import Account, Device
from sprewards.errors import AccountNotFound, DeviceNotFound, RewardsError, UptimeModeMismatch

logger = logging.getLogger(__name__)

MODE_COUNTDOWN = "countdown"
MODE_ACCUMULATE = "accumulate"
UPTIME_MODES = (MODE_COUNTDOWN, MODE_ACCUMULATE)

DEVICE_STATUSES = ("offline", "online", "busy")


async def get_device(db: AsyncSession, device_id: int, owner_id: int | None = None) -> Device:
    """Load a device, optionally checking ownership.

    Raises:
        DeviceNotFound: Unknown id, or the device belongs to someone else.
    """
    stmt = select(Device).where(Device.id == device_id)
    if owner_id is not None:
        stmt = stmt.where(Device.owner_id == owner_id)
    result = await db.execute(stmt)
    device = result.scalar_one_or_none()
    if device is None:
        msg = f"Device {device_id} not found"
        raise DeviceNotFound(msg)
    return device


async def list_devices(db: AsyncSession, owner_id: int) -> list[Device]:
    result = await db.execute(
        select(Device).where(Device.owner_id == owner_id).order_by(Device.id)
    )
    return list(result.scalars().all())


async def register_device(
    db: AsyncSession,
    owner_id: int,
    device_name: str,
    device_type: str = "desktop",
    gpu_model: str | None = None,
    uptime_mode: str = MODE_COUNTDOWN,
) -> Device:
    """Register a device. Countdown devices start with the owner's full quota."""
    if uptime_mode not in UPTIME_MODES:
        msg = f"Unknown uptime mode: {uptime_mode}"
        raise RewardsError(msg)

    owner_result = await db.execute(
        select(Account.subscription_tier).where(Account.id == owner_id)
    )
    tier = owner_result.scalar_one_or_none()
    if tier is None:
        msg = f"Account {owner_id} not found"
        raise AccountNotFound(msg)

    now = datetime.now(timezone.utc)
    device = Device(
        owner_id=owner_id,
        device_name=device_name,
        device_type=device_type,
        gpu_model=gpu_model,
        status="offline",
        uptime_seconds=max_uptime_for_tier(tier) if uptime_mode == MODE_COUNTDOWN else 0,
        uptime_mode=uptime_mode,
        created_at=now,
        updated_at=now,
    )
    db.add(device)
    await db.commit()
    await db.refresh(device)
    logger.info("Registered %s device %d for user %d", uptime_mode, device.id, owner_id)
    return device


async def update_device_status(db: AsyncSession, device_id: int, owner_id: int, status: str) -> Device:
    if status not in DEVICE_STATUSES:
        msg = f"Unknown device status: {status}"
        raise RewardsError(msg)
    device = await get_device(db, device_id, owner_id)
    now = datetime.now(timezone.utc)
    device.status = status
    device.last_seen_at = now
    device.updated_at = now
    await db.commit()
    await db.refresh(device)
    return device


async def _owner_ceiling(db: AsyncSession, device: Device) -> int:
    result = await db.execute(
        select(Account.subscription_tier).where(Account.id == device.owner_id)
    )
    return max_uptime_for_tier(result.scalar_one_or_none())


async def set_remaining(db: AsyncSession, device_id: int, owner_id: int, remaining: int) -> Device:
    """Store the remaining allowance of a countdown device, clamped to [0, ceiling]."""
    device = await get_device(db, device_id, owner_id)
    if device.uptime_mode != MODE_COUNTDOWN:
        msg = f"Device {device_id} accumulates uptime; report elapsed seconds instead"
        raise UptimeModeMismatch(msg)

    ceiling = await _owner_ceiling(db, device)
    value = min(max(int(remaining), 0), ceiling)
    now = datetime.now(timezone.utc)

    await db.execute(
        update(Device)
        .where(Device.id == device_id)
        .values(uptime_seconds=value, last_seen_at=now, updated_at=now)
    )
    await db.commit()
    await db.refresh(device)
    return device


async def add_elapsed(db: AsyncSession, device_id: int, owner_id: int, elapsed: int) -> Device:
    """Add online time to an accumulate device, capped at the tier ceiling."""
    if elapsed < 0:
        msg = "Elapsed seconds cannot be negative"
        raise RewardsError(msg)

    device = await get_device(db, device_id, owner_id)
    if device.uptime_mode != MODE_ACCUMULATE:
        msg = f"Device {device_id} counts down; report remaining seconds instead"
        raise UptimeModeMismatch(msg)

    ceiling = await _owner_ceiling(db, device)
    now = datetime.now(timezone.utc)
    new_value = Device.uptime_seconds + elapsed

    await db.execute(
        update(Device)
        .where(Device.id == device_id)
        .values(
            uptime_seconds=case((new_value > ceiling, ceiling), else_=new_value),
            last_seen_at=now,
            updated_at=now,
        )
    )
    await db.commit()
    await db.refresh(device)
    return device


async def reset_user_devices(db: AsyncSession, user_id: int, tier: str | None) -> int:
    """Restore the full quota on every device of ``user_id``. Does not commit.

    Returns the number of devices reset.
    """
    ceiling = max_uptime_for_tier(tier)
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(Device)
        .where(Device.owner_id == user_id)
        .values(
            uptime_seconds=case((Device.uptime_mode == MODE_COUNTDOWN, ceiling), else_=0),
            updated_at=now,
        )
    )
    return result.rowcount


async def daily_uptime_reset(db: AsyncSession, batch_size: int = 20) -> int:
    """Reset every account's devices for the new UTC day.

    Accounts are walked in id order, ``batch_size`` at a time; each user's
    reset commits on its own so one failure does not block the rest.
    Returns the number of users reset.
    """
    reset = 0
    failed = 0
    last_id = 0
    while True:
        result = await db.execute(
            select(Account.id, Account.subscription_tier)
            .where(Account.id > last_id)
            .order_by(Account.id)
            .limit(batch_size)
        )
        batch = result.all()
        if not batch:
            break

        for user_id, tier in batch:
            try:
                await reset_user_devices(db, user_id, tier)
                await db.commit()
                reset += 1
            except Exception:
                await db.rollback()
                failed += 1
                logger.exception("Daily uptime reset failed for user %d", user_id)
        last_id = batch[-1][0]

    logger.info("Daily uptime reset: %d users reset, %d failed", reset, failed)
    return reset
