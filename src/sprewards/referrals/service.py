"""Referral graph: code verification, edge creation and signup bonuses."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.accounts.codes import is_well_formed_code, normalize_referral_code
from sprewards.accounts.service import get_account, get_account_by_referral_code
from sprewards.config import get_settings
from sprewards.db.models import EarningRecord, ReferralEdge
from sprewards.earnings.service import ROYALTY_SOURCES, SOURCE_REFERRAL_SIGNUP, credit_reward
from sprewards.errors import AccountNotFound, InvalidReferralCode, ReferralConflict

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"

ALREADY_REFERRED = "User has already been referred"
SELF_REFERRAL = "Cannot use your own referral code"


async def get_referrer_id(db: AsyncSession, user_id: int) -> int | None:
    """Direct, active referrer of ``user_id``, if any."""
    result = await db.execute(
        select(ReferralEdge.referrer_id).where(
            ReferralEdge.referred_id == user_id,
            ReferralEdge.status == STATUS_ACTIVE,
        )
    )
    return result.scalar_one_or_none()


async def verify_referral_code(db: AsyncSession, code: str) -> dict:
    """Check whether a code belongs to a user. Returns {valid, referrer}."""
    if not is_well_formed_code(code):
        return {"valid": False, "referrer": None}

    referrer = await get_account_by_referral_code(db, code)
    if referrer is None:
        return {"valid": False, "referrer": None}

    return {"valid": True, "referrer": {"id": referrer.id, "username": referrer.username}}


async def create_referral(
    db: AsyncSession,
    referrer_id: int,
    referred_id: int,
    code: str,
) -> ReferralEdge:
    """
    Record that ``referrer_id`` referred ``referred_id`` and pay both signup bonuses.

    The edge and both bonus credits commit together.

    Raises:
        ReferralConflict: Self-referral, or the referred user already has a referrer.
        AccountNotFound: Either account does not exist.
    """
    if referrer_id == referred_id:
        raise ReferralConflict(SELF_REFERRAL)

    if await get_referrer_id(db, referred_id) is not None:
        raise ReferralConflict(ALREADY_REFERRED)

    for uid in (referrer_id, referred_id):
        if await get_account(db, uid) is None:
            msg = f"Account {uid} not found"
            raise AccountNotFound(msg)

    settings = get_settings()
    referrer_bonus = Decimal(settings.referrer_signup_bonus)
    referred_bonus = Decimal(settings.referred_signup_bonus)
    now = datetime.now(timezone.utc)

    edge = ReferralEdge(
        referrer_id=referrer_id,
        referred_id=referred_id,
        referral_code=normalize_referral_code(code),
        status=STATUS_ACTIVE,
        reward_amount=referrer_bonus,
        created_at=now,
    )
    try:
        db.add(edge)
        await db.flush()

        await credit_reward(
            db, referrer_id, referrer_bonus, SOURCE_REFERRAL_SIGNUP,
            f"Referral bonus for inviting user {referred_id}",
            {"referred_user_id": referred_id, "role": "referrer"},
            f"referral:{referred_id}:referrer",
        )
        await credit_reward(
            db, referred_id, referred_bonus, SOURCE_REFERRAL_SIGNUP,
            f"Welcome bonus for joining with code {edge.referral_code}",
            {"referrer_id": referrer_id, "role": "referred"},
            f"referral:{referred_id}:referred",
        )
        await db.commit()
    except IntegrityError:
        # Lost a race with another redemption for the same referred user
        await db.rollback()
        raise ReferralConflict(ALREADY_REFERRED) from None

    logger.info("User %d referred user %d with code %s", referrer_id, referred_id, edge.referral_code)
    return edge


async def use_referral_code(db: AsyncSession, user_id: int, code: str) -> ReferralEdge:
    """
    Redeem a referral code for an existing user.

    Raises:
        InvalidReferralCode: Malformed or unknown code.
        ReferralConflict: Own code, or the user already has a referrer.
    """
    if not is_well_formed_code(code):
        msg = "Referral code must be 6-10 letters or digits"
        raise InvalidReferralCode(msg)

    referrer = await get_account_by_referral_code(db, code)
    if referrer is None:
        raise InvalidReferralCode("Referral code not found")

    return await create_referral(db, referrer.id, user_id, code)


async def list_referrals(db: AsyncSession, user_id: int) -> list[ReferralEdge]:
    """Users directly referred by ``user_id``, newest first."""
    result = await db.execute(
        select(ReferralEdge)
        .where(ReferralEdge.referrer_id == user_id)
        .order_by(ReferralEdge.created_at.desc(), ReferralEdge.id.desc())
    )
    return list(result.scalars().all())


async def get_referral_stats(db: AsyncSession, user_id: int) -> dict:
    """Referral counts, signup bonuses earned and royalties earned per tier."""
    edges = await list_referrals(db, user_id)
    active = [e for e in edges if e.status == STATUS_ACTIVE]

    royalty_result = await db.execute(
        select(EarningRecord.source, func.sum(EarningRecord.amount))
        .where(
            EarningRecord.user_id == user_id,
            EarningRecord.source.in_(list(ROYALTY_SOURCES.values())),
        )
        .group_by(EarningRecord.source)
    )
    royalty_by_source = {row[0]: Decimal(row[1] or 0) for row in royalty_result}
    royalties_by_tier = {
        tier: royalty_by_source.get(source, Decimal(0)) for tier, source in ROYALTY_SOURCES.items()
    }

    return {
        "total_referrals": len(edges),
        "active_referrals": len(active),
        "total_signup_rewards": sum((Decimal(e.reward_amount) for e in edges), Decimal(0)),
        "total_royalties": sum(royalties_by_tier.values(), Decimal(0)),
        "royalties_by_tier": royalties_by_tier,
    }
