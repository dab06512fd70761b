"""Claim engine against a real database."""

from __future__ import annotations

import json
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

from sqlalchemy import select, update

from conftest import make_account
from sprewards.accounts.service import get_balance
from sprewards.claims import service as claims_service
from sprewards.claims.service import (
    CLAIM_CHANNEL,
    NOTHING_TO_CLAIM,
    add_to_ledger_total,
    claim_rewards,
    reset_unclaimed_if_unchanged,
)
from sprewards.db.models import EarningRecord, LedgerTotal
from sprewards.earnings.service import SOURCE_TASK, credit_reward


async def _ledger_total(db, user_id: int) -> Decimal | None:
    result = await db.execute(select(LedgerTotal.total_amount).where(LedgerTotal.user_id == user_id))
    value = result.scalar_one_or_none()
    return Decimal(value) if value is not None else None


class TestClaim:

    async def test_claim_moves_balance_into_total(self, db_session):
        uid = await make_account(db_session, "alice", unclaimed=120)

        result = await claim_rewards(db_session, uid)

        assert result.claimed is True
        assert result.claimed_amount == Decimal(120)
        assert result.new_total == Decimal(120)
        assert (await get_balance(db_session, uid))[0] == Decimal(0)
        assert await _ledger_total(db_session, uid) == Decimal(120)

    async def test_second_claim_is_noop(self, db_session):
        uid = await make_account(db_session, "alice", unclaimed=120)

        await claim_rewards(db_session, uid)
        second = await claim_rewards(db_session, uid)

        assert second.claimed is False
        assert second.claimed_amount == Decimal(0)
        assert second.message == NOTHING_TO_CLAIM
        assert await _ledger_total(db_session, uid) == Decimal(120)

    async def test_zero_balance_creates_no_ledger_row(self, db_session):
        uid = await make_account(db_session, "bob")

        result = await claim_rewards(db_session, uid)

        assert result.claimed is False
        assert await _ledger_total(db_session, uid) is None

    async def test_unknown_user_is_noop(self, db_session):
        result = await claim_rewards(db_session, 9999)
        assert result.claimed is False

    async def test_claims_accumulate_in_total(self, db_session):
        uid = await make_account(db_session, "carol", unclaimed=50)
        await claim_rewards(db_session, uid)

        await credit_reward(db_session, uid, 30, SOURCE_TASK, "task", idempotency_key="task:t-2")
        await db_session.commit()
        result = await claim_rewards(db_session, uid)

        assert result.claimed_amount == Decimal(30)
        assert result.new_total == Decimal(80)

    async def test_earning_records_flagged_claimed(self, db_session):
        uid = await make_account(db_session, "dave")
        await credit_reward(db_session, uid, 10, SOURCE_TASK, "task", idempotency_key="task:a")
        await credit_reward(db_session, uid, 15, SOURCE_TASK, "task", idempotency_key="task:b")
        await db_session.commit()

        await claim_rewards(db_session, uid)

        result = await db_session.execute(
            select(EarningRecord.is_claimed, EarningRecord.claimed_at).where(EarningRecord.user_id == uid)
        )
        rows = result.all()
        assert len(rows) == 2
        assert all(row.is_claimed and row.claimed_at is not None for row in rows)

    async def test_flagging_failure_does_not_undo_claim(self, db_session, monkeypatch):
        uid = await make_account(db_session, "erin", unclaimed=40)
        monkeypatch.setattr(claims_service, "mark_claimed", AsyncMock(side_effect=RuntimeError("boom")))

        result = await claim_rewards(db_session, uid)

        assert result.claimed is True
        assert (await get_balance(db_session, uid))[0] == Decimal(0)
        assert await _ledger_total(db_session, uid) == Decimal(40)

    async def test_publishes_claim_event(self, db_session):
        uid = await make_account(db_session, "frank", unclaimed=25)
        redis = AsyncMock()
        redis.scan_iter = lambda match: _empty_async_iter()

        await claim_rewards(db_session, uid, redis)

        redis.publish.assert_awaited_once()
        channel, payload = redis.publish.await_args.args
        assert channel == CLAIM_CHANNEL
        event = json.loads(payload)
        assert event["user_id"] == uid
        assert Decimal(event["claimed_amount"]) == Decimal(25)
        assert Decimal(event["new_total"]) == Decimal(25)


async def _empty_async_iter():
    for item in ():
        yield item


class TestConcurrentClaims:
    """Only one of two overlapping claims may win."""

    async def test_stale_snapshot_loses(self, db_session):
        uid = await make_account(db_session, "grace", unclaimed=100)

        assert await reset_unclaimed_if_unchanged(db_session, uid, Decimal(99)) is False
        await db_session.rollback()
        assert (await get_balance(db_session, uid))[0] == Decimal(100)

    async def test_interleaved_claims_credit_once(self, session_factory, monkeypatch):
        """A second request wins between the first request's read and its swap."""
        async with session_factory() as db:
            uid = await make_account(db, "heidi", unclaimed=75)

        real_read = claims_service.read_unclaimed
        raced = []
        inner_results = []

        async def read_then_race(db, user_id):
            snapshot = await real_read(db, user_id)
            if not raced:
                raced.append(True)
                async with session_factory() as other:
                    inner_results.append(await claims_service.claim_rewards(other, user_id))
            return snapshot

        monkeypatch.setattr(claims_service, "read_unclaimed", read_then_race)

        async with session_factory() as db:
            outer = await claims_service.claim_rewards(db, uid)

        inner = inner_results[0]
        assert inner.claimed is True
        assert inner.claimed_amount == Decimal(75)
        assert outer.claimed is False

        async with session_factory() as db:
            assert await _ledger_total(db, uid) == Decimal(75)
            assert (await get_balance(db, uid))[0] == Decimal(0)

    async def test_reward_arriving_mid_claim_is_not_lost(self, session_factory, monkeypatch):
        """A credit landing after the read makes the swap fail; the next claim picks up everything."""
        async with session_factory() as db:
            uid = await make_account(db, "ivan", unclaimed=10)

        real_read = claims_service.read_unclaimed
        credited = []

        async def read_then_credit(db, user_id):
            snapshot = await real_read(db, user_id)
            if not credited:
                async with session_factory() as other:
                    await credit_reward(other, user_id, 5, SOURCE_TASK, "late task", idempotency_key="task:late")
                    await other.commit()
                credited.append(True)
            return snapshot

        monkeypatch.setattr(claims_service, "read_unclaimed", read_then_credit)

        async with session_factory() as db:
            first = await claims_service.claim_rewards(db, uid)
            second = await claims_service.claim_rewards(db, uid)

        assert first.claimed is False
        assert second.claimed is True
        assert second.claimed_amount == Decimal(15)

    async def test_record_committed_after_swap_stays_unclaimed(self, session_factory, monkeypatch):
        """A record stamped before the claim but committed after it still belongs to the unclaimed balance."""
        async with session_factory() as db:
            uid = await make_account(db, "judy")
            await credit_reward(db, uid, 20, SOURCE_TASK, "early task", idempotency_key="task:early")
            await db.commit()

        real_mark = claims_service.mark_claimed

        async def credit_then_mark(db, record_ids, claimed_at):
            async with session_factory() as other:
                late = await credit_reward(other, uid, 5, SOURCE_TASK, "late task", idempotency_key="task:late")
                await other.execute(
                    update(EarningRecord)
                    .where(EarningRecord.id == late.id)
                    .values(created_at=claimed_at - timedelta(seconds=30))
                )
                await other.commit()
            return await real_mark(db, record_ids, claimed_at)

        monkeypatch.setattr(claims_service, "mark_claimed", credit_then_mark)

        async with session_factory() as db:
            result = await claims_service.claim_rewards(db, uid)

        assert result.claimed_amount == Decimal(20)

        async with session_factory() as db:
            rows = (await db.execute(
                select(EarningRecord.description, EarningRecord.is_claimed).where(EarningRecord.user_id == uid)
            )).all()
            assert dict(rows) == {"early task": True, "late task": False}
            assert (await get_balance(db, uid))[0] == Decimal(5)


class TestLedgerTotal:

    async def test_upsert_inserts_then_increments(self, db_session):
        from datetime import datetime, timezone

        uid = await make_account(db_session, "judy")
        now = datetime.now(timezone.utc)

        assert await add_to_ledger_total(db_session, uid, Decimal(10), now) == Decimal(10)
        assert await add_to_ledger_total(db_session, uid, Decimal("2.5"), now) == Decimal("12.5")
        await db_session.commit()
