"""Task completion: base credit, idempotency, counters and royalties."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from conftest import make_account, referral_code_of
from sprewards.accounts.service import get_balance
from sprewards.db.models import EarningRecord
from sprewards.errors import TaskRewardRejected
from sprewards.stats.service import get_stat
from sprewards.tasks import service as task_service
from sprewards.tasks.service import complete_task, get_task_stats


async def _task_records(db, user_id) -> int:
    result = await db.execute(
        select(func.count()).select_from(EarningRecord).where(
            EarningRecord.user_id == user_id, EarningRecord.source == "task"
        )
    )
    return result.scalar_one()


class TestCompleteTask:

    async def test_credits_reward_and_counts_task(self, db_session):
        uid = await make_account(db_session, "alice")

        result = await complete_task(db_session, uid, 40, "t-1", "image", tier="gpu", multiplier=1.5)

        assert result["unclaimed_reward_delta"] == Decimal(40)
        assert result["total_unclaimed_reward"] == Decimal(40)
        assert result["task_count"] == 1
        assert await get_stat(db_session, "TOTAL_IMAGE_TASKS") == 1

        record = (await db_session.execute(
            select(EarningRecord).where(EarningRecord.idempotency_key == f"task:{uid}:t-1")
        )).scalar_one()
        assert record.attribution == {"task_id": "t-1", "task_type": "image", "tier": "gpu", "multiplier": 1.5}

    async def test_replayed_task_id_credits_nothing(self, db_session):
        uid = await make_account(db_session, "alice")
        await complete_task(db_session, uid, 40, "t-1", "text")

        replay = await complete_task(db_session, uid, 40, "t-1", "text")

        assert replay["unclaimed_reward_delta"] == Decimal(0)
        assert replay["total_unclaimed_reward"] == Decimal(40)
        assert replay["task_count"] == 1
        assert await _task_records(db_session, uid) == 1
        assert await get_stat(db_session, "TOTAL_TEXT_TASKS") == 1

    async def test_same_task_id_credits_each_user(self, db_session):
        ref_a = await make_account(db_session, "ref_a")
        ref_b = await make_account(db_session, "ref_b")
        alice = await make_account(db_session, "alice", referral_code=await referral_code_of(db_session, ref_a))
        bob = await make_account(db_session, "bob", referral_code=await referral_code_of(db_session, ref_b))

        first = await complete_task(db_session, alice, 50, "task-1", "text")
        second = await complete_task(db_session, bob, 50, "task-1", "text")

        assert first["unclaimed_reward_delta"] == Decimal(50)
        assert second["unclaimed_reward_delta"] == Decimal(50)
        # 500 welcome bonus + 50 task
        assert second["total_unclaimed_reward"] == Decimal(550)
        assert second["task_count"] == 1
        assert await _task_records(db_session, bob) == 1
        assert [(r.beneficiary_id, r.credited) for r in second["royalties"]] == [(ref_b, True)]
        # 250 signup bonus + 5 royalty each
        assert (await get_balance(db_session, ref_a))[0] == Decimal(255)
        assert (await get_balance(db_session, ref_b))[0] == Decimal(255)
        assert await get_stat(db_session, "TOTAL_TEXT_TASKS") == 2

    @pytest.mark.parametrize("amount", [0, -1, 101, 12.5, "20", True])
    async def test_invalid_amount_never_touches_ledger(self, db_session, amount):
        uid = await make_account(db_session, "alice")

        with pytest.raises(TaskRewardRejected):
            await complete_task(db_session, uid, amount, "t-bad", "text")

        assert await get_balance(db_session, uid) == (Decimal(0), 0)
        assert await _task_records(db_session, uid) == 0

    async def test_royalties_paid_to_referrers(self, db_session):
        a = await make_account(db_session, "alice")
        b = await make_account(db_session, "bob", referral_code=await referral_code_of(db_session, a))

        result = await complete_task(db_session, b, 100, "t-2", "video")

        assert [(r.tier, r.beneficiary_id, r.amount) for r in result["royalties"]] == [(1, a, Decimal(10))]
        # 250 signup bonus + 10 royalty
        assert (await get_balance(db_session, a))[0] == Decimal(260)
        # 500 welcome bonus + 100 task
        assert result["total_unclaimed_reward"] == Decimal(600)

    async def test_royalty_failure_does_not_undo_base_credit(self, db_session, monkeypatch):
        uid = await make_account(db_session, "alice")

        async def broken(*args, **kwargs):
            raise RuntimeError("cascade exploded")

        monkeypatch.setattr(task_service, "distribute_royalty", broken)
        result = await complete_task(db_session, uid, 30, "t-3", "text")

        assert result["unclaimed_reward_delta"] == Decimal(30)
        assert result["royalties"] == []
        assert (await get_balance(db_session, uid))[0] == Decimal(30)

    async def test_counter_failure_does_not_undo_base_credit(self, db_session, monkeypatch):
        uid = await make_account(db_session, "alice")

        async def broken(*args, **kwargs):
            raise RuntimeError("stats down")

        monkeypatch.setattr(task_service, "increment_stat", broken)
        result = await complete_task(db_session, uid, 30, "t-4", "text")

        assert result["unclaimed_reward_delta"] == Decimal(30)
        assert (await get_balance(db_session, uid)) == (Decimal(30), 1)

    async def test_three_d_aliases_share_a_counter(self, db_session):
        uid = await make_account(db_session, "alice")
        await complete_task(db_session, uid, 10, "t-5", "3d")
        await complete_task(db_session, uid, 10, "t-6", "three_d")

        assert await get_stat(db_session, "TOTAL_3D_TASKS") == 2


class TestTaskStats:

    async def test_totals(self, db_session):
        uid = await make_account(db_session, "alice")
        await complete_task(db_session, uid, 10, "t-1", "text")
        await complete_task(db_session, uid, 30, "t-2", "image")

        stats = await get_task_stats(db_session, uid)

        assert stats["total_tasks"] == 2
        assert stats["total_earnings"] == Decimal(40)
        assert stats["today_tasks"] == 2
        assert stats["average_per_task"] == Decimal(20)

    async def test_other_days_excluded_from_today(self, db_session):
        uid = await make_account(db_session, "alice")
        await complete_task(db_session, uid, 10, "t-1", "text")

        stats = await get_task_stats(db_session, uid, today=date(2001, 1, 1))

        assert stats["total_tasks"] == 1
        assert stats["today_tasks"] == 0
        assert stats["today_earnings"] == Decimal(0)
