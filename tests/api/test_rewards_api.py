"""End-to-end reward flows over HTTP."""

from __future__ import annotations

from httpx import AsyncClient

from conftest import auth_headers, make_account, referral_code_of


class TestClaimEndpoint:

    async def test_claim_then_noop(self, client: AsyncClient, db_session):
        uid = await make_account(db_session, "alice", unclaimed=80)
        headers = auth_headers(uid)

        first = await client.post("/api/v1/claim-rewards", headers=headers)
        assert first.status_code == 200
        assert first.json() == {
            "success": True,
            "message": "Rewards claimed successfully",
            "data": {"claimed_amount": 80.0, "new_total_earnings": 80.0},
        }

        second = await client.post("/api/v1/claim-rewards", headers=headers)
        assert second.status_code == 200
        assert second.json()["success"] is False
        assert second.json()["message"] == "No rewards to claim"
        assert second.json()["data"]["claimed_amount"] == 0.0


class TestTaskEndpoint:

    async def test_complete_task(self, client: AsyncClient, db_session):
        uid = await make_account(db_session, "alice")
        body = {"task_id": "job-1", "task_type": "image", "reward_amount": 25, "hardware_tier": "gpu"}

        response = await client.post("/api/v1/tasks/complete", json=body, headers=auth_headers(uid))

        assert response.status_code == 200
        data = response.json()
        assert data["unclaimed_reward_delta"] == 25.0
        assert data["total_unclaimed_reward"] == 25.0
        assert data["task_count"] == 1

    async def test_replay_returns_zero_delta(self, client: AsyncClient, db_session):
        uid = await make_account(db_session, "alice")
        body = {"task_id": "job-1", "task_type": "text", "reward_amount": 25}

        await client.post("/api/v1/tasks/complete", json=body, headers=auth_headers(uid))
        replay = await client.post("/api/v1/tasks/complete", json=body, headers=auth_headers(uid))

        assert replay.status_code == 200
        assert replay.json()["unclaimed_reward_delta"] == 0.0
        assert replay.json()["total_unclaimed_reward"] == 25.0

    async def test_fractional_reward_rejected(self, client: AsyncClient, db_session):
        uid = await make_account(db_session, "alice")
        body = {"task_id": "job-2", "task_type": "text", "reward_amount": 12.5}

        response = await client.post("/api/v1/tasks/complete", json=body, headers=auth_headers(uid))

        assert response.status_code == 400
        assert "integer" in response.json()["detail"]

    async def test_oversized_reward_rejected(self, client: AsyncClient, db_session):
        uid = await make_account(db_session, "alice")
        body = {"task_id": "job-3", "task_type": "text", "reward_amount": 1000}

        response = await client.post("/api/v1/tasks/complete", json=body, headers=auth_headers(uid))
        assert response.status_code == 400

        earnings = await client.get("/api/v1/earnings", headers=auth_headers(uid))
        assert earnings.json()["total_unclaimed_reward"] == 0.0

    async def test_task_stats(self, client: AsyncClient, db_session):
        uid = await make_account(db_session, "alice")
        body = {"task_id": "job-4", "task_type": "video", "reward_amount": 60}
        await client.post("/api/v1/tasks/complete", json=body, headers=auth_headers(uid))

        response = await client.get("/api/v1/tasks/stats", headers=auth_headers(uid))
        assert response.json()["total_tasks"] == 1
        assert response.json()["average_per_task"] == 60.0


class TestCheckinEndpoints:

    async def test_checkin_once_per_day(self, client: AsyncClient, db_session):
        uid = await make_account(db_session, "alice")
        headers = auth_headers(uid)

        first = await client.post("/api/v1/daily-checkins", headers=headers)
        assert first.status_code == 200
        assert first.json()["checked_in"] is True
        assert first.json()["reward"] == 5.0
        assert first.json()["next_reward_day"] == 2

        second = await client.post("/api/v1/daily-checkins", headers=headers)
        assert second.status_code == 200
        assert second.json()["checked_in"] is False
        assert second.json()["message"] == "You have already checked in today"

        streak = await client.get("/api/v1/daily-checkins/streak", headers=headers)
        assert streak.json()["current_streak"] == 1
        assert streak.json()["can_check_in_today"] is False
        assert streak.json()["next_reward"] == 10.0


class TestReferralEndpoints:

    async def test_verify_is_public(self, client: AsyncClient, db_session):
        uid = await make_account(db_session, "alice")
        code = await referral_code_of(db_session, uid)

        response = await client.post("/api/v1/referrals/verify", json={"code": code.lower()})

        assert response.status_code == 200
        assert response.json() == {"valid": True, "referrer": {"id": uid, "username": "alice"}}

    async def test_verify_rejects_short_code(self, client: AsyncClient):
        response = await client.post("/api/v1/referrals/verify", json={"code": "ABC"})
        assert response.status_code == 422

    async def test_use_code_and_conflicts(self, client: AsyncClient, db_session):
        alice = await make_account(db_session, "alice")
        bob = await make_account(db_session, "bob")
        carol = await make_account(db_session, "carol")
        alice_code = await referral_code_of(db_session, alice)
        carol_code = await referral_code_of(db_session, carol)

        used = await client.post("/api/v1/referrals/use", json={"code": alice_code}, headers=auth_headers(bob))
        assert used.status_code == 200
        assert used.json()["referrer_id"] == alice

        again = await client.post("/api/v1/referrals/use", json={"code": carol_code}, headers=auth_headers(bob))
        assert again.status_code == 409
        assert again.json()["detail"] == "User has already been referred"

        own = await client.post("/api/v1/referrals/use", json={"code": alice_code}, headers=auth_headers(alice))
        assert own.status_code == 409

        unknown = await client.post("/api/v1/referrals/use", json={"code": "ZZZZZZZZ"}, headers=auth_headers(carol))
        assert unknown.status_code == 400

        listing = await client.get("/api/v1/referrals", headers=auth_headers(alice))
        assert listing.json()["total"] == 1
        assert listing.json()["referral_code"] == alice_code

        stats = await client.get("/api/v1/referrals/stats", headers=auth_headers(alice))
        assert stats.json()["total_signup_rewards"] == 250.0


class TestEarningsEndpoints:

    async def test_summary_and_history(self, client: AsyncClient, db_session):
        uid = await make_account(db_session, "alice")
        headers = auth_headers(uid)
        for i, amount in enumerate((10, 20, 30)):
            body = {"task_id": f"job-{i}", "task_type": "text", "reward_amount": amount}
            await client.post("/api/v1/tasks/complete", json=body, headers=headers)
        await client.post("/api/v1/claim-rewards", headers=headers)
        await client.post("/api/v1/daily-checkins", headers=headers)

        summary = (await client.get("/api/v1/earnings", headers=headers)).json()
        assert summary["total_earnings"] == 60.0
        assert summary["total_unclaimed_reward"] == 5.0
        assert summary["total_balance"] == 65.0
        assert summary["task_completed"] == 3

        history = (await client.get("/api/v1/earnings/history?per_page=2", headers=headers)).json()
        assert history["total"] == 4
        assert len(history["entries"]) == 2
        assert history["entries"][0]["source"] == "daily_checkin"

        tasks_only = (await client.get("/api/v1/earnings/history?source=task", headers=headers)).json()
        assert tasks_only["total"] == 3
        assert all(e["is_claimed"] for e in tasks_only["entries"])

    async def test_unknown_source_filter(self, client: AsyncClient, db_session):
        uid = await make_account(db_session, "alice")
        response = await client.get("/api/v1/earnings/history?source=lottery", headers=auth_headers(uid))
        assert response.status_code == 400
