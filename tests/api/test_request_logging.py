"""Access log lines carry the request id and the authenticated account."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

from httpx import AsyncClient

from conftest import auth_headers, make_account
from sprewards.middleware import request_id
from sprewards.middleware.logging import stringify_amounts


async def test_authenticated_request_logged_with_user(client: AsyncClient, db_session, monkeypatch):
    uid = await make_account(db_session, "alice", unclaimed=10)
    log = MagicMock()
    monkeypatch.setattr(request_id, "logger", log)

    response = await client.post("/api/v1/claim-rewards", headers=auth_headers(uid))

    assert response.status_code == 200
    event, fields = log.info.call_args.args[0], log.info.call_args.kwargs
    assert event == "request_completed"
    assert fields["user_id"] == uid
    assert fields["method"] == "POST"
    assert fields["path"] == "/api/v1/claim-rewards"
    assert fields["status"] == 200


async def test_anonymous_and_health_check_requests(client: AsyncClient, monkeypatch):
    log = MagicMock()
    monkeypatch.setattr(request_id, "logger", log)

    await client.get("/api/v1/global-stats")
    await client.get("/health")

    assert log.info.call_args.kwargs["user_id"] is None
    assert log.debug.call_args.kwargs["path"] == "/health"


def test_decimal_amounts_rendered_exactly():
    event = stringify_amounts(None, "info", {"event": "rewards_claimed", "amount": Decimal("0.12500000"), "user_id": 7})
    assert event == {"event": "rewards_claimed", "amount": "0.12500000", "user_id": 7}
