"""Shared test fixtures.

Tests run against a throwaway SQLite file per test (aiosqlite), with the
schema built from the ORM metadata. Redis is left uninitialized, so caching,
pub/sub and rate limiting are skipped unless a test passes its own client.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from decimal import Decimal

os.environ.setdefault("SPR_DATABASE_URL", "sqlite+aiosqlite:///./sprewards-test.db")
os.environ.setdefault("SPR_JWT_SECRET", "test-secret-with-enough-bytes-for-hs256")
os.environ.setdefault("SPR_LOG_FORMAT", "console")

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sprewards.accounts.service import register_account
from sprewards.auth.jwt import create_access_token
from sprewards.config import get_settings
from sprewards.database import close_db, get_engine, get_session_factory, init_db
from sprewards.db.base import Base
from sprewards.db.models import Account

get_settings.cache_clear()


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh database for one test; yields the global session factory."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield get_session_factory()

    await close_db()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for service calls and assertions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to a fresh app on the per-test database."""
    from sprewards.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_account(
    db: AsyncSession,
    username: str,
    *,
    unclaimed: Decimal | int = 0,
    tier: str = "free",
    referral_code: str | None = None,
) -> int:
    """Register an account and return its id, optionally seeding a balance."""
    account = await register_account(
        db,
        username,
        email=f"{username}@example.com",
        referral_code=referral_code,
        subscription_tier=tier,
    )
    user_id = account.id
    if unclaimed:
        await db.execute(
            update(Account).where(Account.id == user_id).values(unclaimed_reward=Decimal(unclaimed))
        )
        await db.commit()
    return user_id


def auth_headers(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


async def referral_code_of(db: AsyncSession, user_id: int) -> str:
    from sprewards.accounts.service import get_account

    account = await get_account(db, user_id)
    return account.referral_code
