"""Leaderboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.auth.dependencies import get_current_account
from sprewards.database import get_session
from sprewards.db.models import Account
from sprewards.leaderboard.schemas import LeaderboardResponse, RankResponse
from sprewards.leaderboard.service import count_ranked, get_leaderboard, get_user_rank
from sprewards.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])


@router.get("", response_model=LeaderboardResponse)
async def leaderboard(
    limit: int = Query(10, ge=1, le=100),
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
    redis: Redis | None = Depends(get_optional_redis),
) -> LeaderboardResponse:
    """Top claimed totals; includes the caller's entry when outside the top list."""
    return LeaderboardResponse(**await get_leaderboard(db, account.id, limit, redis))


@router.get("/rank", response_model=RankResponse)
async def rank(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> RankResponse:
    return RankResponse(
        rank=await get_user_rank(db, account.id),
        total_ranked=await count_ranked(db),
    )
