"""Task completion endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.auth.dependencies import get_current_account
from sprewards.database import get_session
from sprewards.db.models import Account
from sprewards.tasks.schemas import RoyaltyEntry, TaskCompleteRequest, TaskCompleteResponse, TaskStatsResponse
from sprewards.tasks.service import complete_task, get_task_stats

router = APIRouter(prefix="/api/v1/tasks", tags=["Tasks"])


@router.post("/complete", response_model=TaskCompleteResponse)
async def complete(
    body: TaskCompleteRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> TaskCompleteResponse:
    """Credit the reward for a completed compute task."""
    user_id = account.id
    result = await complete_task(
        db,
        user_id,
        body.reward_amount,
        body.task_id,
        body.task_type,
        tier=body.hardware_tier,
        multiplier=body.multiplier,
    )
    return TaskCompleteResponse(
        unclaimed_reward_delta=float(result["unclaimed_reward_delta"]),
        total_unclaimed_reward=float(result["total_unclaimed_reward"]),
        task_count=result["task_count"],
        royalties=[
            RoyaltyEntry(
                tier=r.tier,
                beneficiary_id=r.beneficiary_id,
                amount=float(r.amount),
                credited=r.credited,
            )
            for r in result["royalties"]
        ],
    )


@router.get("/stats", response_model=TaskStatsResponse)
async def stats(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> TaskStatsResponse:
    s = await get_task_stats(db, account.id)
    return TaskStatsResponse(
        total_tasks=s["total_tasks"],
        total_earnings=float(s["total_earnings"]),
        today_tasks=s["today_tasks"],
        today_earnings=float(s["today_earnings"]),
        average_per_task=float(s["average_per_task"]),
    )
