"""Daily check-in endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.auth.dependencies import get_current_account
from sprewards.checkins.schemas import CheckinResponse, StreakResponse
from sprewards.checkins.service import get_streak, perform_checkin, reward_for_day
from sprewards.database import get_session
from sprewards.db.models import Account

router = APIRouter(prefix="/api/v1/daily-checkins", tags=["Check-ins"])


@router.post("", response_model=CheckinResponse)
async def check_in(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> CheckinResponse:
    """Check in for today. A repeat on the same UTC day credits nothing."""
    result = await perform_checkin(db, account.id)
    return CheckinResponse(
        checked_in=result.checked_in,
        message=result.message,
        current_streak=result.current_streak,
        day_number=result.day_number,
        reward=float(result.reward),
        next_reward_day=result.next_reward_day,
    )


@router.get("/streak", response_model=StreakResponse)
async def streak(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> StreakResponse:
    info = await get_streak(db, account.id)
    return StreakResponse(
        current_streak=info.current_streak,
        can_check_in_today=info.can_check_in_today,
        next_day_number=info.next_day_number,
        next_reward=float(reward_for_day(info.next_day_number)),
        last_checkin_date=info.last_checkin_date,
    )
