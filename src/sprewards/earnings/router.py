"""Earnings summary and history endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.auth.dependencies import get_current_account
from sprewards.database import get_session
from sprewards.db.models import Account
from sprewards.earnings.schemas import EarningEntry, EarningHistoryResponse, EarningsSummaryResponse
from sprewards.earnings.service import EARNING_SOURCES, get_earning_history, get_earnings_summary

router = APIRouter(prefix="/api/v1/earnings", tags=["Earnings"])


@router.get("", response_model=EarningsSummaryResponse)
async def summary(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> EarningsSummaryResponse:
    s = await get_earnings_summary(db, account.id)
    return EarningsSummaryResponse(
        total_unclaimed_reward=float(s["total_unclaimed_reward"]),
        total_earnings=float(s["total_earnings"]),
        total_balance=float(s["total_balance"]),
        task_completed=s["task_completed"],
        by_source={k: float(v) for k, v in s["by_source"].items()},
    )


@router.get("/history", response_model=EarningHistoryResponse)
async def history(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    source: str | None = Query(None),
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> EarningHistoryResponse:
    """Paginated earning records, newest first."""
    if source is not None and source not in EARNING_SOURCES:
        raise HTTPException(status_code=400, detail=f"Unknown source: {source}")

    records, total = await get_earning_history(db, account.id, page, per_page, source)
    return EarningHistoryResponse(
        entries=[
            EarningEntry(
                id=r.id,
                amount=float(r.amount),
                source=r.source,
                is_claimed=r.is_claimed,
                claimed_at=r.claimed_at,
                description=r.description,
                metadata=r.attribution or {},
                created_at=r.created_at,
            )
            for r in records
        ],
        total=total,
        page=page,
        per_page=per_page,
    )
