"""Public platform statistics."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.database import get_session
from sprewards.stats.schemas import GlobalStatsResponse
from sprewards.stats.service import get_global_stats

router = APIRouter(prefix="/api/v1", tags=["Stats"])


@router.get("/global-stats", response_model=GlobalStatsResponse)
async def global_stats(db: AsyncSession = Depends(get_session)) -> GlobalStatsResponse:
    s = await get_global_stats(db)
    return GlobalStatsResponse(
        global_sp=float(s["global_sp"]),
        total_users=s["total_users"],
        global_compute_generated=float(s["global_compute_generated"]),
        tasks_by_type=s["tasks_by_type"],
    )
