"""Device registration and uptime sync endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.auth.dependencies import get_current_account
from sprewards.database import get_session
from sprewards.db.models import Account
from sprewards.uptime.schemas import (
    DeviceCreateRequest,
    DeviceListResponse,
    DeviceResponse,
    ElapsedRequest,
    RemainingRequest,
    StatusRequest,
)
from sprewards.uptime.service import (
    add_elapsed,
    list_devices,
    register_device,
    set_remaining,
    update_device_status,
)

router = APIRouter(prefix="/api/v1/devices", tags=["Devices"])


@router.post("", response_model=DeviceResponse, status_code=201)
async def create_device(
    body: DeviceCreateRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> DeviceResponse:
    device = await register_device(
        db,
        account.id,
        body.device_name,
        device_type=body.device_type,
        gpu_model=body.gpu_model,
        uptime_mode=body.uptime_mode,
    )
    return DeviceResponse.model_validate(device)


@router.get("", response_model=DeviceListResponse)
async def my_devices(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> DeviceListResponse:
    devices = await list_devices(db, account.id)
    return DeviceListResponse(
        devices=[DeviceResponse.model_validate(d) for d in devices],
        total=len(devices),
    )


@router.post("/{device_id}/remaining", response_model=DeviceResponse)
async def report_remaining(
    device_id: int,
    body: RemainingRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> DeviceResponse:
    """Countdown devices report the allowance they have left."""
    device = await set_remaining(db, device_id, account.id, body.remaining_seconds)
    return DeviceResponse.model_validate(device)


@router.post("/{device_id}/elapsed", response_model=DeviceResponse)
async def report_elapsed(
    device_id: int,
    body: ElapsedRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> DeviceResponse:
    """Accumulate devices report online time since their last report."""
    device = await add_elapsed(db, device_id, account.id, body.elapsed_seconds)
    return DeviceResponse.model_validate(device)


@router.post("/{device_id}/status", response_model=DeviceResponse)
async def report_status(
    device_id: int,
    body: StatusRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_session),
) -> DeviceResponse:
    device = await update_device_status(db, device_id, account.id, body.status)
    return DeviceResponse.model_validate(device)
