"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
import structlog
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.accounts.service import get_account
from sprewards.auth.jwt import verify_token
from sprewards.database import get_session
from sprewards.db.models import Account

_bearer = HTTPBearer()


async def get_current_account(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Account:
    """Extract and verify the bearer JWT, return the caller's Account. Raises 401 on failure.

    The resolved id is bound to the log context and left on ``request.state``
    for the access log.
    """
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    try:
        user_id = int(payload["sub"])
    except (KeyError, ValueError) as e:
        raise HTTPException(status_code=401, detail="Invalid token subject") from e

    account = await get_account(db, user_id)
    if account is None:
        raise HTTPException(status_code=401, detail="User not found")

    request.state.user_id = user_id
    structlog.contextvars.bind_contextvars(user_id=user_id)
    return account
