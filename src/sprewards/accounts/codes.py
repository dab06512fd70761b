"""Referral code generation.

Codes are 8-character alphanumeric (A-Z, 0-9), generated server-side with a
cryptographic random source. Lookups are case-insensitive; codes accepted
from users are 6-10 characters so legacy short codes still resolve.
"""

from __future__ import annotations

import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sprewards.db.models import Account

REFERRAL_CHARSET = string.ascii_uppercase + string.digits
REFERRAL_CODE_LENGTH = 8
MIN_CODE_LENGTH = 6
MAX_CODE_LENGTH = 10


def generate_referral_code() -> str:
    """Generate a cryptographically random 8-character referral code."""
    return "".join(secrets.choice(REFERRAL_CHARSET) for _ in range(REFERRAL_CODE_LENGTH))


def normalize_referral_code(code: str) -> str:
    """Normalize a referral code for case-insensitive lookup."""
    return code.strip().upper()


def is_well_formed_code(code: str) -> bool:
    """True when ``code`` has an acceptable length and charset."""
    normalized = normalize_referral_code(code)
    return (
        MIN_CODE_LENGTH <= len(normalized) <= MAX_CODE_LENGTH
        and all(c in REFERRAL_CHARSET for c in normalized)
    )


async def generate_unique_referral_code(db: AsyncSession) -> str:
    """Generate a referral code that doesn't already exist in the database."""
    for _ in range(10):
        code = generate_referral_code()
        existing = await db.execute(
            select(Account.id).where(Account.referral_code == code)
        )
        if existing.scalar_one_or_none() is None:
            return code
    raise RuntimeError("Failed to generate unique referral code after 10 attempts")
