"""Domain errors raised by the ledger services.

All of them are ValueErrors: they describe a request the ledger refuses, not a
failure of the ledger. The HTTP layer maps them to 4xx responses through
``status_code``.
"""

from __future__ import annotations


class RewardsError(ValueError):
    """Base class for rejected ledger operations."""

    status_code = 400


class AccountNotFound(RewardsError):
    status_code = 404


class DeviceNotFound(RewardsError):
    status_code = 404


class TaskRewardRejected(RewardsError):
    """Task reward amount failed validation (security-relevant)."""


class InvalidReferralCode(RewardsError):
    pass


class ReferralConflict(RewardsError):
    """Self-referral or a second referrer for an already-referred user."""

    status_code = 409


class UptimeModeMismatch(RewardsError):
    """Uptime sync semantics do not match the device's pinned mode."""

    status_code = 409
