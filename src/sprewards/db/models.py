"""ORM models for the rewards ledger.

Amounts are Numeric(20, 8) and surface as Decimal. Balances are only ever
changed through native SQL increments or the claim compare-and-swap, never by
assigning a value computed in Python from an earlier read.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sprewards.db.base import Base, BigIntPK, JSONDict

Amount = Numeric(20, 8)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class Account(Base):
    """Per-user reward account. Maps to the 'users' table."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("unclaimed_reward >= 0", name="users_unclaimed_reward_non_negative"),
        CheckConstraint("task_completed >= 0", name="users_task_completed_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, nullable=True)
    referral_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    unclaimed_reward: Mapped[Decimal] = mapped_column(Amount, nullable=False, default=Decimal(0), server_default="0")
    task_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    subscription_tier: Mapped[str] = mapped_column(String(16), nullable=False, default="free", server_default="free")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    devices: Mapped[list[Device]] = relationship("Device", back_populates="owner")


# ---------------------------------------------------------------------------
# Earning Record Log
# ---------------------------------------------------------------------------


class EarningRecord(Base):
    """Append-only reward event. Only is_claimed/claimed_at ever change."""

    __tablename__ = "earnings"
    __table_args__ = (
        CheckConstraint("amount > 0", name="earnings_amount_positive"),
        Index("idx_earnings_user_unclaimed", "user_id", "is_claimed"),
        Index("idx_earnings_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    is_claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    attribution: Mapped[dict[str, Any]] = mapped_column("metadata", JSONDict, nullable=False, default=dict)
    idempotency_key: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Running-Total Ledger
# ---------------------------------------------------------------------------


class LedgerTotal(Base):
    """All-time claimed total, one row per user."""

    __tablename__ = "ledger_totals"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ledger_totals_total_non_negative"),
        Index("idx_ledger_totals_rank", "total_amount"),
    )

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    total_amount: Mapped[Decimal] = mapped_column(Amount, nullable=False, default=Decimal(0), server_default="0")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Referral Graph
# ---------------------------------------------------------------------------


class ReferralEdge(Base):
    """Referrer -> referred edge. A user is referred at most once."""

    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint("referred_id", name="referrals_referred_id_key"),
        CheckConstraint("referrer_id <> referred_id", name="referrals_no_self_referral"),
        Index("idx_referrals_referrer", "referrer_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    referrer_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    referred_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    referral_code: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active", server_default="active")
    reward_amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Daily Check-ins
# ---------------------------------------------------------------------------


class CheckinRecord(Base):
    """One row per user per calendar day."""

    __tablename__ = "daily_checkins"
    __table_args__ = (
        UniqueConstraint("user_id", "checkin_date", name="daily_checkins_user_id_date_key"),
        CheckConstraint("day_number BETWEEN 1 AND 7", name="daily_checkins_day_number_range"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    checkin_date: Mapped[date] = mapped_column(Date, nullable=False)
    streak_count: Mapped[int] = mapped_column(Integer, nullable=False)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    reward_amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------


class Device(Base):
    """Compute device with an uptime counter.

    uptime_mode pins the meaning of uptime_seconds for the device's lifetime:
    'countdown' stores remaining seconds, 'accumulate' stores elapsed seconds.
    """

    __tablename__ = "devices"
    __table_args__ = (
        CheckConstraint("uptime_seconds >= 0", name="devices_uptime_non_negative"),
        Index("idx_devices_owner", "owner_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    device_name: Mapped[str] = mapped_column(String(128), nullable=False)
    device_type: Mapped[str] = mapped_column(String(32), nullable=False, default="desktop", server_default="desktop")
    gpu_model: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="offline", server_default="offline")
    uptime_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    uptime_mode: Mapped[str] = mapped_column(String(16), nullable=False, default="countdown", server_default="countdown")
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    owner: Mapped[Account] = relationship("Account", back_populates="devices")


# ---------------------------------------------------------------------------
# Platform statistics
# ---------------------------------------------------------------------------


class GlobalStat(Base):
    """Platform-wide counter keyed by stat id, e.g. TOTAL_TEXT_TASKS."""

    __tablename__ = "global_stats"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    total: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
