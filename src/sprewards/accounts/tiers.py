"""Subscription tiers and their quotas."""

from __future__ import annotations

from sprewards.errors import RewardsError

SUBSCRIPTION_TIERS = ("free", "basic", "ultimate", "enterprise")

# Legacy plan names still sent by older clients
TIER_ALIASES: dict[str, str] = {
    "elite": "enterprise",
    "pro": "ultimate",
}

PLAN_LIMITS: dict[str, dict[str, int]] = {
    "free": {"max_uptime": 14_400, "max_daily_earnings": 100},  # 4 hours
    "basic": {"max_uptime": 36_000, "max_daily_earnings": 250},  # 10 hours
    "ultimate": {"max_uptime": 64_800, "max_daily_earnings": 450},  # 18 hours
    "enterprise": {"max_uptime": 86_400, "max_daily_earnings": 600},  # 24 hours
}

DEFAULT_TIER = "free"


def normalize_tier(plan: str) -> str:
    """Map a plan name (any case, legacy aliases allowed) onto a canonical tier.

    Raises:
        RewardsError: If the plan is not a known tier or alias.
    """
    name = plan.strip().lower()
    name = TIER_ALIASES.get(name, name)
    if name not in SUBSCRIPTION_TIERS:
        msg = f"Unknown subscription plan: {plan}"
        raise RewardsError(msg)
    return name


def plan_limits(tier: str | None) -> dict[str, int]:
    """Limits for a tier; unknown or missing tiers fall back to free."""
    if not tier:
        return PLAN_LIMITS[DEFAULT_TIER]
    name = tier.strip().lower()
    name = TIER_ALIASES.get(name, name)
    return PLAN_LIMITS.get(name, PLAN_LIMITS[DEFAULT_TIER])


def max_uptime_for_tier(tier: str | None) -> int:
    """Daily online-time ceiling in seconds for a tier."""
    return plan_limits(tier)["max_uptime"]
