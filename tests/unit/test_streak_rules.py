"""Streak derivation and the 7-day reward cycle."""

from datetime import date
from decimal import Decimal

import pytest

from sprewards.checkins.service import DAILY_REWARDS, compute_streak, next_cycle_day, reward_for_day
from sprewards.db.models import CheckinRecord

TODAY = date(2026, 3, 10)


def _last(checkin_date: date, streak: int, day_number: int) -> CheckinRecord:
    return CheckinRecord(
        user_id=1,
        checkin_date=checkin_date,
        streak_count=streak,
        day_number=day_number,
        reward_amount=Decimal(DAILY_REWARDS[day_number - 1]),
    )


class TestComputeStreak:

    def test_no_history_starts_at_day_one(self):
        info = compute_streak(None, TODAY)
        assert info.current_streak == 0
        assert info.can_check_in_today is True
        assert info.next_day_number == 1

    def test_checked_in_today_is_blocked(self):
        info = compute_streak(_last(TODAY, 3, 3), TODAY)
        assert info.can_check_in_today is False
        assert info.current_streak == 3
        assert info.next_day_number == 4
        assert info.last_day_number == 3

    def test_yesterday_continues_streak(self):
        info = compute_streak(_last(date(2026, 3, 9), 3, 3), TODAY)
        assert info.can_check_in_today is True
        assert info.current_streak == 3
        assert info.next_day_number == 4

    def test_gap_resets_streak(self):
        """Missing one calendar day breaks the streak."""
        info = compute_streak(_last(date(2026, 3, 8), 5, 5), TODAY)
        assert info.can_check_in_today is True
        assert info.current_streak == 0
        assert info.next_day_number == 1
        assert info.last_checkin_date == date(2026, 3, 8)

    def test_day_seven_wraps_to_day_one(self):
        info = compute_streak(_last(date(2026, 3, 9), 7, 7), TODAY)
        assert info.current_streak == 7
        assert info.next_day_number == 1

    def test_month_boundary(self):
        info = compute_streak(_last(date(2026, 2, 28), 2, 2), date(2026, 3, 1))
        assert info.current_streak == 2
        assert info.next_day_number == 3


class TestRewardCycle:

    def test_reward_table(self):
        assert [reward_for_day(d) for d in range(1, 8)] == [
            Decimal(5), Decimal(10), Decimal(15), Decimal(20), Decimal(25), Decimal(30), Decimal(50),
        ]

    @pytest.mark.parametrize("day", [0, 8, -1])
    def test_out_of_cycle_day_rejected(self, day):
        with pytest.raises(ValueError):
            reward_for_day(day)

    def test_next_cycle_day(self):
        assert next_cycle_day(1) == 2
        assert next_cycle_day(6) == 7
        assert next_cycle_day(7) == 1
