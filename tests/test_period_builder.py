"""
Tests for anchored period construction.
"""
from datetime import date
from types import SimpleNamespace

import pytest

from shiprewards.models import MembershipTier, PeriodStatus
from shiprewards.services.period_builder import (
    FirstPeriod,
    TrailingPeriod,
    add_months,
    build_periods,
    classify_periods,
    first_period_bounds,
)


def tx(day: str, publish_rate: int):
    return SimpleNamespace(date=date.fromisoformat(day), publish_rate=publish_rate)


class TestAddMonths:
    """Tests for calendar-month addition."""

    @pytest.mark.parametrize('start,months,expected', [
        (date(2025, 1, 10), 3, date(2025, 4, 10)),
        (date(2025, 12, 15), 3, date(2026, 3, 15)),
        (date(2025, 10, 31), 3, date(2026, 1, 31)),
    ])
    def test_plain_addition(self, start, months, expected):
        assert add_months(start, months) == expected

    def test_missing_day_rolls_into_next_month(self):
        """Jan 31 + 1 month has no Feb 31, so it lands 3 days into March."""
        assert add_months(date(2025, 1, 31), 1) == date(2025, 3, 3)

    def test_missing_day_in_leap_year(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 3, 2)

    def test_quarter_from_november_30(self):
        assert add_months(date(2025, 11, 30), 3) == date(2026, 3, 2)

    def test_first_period_bounds(self):
        assert first_period_bounds(date(2025, 1, 10)) == (date(2025, 1, 10), date(2025, 4, 10))


class TestBuildPeriods:
    """Tests for build_periods."""

    def test_no_transactions_no_periods(self):
        assert build_periods([], date(2025, 6, 1)) == []

    def test_single_current_period(self):
        periods = build_periods([tx('2025-01-10', 100_000)], date(2025, 2, 1))

        assert len(periods) == 1
        assert periods[0].label == 'P1'
        assert periods[0].start == date(2025, 1, 10)
        assert periods[0].end == date(2025, 4, 10)
        assert periods[0].status == PeriodStatus.CURRENT
        assert periods[0].prev_start is None

    def test_transaction_on_end_date_belongs_to_next_period(self):
        transactions = [tx('2025-01-10', 100_000), tx('2025-04-10', 250_000)]
        periods = build_periods(transactions, date(2025, 5, 1))

        assert len(periods) == 2
        assert periods[0].spending == 100_000
        assert periods[1].start == date(2025, 4, 10)
        assert periods[1].spending == 250_000

    def test_day_before_end_stays_in_period(self):
        transactions = [tx('2025-01-10', 100_000), tx('2025-04-09', 250_000)]
        periods = build_periods(transactions, date(2025, 5, 1))

        assert periods[0].spending == 350_000
        assert periods[1].spending == 0

    def test_stops_at_period_containing_today(self):
        periods = build_periods([tx('2025-01-10', 100_000)], date(2025, 7, 15))

        assert [p.label for p in periods] == ['P1', 'P2', 'P3']
        assert periods[-1].start <= date(2025, 7, 15) < periods[-1].end

    def test_today_on_boundary_starts_new_period(self):
        periods = build_periods([tx('2025-01-10', 100_000)], date(2025, 4, 10))

        assert len(periods) == 2
        assert periods[1].status == PeriodStatus.CURRENT

    def test_statuses(self):
        periods = build_periods([tx('2025-01-10', 100_000)], date(2025, 10, 15))

        assert [p.status for p in periods] == [
            PeriodStatus.PAST,
            PeriodStatus.PAST,
            PeriodStatus.PREVIOUS,
            PeriodStatus.CURRENT,
        ]

    def test_trailing_spending_and_pointers(self):
        transactions = [tx('2025-01-10', 100_000), tx('2025-05-01', 400_000), tx('2025-08-01', 50_000)]
        periods = build_periods(transactions, date(2025, 8, 2))

        assert [p.spending for p in periods] == [100_000, 400_000, 50_000]
        assert [p.prev_spending for p in periods] == [0, 100_000, 400_000]
        assert periods[2].prev_start == periods[1].start
        assert periods[2].prev_end == periods[1].end

    def test_unsorted_input(self):
        transactions = [tx('2025-05-01', 400_000), tx('2025-01-10', 100_000)]
        periods = build_periods(transactions, date(2025, 5, 2))

        assert periods[0].start == date(2025, 1, 10)
        assert [len(p.transactions) for p in periods] == [1, 1]

    def test_future_dated_data_yields_one_period(self):
        periods = build_periods([tx('2026-01-10', 100_000)], date(2025, 6, 1))

        assert len(periods) == 1
        assert periods[0].status == PeriodStatus.CURRENT

    def test_period_cap(self):
        periods = build_periods([tx('2000-01-01', 100_000)], date(2025, 6, 1), max_periods=4)

        assert len(periods) == 4
        assert periods[-1].status == PeriodStatus.CURRENT

    def test_custom_period_length(self):
        periods = build_periods([tx('2025-01-10', 100_000)], date(2025, 3, 1), months=1)

        assert [p.end for p in periods] == [date(2025, 2, 10), date(2025, 3, 10)]


class TestClassifyPeriods:
    """Tests for classify_periods."""

    def test_first_period_uses_own_spending(self, snapshot):
        periods = build_periods([tx('2025-01-10', 6_000_000)], date(2025, 2, 1))
        kinds = classify_periods(periods, snapshot.membership_tiers)

        assert isinstance(kinds[0], FirstPeriod)
        assert kinds[0].tier == MembershipTier.GOLD
        assert kinds[0].total_spending == 6_000_000
        assert kinds[0].earns_points is False

    def test_trailing_tier_depends_only_on_previous_period(self, snapshot):
        transactions = [tx('2025-01-10', 6_000_000), tx('2025-05-01', 25_000_000)]
        periods = build_periods(transactions, date(2025, 5, 2))
        kinds = classify_periods(periods, snapshot.membership_tiers)

        assert isinstance(kinds[1], TrailingPeriod)
        assert kinds[1].tier == MembershipTier.GOLD
        assert kinds[1].total_spending == 6_000_000
        assert kinds[1].earns_points is True

    def test_trailing_period_after_idle_period(self, snapshot):
        transactions = [tx('2025-01-10', 6_000_000), tx('2025-08-01', 100_000)]
        periods = build_periods(transactions, date(2025, 8, 2))
        kinds = classify_periods(periods, snapshot.membership_tiers)

        assert kinds[2].total_spending == 0
        assert kinds[2].tier == MembershipTier.SILVER
        assert kinds[2].earns_points is False
