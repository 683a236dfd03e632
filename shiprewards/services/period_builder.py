"""
Anchored period construction.

A customer's periods are consecutive half-open windows ``[start, end)`` of
``months`` calendar months, anchored at the date of their first
transaction (not at calendar quarters). Given the same transactions and the
same ``today`` the sequence is always identical, which is what lets the
engines be re-run safely.

The first period is special: its tier is earned by its own spending and it
carries the lifetime grants. Every later period's tier is earned by the
period before it. ``classify_periods`` makes that split explicit with the
``FirstPeriod`` / ``TrailingPeriod`` types.
"""
import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple, Union

from ..models.membership_period import MembershipTier, PeriodStatus
from .rule_evaluators import MembershipTiersConfig, tier_from_spending

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_MONTHS = 3
DEFAULT_MAX_PERIODS = 40


def add_months(value: date, months: int) -> date:
    """
    Add calendar months to a date.

    A day that does not exist in the target month spills over into the
    next month (Nov 30 + 3 months = Mar 2 in a non-leap year), matching
    the boundaries already stored for existing customers.
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    if value.day <= last_day:
        return date(year, month, value.day)
    return date(year, month, last_day) + timedelta(days=value.day - last_day)


def first_period_bounds(first_date: date, months: int = DEFAULT_PERIOD_MONTHS) -> Tuple[date, date]:
    return first_date, add_months(first_date, months)


@dataclass(frozen=True)
class BarePeriod:
    """One anchored window with its own and its predecessor's spending."""
    index: int
    start: date
    end: date
    spending: int
    prev_spending: int = 0
    prev_start: Optional[date] = None
    prev_end: Optional[date] = None
    status: PeriodStatus = PeriodStatus.PAST
    transactions: Tuple = ()

    @property
    def label(self) -> str:
        return f'P{self.index}'

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end


def build_periods(
    transactions: Sequence,
    today: date,
    months: int = DEFAULT_PERIOD_MONTHS,
    max_periods: int = DEFAULT_MAX_PERIODS,
) -> List[BarePeriod]:
    """
    Partition one customer's history into anchored periods.

    Emits windows from the first transaction date until the window that
    contains ``today`` (that one is CURRENT), or until ``max_periods``
    windows exist. Transactions dated exactly on a window's end belong to
    the next window. No transactions means no periods.

    Args:
        transactions: the customer's transactions (anything with ``date``
            and ``publish_rate``)
        today: reference date for CURRENT
        months: period length in calendar months
        max_periods: hard cap guarding against runaway dates

    Returns:
        Periods in ascending order, with status and trailing spending filled in
    """
    if not transactions:
        return []

    ordered = sorted(transactions, key=lambda tx: tx.date)
    start = ordered[0].date
    windows = []

    while len(windows) < max_periods:
        end = add_months(start, months)
        members = tuple(tx for tx in ordered if start <= tx.date < end)
        windows.append((start, end, members))
        if today < end:
            break
        start = end
    else:
        logger.warning(
            f'Period cap of {max_periods} reached before {today.isoformat()} '
            f'(first transaction {ordered[0].date.isoformat()})'
        )

    periods = []
    last = len(windows)
    for position, (start, end, members) in enumerate(windows, start=1):
        previous = periods[-1] if periods else None
        if position == last:
            status = PeriodStatus.CURRENT
        elif position == last - 1:
            status = PeriodStatus.PREVIOUS
        else:
            status = PeriodStatus.PAST
        periods.append(BarePeriod(
            index=position,
            start=start,
            end=end,
            spending=sum(tx.publish_rate or 0 for tx in members),
            prev_spending=previous.spending if previous else 0,
            prev_start=previous.start if previous else None,
            prev_end=previous.end if previous else None,
            status=status,
            transactions=members,
        ))

    return periods


# ==================== Period kinds ====================

@dataclass(frozen=True)
class FirstPeriod:
    """
    Period 1. Its spending and tier belong to the initial engine, which
    also hangs the lifetime grants off it. Never earns transaction points.
    """
    period: BarePeriod
    total_spending: int
    tier: MembershipTier

    earns_points = False


@dataclass(frozen=True)
class TrailingPeriod:
    """
    Period 2 onwards. Spending and tier are the previous period's figures,
    written by the quarterly engine on every run.
    """
    period: BarePeriod
    total_spending: int
    tier: MembershipTier

    @property
    def earns_points(self) -> bool:
        return self.total_spending > 0


PeriodKind = Union[FirstPeriod, TrailingPeriod]


def classify_periods(periods: Sequence[BarePeriod],
                     tiers_cfg: Optional[MembershipTiersConfig]) -> List[PeriodKind]:
    """Tag each bare period with the kind that owns its spending/tier."""
    kinds: List[PeriodKind] = []
    for period in periods:
        if period.index == 1:
            kinds.append(FirstPeriod(
                period=period,
                total_spending=period.spending,
                tier=tier_from_spending(period.spending, tiers_cfg),
            ))
        else:
            kinds.append(TrailingPeriod(
                period=period,
                total_spending=period.prev_spending,
                tier=tier_from_spending(period.prev_spending, tiers_cfg),
            ))
    return kinds

