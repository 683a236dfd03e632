"""
Initial accrual engine.

Handles the grants a customer can receive only once in their lifetime, both
tied to their first anchored period (the 3 months starting at their first
shipment):

- Active Cashback: a percent of the period's total spending, paid as an
  amount once the period has ended
- Welcome Bonus: a fixed number of points for the tier the first period
  earned, granted at the same time

Hello Discount is applied when transactions are imported and per-transaction
points belong to the quarterly engine; neither is touched here.

Runs are idempotent: the grant flags on the period row are claimed in the
same database transaction as the ledger append, so re-running never pays
twice.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ..models import RewardLedgerType
from .period_builder import DEFAULT_MAX_PERIODS, DEFAULT_PERIOD_MONTHS, build_periods
from .rewards_repository import RewardsRepository
from .rule_evaluators import (
    ProgramSnapshot,
    active_cashback_percent,
    round_half_up,
    tier_from_spending,
    welcome_bonus_points,
)

logger = logging.getLogger(__name__)


class InitialEngine:
    """
    One-time-per-lifetime grants on each customer's first period.

    Usage:
        snapshot = ProgramConfigService().load_snapshot()
        summary = InitialEngine(snapshot).run()
    """

    def __init__(
        self,
        snapshot: ProgramSnapshot,
        repository: RewardsRepository = None,
        period_months: int = DEFAULT_PERIOD_MONTHS,
        max_periods: int = DEFAULT_MAX_PERIODS
    ):
        self.snapshot = snapshot
        self.repository = repository or RewardsRepository()
        self.period_months = period_months
        self.max_periods = max_periods

    def run(self, today: date = None) -> List[Dict[str, Any]]:
        """
        Process every customer's first period.

        Each customer is committed on its own. The first failure rolls back
        that customer and aborts the run; customers already committed stay
        committed and a re-run picks up the rest.

        Args:
            today: reference date (UTC today if omitted)

        Returns:
            One summary per customer with transactions
        """
        today = today or datetime.utcnow().date()
        logger.info(f'Initial engine run started (today={today.isoformat()})')

        summary = []
        for customer_id in self.repository.customer_ids():
            try:
                result = self.process_customer(customer_id, today)
                self.repository.commit()
            except Exception:
                self.repository.rollback()
                logger.error(f'Initial engine aborted at customer {customer_id}')
                raise
            if result is not None:
                summary.append(result)

        logger.info(
            f'Initial engine run finished: {len(summary)} customers, '
            f'{sum(1 for s in summary if s["active_cashback_given"])} with cashback, '
            f'{sum(1 for s in summary if s["welcome_bonus_given"])} with welcome bonus'
        )
        return summary

    def process_customer(self, customer_id: str, today: date) -> Optional[Dict[str, Any]]:
        """Refresh the first period row and pay any grant that is now due."""
        transactions = [tx for tx in self.repository.select_transactions(customer_id) if tx.date]
        periods = build_periods(transactions, today, self.period_months, self.max_periods)
        if not periods:
            return None

        first = periods[0]
        total_spending = first.spending
        fresh_tier = tier_from_spending(total_spending, self.snapshot.membership_tiers).value

        period = self.repository.find_membership_period(
            customer_id, first.start, first.end, for_update=True
        )
        if period is None:
            period, _ = self.repository.upsert_membership_period(
                customer_id, first.start, first.end, {
                    'period_index': first.index,
                    'label': first.label,
                    'status': first.status.value,
                    'total_spending': total_spending,
                    'tier': fresh_tier,
                    'active_cashback_given': False,
                    'welcome_bonus_given': False,
                }
            )
        elif period.total_spending != total_spending or period.tier != fresh_tier:
            # Late-arriving transactions changed the first period
            logger.info(
                f'Customer {customer_id}: first period drifted '
                f'({period.total_spending}/{period.tier} -> {total_spending}/{fresh_tier})'
            )
            period.total_spending = total_spending
            period.tier = fresh_tier

        # Grants recorded on an earlier first period (before a backdated
        # transaction moved the anchor) still count as given
        for flag in self.repository.lifetime_grant_flags(customer_id):
            if not getattr(period, flag):
                logger.info(f'Customer {customer_id}: carrying {flag} onto {first.label} {first.start.isoformat()}')
                setattr(period, flag, True)

        if today >= first.end:
            self._grant_active_cashback(customer_id, period, total_spending)
            self._grant_welcome_bonus(customer_id, period)
        else:
            logger.debug(f'Customer {customer_id}: first period open until {first.end.isoformat()}')

        return {
            'customer_id': customer_id,
            'period_start': first.start.isoformat(),
            'period_end': first.end.isoformat(),
            'total_spending_3m': total_spending,
            'tier': period.tier,
            'active_cashback_given': bool(period.active_cashback_given),
            'welcome_bonus_given': bool(period.welcome_bonus_given),
        }

    def _grant_active_cashback(self, customer_id: str, period, total_spending: int) -> None:
        if period.active_cashback_given or total_spending <= 0 or not self.snapshot.cashback_enabled:
            return

        percent = active_cashback_percent(total_spending, self.snapshot.cashback_rules)
        amount = round_half_up(total_spending * (percent / 100))
        if amount <= 0:
            return

        if not self.repository.claim_period_flag(period.id, 'active_cashback_given'):
            return

        self.repository.insert_reward_ledger_entry(
            customer_id=customer_id,
            type=RewardLedgerType.ACTIVE_CASHBACK_3M.value,
            amount=amount,
            points=None,
            ref_id=None,
            note=f'Active Cashback {percent}% on first period spending of {total_spending}',
        )
        logger.info(f'Customer {customer_id}: active cashback {amount} ({percent}%)')

    def _grant_welcome_bonus(self, customer_id: str, period) -> None:
        if period.welcome_bonus_given or not self.snapshot.points_enabled:
            return

        points = welcome_bonus_points(period.tier, self.snapshot.points_config)
        if points <= 0:
            return

        if not self.repository.claim_period_flag(period.id, 'welcome_bonus_given'):
            return

        self.repository.insert_reward_ledger_entry(
            customer_id=customer_id,
            type=RewardLedgerType.WELCOME_BONUS.value,
            points=points,
            amount=None,
            ref_id=None,
            note=f'Welcome bonus ({period.tier})',
        )
        logger.info(f'Customer {customer_id}: welcome bonus {points} points ({period.tier})')
