"""
Quarterly accrual engine.

Maintains each customer's full chain of anchored periods and back-fills
per-transaction points.

Tier model: a period's tier is earned by the PREVIOUS period's spending.
Period 1 has no predecessor, so its transactions never earn points; points
start with the customer's second period ("month 4").

Ownership of the stored spending/tier figures:
- period 1 belongs to the initial engine. When its row already exists only
  the positional fields (index, label, status, previous-period pointers)
  are refreshed here, so the lifetime-grant bookkeeping is never clobbered.
- periods 2+ belong to this engine and are re-stamped on every run with the
  trailing spending and the tier it earns under the current config.
- rows outside the rebuilt chain (the first shipment date moved earlier)
  are kept for their grant flags but marked PAST, leaving one CURRENT row.

Points are stamped at most once per transaction. A transaction that already
has points keeps them even if its period's tier later changes.
"""
import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict

from ..models import RewardLedgerType
from ..utils.exceptions import ConfigurationError
from .period_builder import (
    DEFAULT_MAX_PERIODS,
    DEFAULT_PERIOD_MONTHS,
    FirstPeriod,
    PeriodKind,
    build_periods,
    classify_periods,
)
from .rewards_repository import RewardsRepository
from .rule_evaluators import ProgramSnapshot, transaction_points

logger = logging.getLogger(__name__)


@dataclass
class QuarterlyRunResult:
    """Counters reported back to the caller of a quarterly run."""
    customers_processed: int = 0
    membership_periods_created: int = 0
    membership_periods_updated: int = 0
    transactions_pointed: int = 0
    points_awarded: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class QuarterlyEngine:
    """
    Period chain maintenance and points back-fill for every customer.

    Usage:
        snapshot = ProgramConfigService().load_snapshot()
        result = QuarterlyEngine(snapshot).run()
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

    def check_config(self) -> None:
        """
        Tier computation is structural here, so missing rules are fatal.

        Raises:
            ConfigurationError: membership_tiers absent, or points_config absent/disabled
        """
        if self.snapshot.membership_tiers is None:
            raise ConfigurationError('membership_tiers config not found', key='membership_tiers')
        if not self.snapshot.points_enabled:
            raise ConfigurationError('points_config disabled or missing', key='points_config')

    def run(self, today: date = None) -> QuarterlyRunResult:
        """
        Process every customer's period chain, in period order.

        Each customer is committed on its own; the first failure rolls back
        that customer and aborts the run. Already-committed customers stay
        as they are and a re-run completes the rest.

        Args:
            today: reference date (UTC today if omitted)
        """
        self.check_config()

        today = today or datetime.utcnow().date()
        logger.info(f'Quarterly engine run started (today={today.isoformat()})')

        result = QuarterlyRunResult()
        for customer_id in self.repository.customer_ids():
            try:
                self.process_customer(customer_id, today, result)
                self.repository.commit()
            except Exception:
                self.repository.rollback()
                logger.error(f'Quarterly engine aborted at customer {customer_id}')
                raise

        logger.info(
            f'Quarterly engine run finished: customers={result.customers_processed} '
            f'created={result.membership_periods_created} updated={result.membership_periods_updated} '
            f'pointed={result.transactions_pointed} points={result.points_awarded}'
        )
        return result

    def process_customer(self, customer_id: str, today: date, result: QuarterlyRunResult) -> None:
        transactions = [tx for tx in self.repository.select_transactions(customer_id) if tx.date]
        periods = build_periods(transactions, today, self.period_months, self.max_periods)
        if not periods:
            return

        kinds = classify_periods(periods, self.snapshot.membership_tiers)

        # Ascending order: period i's tier depends on period i-1
        for kind in kinds:
            self._upsert_period(customer_id, kind, result)

        # Rows left over from a chain anchored on a later first shipment
        keep = {(kind.period.start, kind.period.end) for kind in kinds}
        result.membership_periods_updated += self.repository.retire_membership_periods(customer_id, keep)

        for kind in kinds:
            if not kind.earns_points:
                continue
            for tx in kind.period.transactions:
                self._award_points(customer_id, tx, kind, result)

        result.customers_processed += 1
        logger.debug(f'Customer {customer_id}: {len(kinds)} periods, current tier {kinds[-1].tier.value}')

    def _upsert_period(self, customer_id: str, kind: PeriodKind, result: QuarterlyRunResult) -> None:
        period = kind.period
        fields = {
            'period_index': period.index,
            'label': period.label,
            'status': period.status.value,
            'prev_period_start': period.prev_start,
            'prev_period_end': period.prev_end,
        }

        existing = self.repository.find_membership_period(customer_id, period.start, period.end)
        if existing is None or not isinstance(kind, FirstPeriod):
            fields['total_spending'] = kind.total_spending
            fields['tier'] = kind.tier.value

        if existing is not None and all(getattr(existing, name) == value for name, value in fields.items()):
            return

        _, created = self.repository.upsert_membership_period(customer_id, period.start, period.end, fields)
        if created:
            result.membership_periods_created += 1
        else:
            result.membership_periods_updated += 1

    def _award_points(self, customer_id: str, tx, kind: PeriodKind, result: QuarterlyRunResult) -> None:
        if tx.points_earned is not None and tx.points_earned > 0:
            return

        points = transaction_points(tx.publish_rate or 0, kind.tier, self.snapshot.points_config)
        if points <= 0:
            return

        if not self.repository.update_transaction_points(tx.id, points):
            return

        self.repository.insert_reward_ledger_entry(
            customer_id=customer_id,
            type=RewardLedgerType.POINT_TX.value,
            points=points,
            amount=None,
            ref_id=str(tx.id),
            note=f'Points from transaction ({kind.period.label}, {kind.tier.value})',
        )
        result.transactions_pointed += 1
        result.points_awarded += points
