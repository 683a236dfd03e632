"""
Data access for the accrual engines.

Thin query primitives over the SQLAlchemy session. Any database failure is
re-raised as DataStoreError so engines can abort the run with one message.

Unit of work: the engines call ``commit()`` once per customer, so a
customer's period updates, ledger appends and grant flags land together
or not at all.
"""
import logging
from datetime import date
from functools import wraps
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import MembershipPeriod, PeriodStatus, ProgramConfig, RewardLedgerEntry, Transaction
from ..utils.exceptions import DataStoreError

logger = logging.getLogger(__name__)

GRANT_FLAGS = ('active_cashback_given', 'welcome_bonus_given')


def _datastore_call(operation: str):
    """Translate SQLAlchemy failures into DataStoreError."""
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error(f'{operation} failed: {e}')
                raise DataStoreError(f'{operation} failed: {e}', original_error=e) from e
        return wrapper
    return decorator


class RewardsRepository:
    """
    Query primitives used by the engines.

    Usage:
        repo = RewardsRepository()
        for customer_id in repo.customer_ids():
            transactions = repo.select_transactions(customer_id)
        row, created = repo.upsert_membership_period(cid, start, end, {'tier': 'GOLD'})
        repo.commit()
    """

    def __init__(self, session=None):
        self.session = session or db.session

    # ==================== Transactions ====================

    @_datastore_call('select transactions')
    def select_transactions(
        self,
        customer_id: str = None,
        date_range: Tuple[Optional[date], Optional[date]] = None
    ) -> List[Transaction]:
        """Transactions ordered by (customer, date), optionally filtered."""
        query = self.session.query(Transaction)
        if customer_id is not None:
            query = query.filter(Transaction.customer_id == customer_id)
        if date_range:
            start, end = date_range
            if start:
                query = query.filter(Transaction.date >= start)
            if end:
                query = query.filter(Transaction.date < end)
        return query.order_by(Transaction.customer_id, Transaction.date, Transaction.id).all()

    @_datastore_call('select customers')
    def customer_ids(self) -> List[str]:
        """Every customer with at least one transaction, in id order."""
        rows = self.session.query(Transaction.customer_id).filter(
            Transaction.customer_id.isnot(None)
        ).distinct().order_by(Transaction.customer_id).all()
        return [row[0] for row in rows]

    @_datastore_call('check existing transactions')
    def customers_with_transactions(self, customer_ids: List[str]) -> set:
        if not customer_ids:
            return set()
        rows = self.session.query(Transaction.customer_id).filter(
            Transaction.customer_id.in_(customer_ids)
        ).distinct().all()
        return {row[0] for row in rows}

    @_datastore_call('update transaction points')
    def update_transaction_points(self, transaction_id: int, points: int) -> bool:
        """
        Stamp points on a transaction that has none yet.

        The update only matches rows whose points_earned is NULL or <= 0, so
        a transaction is pointed at most once even if two runs race.

        Returns:
            True if this call stamped the points
        """
        self.session.flush()
        updated = self.session.query(Transaction).filter(
            Transaction.id == transaction_id,
            or_(Transaction.points_earned.is_(None), Transaction.points_earned <= 0),
        ).update({Transaction.points_earned: points}, synchronize_session='fetch')
        return updated == 1

    @_datastore_call('insert transactions')
    def insert_transactions(self, rows: List[Dict[str, Any]]) -> List[Transaction]:
        transactions = [Transaction(**row) for row in rows]
        self.session.add_all(transactions)
        self.session.flush()
        return transactions

    # ==================== Membership periods ====================

    @_datastore_call('select membership period')
    def find_membership_period(
        self,
        customer_id: str,
        period_start: date,
        period_end: date,
        for_update: bool = False
    ) -> Optional[MembershipPeriod]:
        """
        Zero or one period row for the window.

        ``for_update`` takes a row lock on databases that support it, so two
        overlapping runs cannot both read the same unset grant flag.
        """
        query = self.session.query(MembershipPeriod).filter(
            MembershipPeriod.customer_id == customer_id,
            MembershipPeriod.period_start == period_start,
            MembershipPeriod.period_end == period_end,
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    @_datastore_call('select membership periods')
    def periods_for_customer(self, customer_id: str) -> List[MembershipPeriod]:
        return self.session.query(MembershipPeriod).filter(
            MembershipPeriod.customer_id == customer_id
        ).order_by(MembershipPeriod.period_start).all()

    @_datastore_call('select lifetime grant flags')
    def lifetime_grant_flags(self, customer_id: str) -> set:
        """
        Grant flags set on any of the customer's period rows.

        A backdated transaction moves the first period, so the row that
        recorded a lifetime grant is not always today's first period.
        """
        given = set()
        for flag in GRANT_FLAGS:
            column = getattr(MembershipPeriod, flag)
            found = self.session.query(MembershipPeriod.id).filter(
                MembershipPeriod.customer_id == customer_id,
                column.is_(True),
            ).first()
            if found is not None:
                given.add(flag)
        return given

    @_datastore_call('retire membership periods')
    def retire_membership_periods(self, customer_id: str, keep: set) -> int:
        """
        Mark PAST every non-PAST row whose (start, end) is not in ``keep``.

        Returns:
            Number of rows retired
        """
        retired = 0
        rows = self.session.query(MembershipPeriod).filter(
            MembershipPeriod.customer_id == customer_id,
            or_(MembershipPeriod.status.is_(None), MembershipPeriod.status != PeriodStatus.PAST.value),
        ).all()
        for row in rows:
            if (row.period_start, row.period_end) in keep:
                continue
            logger.info(
                f'Customer {customer_id}: retiring stale period '
                f'{row.period_start.isoformat()}..{row.period_end.isoformat()} ({row.status})'
            )
            row.status = PeriodStatus.PAST.value
            retired += 1
        if retired:
            self.session.flush()
        return retired

    @_datastore_call('upsert membership period')
    def upsert_membership_period(
        self,
        customer_id: str,
        period_start: date,
        period_end: date,
        fields: Dict[str, Any]
    ) -> Tuple[MembershipPeriod, bool]:
        """
        Insert or update the period keyed by (customer, start, end).

        Returns:
            (row, created)
        """
        row = self.find_membership_period(customer_id, period_start, period_end)
        created = row is None
        if created:
            row = MembershipPeriod(
                customer_id=customer_id,
                period_start=period_start,
                period_end=period_end,
            )
            self.session.add(row)
        for name, value in fields.items():
            setattr(row, name, value)
        self.session.flush()
        return row, created

    @_datastore_call('set membership period flag')
    def claim_period_flag(self, period_id: int, flag: str) -> bool:
        """
        Flip a one-time grant flag from False to True.

        Returns:
            True if this call flipped it, False if it was already set
        """
        if flag not in GRANT_FLAGS:
            raise ValueError(f'Unknown grant flag: {flag}')
        column = getattr(MembershipPeriod, flag)
        self.session.flush()
        updated = self.session.query(MembershipPeriod).filter(
            MembershipPeriod.id == period_id,
            or_(column.is_(None), column.is_(False)),
        ).update({column: True}, synchronize_session='fetch')
        return updated == 1

    # ==================== Reward ledger ====================

    @_datastore_call('insert reward ledger entry')
    def insert_reward_ledger_entry(self, **fields) -> RewardLedgerEntry:
        entry = RewardLedgerEntry(**fields)
        self.session.add(entry)
        self.session.flush()
        return entry

    # ==================== Program config ====================

    @_datastore_call('load program config')
    def load_program_config(self, key: str) -> Optional[dict]:
        row = self.session.query(ProgramConfig).filter(ProgramConfig.key == key).first()
        return row.value if row else None

    @_datastore_call('load program configs')
    def load_program_configs(self) -> Dict[str, dict]:
        return {row.key: row.value for row in self.session.query(ProgramConfig).all()}

    # ==================== Unit of work ====================

    @_datastore_call('commit')
    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        try:
            self.session.rollback()
        except SQLAlchemyError as e:
            logger.error(f'Rollback failed: {e}')
