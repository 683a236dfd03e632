"""
Reward ledger reads and manual adjustments.

The ledger is the system of record for customer balances: a balance is
always the sum of the entries, never a stored counter.
"""
import logging
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import MembershipTier, PeriodStatus, RewardLedgerEntry, RewardLedgerType
from ..utils.exceptions import DataStoreError, ValidationError
from .rewards_repository import RewardsRepository

logger = logging.getLogger(__name__)


class RewardLedgerService:
    """
    Balances, history and ADJUST entries.

    Usage:
        service = RewardLedgerService()
        balance = service.get_balance('cust-1')
        service.record_adjustment('cust-1', points=-500, note='Redeemed voucher')
    """

    def __init__(self, repository: RewardsRepository = None):
        self.repository = repository or RewardsRepository()

    def get_balance(self, customer_id: str) -> Dict[str, int]:
        """Point and cashback balance from the sum of all entries."""
        try:
            points, cashback = db.session.query(
                func.coalesce(func.sum(RewardLedgerEntry.points), 0),
                func.coalesce(func.sum(RewardLedgerEntry.amount), 0),
            ).filter(RewardLedgerEntry.customer_id == customer_id).one()
        except SQLAlchemyError as e:
            raise DataStoreError(f'balance query failed: {e}', original_error=e) from e

        return {'points': int(points), 'cashback': int(cashback)}

    def get_history(self, customer_id: str, limit: int = 100) -> List[Dict[str, Any]]:
        """Ledger entries, newest first."""
        try:
            entries = RewardLedgerEntry.query.filter_by(customer_id=customer_id).order_by(
                RewardLedgerEntry.created_at.desc(), RewardLedgerEntry.id.desc()
            ).limit(limit).all()
        except SQLAlchemyError as e:
            raise DataStoreError(f'ledger history query failed: {e}', original_error=e) from e

        return [entry.to_dict() for entry in entries]

    def get_membership(self, customer_id: str) -> Dict[str, Any]:
        """Stored periods, oldest first, and the tier of the CURRENT (else latest) one."""
        periods = self.repository.periods_for_customer(customer_id)
        current = [p for p in periods if p.status == PeriodStatus.CURRENT.value]
        latest = current[-1] if current else (periods[-1] if periods else None)
        return {
            'current_tier': latest.tier if latest else MembershipTier.SILVER.value,
            'periods': [period.to_dict() for period in periods],
        }

    def record_adjustment(
        self,
        customer_id: str,
        points: int = None,
        amount: int = None,
        note: str = None,
        created_by: str = 'system'
    ) -> Dict[str, Any]:
        """
        Append a signed ADJUST entry.

        Raises:
            ValidationError: no customer, or neither points nor amount given
        """
        if not customer_id:
            raise ValidationError('customer_id is required', field='customer_id')
        for name, value in (('points', points), ('amount', amount)):
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise ValidationError(f'{name} must be a whole number', field=name)
        if not points and not amount:
            raise ValidationError('points or amount must be non-zero')

        try:
            entry = self.repository.insert_reward_ledger_entry(
                customer_id=customer_id,
                type=RewardLedgerType.ADJUST.value,
                points=points or None,
                amount=amount or None,
                note=note or 'Manual adjustment',
                created_by=created_by,
            )
            self.repository.commit()
        except DataStoreError:
            self.repository.rollback()
            raise

        logger.info(f'Customer {customer_id}: adjustment points={points} amount={amount} by {created_by}')
        return entry.to_dict()
