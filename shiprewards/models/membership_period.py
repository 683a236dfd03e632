"""
Membership period ledger.

Derived state written by the accrual engines: one row per customer per
anchored period, holding the spending figure, the tier it earns and the
one-time grant flags.
"""
from datetime import datetime
from enum import Enum
from ..extensions import db


class MembershipTier(str, Enum):
    """Membership tiers, lowest first."""
    SILVER = 'SILVER'
    GOLD = 'GOLD'
    PLATINUM = 'PLATINUM'


class PeriodStatus(str, Enum):
    """Position of a period in the customer's chain."""
    CURRENT = 'CURRENT'     # Contains today
    PREVIOUS = 'PREVIOUS'   # The one right before CURRENT
    PAST = 'PAST'           # Everything older


class MembershipPeriod(db.Model):
    """
    One anchored period for one customer.

    ``total_spending`` means different things depending on the period:
    - period 1: the customer's own spending inside the period (written by
      the initial engine, which also owns ``tier`` for period 1)
    - period 2+: the PREVIOUS period's spending, which is what earns this
      period's tier (written by the quarterly engine)
    """
    __tablename__ = 'membership_periods'

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.String(64), nullable=False, index=True)

    # Position in the chain
    period_index = db.Column(db.Integer)
    label = db.Column(db.String(20))  # P1, P2, ...
    period_start = db.Column(db.Date, nullable=False)  # inclusive
    period_end = db.Column(db.Date, nullable=False)    # exclusive
    status = db.Column(db.String(20))
    prev_period_start = db.Column(db.Date)
    prev_period_end = db.Column(db.Date)

    # Tier
    total_spending = db.Column(db.BigInteger, nullable=False, default=0)
    tier = db.Column(db.String(20), nullable=False, default=MembershipTier.SILVER.value)

    # One-time grants (only ever set on period 1)
    active_cashback_given = db.Column(db.Boolean, nullable=False, default=False)
    welcome_bonus_given = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('customer_id', 'period_start', 'period_end', name='uq_membership_period_window'),
    )

    def __repr__(self):
        return f'<MembershipPeriod {self.customer_id} {self.label} {self.period_start}..{self.period_end} {self.tier}>'

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'period_index': self.period_index,
            'label': self.label,
            'period_start': self.period_start.isoformat() if self.period_start else None,
            'period_end': self.period_end.isoformat() if self.period_end else None,
            'status': self.status,
            'prev_period_start': self.prev_period_start.isoformat() if self.prev_period_start else None,
            'prev_period_end': self.prev_period_end.isoformat() if self.prev_period_end else None,
            'total_spending': self.total_spending,
            'tier': self.tier,
            'active_cashback_given': self.active_cashback_given,
            'welcome_bonus_given': self.welcome_bonus_given,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
