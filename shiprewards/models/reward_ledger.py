"""
Reward ledger model.

Append-only log of every point and cashback grant or debit. The sum of a
customer's entries is their balance.
"""
from datetime import datetime
from enum import Enum
from ..extensions import db


class RewardLedgerType(str, Enum):
    """Types of reward ledger entries."""
    ACTIVE_CASHBACK_3M = 'ACTIVE_CASHBACK_3M'  # Cashback on the first anchored period (amount)
    WELCOME_BONUS = 'WELCOME_BONUS'            # One-time points after the first period
    POINT_TX = 'POINT_TX'                      # Points earned by a single transaction
    ADJUST = 'ADJUST'                          # Manual adjustment (+/-)


class RewardLedgerEntry(db.Model):
    """
    One grant or debit.

    ``points`` and ``amount`` are signed and nullable: point grants leave
    ``amount`` empty and cashback leaves ``points`` empty. ``ref_id`` links
    POINT_TX entries to the originating transaction.
    """
    __tablename__ = 'reward_ledgers'

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.String(64), nullable=False, index=True)

    type = db.Column(db.String(30), nullable=False)
    points = db.Column(db.Integer)
    amount = db.Column(db.BigInteger)

    ref_id = db.Column(db.String(100))
    note = db.Column(db.String(500))
    created_by = db.Column(db.String(100), default='system:engine')

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_reward_ledgers_customer_type', 'customer_id', 'type'),
    )

    def __repr__(self):
        return f'<RewardLedgerEntry {self.id}: {self.type} for customer {self.customer_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'type': self.type,
            'points': self.points,
            'amount': self.amount,
            'ref_id': self.ref_id,
            'note': self.note,
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
