"""
Program configuration documents.

Business rules are stored as one JSON document per key. Engines never read
this table directly; they take an immutable snapshot at the start of a run.
"""
from datetime import datetime
from ..extensions import db


HELLO_DISCOUNT = 'hello_discount'
CASHBACK_RULES = 'cashback_rules'
POINTS_CONFIG = 'points_config'
MEMBERSHIP_TIERS = 'membership_tiers'

PROGRAM_CONFIG_KEYS = (HELLO_DISCOUNT, CASHBACK_RULES, POINTS_CONFIG, MEMBERSHIP_TIERS)


class ProgramConfig(db.Model):
    """A keyed business-rule document, e.g. ``points_config``."""
    __tablename__ = 'program_configs'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(50), nullable=False, unique=True)
    value = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<ProgramConfig {self.key}>'

    def to_dict(self):
        return {
            'id': self.id,
            'key': self.key,
            'value': self.value,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
