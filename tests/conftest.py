"""
Shared pytest fixtures for ShipRewards.

Every test gets a fresh app on in-memory SQLite with its app context pushed,
so services and models can be used directly inside test bodies.
"""
import copy
from datetime import date

import pytest

from shiprewards import create_app
from shiprewards.extensions import db
from shiprewards.models import ProgramConfig, Transaction
from shiprewards.services.rule_evaluators import ProgramSnapshot


PROGRAM_DOCUMENTS = {
    'hello_discount': {
        'enabled': True,
        'tiers': [
            {'code': 'HD1', 'label': 'Hello 5%', 'min_publish': 0, 'max_publish': 999_999,
             'discount_percent': 5},
            {'code': 'HD2', 'label': 'Hello 10%', 'min_publish': 1_000_000, 'max_publish': None,
             'discount_percent': 10},
        ],
    },
    'cashback_rules': {
        'enabled': True,
        'window_months': 3,
        'tiers': [
            {'code': 'CB1', 'label': 'Cashback 1%', 'min_total': 1_000_000, 'max_total': 19_999_999,
             'cashback_percent': 1},
            {'code': 'CB2', 'label': 'Cashback 2%', 'min_total': 20_000_000, 'max_total': None,
             'cashback_percent': 2},
        ],
    },
    'points_config': {
        'enabled': True,
        'base_amount_per_point': 10_000,
        'point_value_rupiah': 1,
        'multipliers_by_membership': {'SILVER': 1, 'GOLD': 1.25, 'PLATINUM': 1.5},
        'welcome_bonus_points': {'SILVER': 100, 'GOLD': 250, 'PLATINUM': 500},
    },
    'membership_tiers': {
        'period': 'quarter',
        'silver': {'min_spend': 0, 'max_spend': 4_999_999},
        'gold': {'min_spend': 5_000_000, 'max_spend': 19_999_999},
        'platinum': {'min_spend': 20_000_000, 'max_spend': None},
    },
}


@pytest.fixture
def app():
    """Testing app with tables created and an app context pushed."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return {
        'X-Role': 'ADMIN',
        'X-User-Id': 'admin-1',
        'Content-Type': 'application/json'
    }


@pytest.fixture
def program_documents():
    """A fresh, mutable copy of the standard program rules."""
    return copy.deepcopy(PROGRAM_DOCUMENTS)


@pytest.fixture
def snapshot(program_documents):
    return ProgramSnapshot.from_documents(program_documents)


@pytest.fixture
def program_configs(app, program_documents):
    """Seed all four config documents into program_configs."""
    for key, value in program_documents.items():
        db.session.add(ProgramConfig(key=key, value=value))
    db.session.commit()
    return program_documents


@pytest.fixture
def make_transaction(app):
    """Factory inserting one committed transaction."""
    def _make(customer_id, tx_date, publish_rate, points_earned=None, **fields):
        if isinstance(tx_date, str):
            tx_date = date.fromisoformat(tx_date)
        tx = Transaction(
            customer_id=customer_id,
            date=tx_date,
            publish_rate=publish_rate,
            points_earned=points_earned,
            **fields
        )
        db.session.add(tx)
        db.session.commit()
        return tx

    return _make
