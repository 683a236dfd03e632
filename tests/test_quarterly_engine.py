"""
Tests for the Quarterly Accrual Engine.

This test module covers:
- Period chain upserts with trailing tiers
- Points back-fill with double-floor semantics
- No points in period 1
- Idempotent re-runs
- Fatal configuration checks
- Retiring periods left behind by a backdated transaction
- Abort and rollback on datastore failures
"""
from datetime import date

import pytest

from shiprewards.extensions import db
from shiprewards.models import MembershipPeriod, ProgramConfig, RewardLedgerEntry, RewardLedgerType, Transaction
from shiprewards.services.initial_engine import InitialEngine
from shiprewards.services.program_config_service import ProgramConfigService
from shiprewards.services.quarterly_engine import QuarterlyEngine
from shiprewards.services.reward_ledger_service import RewardLedgerService
from shiprewards.services.rewards_repository import RewardsRepository
from shiprewards.utils.exceptions import ConfigurationError, DataStoreError


def run_quarterly(today):
    snapshot = ProgramConfigService().load_snapshot()
    return QuarterlyEngine(snapshot).run(today=today)


def point_entries(customer_id=None):
    query = RewardLedgerEntry.query.filter_by(type=RewardLedgerType.POINT_TX.value)
    if customer_id:
        query = query.filter_by(customer_id=customer_id)
    return query.all()


def periods(customer_id):
    return MembershipPeriod.query.filter_by(customer_id=customer_id).order_by(
        MembershipPeriod.period_start
    ).all()


@pytest.fixture
def gold_customer(make_transaction):
    """
    cust-1: 6,000,000 in P1 (earns GOLD for P2), 105,000 in P2 (earns SILVER
    for P3) and 100,000 in P3.
    """
    return {
        'p1': make_transaction('cust-1', '2025-01-10', 6_000_000),
        'p2': make_transaction('cust-1', '2025-05-01', 105_000),
        'p3': make_transaction('cust-1', '2025-07-12', 100_000),
    }


class TestQuarterlyEnginePeriods:
    """Tests for period chain maintenance."""

    def test_creates_full_chain(self, app, program_configs, gold_customer):
        result = run_quarterly(date(2025, 7, 15))

        rows = periods('cust-1')
        assert [p.label for p in rows] == ['P1', 'P2', 'P3']
        assert [p.status for p in rows] == ['PAST', 'PREVIOUS', 'CURRENT']
        assert result.membership_periods_created == 3
        assert result.membership_periods_updated == 0
        assert result.customers_processed == 1

    def test_trailing_spending_and_tier(self, app, program_configs, gold_customer):
        run_quarterly(date(2025, 7, 15))

        p1, p2, p3 = periods('cust-1')
        assert (p1.total_spending, p1.tier) == (6_000_000, 'GOLD')
        assert (p2.total_spending, p2.tier) == (6_000_000, 'GOLD')
        assert (p3.total_spending, p3.tier) == (105_000, 'SILVER')
        assert p3.prev_period_start == p2.period_start
        assert p3.prev_period_end == p2.period_end

    def test_existing_first_period_keeps_spending_and_flags(self, app, program_configs, gold_customer):
        InitialEngine(ProgramConfigService().load_snapshot()).run(today=date(2025, 4, 10))
        first = periods('cust-1')[0]
        first.total_spending = 1_234
        db.session.commit()

        run_quarterly(date(2025, 7, 15))

        first = periods('cust-1')[0]
        assert first.total_spending == 1_234
        assert first.tier == 'GOLD'
        assert first.active_cashback_given is True
        assert first.welcome_bonus_given is True
        assert first.status == 'PAST'

    def test_statuses_roll_forward(self, app, program_configs, gold_customer):
        run_quarterly(date(2025, 7, 15))
        result = run_quarterly(date(2025, 10, 15))

        rows = periods('cust-1')
        assert [p.status for p in rows] == ['PAST', 'PAST', 'PREVIOUS', 'CURRENT']
        assert result.membership_periods_created == 1
        # P2 goes PREVIOUS -> PAST, P3 goes CURRENT -> PREVIOUS
        assert result.membership_periods_updated == 2

    def test_tier_recomputed_under_new_config(self, app, program_configs, gold_customer):
        run_quarterly(date(2025, 7, 15))

        config = ProgramConfig.query.filter_by(key='membership_tiers').one()
        config.value = dict(config.value, gold={'min_spend': 7_000_000, 'max_spend': 19_999_999})
        db.session.commit()

        run_quarterly(date(2025, 7, 16))

        assert periods('cust-1')[1].tier == 'SILVER'


class TestQuarterlyEnginePoints:
    """Tests for per-transaction points back-fill."""

    def test_points_use_trailing_tier_and_double_floor(self, app, program_configs, gold_customer):
        result = run_quarterly(date(2025, 7, 15))

        for tx in gold_customer.values():
            db.session.refresh(tx)
        # 105,000 -> 10 base points x 1.25 (GOLD) = 12.5 -> 12
        assert gold_customer['p2'].points_earned == 12
        # 100,000 -> 10 base points x 1 (SILVER)
        assert gold_customer['p3'].points_earned == 10
        assert result.transactions_pointed == 2
        assert result.points_awarded == 22

    def test_no_points_in_first_period(self, app, program_configs, gold_customer):
        run_quarterly(date(2025, 7, 15))

        db.session.refresh(gold_customer['p1'])
        assert gold_customer['p1'].points_earned is None

    def test_one_ledger_entry_per_pointed_transaction(self, app, program_configs, gold_customer):
        run_quarterly(date(2025, 7, 15))

        entries = point_entries('cust-1')
        assert sorted(e.ref_id for e in entries) == sorted(
            [str(gold_customer['p2'].id), str(gold_customer['p3'].id)]
        )
        assert sorted(e.points for e in entries) == [10, 12]

    def test_rerun_is_idempotent(self, app, program_configs, gold_customer):
        run_quarterly(date(2025, 7, 15))
        result = run_quarterly(date(2025, 7, 15))

        assert len(point_entries('cust-1')) == 2
        assert result.transactions_pointed == 0
        assert result.membership_periods_created == 0
        assert result.membership_periods_updated == 0
        db.session.refresh(gold_customer['p2'])
        assert gold_customer['p2'].points_earned == 12

    def test_existing_points_are_kept(self, app, program_configs, make_transaction):
        make_transaction('cust-1', '2025-01-10', 6_000_000)
        tx = make_transaction('cust-1', '2025-05-01', 500_000, points_earned=7)

        run_quarterly(date(2025, 5, 15))

        db.session.refresh(tx)
        assert tx.points_earned == 7
        assert point_entries('cust-1') == []

    def test_zero_points_are_backfilled(self, app, program_configs, make_transaction):
        make_transaction('cust-1', '2025-01-10', 6_000_000)
        tx = make_transaction('cust-1', '2025-05-01', 500_000, points_earned=0)

        run_quarterly(date(2025, 5, 15))

        db.session.refresh(tx)
        # 50 base points x 1.25
        assert tx.points_earned == 62

    def test_no_points_after_idle_period(self, app, program_configs, make_transaction):
        make_transaction('cust-1', '2025-01-10', 6_000_000)
        tx = make_transaction('cust-1', '2025-08-01', 500_000)

        run_quarterly(date(2025, 8, 15))

        db.session.refresh(tx)
        assert tx.points_earned is None
        assert point_entries('cust-1') == []

    def test_late_tier_change_does_not_repoint(self, app, program_configs, gold_customer):
        run_quarterly(date(2025, 7, 15))

        config = ProgramConfig.query.filter_by(key='points_config').one()
        multipliers = dict(config.value['multipliers_by_membership'], GOLD=3)
        config.value = dict(config.value, multipliers_by_membership=multipliers)
        db.session.commit()

        run_quarterly(date(2025, 7, 16))

        db.session.refresh(gold_customer['p2'])
        assert gold_customer['p2'].points_earned == 12


class TestQuarterlyEngineConfig:
    """Tests for the fatal configuration checks."""

    def test_missing_membership_tiers(self, app, program_configs, gold_customer):
        ProgramConfig.query.filter_by(key='membership_tiers').delete()
        db.session.commit()

        with pytest.raises(ConfigurationError, match='membership_tiers config not found'):
            run_quarterly(date(2025, 7, 15))

        assert periods('cust-1') == []

    def test_points_disabled(self, app, program_configs, gold_customer):
        config = ProgramConfig.query.filter_by(key='points_config').one()
        config.value = dict(config.value, enabled=False)
        db.session.commit()

        with pytest.raises(ConfigurationError, match='points_config disabled or missing'):
            run_quarterly(date(2025, 7, 15))

        assert point_entries() == []

    def test_missing_points_config(self, app, program_configs, gold_customer):
        ProgramConfig.query.filter_by(key='points_config').delete()
        db.session.commit()

        with pytest.raises(ConfigurationError):
            run_quarterly(date(2025, 7, 15))


class TestQuarterlyEngineBackdatedTransaction:
    """Tests for a transaction dated before the customer's first shipment."""

    def test_stale_chain_is_retired(self, app, program_configs, make_transaction):
        make_transaction('cust-1', '2025-03-01', 6_000_000)
        run_quarterly(date(2025, 7, 1))

        make_transaction('cust-1', '2025-01-15', 100)
        result = run_quarterly(date(2025, 7, 2))

        current = [p for p in periods('cust-1') if p.status == 'CURRENT']
        assert [(p.period_start, p.period_end) for p in current] == [(date(2025, 4, 15), date(2025, 7, 15))]
        assert result.membership_periods_created == 2
        # Both rows of the old chain go to PAST
        assert result.membership_periods_updated == 2

        stale = MembershipPeriod.query.filter_by(customer_id='cust-1', period_start=date(2025, 6, 1)).one()
        assert stale.status == 'PAST'

    def test_current_tier_follows_rebuilt_chain(self, app, program_configs, make_transaction):
        make_transaction('cust-1', '2025-03-01', 6_000_000)
        run_quarterly(date(2025, 7, 1))
        make_transaction('cust-1', '2025-01-15', 100)
        run_quarterly(date(2025, 7, 2))

        result = run_quarterly(date(2025, 7, 2))

        assert result.membership_periods_updated == 0
        membership = RewardLedgerService().get_membership('cust-1')
        assert membership['current_tier'] == 'GOLD'
        assert [p['status'] for p in membership['periods']].count('CURRENT') == 1


class FailingRepository(RewardsRepository):
    """Fails every ledger append for one customer."""

    def __init__(self, fail_customer):
        super().__init__()
        self.fail_customer = fail_customer

    def insert_reward_ledger_entry(self, **fields):
        if fields['customer_id'] == self.fail_customer:
            raise DataStoreError('insert reward ledger entry failed: disk full')
        return super().insert_reward_ledger_entry(**fields)


class TestQuarterlyEngineFailure:
    """Tests for abort-on-failure behavior."""

    @pytest.fixture
    def two_customers(self, make_transaction):
        for customer_id in ('cust-1', 'cust-2'):
            make_transaction(customer_id, '2025-01-10', 6_000_000)
            make_transaction(customer_id, '2025-05-01', 105_000)
            make_transaction(customer_id, '2025-07-12', 100_000)

    def test_failure_keeps_committed_customers(self, app, program_configs, two_customers):
        snapshot = ProgramConfigService().load_snapshot()

        with pytest.raises(DataStoreError, match='disk full'):
            QuarterlyEngine(snapshot, FailingRepository('cust-2')).run(today=date(2025, 7, 15))

        assert len(periods('cust-1')) == 3
        assert len(point_entries('cust-1')) == 2
        # cust-2 was rolled back as a whole
        assert periods('cust-2') == []
        assert point_entries('cust-2') == []
        assert Transaction.query.filter_by(customer_id='cust-2').filter(
            Transaction.points_earned.isnot(None)
        ).count() == 0

    def test_rerun_completes_without_duplicates(self, app, program_configs, two_customers):
        snapshot = ProgramConfigService().load_snapshot()
        with pytest.raises(DataStoreError):
            QuarterlyEngine(snapshot, FailingRepository('cust-2')).run(today=date(2025, 7, 15))

        result = run_quarterly(date(2025, 7, 15))

        assert result.customers_processed == 2
        assert result.transactions_pointed == 2
        assert len(point_entries('cust-1')) == 2
        assert len(point_entries('cust-2')) == 2
        assert len(periods('cust-2')) == 3
