"""
Tests for the program configuration store.
"""
import pytest

from shiprewards.models import ProgramConfig
from shiprewards.services.program_config_service import ProgramConfigService, validate_config_value
from shiprewards.utils.exceptions import ValidationError


class TestProgramConfigLoad:
    """Tests for reading config documents and snapshots."""

    def test_load_program_config(self, app, program_configs):
        value = ProgramConfigService().load_program_config('points_config')
        assert value['base_amount_per_point'] == 10_000

    def test_load_missing_key_is_none(self, app):
        assert ProgramConfigService().load_program_config('points_config') is None

    def test_snapshot_reads_every_key(self, app, program_configs):
        snapshot = ProgramConfigService().load_snapshot()

        assert snapshot.points_enabled is True
        assert snapshot.cashback_enabled is True
        assert snapshot.membership_tiers.gold.min_spend == 5_000_000
        assert len(snapshot.hello_discount.tiers) == 2

    def test_snapshot_uses_app_default_base(self, app, program_documents):
        del program_documents['points_config']['base_amount_per_point']
        ProgramConfigService().upsert_config('points_config', program_documents['points_config'])
        app.config['REWARDS_DEFAULT_BASE_AMOUNT_PER_POINT'] = 5_000

        snapshot = ProgramConfigService().load_snapshot()

        assert snapshot.points_config.base_amount_per_point == 5_000

    def test_snapshot_unaffected_by_later_update(self, app, program_configs):
        snapshot = ProgramConfigService().load_snapshot()

        updated = dict(program_configs['points_config'], enabled=False)
        ProgramConfigService().upsert_config('points_config', updated)

        assert snapshot.points_enabled is True
        assert ProgramConfigService().load_snapshot().points_enabled is False


class TestProgramConfigUpsert:
    """Tests for ProgramConfigService.upsert_config."""

    def test_insert_new_key(self, app, program_documents):
        config = ProgramConfigService().upsert_config('hello_discount', program_documents['hello_discount'])

        assert config['key'] == 'hello_discount'
        assert ProgramConfig.query.count() == 1

    def test_replace_existing_key(self, app, program_configs):
        ProgramConfigService().upsert_config('cashback_rules', {'enabled': False, 'tiers': []})

        assert ProgramConfig.query.count() == 4
        row = ProgramConfig.query.filter_by(key='cashback_rules').one()
        assert row.value == {'enabled': False, 'tiers': []}

    def test_list_configs_sorted_by_key(self, app, program_configs):
        keys = [c['key'] for c in ProgramConfigService().list_configs()]
        assert keys == sorted(program_configs)

    def test_invalid_document_is_not_stored(self, app):
        with pytest.raises(ValidationError):
            ProgramConfigService().upsert_config('points_config', {'base_amount_per_point': 'ten'})

        assert ProgramConfig.query.count() == 0


class TestValidateConfigValue:
    """Tests for validate_config_value."""

    def test_standard_documents_are_valid(self, program_documents):
        for key, value in program_documents.items():
            validate_config_value(key, value)

    def test_unknown_key(self):
        with pytest.raises(ValidationError, match='Unknown config key'):
            validate_config_value('referral_rules', {})

    def test_value_must_be_object(self):
        with pytest.raises(ValidationError):
            validate_config_value('points_config', [1, 2, 3])

    def test_band_max_below_min(self):
        value = {'tiers': [{'min_total': 5_000_000, 'max_total': 1_000_000, 'cashback_percent': 1}]}
        with pytest.raises(ValidationError, match='max_total below min_total'):
            validate_config_value('cashback_rules', value)

    def test_negative_percent(self):
        value = {'tiers': [{'min_publish': 0, 'max_publish': None, 'discount_percent': -5}]}
        with pytest.raises(ValidationError):
            validate_config_value('hello_discount', value)

    def test_unknown_tier_in_multipliers(self):
        value = {'multipliers_by_membership': {'BRONZE': 1}}
        with pytest.raises(ValidationError, match='unknown tier'):
            validate_config_value('points_config', value)

    def test_window_months_must_be_positive(self):
        with pytest.raises(ValidationError):
            validate_config_value('cashback_rules', {'window_months': 0, 'tiers': []})

    def test_tier_band_must_be_object(self):
        with pytest.raises(ValidationError):
            validate_config_value('membership_tiers', {'gold': 5_000_000})
