"""
Program configuration store.

Reads and writes the keyed business-rule documents and builds the
immutable ProgramSnapshot an engine run works from.
"""
import logging
from datetime import datetime
from numbers import Number
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import (
    ProgramConfig,
    PROGRAM_CONFIG_KEYS,
    HELLO_DISCOUNT,
    CASHBACK_RULES,
    POINTS_CONFIG,
    MEMBERSHIP_TIERS,
    MembershipTier,
)
from ..utils.exceptions import DataStoreError, ValidationError
from .rewards_repository import RewardsRepository
from .rule_evaluators import DEFAULT_BASE_AMOUNT_PER_POINT, ProgramSnapshot

logger = logging.getLogger(__name__)

TIER_NAMES = [tier.value for tier in MembershipTier]


def _is_number(value) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _check_number(value, field: str, nullable: bool = False, minimum=0) -> None:
    if value is None and nullable:
        return
    if not _is_number(value):
        raise ValidationError(f'{field} must be a number', field=field.replace('.', '_'))
    if minimum is not None and value < minimum:
        raise ValidationError(f'{field} must be >= {minimum}', field=field.replace('.', '_'))


def _check_bands(tiers: Any, min_key: str, max_key: str, percent_key: str, prefix: str) -> None:
    if not isinstance(tiers, list):
        raise ValidationError(f'{prefix}.tiers must be a list', field='tiers')
    for position, tier in enumerate(tiers, start=1):
        if not isinstance(tier, dict):
            raise ValidationError(f'{prefix}.tiers[{position}] must be an object', field='tiers')
        _check_number(tier.get(min_key, 0), f'{prefix}.tiers[{position}].{min_key}')
        _check_number(tier.get(max_key), f'{prefix}.tiers[{position}].{max_key}', nullable=True)
        _check_number(tier.get(percent_key, 0), f'{prefix}.tiers[{position}].{percent_key}')
        if tier.get(max_key) is not None and tier[max_key] < tier.get(min_key, 0):
            raise ValidationError(
                f'{prefix}.tiers[{position}] has {max_key} below {min_key}', field='tiers'
            )


def validate_config_value(key: str, value: Any) -> None:
    """
    Check a config document's shape before it is stored.

    Raises:
        ValidationError: unknown key or malformed document
    """
    if key not in PROGRAM_CONFIG_KEYS:
        raise ValidationError(
            f"Unknown config key '{key}'. Expected one of: {', '.join(PROGRAM_CONFIG_KEYS)}",
            field='key'
        )
    if not isinstance(value, dict):
        raise ValidationError('value must be a JSON object', field='value')

    if key == HELLO_DISCOUNT:
        _check_bands(value.get('tiers', []), 'min_publish', 'max_publish', 'discount_percent', key)
    elif key == CASHBACK_RULES:
        _check_number(value.get('window_months', 3), f'{key}.window_months', minimum=1)
        _check_bands(value.get('tiers', []), 'min_total', 'max_total', 'cashback_percent', key)
    elif key == POINTS_CONFIG:
        _check_number(value.get('base_amount_per_point', DEFAULT_BASE_AMOUNT_PER_POINT),
                      f'{key}.base_amount_per_point')
        for table in ('multipliers_by_membership', 'welcome_bonus_points'):
            entries = value.get(table, {})
            if not isinstance(entries, dict):
                raise ValidationError(f'{key}.{table} must be an object', field=table)
            for tier, amount in entries.items():
                if str(tier).upper() not in TIER_NAMES:
                    raise ValidationError(f'{key}.{table} has unknown tier {tier}', field=table)
                _check_number(amount, f'{key}.{table}.{tier}')
    elif key == MEMBERSHIP_TIERS:
        for tier in ('silver', 'gold', 'platinum'):
            band = value.get(tier)
            if band is None:
                continue
            if not isinstance(band, dict):
                raise ValidationError(f'{key}.{tier} must be an object', field=tier)
            _check_number(band.get('min_spend', 0), f'{key}.{tier}.min_spend')
            _check_number(band.get('max_spend'), f'{key}.{tier}.max_spend', nullable=True)


class ProgramConfigService:
    """
    Keyed business-rule documents.

    Usage:
        service = ProgramConfigService()
        snapshot = service.load_snapshot()
        service.upsert_config('points_config', {...})
    """

    def __init__(self, repository: RewardsRepository = None):
        self.repository = repository or RewardsRepository()

    def load_program_config(self, key: str) -> Optional[dict]:
        """One config document, or None when absent."""
        return self.repository.load_program_config(key)

    def load_snapshot(self) -> ProgramSnapshot:
        """Read every config key once and freeze it for an engine run."""
        documents = self.repository.load_program_configs()
        default_base = current_app.config.get(
            'REWARDS_DEFAULT_BASE_AMOUNT_PER_POINT', DEFAULT_BASE_AMOUNT_PER_POINT
        )
        snapshot = ProgramSnapshot.from_documents(documents, default_base=default_base)
        missing = [key for key in PROGRAM_CONFIG_KEYS if key not in documents]
        if missing:
            logger.info(f'Program config snapshot taken; missing keys treated as disabled: {missing}')
        return snapshot

    def list_configs(self) -> List[Dict[str, Any]]:
        try:
            rows = ProgramConfig.query.order_by(ProgramConfig.key).all()
        except SQLAlchemyError as e:
            raise DataStoreError(f'list program configs failed: {e}', original_error=e) from e
        return [row.to_dict() for row in rows]

    def upsert_config(self, key: str, value: Any) -> Dict[str, Any]:
        """
        Insert or replace one config document.

        Takes effect on the next engine run; in-flight runs keep their snapshot.
        """
        validate_config_value(key, value)

        try:
            row = ProgramConfig.query.filter_by(key=key).first()
            if row is None:
                row = ProgramConfig(key=key, value=value)
                db.session.add(row)
            else:
                row.value = value
                row.updated_at = datetime.utcnow()
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise DataStoreError(f'upsert program config failed: {e}', original_error=e) from e

        logger.info(f'Program config {key} updated')
        return row.to_dict()
