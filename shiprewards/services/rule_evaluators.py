"""
Rule evaluators for the rewards program.

Pure functions over an immutable snapshot of the program configuration.
Nothing here touches the database or Flask, so the same snapshot always
yields the same answers within an engine run.

A missing (``None``) or disabled config section means "feature off": the
evaluators return 0 (or SILVER) instead of raising.

Percent values are stored as whole percents (5, 7.5, 15), never fractions.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from ..models.membership_period import MembershipTier

logger = logging.getLogger(__name__)

DEFAULT_BASE_AMOUNT_PER_POINT = 10_000
DEFAULT_WINDOW_MONTHS = 3


def _number(value: Any, default=None):
    """Coerce a JSON value to int/float, falling back to ``default``."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        logger.warning(f'Ignoring non-numeric config value: {value!r}')
        return default
    return int(parsed) if parsed.is_integer() else parsed


def _freeze(mapping: Optional[Mapping] = None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


# ==================== Snapshot types ====================

@dataclass(frozen=True)
class RangeTier:
    """A ``min <= amount <= max`` band with a percent payout."""
    code: str
    label: str
    min_value: float
    max_value: Optional[float]
    percent: float

    def contains(self, amount) -> bool:
        return amount >= self.min_value and (self.max_value is None or amount <= self.max_value)


def _scan(tiers: Tuple[RangeTier, ...], amount) -> float:
    for tier in tiers:
        if tier.contains(amount):
            return tier.percent
    return 0


@dataclass(frozen=True)
class HelloDiscountConfig:
    enabled: bool = True
    tiers: Tuple[RangeTier, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping) -> 'HelloDiscountConfig':
        return cls(
            enabled=data.get('enabled') is not False,
            tiers=tuple(
                RangeTier(
                    code=str(t.get('code', '')),
                    label=str(t.get('label', '')),
                    min_value=_number(t.get('min_publish'), 0),
                    max_value=_number(t.get('max_publish')),
                    percent=_number(t.get('discount_percent'), 0),
                )
                for t in (data.get('tiers') or [])
            ),
        )


@dataclass(frozen=True)
class CashbackRulesConfig:
    enabled: bool = True
    window_months: int = DEFAULT_WINDOW_MONTHS
    tiers: Tuple[RangeTier, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping) -> 'CashbackRulesConfig':
        return cls(
            enabled=data.get('enabled') is not False,
            window_months=int(_number(data.get('window_months'), DEFAULT_WINDOW_MONTHS)),
            tiers=tuple(
                RangeTier(
                    code=str(t.get('code', '')),
                    label=str(t.get('label', '')),
                    min_value=_number(t.get('min_total'), 0),
                    max_value=_number(t.get('max_total')),
                    percent=_number(t.get('cashback_percent'), 0),
                )
                for t in (data.get('tiers') or [])
            ),
        )


@dataclass(frozen=True)
class PointsConfig:
    enabled: bool = True
    base_amount_per_point: float = DEFAULT_BASE_AMOUNT_PER_POINT
    point_value: float = 0
    multipliers: Mapping[str, float] = field(default_factory=_freeze)
    welcome_bonus_points: Mapping[str, Any] = field(default_factory=_freeze)

    @classmethod
    def from_dict(cls, data: Mapping, default_base: float = DEFAULT_BASE_AMOUNT_PER_POINT) -> 'PointsConfig':
        multipliers = {
            str(tier).upper(): _number(value, 1)
            for tier, value in (data.get('multipliers_by_membership') or {}).items()
        }
        return cls(
            enabled=data.get('enabled') is not False,
            # 0 or missing falls back to the default base amount
            base_amount_per_point=_number(data.get('base_amount_per_point'), 0) or default_base,
            point_value=_number(data.get('point_value_rupiah'), 0),
            multipliers=_freeze(multipliers),
            welcome_bonus_points=_freeze({
                str(tier).upper(): value
                for tier, value in (data.get('welcome_bonus_points') or {}).items()
            }),
        )


@dataclass(frozen=True)
class SpendRange:
    min_spend: float = 0
    max_spend: Optional[float] = None

    def contains(self, amount) -> bool:
        return amount >= self.min_spend and (self.max_spend is None or amount <= self.max_spend)

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> Optional['SpendRange']:
        if not data:
            return None
        return cls(min_spend=_number(data.get('min_spend'), 0), max_spend=_number(data.get('max_spend')))


@dataclass(frozen=True)
class MembershipTiersConfig:
    period: str = 'quarter'
    silver: Optional[SpendRange] = None
    gold: Optional[SpendRange] = None
    platinum: Optional[SpendRange] = None

    @classmethod
    def from_dict(cls, data: Mapping) -> 'MembershipTiersConfig':
        return cls(
            period=str(data.get('period') or 'quarter'),
            silver=SpendRange.from_dict(data.get('silver')),
            gold=SpendRange.from_dict(data.get('gold')),
            platinum=SpendRange.from_dict(data.get('platinum')),
        )


@dataclass(frozen=True)
class ProgramSnapshot:
    """
    Every business rule an engine run needs, read once at the start.

    Passed by reference through the engine; a config update made while a
    run is in flight only affects later runs.
    """
    hello_discount: Optional[HelloDiscountConfig] = None
    cashback_rules: Optional[CashbackRulesConfig] = None
    points_config: Optional[PointsConfig] = None
    membership_tiers: Optional[MembershipTiersConfig] = None
    loaded_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def from_documents(cls, documents: Mapping[str, Mapping],
                       default_base: float = DEFAULT_BASE_AMOUNT_PER_POINT) -> 'ProgramSnapshot':
        """Build a snapshot from ``{key: value}`` config documents."""
        hello = documents.get('hello_discount')
        cashback = documents.get('cashback_rules')
        points = documents.get('points_config')
        tiers = documents.get('membership_tiers')
        return cls(
            hello_discount=HelloDiscountConfig.from_dict(hello) if hello else None,
            cashback_rules=CashbackRulesConfig.from_dict(cashback) if cashback else None,
            points_config=PointsConfig.from_dict(points, default_base) if points else None,
            membership_tiers=MembershipTiersConfig.from_dict(tiers) if tiers else None,
        )

    @property
    def cashback_enabled(self) -> bool:
        return self.cashback_rules is not None and self.cashback_rules.enabled

    @property
    def points_enabled(self) -> bool:
        return self.points_config is not None and self.points_config.enabled


# ==================== Evaluators ====================

def hello_discount_percent(amount, cfg: Optional[HelloDiscountConfig]) -> float:
    """Percent off a first shipment of ``amount``; 0 when no tier matches."""
    if cfg is None or not cfg.enabled:
        return 0
    return _scan(cfg.tiers, amount)


def active_cashback_percent(window_total, cfg: Optional[CashbackRulesConfig]) -> float:
    """Cashback percent earned by a first-period window total."""
    if cfg is None or not cfg.enabled:
        return 0
    return _scan(cfg.tiers, window_total)


def tier_from_spending(amount, cfg: Optional[MembershipTiersConfig]) -> MembershipTier:
    """
    Tier earned by ``amount``.

    Platinum is checked first, then gold; SILVER is the floor and has no
    range check of its own.
    """
    if cfg is None:
        return MembershipTier.SILVER
    if cfg.platinum is not None and cfg.platinum.contains(amount):
        return MembershipTier.PLATINUM
    if cfg.gold is not None and cfg.gold.contains(amount):
        return MembershipTier.GOLD
    return MembershipTier.SILVER


def welcome_bonus_points(tier, cfg: Optional[PointsConfig]) -> int:
    """Fixed welcome bonus for ``tier``; 0 when points are off or unset."""
    if cfg is None or not cfg.enabled:
        return 0
    value = cfg.welcome_bonus_points.get(MembershipTier(tier).value)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def tier_multiplier(tier, cfg: Optional[PointsConfig]) -> float:
    if cfg is None:
        return 0
    return cfg.multipliers.get(MembershipTier(tier).value, 1)


def transaction_points(amount, tier, cfg: Optional[PointsConfig]) -> int:
    """
    Points for one transaction.

    Floored twice: ``floor(floor(amount / base) * multiplier)``.
    105_000 at base 10_000 and multiplier 1.25 gives floor(12.5) = 12.
    """
    if cfg is None or not cfg.enabled:
        return 0
    base = cfg.base_amount_per_point
    multiplier = tier_multiplier(tier, cfg)
    if base <= 0 or multiplier <= 0:
        return 0
    base_points = math.floor(amount / base)
    return max(math.floor(base_points * multiplier), 0)


def round_half_up(value) -> int:
    """Round to the nearest whole unit, halves going up."""
    return math.floor(value + 0.5)
