"""
Database models for the ShipRewards platform.
Shipments, anchored membership periods, the reward ledger and program rules.
"""
from .transaction import Transaction
from .membership_period import MembershipPeriod, MembershipTier, PeriodStatus
from .reward_ledger import RewardLedgerEntry, RewardLedgerType
from .program_config import (
    ProgramConfig,
    PROGRAM_CONFIG_KEYS,
    HELLO_DISCOUNT,
    CASHBACK_RULES,
    POINTS_CONFIG,
    MEMBERSHIP_TIERS,
)

__all__ = [
    'Transaction',
    # Membership periods
    'MembershipPeriod',
    'MembershipTier',
    'PeriodStatus',
    # Reward ledger
    'RewardLedgerEntry',
    'RewardLedgerType',
    # Program configuration
    'ProgramConfig',
    'PROGRAM_CONFIG_KEYS',
    'HELLO_DISCOUNT',
    'CASHBACK_RULES',
    'POINTS_CONFIG',
    'MEMBERSHIP_TIERS',
]
