"""
Business logic services for ShipRewards.
"""
from .rewards_repository import RewardsRepository
from .program_config_service import ProgramConfigService
from .initial_engine import InitialEngine
from .quarterly_engine import QuarterlyEngine, QuarterlyRunResult
from .reward_ledger_service import RewardLedgerService
from .transaction_import_service import TransactionImportService
from .accrual_runs import AccrualRunService, accrual_runs

__all__ = [
    'RewardsRepository',
    'ProgramConfigService',
    'InitialEngine',
    'QuarterlyEngine',
    'QuarterlyRunResult',
    'RewardLedgerService',
    'TransactionImportService',
    'AccrualRunService',
    'accrual_runs'
]
