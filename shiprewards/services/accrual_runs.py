"""
Accrual run orchestration for ShipRewards.

One entry point per engine, shared by:
1. The admin API (manual runs)
2. Flask CLI commands (for cron jobs)
3. The in-process APScheduler jobs

Each run takes a fresh program-config snapshot and reads the period length
and period cap from the app config.
"""
import logging
from datetime import date
from typing import Any, Dict, List

from flask import current_app

from .initial_engine import InitialEngine
from .period_builder import DEFAULT_MAX_PERIODS, DEFAULT_PERIOD_MONTHS
from .program_config_service import ProgramConfigService
from .quarterly_engine import QuarterlyEngine, QuarterlyRunResult
from .rewards_repository import RewardsRepository

logger = logging.getLogger(__name__)


class AccrualRunService:
    """
    Builds and runs the accrual engines. Must be called inside an app context.
    """

    def _engine_options(self) -> Dict[str, int]:
        return {
            'period_months': current_app.config.get('REWARDS_PERIOD_MONTHS', DEFAULT_PERIOD_MONTHS),
            'max_periods': current_app.config.get('REWARDS_MAX_PERIODS', DEFAULT_MAX_PERIODS),
        }

    def run_initial(self, today: date = None) -> List[Dict[str, Any]]:
        repository = RewardsRepository()
        snapshot = ProgramConfigService(repository).load_snapshot()
        engine = InitialEngine(snapshot, repository, **self._engine_options())
        return engine.run(today)

    def run_quarterly(self, today: date = None) -> QuarterlyRunResult:
        repository = RewardsRepository()
        snapshot = ProgramConfigService(repository).load_snapshot()
        engine = QuarterlyEngine(snapshot, repository, **self._engine_options())
        return engine.run(today)


# Singleton instance
accrual_runs = AccrualRunService()
