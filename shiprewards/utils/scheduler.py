"""
Background scheduler for the accrual engines.

Handles:
- Initial run: first-period grants (REWARDS_INITIAL_CRON, daily 01:00 UTC)
- Quarterly run: period chain and points back-fill (REWARDS_QUARTERLY_CRON,
  daily 01:30 UTC)

The quarterly run is scheduled after the initial run so first-period rows
already exist when the chain is rebuilt. Both jobs write the period-1 row, so
they share one run lock: a quarterly run that fires while a long initial run
is still going waits for it.
"""
import os
import logging
from threading import Lock

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler = None
_flask_app = None  # Store Flask app reference for context
_run_lock = Lock()


def init_scheduler(app):
    """
    Initialize the background scheduler.

    Only runs in production or when ENABLE_SCHEDULER=true.
    Only the main gunicorn process should run the scheduler.
    """
    global _scheduler, _flask_app

    _flask_app = app

    if app.config.get('TESTING'):
        logger.debug('[Scheduler] Disabled in testing mode')
        return

    if not (os.getenv('FLASK_ENV') == 'production' or os.getenv('ENABLE_SCHEDULER') == 'true'):
        logger.info('[Scheduler] Disabled (set FLASK_ENV=production or ENABLE_SCHEDULER=true)')
        return

    # Prevent multiple scheduler instances (important for gunicorn workers)
    if os.getenv('SCHEDULER_RUNNING') == 'true':
        logger.info('[Scheduler] Already running in another process')
        return

    from apscheduler.schedulers.background import BackgroundScheduler
    from apscheduler.triggers.cron import CronTrigger

    _scheduler = BackgroundScheduler(
        timezone='UTC',
        job_defaults={
            'coalesce': True,  # Combine missed runs
            'max_instances': 1,  # Prevent concurrent runs
            'misfire_grace_time': 3600  # 1 hour grace period
        }
    )

    _scheduler.add_job(
        run_initial_rewards,
        trigger=CronTrigger.from_crontab(app.config['REWARDS_INITIAL_CRON'], timezone='UTC'),
        id='rewards_initial',
        name='Grant first-period cashback and welcome bonus',
        replace_existing=True
    )

    _scheduler.add_job(
        run_quarterly_rewards,
        trigger=CronTrigger.from_crontab(app.config['REWARDS_QUARTERLY_CRON'], timezone='UTC'),
        id='rewards_quarterly',
        name='Rebuild membership periods and award points',
        replace_existing=True
    )

    _scheduler.start()
    os.environ['SCHEDULER_RUNNING'] = 'true'

    logger.info(
        f"[Scheduler] Started: rewards_initial ({app.config['REWARDS_INITIAL_CRON']}), "
        f"rewards_quarterly ({app.config['REWARDS_QUARTERLY_CRON']})"
    )

    import atexit
    atexit.register(shutdown_scheduler)


def shutdown_scheduler():
    """Gracefully shutdown the scheduler."""
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info('[Scheduler] Shutdown complete')


def run_initial_rewards():
    """Scheduled initial engine run."""
    global _flask_app

    if not _flask_app:
        logger.error('[Scheduler] Flask app not initialized')
        return

    logger.info('[Scheduler] Starting initial rewards run...')

    with _run_lock, _flask_app.app_context():
        from ..services.accrual_runs import accrual_runs

        try:
            summary = accrual_runs.run_initial()
        except Exception as e:
            logger.exception(f'[Scheduler] Initial rewards run failed: {e}')
            return

        logger.info(f'[Scheduler] Initial rewards run complete: {len(summary)} customers')


def run_quarterly_rewards():
    """Scheduled quarterly engine run."""
    global _flask_app

    if not _flask_app:
        logger.error('[Scheduler] Flask app not initialized')
        return

    logger.info('[Scheduler] Starting quarterly rewards run...')

    with _run_lock, _flask_app.app_context():
        from ..services.accrual_runs import accrual_runs

        try:
            result = accrual_runs.run_quarterly()
        except Exception as e:
            logger.exception(f'[Scheduler] Quarterly rewards run failed: {e}')
            return

        logger.info(f'[Scheduler] Quarterly rewards run complete: {result.to_dict()}')


def get_next_run_times() -> dict:
    """Get the next scheduled run times for all jobs."""
    global _scheduler

    if not _scheduler:
        return {'error': 'Scheduler not initialized'}

    jobs = {}
    for job in _scheduler.get_jobs():
        next_run = job.next_run_time
        jobs[job.id] = {
            'name': job.name,
            'next_run': next_run.isoformat() if next_run else None
        }

    return jobs
