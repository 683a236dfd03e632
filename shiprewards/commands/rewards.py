"""
CLI Commands for the accrual engines.

These commands can be run manually or via cron jobs when the in-process
scheduler is disabled:

# First-period grants (daily at 01:00)
0 1 * * * cd /app && flask rewards run-initial

# Period chain and points back-fill (daily at 01:30)
30 1 * * * cd /app && flask rewards run-quarterly
"""

import click
from flask.cli import with_appcontext
from ..services.accrual_runs import accrual_runs
from ..utils.exceptions import RewardsError


@click.group('rewards')
def rewards_cli():
    """Rewards accrual commands."""
    pass


@rewards_cli.command('run-initial')
@click.option('--today', type=click.DateTime(formats=['%Y-%m-%d']),
              help='Reference date YYYY-MM-DD (defaults to today, UTC)')
@with_appcontext
def run_initial(today):
    """
    Grant Active Cashback and Welcome Bonus on ended first periods.
    """
    try:
        summary = accrual_runs.run_initial(today.date() if today else None)
    except RewardsError as e:
        raise click.ClickException(e.message)

    click.echo(f"Processed: {len(summary)} customers")
    click.echo(f"  Active cashback given: {sum(1 for s in summary if s['active_cashback_given'])}")
    click.echo(f"  Welcome bonus given: {sum(1 for s in summary if s['welcome_bonus_given'])}")


@rewards_cli.command('run-quarterly')
@click.option('--today', type=click.DateTime(formats=['%Y-%m-%d']),
              help='Reference date YYYY-MM-DD (defaults to today, UTC)')
@with_appcontext
def run_quarterly(today):
    """
    Rebuild membership periods and back-fill transaction points.
    """
    try:
        result = accrual_runs.run_quarterly(today.date() if today else None)
    except RewardsError as e:
        raise click.ClickException(e.message)

    click.echo(f"Customers processed: {result.customers_processed}")
    click.echo(f"  Periods created: {result.membership_periods_created}")
    click.echo(f"  Periods updated: {result.membership_periods_updated}")
    click.echo(f"  Transactions pointed: {result.transactions_pointed}")
    click.echo(f"  Points awarded: {result.points_awarded}")


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(rewards_cli)
