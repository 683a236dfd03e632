"""
CLI Commands for ShipRewards.

Usage:
    flask rewards run-initial                      # Active Cashback + Welcome Bonus
    flask rewards run-quarterly                    # Period chain + transaction points
    flask rewards run-quarterly --today 2025-07-01 # Back-dated run
"""
from .rewards import init_app as init_rewards_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_rewards_commands(app)
