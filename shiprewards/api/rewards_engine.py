"""
Rewards Engine Admin API.

Manual triggers for the two accrual engines plus manual ledger adjustments.
The same runs are scheduled in-process (see utils/scheduler.py) and exposed
as `flask rewards ...` commands.
"""
from datetime import datetime
from flask import Blueprint, request, jsonify, g

from ..middleware import require_role, ADMIN
from ..services.accrual_runs import accrual_runs
from ..services.reward_ledger_service import RewardLedgerService
from ..utils.exceptions import ValidationError


rewards_engine_bp = Blueprint('rewards_engine', __name__, url_prefix='/api/admin/rewards')


def get_reference_date():
    """Optional {"today": "YYYY-MM-DD"} override for back-dated runs."""
    data = request.get_json(silent=True) or {}
    today = data.get('today')
    if not today:
        return None
    try:
        return datetime.strptime(str(today), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError('today must be YYYY-MM-DD', field='today')


# ==================== Engine Runs ====================

@rewards_engine_bp.route('/run-initial', methods=['POST'])
@require_role(ADMIN)
def run_initial():
    """
    Grant Active Cashback and Welcome Bonus on first periods that have ended.

    Response:
    {
        "message": "Initial rewards run completed",
        "summary": [{"customer_id": "...", "tier": "GOLD", ...}]
    }
    """
    summary = accrual_runs.run_initial(get_reference_date())
    return jsonify({
        'message': 'Initial rewards run completed',
        'summary': summary
    })


@rewards_engine_bp.route('/run-quarterly', methods=['POST'])
@require_role(ADMIN)
def run_quarterly():
    """
    Rebuild every customer's period chain and back-fill transaction points.
    """
    result = accrual_runs.run_quarterly(get_reference_date())
    return jsonify({
        'message': 'Quarterly rewards run completed',
        'membership_periods_created': result.membership_periods_created,
        'membership_periods_updated': result.membership_periods_updated,
        'transactions_pointed': result.transactions_pointed,
        'customers_processed': result.customers_processed
    })


# ==================== Adjustments ====================

@rewards_engine_bp.route('/adjust', methods=['POST'])
@require_role(ADMIN)
def adjust_rewards():
    """
    Append a signed ADJUST entry to a customer's ledger.

    Request body:
    {
        "customer_id": "cust-001",
        "points": -500,         # optional
        "amount": 25000,        # optional
        "note": "Redeemed voucher"
    }
    """
    data = request.get_json(silent=True) or {}

    entry = RewardLedgerService().record_adjustment(
        customer_id=data.get('customer_id'),
        points=data.get('points'),
        amount=data.get('amount'),
        note=data.get('note'),
        created_by=g.user_id
    )
    return jsonify({'success': True, 'entry': entry}), 201
