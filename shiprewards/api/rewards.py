"""
Customer Rewards API.

Balance and ledger history for one customer. Balances are always summed
from the reward ledger.
"""
from flask import Blueprint, request, jsonify

from ..services.reward_ledger_service import RewardLedgerService
from ..utils.errors import bad_request, ErrorCode


rewards_bp = Blueprint('rewards', __name__, url_prefix='/api/rewards')


@rewards_bp.route('', methods=['GET'])
def get_rewards():
    """
    Current balance, membership periods and recent ledger entries.

    Query params:
        customer_id: required
        limit: max ledger entries (default 100)
    """
    customer_id = request.args.get('customer_id')
    if not customer_id:
        return bad_request('customer_id is required', ErrorCode.MISSING_FIELD)

    limit = request.args.get('limit', 100, type=int)

    service = RewardLedgerService()
    membership = service.get_membership(customer_id)
    return jsonify({
        'customer_id': customer_id,
        'balance': service.get_balance(customer_id),
        'current_tier': membership['current_tier'],
        'periods': membership['periods'],
        'ledger': service.get_history(customer_id, limit=min(max(limit, 1), 500))
    })
