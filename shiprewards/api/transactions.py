"""
Transaction Import API.

Bulk upload of shipment rows. New customers get their Hello Discount
stamped on the rows of their first shipping day.
"""
from flask import Blueprint, request, jsonify

from ..middleware import require_role, ADMIN, MANAGER, STAFF
from ..services.transaction_import_service import TransactionImportService
from ..utils.errors import bad_request, ErrorCode


transactions_bp = Blueprint('transactions', __name__, url_prefix='/api/admin')


@transactions_bp.route('/import-transactions', methods=['POST'])
@require_role(ADMIN, MANAGER, STAFF)
def import_transactions():
    """
    Import shipment transactions.

    Request body:
    {
        "rows": [
            {
                "customer_id": "cust-001",
                "date": "2025-01-15",
                "publish_rate": 250000,
                "service": "REG",             # optional
                "origin": "Jakarta",          # optional
                "destination": "Bandung",     # optional
                "invoice_no": "INV-0001"      # optional
            }
        ]
    }
    """
    data = request.get_json(silent=True)
    if not data or 'rows' not in data:
        return bad_request('rows is required', ErrorCode.MISSING_FIELD)

    result = TransactionImportService().import_rows(data['rows'])
    return jsonify({
        'success': True,
        'inserted': result['inserted'],
        'hello_discount_rows': result['hello_discount_rows']
    }), 201
