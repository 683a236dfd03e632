"""
Program Config Admin API.

Read and replace the keyed business-rule documents (hello_discount,
cashback_rules, points_config, membership_tiers). Changes apply to the
next engine run.
"""
from flask import Blueprint, request, jsonify

from ..middleware import require_role, ADMIN, MANAGER
from ..services.program_config_service import ProgramConfigService
from ..utils.errors import bad_request, ErrorCode


program_config_bp = Blueprint('program_config', __name__, url_prefix='/api/admin/program-config')


@program_config_bp.route('', methods=['GET'])
@require_role(ADMIN, MANAGER)
def list_program_configs():
    """All stored config documents, ordered by key."""
    return jsonify({'configs': ProgramConfigService().list_configs()})


@program_config_bp.route('', methods=['PUT'])
@require_role(ADMIN)
def upsert_program_config():
    """
    Insert or replace one config document.

    Request body:
    {
        "key": "points_config",
        "value": {"enabled": true, "base_amount_per_point": 10000, ...}
    }
    """
    data = request.get_json(silent=True)
    if not data or 'key' not in data or 'value' not in data:
        return bad_request('key and value are required', ErrorCode.MISSING_FIELD)

    config = ProgramConfigService().upsert_config(data['key'], data['value'])
    return jsonify({'success': True, 'config': config})
