"""Administrator dashboard endpoints."""

from flask import Blueprint, jsonify

from chorequest.auth import admin_required
from chorequest.services.child_service import ChildService
from chorequest.services.ledger_service import LedgerService

stats_bp = Blueprint('stats', __name__, url_prefix='/api/stats')


@stats_bp.route('', methods=['GET'])
@admin_required
def overview():
    """Pending review counts, today's completions and leaderboards."""
    return jsonify({
        'data': ChildService.stats_overview(),
        'message': 'Stats retrieved successfully'
    })


@stats_bp.route('/audit', methods=['GET'])
@admin_required
def audit():
    """Balances that disagree with the ledger or the approved history."""
    discrepancies = LedgerService.audit_balances()
    return jsonify({
        'data': {
            'ok': not discrepancies,
            'discrepancies': discrepancies
        },
        'message': 'All balances verified' if not discrepancies else f'{len(discrepancies)} discrepancies found'
    })
