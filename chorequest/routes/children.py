"""Children API endpoints for ChoreQuest."""

import logging
from flask import Blueprint, jsonify, request

from chorequest.auth import admin_required, child_or_admin_required
from chorequest.routes import error_response, internal_error_response
from chorequest.schemas import CHILD_SCHEMA, validate_payload
from chorequest.services.chore_service import ChoreService
from chorequest.services.child_service import ChildService
from chorequest.services.errors import ChoreQuestError
from chorequest.services.ledger_service import LedgerService
from chorequest.services.quest_service import QuestService

children_bp = Blueprint('children', __name__, url_prefix='/api/children')
logger = logging.getLogger(__name__)


@children_bp.route('', methods=['GET'])
@admin_required
def list_children():
    """List all children with their balances."""
    children = ChildService.list_children()
    return jsonify({
        'data': [c.to_dict() for c in children],
        'message': f'Found {len(children)} children'
    })


@children_bp.route('', methods=['POST'])
@admin_required
def create_child():
    """Create a child.

    Request body:
        {"name": str}
    """
    try:
        data = validate_payload(request.get_json(silent=True), CHILD_SCHEMA)
        child = ChildService.create_child(data['name'])
        return jsonify({
            'data': child.to_dict(),
            'message': 'Child created successfully'
        }), 201
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response('create child', e)


@children_bp.route('/<int:child_id>', methods=['GET'])
@child_or_admin_required
def get_child(child_id):
    try:
        child = ChildService.get_child(child_id)
        return jsonify({
            'data': child.to_dict(),
            'message': 'Child retrieved successfully'
        })
    except ChoreQuestError as e:
        return error_response(e)


@children_bp.route('/<int:child_id>', methods=['DELETE'])
@admin_required
def delete_child(child_id):
    """Delete a child and all of their history."""
    try:
        ChildService.delete_child(child_id)
        return jsonify({
            'data': {'id': child_id},
            'message': 'Child deleted successfully'
        })
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'delete child {child_id}', e)


@children_bp.route('/<int:child_id>/feed', methods=['GET'])
@child_or_admin_required
def get_feed(child_id):
    """Everything the child's dashboard shows: balance, chores, quests, history."""
    try:
        feed = ChildService.get_feed(child_id)
        return jsonify({
            'data': feed,
            'message': 'Feed retrieved successfully'
        })
    except ChoreQuestError as e:
        return error_response(e)


@children_bp.route('/<int:child_id>/assignments', methods=['GET'])
@child_or_admin_required
def list_assignments(child_id):
    """List the child's assigned chores, due ones first."""
    try:
        assignments = ChoreService.list_assignments(child_id)
        return jsonify({
            'data': assignments,
            'message': f'Found {len(assignments)} assignments'
        })
    except ChoreQuestError as e:
        return error_response(e)


@children_bp.route('/<int:child_id>/quests', methods=['GET'])
@child_or_admin_required
def get_quest_progress(child_id):
    try:
        progress = QuestService.get_quest_progress(child_id)
        return jsonify({
            'data': progress,
            'message': f'Found {len(progress)} quests'
        })
    except ChoreQuestError as e:
        return error_response(e)


@children_bp.route('/<int:child_id>/ledger', methods=['GET'])
@child_or_admin_required
def get_ledger(child_id):
    """Get paginated points history for a child."""
    try:
        limit = int(request.args.get('limit', 50))
        offset = int(request.args.get('offset', 0))
    except (ValueError, TypeError):
        return jsonify({
            'error': 'Bad Request',
            'message': 'limit and offset must be valid integers'
        }), 400

    if limit < 1 or limit > 1000:
        return jsonify({
            'error': 'Bad Request',
            'message': 'limit must be between 1 and 1000'
        }), 400

    if offset < 0:
        return jsonify({
            'error': 'Bad Request',
            'message': 'offset must be non-negative'
        }), 400

    try:
        entries = LedgerService.history(child_id, limit=limit, offset=offset)
        return jsonify({
            'data': {
                'child_id': child_id,
                'balance': LedgerService.get_balance(child_id),
                'entries': [e.to_dict() for e in entries],
                'limit': limit,
                'offset': offset
            },
            'message': f'Found {len(entries)} ledger entries'
        })
    except ChoreQuestError as e:
        return error_response(e)
