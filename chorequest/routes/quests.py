"""Quest API endpoints for ChoreQuest."""

import logging
from flask import Blueprint, g, jsonify, request

from chorequest.auth import admin_required, child_required
from chorequest.routes import error_response, internal_error_response
from chorequest.schemas import (
    QUEST_SCHEMA,
    QUEST_TASK_SCHEMA,
    REVIEW_SCHEMA,
    SUBMIT_QUEST_TASK_SCHEMA,
    validate_payload,
)
from chorequest.services.errors import ChoreQuestError
from chorequest.services.quest_service import QuestService

quests_bp = Blueprint('quests', __name__, url_prefix='/api/quests')
logger = logging.getLogger(__name__)


def serialize_quest(quest, include_tasks: bool = False) -> dict:
    data = quest.to_dict()
    if include_tasks:
        data['tasks'] = [t.to_dict() for t in quest.tasks]
    return data


@quests_bp.route('', methods=['GET'])
def list_quests():
    """List quests with their tasks.

    Children see active quests. The administrator may pass ?all=true to
    include inactive ones.
    """
    if not g.is_admin and g.child_id is None:
        return jsonify({
            'error': 'Unauthorized',
            'message': 'Authentication required'
        }), 401

    include_inactive = g.is_admin and request.args.get('all', '').lower() in ('true', '1', 'yes')
    quests = QuestService.list_quests(include_inactive=include_inactive)
    return jsonify({
        'data': [serialize_quest(q, include_tasks=True) for q in quests],
        'message': f'Found {len(quests)} quests'
    })


@quests_bp.route('', methods=['POST'])
@admin_required
def create_quest():
    """Create a quest.

    Request body:
        {
            "title": str,
            "description": str (optional),
            "target_reward": str (optional, informational)
        }
    """
    try:
        data = validate_payload(request.get_json(silent=True), QUEST_SCHEMA)
        quest = QuestService.create_quest(**data)
        return jsonify({
            'data': serialize_quest(quest),
            'message': 'Quest created successfully'
        }), 201
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response('create quest', e)


@quests_bp.route('/<int:quest_id>/toggle', methods=['POST'])
@admin_required
def toggle_quest(quest_id):
    try:
        quest = QuestService.toggle_quest(quest_id)
        return jsonify({
            'data': serialize_quest(quest),
            'message': 'Quest activated' if quest.is_active else 'Quest deactivated'
        })
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'toggle quest {quest_id}', e)


@quests_bp.route('/<int:quest_id>/tasks', methods=['POST'])
@admin_required
def create_quest_task(quest_id):
    """Add a task to a quest.

    Request body:
        {
            "title": str,
            "description": str (optional),
            "points": int (default 10),
            "order_index": int (default 0)
        }
    """
    try:
        data = validate_payload(request.get_json(silent=True), QUEST_TASK_SCHEMA)
        quest_task = QuestService.create_quest_task(quest_id, **data)
        return jsonify({
            'data': quest_task.to_dict(),
            'message': 'Quest task created successfully'
        }), 201
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'create task in quest {quest_id}', e)


@quests_bp.route('/tasks/<int:quest_task_id>', methods=['DELETE'])
@admin_required
def delete_quest_task(quest_task_id):
    try:
        QuestService.delete_quest_task(quest_task_id)
        return jsonify({
            'data': {'id': quest_task_id},
            'message': 'Quest task deleted successfully'
        })
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'delete quest task {quest_task_id}', e)


@quests_bp.route('/submissions', methods=['POST'])
@child_required
def submit_quest_task(child_id):
    """Child marks a quest task as done.

    Request body:
        {
            "quest_task_id": int,
            "note": str (optional)
        }
    """
    try:
        data = validate_payload(request.get_json(silent=True), SUBMIT_QUEST_TASK_SCHEMA)
        task_status = QuestService.submit_quest_task(child_id, data['quest_task_id'], data.get('note'))
        return jsonify({
            'data': task_status.to_dict(),
            'message': 'Quest task submitted for approval'
        }), 201
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response('submit quest task', e)


@quests_bp.route('/submissions', methods=['GET'])
@admin_required
def list_quest_submissions():
    """List quest task submissions (default: pending)."""
    status = request.args.get('status', 'pending')
    child_id = request.args.get('child_id', type=int)

    statuses = QuestService.list_task_statuses(status=status, child_id=child_id)
    return jsonify({
        'data': [s.to_dict() for s in statuses],
        'message': f'Found {len(statuses)} quest task submissions'
    })


@quests_bp.route('/submissions/<int:status_id>/review', methods=['POST'])
@admin_required
def review_quest_task(status_id):
    """Approve or reject a quest task submission.

    Request body:
        {"status": "approved" | "rejected"}
    """
    try:
        data = validate_payload(request.get_json(silent=True), REVIEW_SCHEMA)
        task_status = QuestService.review_quest_task(status_id, data['status'])
        return jsonify({
            'data': task_status.to_dict(),
            'message': f'Quest task {task_status.status}'
        })
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'review quest task {status_id}', e)


@quests_bp.route('/completed', methods=['GET'])
@admin_required
def list_completed_quests():
    """Quests children have fully completed, so their rewards can be handed out."""
    try:
        completed = QuestService.list_completed_quests(request.args.get('child_id', type=int))
        return jsonify({
            'data': completed,
            'message': f'Found {len(completed)} completed quests'
        })
    except ChoreQuestError as e:
        return error_response(e)
