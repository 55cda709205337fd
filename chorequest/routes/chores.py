"""Chore catalog API endpoints for ChoreQuest.

Tasks are created and edited by the administrator and assigned to
children. Each assignment carries its own due date and streak.
"""

import logging
from flask import Blueprint, jsonify, request

from chorequest.auth import admin_required
from chorequest.routes import error_response, internal_error_response
from chorequest.schemas import (
    ASSIGNMENT_SCHEMA,
    PRESET_CHORES_SCHEMA,
    TASK_SCHEMA,
    TASK_UPDATE_SCHEMA,
    validate_payload,
)
from chorequest.services.chore_service import ChoreService
from chorequest.services.errors import ChoreQuestError

chores_bp = Blueprint('chores', __name__, url_prefix='/api/chores')
logger = logging.getLogger(__name__)


@chores_bp.route('', methods=['GET'])
@admin_required
def list_tasks():
    """List tasks with the number of children assigned to each.

    Query parameters:
        active: 'true' to hide archived tasks
    """
    active_only = request.args.get('active', '').lower() in ('true', '1', 'yes')
    tasks = ChoreService.list_tasks(include_inactive=not active_only)
    return jsonify({
        'data': tasks,
        'message': f'Found {len(tasks)} chores'
    })


@chores_bp.route('', methods=['POST'])
@admin_required
def create_task():
    """Create a task.

    Request body:
        {
            "title": str,
            "description": str (optional),
            "recurrence": "once" | "daily" | "weekly" (default "daily"),
            "default_points": int (default 10),
            "requires_approval": bool (default true)
        }
    """
    try:
        data = validate_payload(request.get_json(silent=True), TASK_SCHEMA)
        data.pop('is_active', None)
        task = ChoreService.create_task(**data)
        return jsonify({
            'data': task.to_dict(),
            'message': 'Chore created successfully'
        }), 201
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response('create chore', e)


@chores_bp.route('/presets', methods=['GET'])
@admin_required
def list_presets():
    """Preset chore categories and rewards available for bulk install."""
    try:
        presets = ChoreService.load_presets()
        return jsonify({
            'data': presets,
            'message': f"Found {len(presets['categories'])} preset categories"
        })
    except ChoreQuestError as e:
        return error_response(e)


@chores_bp.route('/presets/install', methods=['POST'])
@admin_required
def install_presets():
    """Create several chores at once, optionally assigned to one child.

    Request body:
        {
            "chores": [task definitions as for POST /api/chores],
            "child_id": int (optional),
            "category": str (optional)
        }
    """
    try:
        data = validate_payload(request.get_json(silent=True), PRESET_CHORES_SCHEMA)
        tasks = ChoreService.install_presets(
            data['chores'],
            child_id=data.get('child_id'),
            category=data.get('category')
        )
        return jsonify({
            'data': {'installed': len(tasks), 'chores': [t.to_dict() for t in tasks]},
            'message': f'Installed {len(tasks)} chores'
        }), 201
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response('install preset chores', e)


@chores_bp.route('/<int:task_id>', methods=['GET'])
@admin_required
def get_task(task_id):
    try:
        task = ChoreService.get_task(task_id)
        return jsonify({
            'data': task.to_dict(),
            'message': 'Chore retrieved successfully'
        })
    except ChoreQuestError as e:
        return error_response(e)


@chores_bp.route('/<int:task_id>', methods=['PUT'])
@admin_required
def update_task(task_id):
    """Update the fields given in the body."""
    try:
        data = validate_payload(request.get_json(silent=True), TASK_UPDATE_SCHEMA)
        task = ChoreService.update_task(task_id, **data)
        return jsonify({
            'data': task.to_dict(),
            'message': 'Chore updated successfully'
        })
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'update chore {task_id}', e)


@chores_bp.route('/<int:task_id>', methods=['DELETE'])
@admin_required
def delete_task(task_id):
    """Delete a chore, or archive it when it already has reviewed history."""
    try:
        deleted = ChoreService.delete_task(task_id)
        return jsonify({
            'data': {'id': task_id, 'deleted': deleted, 'archived': not deleted},
            'message': 'Chore deleted successfully' if deleted else 'Chore archived, its history is kept'
        })
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'delete chore {task_id}', e)


@chores_bp.route('/<int:task_id>/assign', methods=['POST'])
@admin_required
def assign_task(task_id):
    """Assign a chore to a child.

    Request body:
        {"child_id": int}
    """
    try:
        data = validate_payload(request.get_json(silent=True), ASSIGNMENT_SCHEMA)
        assignment = ChoreService.assign_task(task_id, data['child_id'])
        return jsonify({
            'data': assignment.to_dict(),
            'message': 'Chore assigned successfully'
        }), 201
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'assign chore {task_id}', e)


@chores_bp.route('/<int:task_id>/assign/<int:child_id>', methods=['DELETE'])
@admin_required
def unassign_task(task_id, child_id):
    try:
        ChoreService.unassign_task(task_id, child_id)
        return jsonify({
            'data': {'task_id': task_id, 'child_id': child_id},
            'message': 'Chore unassigned successfully'
        })
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'unassign chore {task_id}', e)
