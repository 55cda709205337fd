"""Rewards and redemptions API endpoints for ChoreQuest."""

import logging
from flask import Blueprint, g, jsonify, request

from chorequest.auth import admin_required, child_required
from chorequest.routes import error_response, internal_error_response
from chorequest.schemas import (
    PRESET_REWARDS_SCHEMA,
    REDEEM_SCHEMA,
    REVIEW_SCHEMA,
    REWARD_SCHEMA,
    validate_payload,
)
from chorequest.services.errors import ChoreQuestError
from chorequest.services.redemption_service import RedemptionService

rewards_bp = Blueprint('rewards', __name__, url_prefix='/api/rewards')
redemptions_bp = Blueprint('redemptions', __name__, url_prefix='/api/redemptions')
logger = logging.getLogger(__name__)


@rewards_bp.route('', methods=['GET'])
def list_rewards():
    """List rewards, cheapest first.

    Children see active rewards. The administrator may pass ?all=true to
    include inactive ones.
    """
    if not g.is_admin and g.child_id is None:
        return jsonify({
            'error': 'Unauthorized',
            'message': 'Authentication required'
        }), 401

    include_inactive = g.is_admin and request.args.get('all', '').lower() in ('true', '1', 'yes')
    rewards = RedemptionService.list_rewards(include_inactive=include_inactive)
    return jsonify({
        'data': [r.to_dict() for r in rewards],
        'message': f'Found {len(rewards)} rewards'
    })


@rewards_bp.route('', methods=['POST'])
@admin_required
def create_reward():
    """Create a new reward.

    Request body:
        {
            "title": str,
            "description": str (optional),
            "cost_points": int (default 50)
        }
    """
    try:
        data = validate_payload(request.get_json(silent=True), REWARD_SCHEMA)
        reward = RedemptionService.create_reward(**data)
        return jsonify({
            'data': reward.to_dict(),
            'message': 'Reward created successfully'
        }), 201
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response('create reward', e)


@rewards_bp.route('/presets/install', methods=['POST'])
@admin_required
def install_reward_presets():
    """Create several rewards at once, e.g. the preset rewards.

    Request body:
        {"rewards": [{"title": str, "cost_points": int, "description": str (optional)}, ...]}
    """
    try:
        data = validate_payload(request.get_json(silent=True), PRESET_REWARDS_SCHEMA)
        rewards = RedemptionService.install_reward_presets(data['rewards'])
        return jsonify({
            'data': {'installed': len(rewards), 'rewards': [r.to_dict() for r in rewards]},
            'message': f'Installed {len(rewards)} rewards'
        }), 201
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response('install preset rewards', e)


@rewards_bp.route('/<int:reward_id>/toggle', methods=['POST'])
@admin_required
def toggle_reward(reward_id):
    try:
        reward = RedemptionService.toggle_reward(reward_id)
        return jsonify({
            'data': reward.to_dict(),
            'message': 'Reward activated' if reward.is_active else 'Reward deactivated'
        })
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'toggle reward {reward_id}', e)


@redemptions_bp.route('', methods=['POST'])
@child_required
def request_redemption(child_id):
    """Child asks to redeem a reward. Points move only when approved.

    Request body:
        {"reward_id": int}
    """
    try:
        data = validate_payload(request.get_json(silent=True), REDEEM_SCHEMA)
        redemption = RedemptionService.request_redemption(child_id, data['reward_id'])
        return jsonify({
            'data': redemption.to_dict(),
            'message': 'Redemption requested'
        }), 201
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response('request redemption', e)


@redemptions_bp.route('', methods=['GET'])
@admin_required
def list_redemptions():
    """List redemptions (default: pending)."""
    status = request.args.get('status', 'pending')
    child_id = request.args.get('child_id', type=int)

    redemptions = RedemptionService.list_redemptions(status=status, child_id=child_id)
    return jsonify({
        'data': [r.to_dict() for r in redemptions],
        'message': f'Found {len(redemptions)} redemptions'
    })


@redemptions_bp.route('/<int:redemption_id>/review', methods=['POST'])
@admin_required
def review_redemption(redemption_id):
    """Approve (debit points) or reject a pending redemption.

    Request body:
        {"status": "approved" | "rejected"}
    """
    try:
        data = validate_payload(request.get_json(silent=True), REVIEW_SCHEMA)
        redemption = RedemptionService.review_redemption(redemption_id, data['status'])

        if redemption.status == 'approved':
            message = f'Redemption approved, {redemption.cost_points} points deducted'
        else:
            message = 'Redemption rejected'

        return jsonify({
            'data': redemption.to_dict(),
            'message': message
        })
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'review redemption {redemption_id}', e)
