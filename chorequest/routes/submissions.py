"""Submission workflow API routes.

- Submitting a completion (child)
- Listing submissions by status (administrator)
- Reviewing a submission: approve with optional point override, or reject

State machine: pending → approved/rejected
"""

import logging
from flask import Blueprint, jsonify, request

from chorequest.auth import admin_required, child_required
from chorequest.routes import error_response, internal_error_response
from chorequest.schemas import REVIEW_SUBMISSION_SCHEMA, SUBMIT_COMPLETION_SCHEMA, validate_payload
from chorequest.services.errors import ChoreQuestError
from chorequest.services.submission_service import SubmissionService

submissions_bp = Blueprint('submissions', __name__, url_prefix='/api/submissions')
logger = logging.getLogger(__name__)


@submissions_bp.route('', methods=['POST'])
@child_required
def submit_completion(child_id: int):
    """Child marks an assigned chore as done.

    Request body:
        {
            "task_id": int,
            "note": str (optional)
        }

    Returns:
        JSON: {data: {submission_id, status, points_awarded}, message: str}
    """
    try:
        data = validate_payload(request.get_json(silent=True), SUBMIT_COMPLETION_SCHEMA)
        result = SubmissionService.submit_completion(child_id, data['task_id'], data.get('note'))

        if result['status'] == 'approved':
            message = f"Chore completed, {result['points_awarded']} points awarded"
        else:
            message = 'Submitted for approval'

        return jsonify({
            'data': result,
            'message': message
        }), 201
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response('submit chore', e)


@submissions_bp.route('', methods=['GET'])
@admin_required
def list_submissions():
    """List submissions.

    Query parameters:
        status: pending (default), approved or rejected
        child_id: optional filter
    """
    status = request.args.get('status', 'pending')
    child_id = request.args.get('child_id', type=int)

    submissions = SubmissionService.list_submissions(status=status, child_id=child_id)
    return jsonify({
        'data': [s.to_dict() for s in submissions],
        'message': f'Found {len(submissions)} submissions'
    })


@submissions_bp.route('/<int:submission_id>', methods=['GET'])
@admin_required
def get_submission(submission_id: int):
    try:
        submission = SubmissionService.get_submission(submission_id)
        return jsonify({
            'data': submission.to_dict(),
            'message': 'Submission retrieved successfully'
        })
    except ChoreQuestError as e:
        return error_response(e)


@submissions_bp.route('/<int:submission_id>/review', methods=['POST'])
@admin_required
def review_submission(submission_id: int):
    """Administrator approves or rejects a pending submission.

    Request body:
        {
            "status": "approved" | "rejected",
            "points_override": int (optional, approval only),
            "note": str (optional)
        }
    """
    try:
        data = validate_payload(request.get_json(silent=True), REVIEW_SUBMISSION_SCHEMA)
        submission = SubmissionService.review_submission(
            submission_id,
            data['status'],
            points_override=data.get('points_override'),
            review_note=data.get('note')
        )

        if submission.status == 'approved':
            message = f'Submission approved, {submission.points_awarded} points awarded'
        else:
            message = 'Submission rejected'

        return jsonify({
            'data': submission.to_dict(),
            'message': message
        })
    except ChoreQuestError as e:
        return error_response(e)
    except Exception as e:
        return internal_error_response(f'review submission {submission_id}', e)
