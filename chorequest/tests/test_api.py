"""Tests for the HTTP API."""

import pytest

from chorequest.models import Submission, QuestTask
from chorequest.services.ledger_service import LedgerService


class TestAuthentication:
    """Tests for the administrator token and child header."""

    def test_admin_route_without_token(self, client, db_session):
        response = client.get('/api/children')
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Unauthorized'

    def test_admin_route_with_wrong_token(self, client, db_session):
        response = client.get('/api/children', headers={'Authorization': 'Bearer nope'})
        assert response.status_code == 401

    def test_admin_route_with_token(self, client, db_session, admin_headers, child):
        response = client.get('/api/children', headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()['data'][0]['name'] == 'Alice'

    def test_child_route_without_header(self, client, db_session):
        response = client.post('/api/submissions', json={'task_id': 1})
        assert response.status_code == 401

    def test_malformed_child_header(self, client, db_session):
        response = client.post('/api/submissions', json={'task_id': 1}, headers={'X-Child-Id': 'abc'})
        assert response.status_code == 401

    def test_child_cannot_read_other_child(self, client, db_session, child, child_2, child_headers):
        response = client.get(f'/api/children/{child_2.id}/feed', headers=child_headers)
        assert response.status_code == 403

    def test_child_reads_own_feed(self, client, db_session, child, child_headers):
        response = client.get(f'/api/children/{child.id}/feed', headers=child_headers)
        assert response.status_code == 200
        assert response.get_json()['data']['balance'] == 0

    def test_health(self, client, db_session):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'


class TestChildAndChoreRoutes:
    """Tests for children and chore catalog endpoints."""

    def test_create_child(self, client, db_session, admin_headers):
        response = client.post('/api/children', json={'name': 'Dana'}, headers=admin_headers)
        assert response.status_code == 201
        assert response.get_json()['data']['points'] == 0

    def test_create_child_invalid_body(self, client, db_session, admin_headers):
        response = client.post('/api/children', json={'nickname': 'D'}, headers=admin_headers)
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Validation Error'

    def test_create_and_assign_chore(self, client, db_session, admin_headers, child):
        response = client.post('/api/chores', json={
            'title': 'Empty dishwasher',
            'recurrence': 'daily',
            'default_points': 8
        }, headers=admin_headers)
        assert response.status_code == 201
        task_id = response.get_json()['data']['id']

        response = client.post(f'/api/chores/{task_id}/assign', json={'child_id': child.id}, headers=admin_headers)
        assert response.status_code == 201
        assert response.get_json()['data']['streak_count'] == 0

        response = client.get(f'/api/children/{child.id}/assignments', headers=admin_headers)
        assert response.get_json()['data'][0]['task_id'] == task_id

    def test_invalid_recurrence_rejected(self, client, db_session, admin_headers):
        response = client.post('/api/chores', json={'title': 'X', 'recurrence': 'hourly'}, headers=admin_headers)
        assert response.status_code == 400

    def test_update_requires_a_field(self, client, db_session, admin_headers, daily_task):
        response = client.put(f'/api/chores/{daily_task.id}', json={}, headers=admin_headers)
        assert response.status_code == 400

    def test_delete_unknown_chore(self, client, db_session, admin_headers):
        response = client.delete('/api/chores/999', headers=admin_headers)
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Not Found Error'

    def test_preset_catalog(self, client, db_session, admin_headers):
        response = client.get('/api/chores/presets', headers=admin_headers)

        assert response.status_code == 200
        assert len(response.get_json()['data']['categories']) == 4

    def test_install_presets_for_child(self, client, db_session, admin_headers, child, child_headers):
        response = client.post('/api/chores/presets/install', json={
            'category': 'Pets',
            'child_id': child.id,
            'chores': [
                {'title': 'Feed the fish', 'default_points': 3},
                {'title': 'Walk the dog', 'default_points': 8, 'recurrence': 'daily'},
            ]
        }, headers=admin_headers)

        assert response.status_code == 201
        assert response.get_json()['data']['installed'] == 2

        response = client.get(f'/api/children/{child.id}/assignments', headers=child_headers)
        assert {a['title'] for a in response.get_json()['data']} == {'Feed the fish', 'Walk the dog'}

    def test_install_presets_rejects_archived_flag(self, client, db_session, admin_headers):
        response = client.post('/api/chores/presets/install',
                               json={'chores': [{'title': 'Dust', 'is_active': False}]},
                               headers=admin_headers)
        assert response.status_code == 400

    def test_install_presets_requires_admin(self, client, db_session, child_headers):
        response = client.post('/api/chores/presets/install',
                               json={'chores': [{'title': 'Dust'}]}, headers=child_headers)
        assert response.status_code == 401

    def test_deactivated_chore_cannot_be_submitted(self, client, db_session, admin_headers, child_headers,
                                                   child, auto_assignment):
        task_id = auto_assignment.task_id
        client.put(f'/api/chores/{task_id}', json={'is_active': False}, headers=admin_headers)

        response = client.post('/api/submissions', json={'task_id': task_id},
                               headers=child_headers)

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Validation Error'
        assert LedgerService.get_balance(child.id) == 0


class TestSubmissionRoutes:
    """Tests for the submission workflow endpoints."""

    def test_submit_and_approve(self, client, db_session, admin_headers, child, child_headers, daily_assignment):
        response = client.post('/api/submissions', json={'task_id': daily_assignment.task_id, 'note': 'done'},
                               headers=child_headers)
        assert response.status_code == 201
        body = response.get_json()
        assert body['data']['status'] == 'pending'
        assert body['message'] == 'Submitted for approval'
        submission_id = body['data']['submission_id']

        response = client.get('/api/submissions', headers=admin_headers)
        assert [s['id'] for s in response.get_json()['data']] == [submission_id]

        response = client.post(f'/api/submissions/{submission_id}/review',
                               json={'status': 'approved', 'points_override': 12}, headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()['data']['points_awarded'] == 12
        assert LedgerService.get_balance(child.id) == 12

    def test_auto_approved_message(self, client, db_session, child_headers, auto_assignment):
        response = client.post('/api/submissions', json={'task_id': auto_assignment.task_id}, headers=child_headers)
        assert response.status_code == 201
        assert response.get_json()['message'] == 'Chore completed, 5 points awarded'

    def test_duplicate_pending_is_conflict(self, client, db_session, child_headers, daily_assignment):
        client.post('/api/submissions', json={'task_id': daily_assignment.task_id}, headers=child_headers)
        response = client.post('/api/submissions', json={'task_id': daily_assignment.task_id}, headers=child_headers)

        assert response.status_code == 409
        assert response.get_json()['message'] == 'Submission already pending'

    def test_not_assigned(self, client, db_session, child_headers, daily_task):
        response = client.post('/api/submissions', json={'task_id': daily_task.id}, headers=child_headers)
        assert response.status_code == 404

    def test_review_twice(self, client, db_session, admin_headers, child_headers, daily_assignment):
        response = client.post('/api/submissions', json={'task_id': daily_assignment.task_id}, headers=child_headers)
        submission_id = response.get_json()['data']['submission_id']

        client.post(f'/api/submissions/{submission_id}/review', json={'status': 'rejected'}, headers=admin_headers)
        response = client.post(f'/api/submissions/{submission_id}/review',
                               json={'status': 'approved'}, headers=admin_headers)

        assert response.status_code == 409
        assert db_session.get(Submission, submission_id).status == 'rejected'

    def test_not_assigned_error_label(self, client, db_session, child_headers, daily_task):
        response = client.post('/api/submissions', json={'task_id': daily_task.id}, headers=child_headers)
        assert response.get_json()['error'] == 'Not Assigned Error'

    def test_bad_override_after_review_is_conflict(self, client, db_session, admin_headers, child_headers,
                                                   daily_assignment):
        response = client.post('/api/submissions', json={'task_id': daily_assignment.task_id},
                               headers=child_headers)
        submission_id = response.get_json()['data']['submission_id']
        client.post(f'/api/submissions/{submission_id}/review', json={'status': 'approved'},
                    headers=admin_headers)

        response = client.post(f'/api/submissions/{submission_id}/review',
                               json={'status': 'approved', 'points_override': 7}, headers=admin_headers)

        assert response.status_code == 409
        assert response.get_json()['error'] == 'Already Reviewed Error'

    def test_review_bad_status(self, client, db_session, admin_headers, child, daily_assignment):
        response = client.post('/api/submissions/1/review', json={'status': 'pending'}, headers=admin_headers)
        assert response.status_code == 400

    def test_child_cannot_review(self, client, db_session, child_headers):
        response = client.post('/api/submissions/1/review', json={'status': 'approved'}, headers=child_headers)
        assert response.status_code == 401


class TestQuestRoutes:
    """Tests for quest endpoints."""

    def test_quest_flow(self, client, db_session, admin_headers, child, child_headers, quest):
        response = client.get('/api/quests', headers=child_headers)
        assert response.status_code == 200
        tasks = response.get_json()['data'][0]['tasks']
        assert [t['points'] for t in tasks] == [10, 20]

        for task in tasks:
            response = client.post('/api/quests/submissions', json={'quest_task_id': task['id']},
                                   headers=child_headers)
            assert response.status_code == 201
            status_id = response.get_json()['data']['id']

            response = client.post(f'/api/quests/submissions/{status_id}/review',
                                   json={'status': 'approved'}, headers=admin_headers)
            assert response.status_code == 200

        response = client.get(f'/api/children/{child.id}/quests', headers=child_headers)
        progress = response.get_json()['data'][0]
        assert progress['earned_points'] == 30
        assert progress['is_complete'] is True

        response = client.get('/api/quests/completed', headers=admin_headers)
        assert len(response.get_json()['data']) == 1

    def test_duplicate_quest_submission(self, client, db_session, child_headers, quest):
        task = QuestTask.query.filter_by(quest_id=quest.id).first()
        client.post('/api/quests/submissions', json={'quest_task_id': task.id}, headers=child_headers)
        response = client.post('/api/quests/submissions', json={'quest_task_id': task.id}, headers=child_headers)

        assert response.status_code == 409
        assert response.get_json()['message'] == 'Task already submitted'

    def test_review_unknown_status(self, client, db_session, admin_headers):
        response = client.post('/api/quests/submissions/42/review', json={'status': 'approved'}, headers=admin_headers)
        assert response.status_code == 404
        assert response.get_json()['message'] == 'Task status not found'

    def test_quests_require_identity(self, client, db_session, quest):
        assert client.get('/api/quests').status_code == 401


class TestRedemptionRoutes:
    """Tests for reward and redemption endpoints."""

    def test_install_reward_presets(self, client, db_session, admin_headers, child_headers):
        response = client.post('/api/rewards/presets/install', json={
            'rewards': [{'title': 'Sticker', 'cost_points': 5}, {'title': 'Comic', 'cost_points': 40}]
        }, headers=admin_headers)

        assert response.status_code == 201
        assert response.get_json()['data']['installed'] == 2

        response = client.get('/api/rewards', headers=child_headers)
        assert [r['title'] for r in response.get_json()['data']] == ['Sticker', 'Comic']

    def test_reward_presets_need_cost(self, client, db_session, admin_headers):
        response = client.post('/api/rewards/presets/install',
                               json={'rewards': [{'title': 'Sticker'}]}, headers=admin_headers)
        assert response.status_code == 400

    def test_insufficient_points(self, client, db_session, child, child_headers, reward, fund):
        fund(child.id, 40)

        response = client.post('/api/redemptions', json={'reward_id': reward.id}, headers=child_headers)

        assert response.status_code == 400
        body = response.get_json()
        assert body['error'] == 'Insufficient Points Error'
        assert body['details'] == {'required': 50, 'available': 40}
        assert LedgerService.get_balance(child.id) == 40

    def test_redeem_and_approve(self, client, db_session, admin_headers, child, child_headers, reward, fund):
        fund(child.id, 75)

        response = client.post('/api/redemptions', json={'reward_id': reward.id}, headers=child_headers)
        assert response.status_code == 201
        redemption_id = response.get_json()['data']['id']
        assert LedgerService.get_balance(child.id) == 75

        response = client.post(f'/api/redemptions/{redemption_id}/review',
                               json={'status': 'approved'}, headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()['message'] == 'Redemption approved, 50 points deducted'
        assert LedgerService.get_balance(child.id) == 25

    def test_inactive_reward(self, client, db_session, admin_headers, child, child_headers, reward, fund):
        fund(child.id, 100)
        client.post(f'/api/rewards/{reward.id}/toggle', headers=admin_headers)

        response = client.post('/api/redemptions', json={'reward_id': reward.id}, headers=child_headers)
        assert response.status_code == 404

    def test_children_only_see_active_rewards(self, client, db_session, admin_headers, child_headers, reward):
        client.post('/api/rewards', json={'title': 'Secret', 'cost_points': 5}, headers=admin_headers)
        secret_id = client.get('/api/rewards', headers=admin_headers).get_json()['data'][0]['id']
        client.post(f'/api/rewards/{secret_id}/toggle', headers=admin_headers)

        child_view = client.get('/api/rewards', headers=child_headers).get_json()['data']
        admin_view = client.get('/api/rewards?all=true', headers=admin_headers).get_json()['data']

        assert [r['id'] for r in child_view] == [reward.id]
        assert len(admin_view) == 2


class TestStatsRoutes:
    """Tests for the administrator overview."""

    def test_stats(self, client, db_session, admin_headers, child, child_headers, auto_assignment):
        client.post('/api/submissions', json={'task_id': auto_assignment.task_id}, headers=child_headers)

        response = client.get('/api/stats', headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()['data']['completed_today'] == 1

    def test_audit_endpoint(self, client, db_session, admin_headers, child, child_headers, auto_assignment):
        client.post('/api/submissions', json={'task_id': auto_assignment.task_id}, headers=child_headers)

        response = client.get('/api/stats/audit', headers=admin_headers)
        assert response.get_json()['data'] == {'ok': True, 'discrepancies': []}
