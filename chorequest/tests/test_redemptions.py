"""Tests for rewards and the redemption workflow."""

import pytest

from chorequest.models import LedgerEntry, Redemption
from chorequest.services.errors import (
    InsufficientPointsError,
    NotFoundError,
    RewardInactiveError,
    ValidationError,
)
from chorequest.services.ledger_service import LedgerService
from chorequest.services.redemption_service import RedemptionService


class TestRewardAdministration:
    """Tests for managing rewards."""

    def test_create_reward(self, db_session):
        reward = RedemptionService.create_reward('Ice cream', cost_points=30, description='One scoop')

        assert reward.id is not None
        assert reward.is_active is True
        assert reward.cost_points == 30

    @pytest.mark.parametrize('cost', [0, -10])
    def test_cost_must_be_positive(self, db_session, cost):
        with pytest.raises(ValidationError):
            RedemptionService.create_reward('Free stuff', cost_points=cost)

    def test_list_rewards_cheapest_first(self, db_session, reward):
        cheap = RedemptionService.create_reward('Sticker', cost_points=5)
        hidden = RedemptionService.create_reward('Hidden', cost_points=1)
        RedemptionService.toggle_reward(hidden.id)

        assert [r.id for r in RedemptionService.list_rewards()] == [cheap.id, reward.id]
        assert len(RedemptionService.list_rewards(include_inactive=True)) == 3


    def test_install_reward_presets(self, db_session):
        rewards = RedemptionService.install_reward_presets([
            {'title': 'Pick the movie', 'cost_points': 50},
            {'title': 'Sleepover', 'cost_points': 300, 'description': 'Saturday only'},
        ])

        assert [r.title for r in rewards] == ['Pick the movie', 'Sleepover']
        assert rewards[1].description == 'Saturday only'
        assert all(r.is_active for r in rewards)

    def test_invalid_reward_preset_installs_nothing(self, db_session):
        with pytest.raises(ValidationError):
            RedemptionService.install_reward_presets([
                {'title': 'Pick the movie', 'cost_points': 50},
                {'title': 'Free', 'cost_points': 0},
            ])
        assert RedemptionService.list_rewards(include_inactive=True) == []

    def test_empty_reward_presets(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            RedemptionService.install_reward_presets([])
        assert exc_info.value.message == 'No rewards provided'

class TestRequestRedemption:
    """Tests for RedemptionService.request_redemption."""

    def test_request_creates_pending_without_spending(self, db_session, child, reward, fund):
        fund(child.id, 60)

        redemption = RedemptionService.request_redemption(child.id, reward.id)

        assert redemption.status == 'pending'
        assert redemption.cost_points == 50
        assert redemption.resolved_at is None
        assert LedgerService.get_balance(child.id) == 60

    def test_insufficient_points(self, db_session, child, reward, fund):
        fund(child.id, 40)

        with pytest.raises(InsufficientPointsError) as exc_info:
            RedemptionService.request_redemption(child.id, reward.id)

        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {'required': 50, 'available': 40}
        assert 'need 50, have 40' in exc_info.value.message
        assert Redemption.query.count() == 0
        assert LedgerService.get_balance(child.id) == 40

    def test_exact_balance_is_enough(self, db_session, child, reward, fund):
        fund(child.id, 50)
        assert RedemptionService.request_redemption(child.id, reward.id).status == 'pending'

    def test_inactive_reward(self, db_session, child, reward, fund):
        fund(child.id, 100)
        RedemptionService.toggle_reward(reward.id)

        with pytest.raises(RewardInactiveError) as exc_info:
            RedemptionService.request_redemption(child.id, reward.id)
        assert exc_info.value.status_code == 404

    def test_unknown_reward(self, db_session, child):
        with pytest.raises(NotFoundError):
            RedemptionService.request_redemption(child.id, 777)

    def test_pending_redemptions_hold_points(self, db_session, child, reward, fund):
        fund(child.id, 80)
        RedemptionService.request_redemption(child.id, reward.id)

        with pytest.raises(InsufficientPointsError) as exc_info:
            RedemptionService.request_redemption(child.id, reward.id)
        assert exc_info.value.details['available'] == 30

    def test_without_hold_both_requests_accepted(self, app, db_session, child, reward, fund):
        app.config['REDEMPTION_HOLD_PENDING'] = False
        fund(child.id, 80)

        RedemptionService.request_redemption(child.id, reward.id)
        RedemptionService.request_redemption(child.id, reward.id)
        assert Redemption.query.filter_by(status='pending').count() == 2

    def test_cost_is_captured_at_request_time(self, db_session, child, reward, fund):
        fund(child.id, 100)
        redemption = RedemptionService.request_redemption(child.id, reward.id)

        reward.cost_points = 90
        db_session.commit()

        RedemptionService.review_redemption(redemption.id, 'approved')
        assert LedgerService.get_balance(child.id) == 50


class TestReviewRedemption:
    """Tests for RedemptionService.review_redemption."""

    def test_approve_debits_balance(self, db_session, child, reward, fund):
        fund(child.id, 70)
        redemption = RedemptionService.request_redemption(child.id, reward.id)

        reviewed = RedemptionService.review_redemption(redemption.id, 'approved')

        assert reviewed.status == 'approved'
        assert reviewed.resolved_at is not None
        assert LedgerService.get_balance(child.id) == 20

        entry = LedgerEntry.query.filter_by(redemption_id=redemption.id).one()
        assert entry.delta == -50
        assert entry.reason == 'Redeemed reward: Pick dinner menu'

    def test_reject_never_debits(self, db_session, child, reward, fund):
        fund(child.id, 70)
        redemption = RedemptionService.request_redemption(child.id, reward.id)

        reviewed = RedemptionService.review_redemption(redemption.id, 'rejected')

        assert reviewed.status == 'rejected'
        assert reviewed.resolved_at is not None
        assert LedgerService.get_balance(child.id) == 70
        assert LedgerEntry.query.filter_by(redemption_id=redemption.id).count() == 0

    def test_rejection_releases_hold(self, db_session, child, reward, fund):
        fund(child.id, 60)
        first = RedemptionService.request_redemption(child.id, reward.id)
        RedemptionService.review_redemption(first.id, 'rejected')

        assert RedemptionService.request_redemption(child.id, reward.id).status == 'pending'

    def test_second_review_not_found(self, db_session, child, reward, fund):
        fund(child.id, 120)
        redemption = RedemptionService.request_redemption(child.id, reward.id)
        RedemptionService.review_redemption(redemption.id, 'approved')

        with pytest.raises(NotFoundError):
            RedemptionService.review_redemption(redemption.id, 'approved')
        assert LedgerService.get_balance(child.id) == 70

    def test_unknown_redemption(self, db_session):
        with pytest.raises(NotFoundError):
            RedemptionService.review_redemption(31337, 'rejected')

    def test_invalid_decision(self, db_session, child, reward, fund):
        fund(child.id, 50)
        redemption = RedemptionService.request_redemption(child.id, reward.id)
        with pytest.raises(ValidationError):
            RedemptionService.review_redemption(redemption.id, 'refunded')

    def test_list_redemptions(self, db_session, child, child_2, reward, fund):
        fund(child.id, 50)
        fund(child_2.id, 50)
        mine = RedemptionService.request_redemption(child.id, reward.id)
        theirs = RedemptionService.request_redemption(child_2.id, reward.id)
        RedemptionService.review_redemption(theirs.id, 'approved')

        assert [r.id for r in RedemptionService.list_redemptions()] == [mine.id]
        assert [r.id for r in RedemptionService.list_redemptions('approved')] == [theirs.id]
        assert RedemptionService.list_redemptions('approved', child_id=child.id) == []
