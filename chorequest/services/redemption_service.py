"""Reward redemption service.

This module contains the business logic for rewards and redemptions:
- Managing rewards (administrator), singly or as a preset batch
- Requesting a redemption (child); checks activity and balance, spends nothing
- Reviewing a redemption; approval debits the reward cost from the balance

State machine: pending -> approved | rejected (both terminal)

Redemption requests are serialized per child with a row lock. With
REDEMPTION_HOLD_PENDING enabled, the cost of the child's pending
redemptions counts against the balance, so several requests cannot jointly
overspend before any of them is reviewed.
"""

import logging
from typing import Optional

from flask import current_app
from sqlalchemy import func, select, update

from chorequest.models import db, Child, Reward, Redemption, ReviewStatus
from chorequest.services.errors import (
    InsufficientPointsError,
    NotFoundError,
    RewardInactiveError,
    ValidationError,
)
from chorequest.services.ledger_service import LedgerService
from chorequest.utils.db import atomic
from chorequest.utils.timezone import local_now
from chorequest.utils.webhooks import fire_webhook

logger = logging.getLogger(__name__)


class RedemptionService:
    """Service for rewards and redemptions."""

    @staticmethod
    def get_reward(reward_id: int) -> Reward:
        """Get a reward by ID or raise NotFoundError."""
        reward = db.session.get(Reward, reward_id)
        if not reward:
            raise NotFoundError(f'Reward {reward_id} not found')
        return reward

    @staticmethod
    def get_redemption(redemption_id: int) -> Redemption:
        """Get a redemption by ID or raise NotFoundError."""
        redemption = db.session.get(Redemption, redemption_id)
        if not redemption:
            raise NotFoundError(f'Redemption {redemption_id} not found')
        return redemption

    # Administration

    @staticmethod
    def create_reward(title: str, cost_points: int = 50, description: Optional[str] = None) -> Reward:
        if not (title or '').strip():
            raise ValidationError('Title is required')
        if isinstance(cost_points, bool) or not isinstance(cost_points, int) or cost_points <= 0:
            raise ValidationError('cost_points must be greater than 0')

        with atomic('create reward'):
            reward = Reward(title=title.strip(), description=description, cost_points=cost_points)
            db.session.add(reward)

        logger.info(f"Created reward {reward.id}: {reward.title} ({cost_points} pts)")
        return reward

    @staticmethod
    def install_reward_presets(rewards: list) -> list:
        """Create a batch of rewards in one transaction.

        Raises:
            ValidationError: Empty batch or an invalid reward definition
        """
        if not rewards:
            raise ValidationError('No rewards provided')

        for index, item in enumerate(rewards):
            if not (item.get('title') or '').strip():
                raise ValidationError(f'Reward {index}: title is required')
            cost = item.get('cost_points')
            if isinstance(cost, bool) or not isinstance(cost, int) or cost <= 0:
                raise ValidationError(f'Reward {index}: cost_points must be greater than 0')

        with atomic('install preset rewards'):
            created = [
                Reward(title=item['title'].strip(), description=item.get('description'),
                       cost_points=item['cost_points'])
                for item in rewards
            ]
            db.session.add_all(created)

        logger.info(f"Installed {len(created)} preset rewards")
        return created

    @staticmethod
    def toggle_reward(reward_id: int) -> Reward:
        """Flip a reward between active and inactive."""
        reward = RedemptionService.get_reward(reward_id)
        with atomic('toggle reward'):
            reward.is_active = not reward.is_active

        logger.info(f"Reward {reward_id} is now {'active' if reward.is_active else 'inactive'}")
        return reward

    @staticmethod
    def list_rewards(include_inactive: bool = False) -> list:
        """List rewards, cheapest first."""
        query = Reward.query
        if not include_inactive:
            query = query.filter(Reward.is_active.is_(True))
        return query.order_by(Reward.is_active.desc(), Reward.cost_points, Reward.id).all()

    # Workflow

    @staticmethod
    def pending_cost(child_id: int) -> int:
        """Total cost of a child's redemptions awaiting review."""
        total = db.session.query(func.sum(Redemption.cost_points)).filter(
            Redemption.child_id == child_id,
            Redemption.status == ReviewStatus.PENDING.value
        ).scalar()
        return total if total is not None else 0

    @staticmethod
    def available_points(child_id: int) -> int:
        """Points a child can still commit to new redemptions."""
        balance = LedgerService.get_balance(child_id)
        if current_app.config.get('REDEMPTION_HOLD_PENDING', True):
            balance -= RedemptionService.pending_cost(child_id)
        return balance

    @staticmethod
    def request_redemption(child_id: int, reward_id: int) -> Redemption:
        """Ask to spend points on a reward. No points move until approval.

        Args:
            child_id: ID of the child redeeming
            reward_id: ID of the reward

        Returns:
            The created pending Redemption

        Raises:
            NotFoundError: Child or reward not found
            RewardInactiveError: Reward is not active
            InsufficientPointsError: Balance does not cover the cost
        """
        reward = RedemptionService.get_reward(reward_id)
        LedgerService.get_child(child_id)

        if not reward.is_active:
            raise RewardInactiveError('Reward not found or inactive')

        with atomic('request redemption'):
            # Serialize redemption requests for this child
            db.session.execute(
                select(Child.id).where(Child.id == child_id).with_for_update()
            )

            available = RedemptionService.available_points(child_id)
            if available < reward.cost_points:
                raise InsufficientPointsError(reward.cost_points, available)

            redemption = Redemption(
                child_id=child_id,
                reward_id=reward_id,
                cost_points=reward.cost_points,
                status=ReviewStatus.PENDING.value,
                requested_at=local_now()
            )
            db.session.add(redemption)

        logger.info(f"Redemption {redemption.id} requested: child={child_id} reward={reward_id}")
        fire_webhook('redemption_requested', redemption)

        return redemption

    @staticmethod
    def review_redemption(redemption_id: int, decision: str) -> Redemption:
        """Approve or reject a pending redemption.

        Approval debits the cost captured when the redemption was requested.
        The balance was checked at request time; the ledger itself does not
        refuse a negative result.

        Raises:
            ValidationError: Unknown decision
            NotFoundError: No pending redemption with this ID
        """
        if decision not in ReviewStatus.decisions():
            raise ValidationError('status must be "approved" or "rejected"')

        now = local_now()

        with atomic('review redemption'):
            result = db.session.execute(
                update(Redemption)
                .where(Redemption.id == redemption_id,
                       Redemption.status == ReviewStatus.PENDING.value)
                .values(status=decision, resolved_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise NotFoundError('Redemption not found')

            redemption = db.session.get(Redemption, redemption_id)
            db.session.refresh(redemption)

            if decision == ReviewStatus.APPROVED.value:
                LedgerService.apply_delta(
                    redemption.child_id,
                    -redemption.cost_points,
                    reason=f"Redeemed reward: {redemption.reward.title}",
                    redemption_id=redemption.id
                )

        logger.info(f"Redemption {redemption_id} {decision}")
        fire_webhook(f'redemption_{decision}', redemption)

        return redemption

    @staticmethod
    def list_redemptions(status: str = 'pending', child_id: Optional[int] = None,
                         limit: Optional[int] = None) -> list:
        """List redemptions with a given status, newest first."""
        if status not in {s.value for s in ReviewStatus}:
            status = ReviewStatus.PENDING.value

        query = Redemption.query.filter(Redemption.status == status)
        if child_id is not None:
            query = query.filter(Redemption.child_id == child_id)
        query = query.order_by(Redemption.requested_at.desc(), Redemption.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()
