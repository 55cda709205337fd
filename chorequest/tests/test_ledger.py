"""Tests for the points ledger."""

import pytest

from chorequest.models import db, Child, LedgerEntry
from chorequest.services.errors import NotFoundError
from chorequest.services.ledger_service import LedgerService
from chorequest.services.submission_service import SubmissionService


class TestApplyDelta:
    """Tests for LedgerService.apply_delta."""

    def test_credit_updates_balance_and_ledger(self, db_session, child):
        balance = LedgerService.apply_delta(child.id, 15, 'Bonus')
        db_session.commit()

        assert balance == 15
        assert db_session.get(Child, child.id).points == 15

        entries = LedgerEntry.query.filter_by(child_id=child.id).all()
        assert len(entries) == 1
        assert entries[0].delta == 15
        assert entries[0].reason == 'Bonus'

    def test_debit_can_go_negative(self, db_session, child):
        balance = LedgerService.apply_delta(child.id, -20, 'Correction')
        db_session.commit()

        assert balance == -20
        assert child.points == -20

    def test_loaded_child_sees_new_balance(self, db_session, child):
        assert child.points == 0
        LedgerService.apply_delta(child.id, 7, 'Credit')
        assert child.points == 7

    def test_deltas_accumulate(self, db_session, child):
        for delta in (10, 20, -5):
            LedgerService.apply_delta(child.id, delta, 'Change')
        db_session.commit()

        assert LedgerService.get_balance(child.id) == 25
        assert LedgerService.calculate_balance(child.id) == 25

    def test_unknown_child(self, db_session):
        with pytest.raises(NotFoundError):
            LedgerService.apply_delta(999, 10, 'Nobody')

    def test_rollback_discards_delta_and_entry(self, db_session, child):
        LedgerService.apply_delta(child.id, 10, 'Will be rolled back')
        db_session.rollback()

        assert LedgerService.get_balance(child.id) == 0
        assert LedgerEntry.query.count() == 0


class TestHistory:
    """Tests for ledger history reads."""

    def test_newest_first_with_pagination(self, db_session, child, fund):
        for i in range(5):
            fund(child.id, i + 1, reason=f'Credit {i}')

        entries = LedgerService.history(child.id, limit=2)
        assert [e.delta for e in entries] == [5, 4]

        entries = LedgerService.history(child.id, limit=2, offset=2)
        assert [e.delta for e in entries] == [3, 2]

    def test_unknown_child(self, db_session):
        with pytest.raises(NotFoundError):
            LedgerService.history(12345)


class TestAudit:
    """Tests for balance verification."""

    def test_workflow_keeps_everything_consistent(self, db_session, child, auto_assignment):
        SubmissionService.submit_completion(child.id, auto_assignment.task_id)

        result = LedgerService.verify_balance(child.id)
        assert result == {'child_id': child.id, 'stored': 5, 'ledger': 5, 'replayed': 5, 'ok': True}
        assert LedgerService.audit_balances() == []

    def test_detects_tampered_balance(self, db_session, child, auto_assignment):
        SubmissionService.submit_completion(child.id, auto_assignment.task_id)

        child.points = 500
        db_session.commit()

        discrepancies = LedgerService.audit_balances()
        assert len(discrepancies) == 1
        assert discrepancies[0]['stored'] == 500
        assert discrepancies[0]['ledger'] == 5
        assert discrepancies[0]['replayed'] == 5

    def test_credit_without_workflow_row_is_flagged(self, db_session, child, fund):
        fund(child.id, 40)

        result = LedgerService.verify_balance(child.id)
        assert result['stored'] == result['ledger'] == 40
        assert result['replayed'] == 0
        assert not result['ok']

    def test_empty_child_is_consistent(self, db_session, child):
        assert LedgerService.verify_balance(child.id)['ok']
        assert db.session.query(LedgerEntry).count() == 0
