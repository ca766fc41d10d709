"""Tests for the reconciliation match state machine."""

from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from factories import make_transaction

from app.services.matching import (
    BudgetScope,
    ConfidenceLevel,
    InvalidStateTransition,
    MatchSource,
    MatchStatus,
    ReconciliationMatch,
    TransactionLinkError,
    ValidationError,
)
from app.services.matching.match import link_transaction, unlink_transaction


def new_match(**kwargs) -> ReconciliationMatch:
    values = {
        "imported_transaction_id": uuid4(),
        "recurring_transaction_id": uuid4(),
        "recurring_instance_date": date(2026, 1, 15),
        "confidence_score": Decimal("0.75"),
        "amount_variance": Decimal("0.50"),
        "date_offset_days": 1,
    }
    values.update(kwargs)
    return ReconciliationMatch.create(**values)


class TestCreate:
    """Tests for ReconciliationMatch.create."""

    def test_starts_suggested(self):
        match = new_match()

        assert match.status == MatchStatus.SUGGESTED
        assert match.source == MatchSource.AUTO
        assert match.scope == BudgetScope.SHARED
        assert match.resolved_at_utc is None
        assert match.confidence_level == ConfidenceLevel.MEDIUM

    @pytest.mark.parametrize("score", ["-0.01", "1.01"])
    def test_score_out_of_range(self, score):
        with pytest.raises(ValidationError, match="Confidence score"):
            new_match(confidence_score=Decimal(score))

    def test_missing_transaction_id(self):
        with pytest.raises(ValidationError, match="Imported transaction"):
            new_match(imported_transaction_id=None)

    def test_personal_scope_requires_owner(self):
        with pytest.raises(ValidationError, match="Owner"):
            new_match(scope="personal")

    def test_shared_scope_drops_owner(self):
        assert new_match(scope="shared", owner_user_id=uuid4()).owner_user_id is None

    def test_personal_scope_keeps_owner(self):
        owner = uuid4()
        match = new_match(scope=BudgetScope.PERSONAL, owner_user_id=owner)
        assert match.owner_user_id == owner


class TestTransitions:
    """Tests for accept, reject and auto-match."""

    def test_accept_suggested(self):
        at = datetime(2026, 1, 20, tzinfo=UTC)
        match = new_match()

        accepted = match.accept(at)

        assert accepted.status == MatchStatus.ACCEPTED
        assert accepted.resolved_at_utc == at
        assert accepted.confidence_score == match.confidence_score
        assert match.status == MatchStatus.SUGGESTED

    def test_reject_suggested(self):
        rejected = new_match().reject()

        assert rejected.status == MatchStatus.REJECTED
        assert rejected.resolved_at_utc is not None

    def test_auto_match_fresh(self):
        auto = new_match().auto_match()

        assert auto.status == MatchStatus.AUTO_MATCHED
        assert auto.resolved_at_utc is None

    def test_accept_auto_matched(self):
        accepted = new_match().auto_match().accept()
        assert accepted.status == MatchStatus.ACCEPTED

    def test_reject_auto_matched(self):
        assert new_match().auto_match().reject().status == MatchStatus.REJECTED

    def test_reject_then_accept_fails(self):
        rejected = new_match().reject()

        with pytest.raises(InvalidStateTransition, match="accept"):
            rejected.accept()

    def test_accept_twice_fails(self):
        with pytest.raises(InvalidStateTransition):
            new_match().accept().accept()

    def test_auto_match_only_once(self):
        with pytest.raises(InvalidStateTransition):
            new_match().auto_match().auto_match()

    def test_auto_match_after_resolution_fails(self):
        with pytest.raises(InvalidStateTransition):
            new_match().accept().auto_match()

    def test_resolved_at_set_once(self):
        first = datetime(2026, 1, 20, tzinfo=UTC)
        accepted = new_match().accept(first)

        with pytest.raises(InvalidStateTransition):
            accepted.reject(datetime(2026, 1, 21, tzinfo=UTC))
        assert accepted.resolved_at_utc == first


class TestLinking:
    """Tests for linking transactions to recurring instances."""

    def test_link(self):
        transaction = make_transaction()
        recurring_id = uuid4()

        link_transaction(transaction, recurring_id, date(2026, 1, 15))

        assert transaction.recurring_transaction_id == recurring_id
        assert transaction.recurring_instance_date == date(2026, 1, 15)

    def test_relink_same_instance_is_noop(self):
        transaction = make_transaction()
        recurring_id = uuid4()

        link_transaction(transaction, recurring_id, date(2026, 1, 15))
        link_transaction(transaction, recurring_id, date(2026, 1, 15))

        assert transaction.recurring_transaction_id == recurring_id

    def test_link_to_other_instance_fails(self):
        transaction = make_transaction()
        link_transaction(transaction, uuid4(), date(2026, 1, 15))

        with pytest.raises(TransactionLinkError):
            link_transaction(transaction, uuid4(), date(2026, 1, 15))

    def test_unlink(self):
        transaction = make_transaction()
        recurring_id = uuid4()
        link_transaction(transaction, recurring_id, date(2026, 1, 15))

        assert unlink_transaction(transaction, recurring_id, date(2026, 1, 15))
        assert transaction.recurring_transaction_id is None
        assert transaction.recurring_instance_date is None

    def test_unlink_other_instance_keeps_link(self):
        transaction = make_transaction()
        recurring_id = uuid4()
        link_transaction(transaction, recurring_id, date(2026, 1, 15))

        assert not unlink_transaction(transaction, recurring_id, date(2026, 2, 15))
        assert transaction.recurring_transaction_id == recurring_id
