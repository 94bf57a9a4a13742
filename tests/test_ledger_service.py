"""Tests for reviewer edits on ledger entries and the audit log."""

from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio

from sales_ledger.services.audit_service import AuditAction, AuditService
from sales_ledger.services.ledger_generator import LedgerGenerator
from sales_ledger.services.ledger_service import (
    LedgerConflictError,
    LedgerEntryNotFoundError,
    LedgerService,
)
from sales_ledger.services.state_machine import InvalidStatusTransitionError
from sales_ledger.sources.direct import DirectOrderSource

MONTH = 3
YEAR = 2025


@pytest_asyncio.fixture
async def alice_entry(session, march_setup):
    """Alice's freshly generated March entry (plan total 11450.00)."""
    result = await LedgerGenerator(session, DirectOrderSource(session)).generate(MONTH, YEAR)
    alice_id = march_setup["alice"].sales_rep_id
    return next(e for e in result.entries if e.sales_rep_id == alice_id)


class TestReviewEdits:
    """Test adjustment and deduction edits."""

    async def test_adjustment_recomputes_final_amount(self, session, alice_entry):
        outcome = await LedgerService(session).review_entry(
            alice_entry.ledger_id,
            adjustment=Decimal("125.555"),
            adjustment_note="Referral bonus",
        )

        assert outcome.changed
        assert outcome.entry.adjustment == Decimal("125.56")
        assert outcome.entry.final_amount == Decimal("11575.56")
        assert set(outcome.changes) == {"adjustment", "adjustment_note", "final_amount"}
        assert outcome.changes["final_amount"]["to"] == Decimal("11575.56")

    async def test_deduction_subtracted(self, session, alice_entry):
        outcome = await LedgerService(session).review_entry(
            alice_entry.ledger_id,
            cancellation_deduction=Decimal("450"),
            adjustment=Decimal("-50"),
        )

        assert outcome.entry.final_amount == Decimal("10950.00")

    async def test_negative_deduction_rejected(self, session, alice_entry):
        with pytest.raises(ValueError):
            await LedgerService(session).review_entry(
                alice_entry.ledger_id, cancellation_deduction=Decimal("-1")
            )

    async def test_no_op_edit_leaves_version(self, session, alice_entry):
        version = alice_entry.version

        outcome = await LedgerService(session).review_entry(
            alice_entry.ledger_id, adjustment=Decimal("0")
        )
        await session.commit()

        assert outcome.changed is False
        assert outcome.entry.version == version

    async def test_unknown_entry(self, session, alice_entry):
        with pytest.raises(LedgerEntryNotFoundError):
            await LedgerService(session).review_entry(uuid4(), adjustment=Decimal("1"))


class TestReviewStatus:
    """Test status transitions through reviewer edits."""

    async def test_review_then_approve_stamps_reviewer(self, session, alice_entry):
        reviewer = uuid4()
        ledger = LedgerService(session)

        reviewed = await ledger.review_entry(
            alice_entry.ledger_id, actor_user_id=reviewer, status="REVIEWED"
        )
        assert reviewed.entry.status == "REVIEWED"
        assert reviewed.entry.reviewed_by_id == reviewer
        assert reviewed.entry.reviewed_at is not None
        assert reviewed.entry.approved_final_amount is None

        approved = await ledger.review_entry(
            alice_entry.ledger_id, actor_user_id=reviewer, status="APPROVED"
        )
        assert approved.entry.status == "APPROVED"
        assert approved.entry.approved_final_amount == Decimal("11450.00")
        assert approved.entry.has_drift is False

    async def test_unapprove_clears_stamp(self, session, alice_entry):
        ledger = LedgerService(session)
        await ledger.review_entry(alice_entry.ledger_id, actor_user_id=uuid4(), status="APPROVED")

        outcome = await ledger.review_entry(alice_entry.ledger_id, status="PENDING")

        assert outcome.entry.status == "PENDING"
        assert outcome.entry.reviewed_by_id is None
        assert outcome.entry.reviewed_at is None
        assert outcome.entry.approved_final_amount is None

    async def test_editing_approved_entry_resnapshots_amount(self, session, alice_entry):
        ledger = LedgerService(session)
        await ledger.review_entry(alice_entry.ledger_id, status="APPROVED")

        outcome = await ledger.review_entry(alice_entry.ledger_id, adjustment=Decimal("100"))

        assert outcome.entry.status == "APPROVED"
        assert outcome.entry.approved_final_amount == Decimal("11550.00")
        assert outcome.entry.has_drift is False

    async def test_invalid_transition_rejected(self, session, alice_entry):
        ledger = LedgerService(session)
        await ledger.review_entry(alice_entry.ledger_id, status="APPROVED")

        with pytest.raises(InvalidStatusTransitionError):
            await ledger.review_entry(alice_entry.ledger_id, status="REVIEWED")

    async def test_unknown_status_rejected(self, session, alice_entry):
        with pytest.raises(ValueError):
            await LedgerService(session).review_entry(alice_entry.ledger_id, status="PAID")


class TestReviewConflicts:
    """Test optimistic concurrency on reviewer edits."""

    async def test_stale_expected_version(self, session, alice_entry):
        ledger = LedgerService(session)
        await ledger.review_entry(alice_entry.ledger_id, adjustment=Decimal("10"))
        await session.commit()

        with pytest.raises(LedgerConflictError) as exc_info:
            await ledger.review_entry(
                alice_entry.ledger_id, adjustment=Decimal("20"), expected_version=1
            )

        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2

    async def test_matching_expected_version_accepted(self, session, alice_entry):
        outcome = await LedgerService(session).review_entry(
            alice_entry.ledger_id, adjustment=Decimal("10"), expected_version=1
        )
        await session.commit()

        assert outcome.entry.version == 2

    async def test_concurrent_reviewers(self, session_factory, alice_entry):
        """The second of two reviewers working from the same version loses."""
        async with session_factory() as first, session_factory() as second:
            await LedgerService(first).get_entry(alice_entry.ledger_id)
            await LedgerService(second).get_entry(alice_entry.ledger_id)

            await LedgerService(first).review_entry(alice_entry.ledger_id, adjustment=Decimal("10"))
            await first.commit()

            with pytest.raises(LedgerConflictError):
                await LedgerService(second).review_entry(
                    alice_entry.ledger_id, adjustment=Decimal("20")
                )
            await second.rollback()

        async with session_factory() as fresh:
            entry = await LedgerService(fresh).get_entry(alice_entry.ledger_id)
            assert entry.adjustment == Decimal("10.00")


class TestAuditLog:
    async def test_record_and_list_newest_first(self, session):
        actor = uuid4()
        audit = AuditService(session)

        await audit.record(
            actor,
            AuditAction.SALARY_UPDATED,
            "Salary set",
            {"salary": Decimal("60000"), "sales_rep_id": actor},
        )
        await audit.record(None, "LEDGER_GENERATED", "Generated ledger for 3/2025")
        await session.commit()

        entries = await audit.list_recent()

        assert [e.action for e in entries] == ["LEDGER_GENERATED", "SALARY_UPDATED"]
        assert entries[1].user_id == actor
        assert entries[1].details == {"salary": "60000", "sales_rep_id": str(actor)}
        assert entries[0].details is None
        assert len(await audit.list_recent(limit=1)) == 1

    async def test_unknown_action_rejected(self, session):
        with pytest.raises(ValueError):
            await AuditService(session).record(None, "DELETED_EVERYTHING", "nope")
