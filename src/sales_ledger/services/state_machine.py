"""Ledger entry review state machine with transition validation."""

from __future__ import annotations

from sales_ledger.calculators.types import LedgerStatus


class InvalidStatusTransitionError(Exception):
    """Raised when an invalid review transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class LedgerStatusMachine:
    """State machine for reviewer-driven ledger status changes.

    Allowed transitions:
    - PENDING → REVIEWED
    - PENDING → APPROVED
    - REVIEWED → APPROVED
    - REVIEWED → PENDING
    - APPROVED → PENDING (un-approve)

    Generation never changes status; only reviewers do.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        LedgerStatus.PENDING: [LedgerStatus.REVIEWED, LedgerStatus.APPROVED],
        LedgerStatus.REVIEWED: [LedgerStatus.APPROVED, LedgerStatus.PENDING],
        LedgerStatus.APPROVED: [LedgerStatus.PENDING],
    }

    # Statuses that record who reviewed the entry and when
    REVIEW_STAMPED = {LedgerStatus.REVIEWED, LedgerStatus.APPROVED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidStatusTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidStatusTransitionError(from_status, to_status)

    @classmethod
    def stamps_reviewer(cls, status: str) -> bool:
        return status in cls.REVIEW_STAMPED

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])
