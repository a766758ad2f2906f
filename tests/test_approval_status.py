"""
Bonus Approval Service - Approval Status, Eligibility and Level Resolver Tests

Pure-function tests on in-memory employees; no database involved.
"""

import uuid
from decimal import Decimal
from typing import Dict, Optional, Sequence

import pytest

from app.models.employee import ApprovalLevel, Employee, LevelStatus
from app.services.approval_status import approval_status_for, is_bonus_entered
from app.services.eligibility import IneligibleReason, can_act
from app.services.level_resolver import (
    first_unapproved_level,
    is_fully_approved,
    is_rejected,
    next_pending_level,
)


A1, A2, A3, A4, A5 = (uuid.uuid4() for _ in range(5))


def build_employee(
    approvers: Sequence[Optional[uuid.UUID]] = (A1, A2),
    statuses: Optional[Dict[int, LevelStatus]] = None,
    submitted: bool = True,
    bonus: Decimal = Decimal("1000.00"),
    entered_by: Optional[uuid.UUID] = None,
) -> Employee:
    employee = Employee(
        id=uuid.uuid4(),
        employee_id="E9001",
        first_name="Pat",
        last_name="Example",
        bonus_2025=bonus,
        bonus_entered_by_id=entered_by,
        submitted_for_approval=submitted,
    )
    for level, approver_id in enumerate(approvers, start=1):
        setattr(employee, f"level{level}_approver_id", approver_id)
    employee.approval_levels = [
        ApprovalLevel(level=level, status=status)
        for level, status in sorted((statuses or {}).items())
    ]
    return employee


class TestApprovalStatus:
    """Normalization of stored approval rows."""

    def test_missing_rows_read_as_pending(self):
        employee = build_employee(statuses={})
        status = approval_status_for(employee)

        assert status.submitted_for_approval is True
        for level in range(1, 6):
            assert status.level(level).status == LevelStatus.PENDING
            assert status.level(level).approved_by is None

    def test_partial_rows_are_kept(self):
        employee = build_employee(statuses={1: LevelStatus.APPROVED})
        status = approval_status_for(employee)

        assert status.level(1).status == LevelStatus.APPROVED
        assert status.level(2).status == LevelStatus.PENDING

    def test_unsaved_employee_defaults(self):
        employee = Employee(employee_id="E1", first_name="A", last_name="B")
        status = approval_status_for(employee)

        assert status.submitted_for_approval is False
        assert status.entered_by is None

    def test_to_dict_has_all_levels(self):
        data = approval_status_for(build_employee()).to_dict()

        assert set(data) >= {"level1", "level2", "level3", "level4", "level5"}
        assert data["level3"]["status"] == "pending"

    def test_bonus_entered_by_amount(self):
        assert is_bonus_entered(build_employee(bonus=Decimal("50.00")))

    def test_bonus_entered_by_metadata(self):
        assert is_bonus_entered(build_employee(bonus=Decimal("0"), entered_by=uuid.uuid4()))

    def test_bonus_not_entered(self):
        assert not is_bonus_entered(build_employee(bonus=Decimal("0")))


class TestEligibility:
    """can_act decisions."""

    def test_level_one_allowed(self):
        assert can_act(build_employee(), 1).allowed

    def test_level_two_blocked_by_pending_level_one(self):
        result = can_act(build_employee(), 2)

        assert not result.allowed
        assert result.reason == IneligibleReason.PREVIOUS_LEVEL_PENDING
        assert result.blocking_level == 1

    def test_level_two_allowed_after_level_one_approved(self):
        employee = build_employee(statuses={1: LevelStatus.APPROVED})
        assert can_act(employee, 2)

    def test_skipped_levels_do_not_block(self):
        employee = build_employee(approvers=(A1, None, A3), statuses={1: LevelStatus.APPROVED})
        assert can_act(employee, 3).allowed

    def test_unpopulated_level_one_does_not_block(self):
        employee = build_employee(approvers=(None, A2))
        assert can_act(employee, 2).allowed

    def test_rejected_lower_level_blocks(self):
        employee = build_employee(statuses={1: LevelStatus.REJECTED})
        result = can_act(employee, 2)

        assert result.reason == IneligibleReason.PREVIOUS_LEVEL_PENDING
        assert result.blocking_level == 1

    def test_resolved_level_is_already_processed(self):
        employee = build_employee(statuses={1: LevelStatus.APPROVED})
        assert can_act(employee, 1).reason == IneligibleReason.ALREADY_PROCESSED

    def test_bonus_missing_checked_first(self):
        employee = build_employee(bonus=Decimal("0"), statuses={1: LevelStatus.APPROVED})
        assert can_act(employee, 1).reason == IneligibleReason.BONUS_MISSING


class TestLevelResolver:
    """next_pending_level and friends."""

    def test_not_submitted_has_no_pending_level(self):
        assert next_pending_level(build_employee(submitted=False)) is None

    def test_first_populated_pending_level(self):
        pending = next_pending_level(build_employee(approvers=(None, A2, A3)))

        assert pending.level == 2
        assert pending.approver_id == A2

    def test_moves_on_after_approval(self):
        employee = build_employee(statuses={1: LevelStatus.APPROVED})
        pending = next_pending_level(employee)

        assert pending.level == 2
        assert pending.approver_id == A2

    def test_rejection_ends_cycle(self):
        employee = build_employee(approvers=(A1, A2, A3), statuses={1: LevelStatus.APPROVED, 2: LevelStatus.REJECTED})

        assert next_pending_level(employee) is None
        assert is_rejected(employee)
        assert not is_fully_approved(employee)
        assert first_unapproved_level(employee) == 2

    def test_all_approved(self):
        employee = build_employee(statuses={1: LevelStatus.APPROVED, 2: LevelStatus.APPROVED})

        assert next_pending_level(employee) is None
        assert first_unapproved_level(employee) is None
        assert is_fully_approved(employee)

    def test_no_approvers_at_all(self):
        employee = build_employee(approvers=())

        assert next_pending_level(employee) is None
        assert is_fully_approved(employee)

    @pytest.mark.parametrize("approvers,expected", [
        ((A1, A2, A3, A4, A5), 1),
        ((None, None, None, None, A5), 5),
        ((None, A2, None, A4), 2),
    ])
    def test_skip_level_transparency(self, approvers, expected):
        assert next_pending_level(build_employee(approvers=approvers)).level == expected
