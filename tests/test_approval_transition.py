"""
Bonus Approval Service - Approval Transition Tests

Tests for single approve/reject decisions.
"""

from decimal import Decimal

import pytest

from app.models.employee import ApprovalAction, EmployeeRole, LevelStatus
from app.services.approval_status import approval_status_for
from app.services.approval_transition import ApprovalTransitionService, validate_decision_input
from app.services.bonus_service import BonusWorkflowService
from app.utils.error_handling import (
    AlreadyProcessedException,
    AuthorizationException,
    BonusMissingException,
    EmployeeNotFoundException,
    ErrorCode,
    InvalidLevelException,
    NotSubmittedException,
    PreviousLevelPendingException,
    ValidationException,
)


async def enter_and_submit(db_session, supervisor, employee, amount=Decimal("1000.00")):
    workflow = BonusWorkflowService(db_session)
    await workflow.enter_bonus(employee.id, supervisor.id, amount)
    await workflow.submit_for_approval(supervisor.id)


class TestDecisionInput:
    """Input validation before any employee is loaded."""

    @pytest.mark.parametrize("level", [0, 6, -1, "1", 1.0, True, None])
    def test_invalid_level(self, level):
        with pytest.raises(InvalidLevelException):
            validate_decision_input(level, "approve", object())

    def test_invalid_action(self):
        with pytest.raises(ValidationException) as exc_info:
            validate_decision_input(1, "escalate", object())
        assert exc_info.value.code == ErrorCode.INVALID_ACTION

    def test_missing_approver(self):
        with pytest.raises(ValidationException):
            validate_decision_input(1, "approve", None)

    def test_action_string_is_parsed(self):
        assert validate_decision_input(3, "reject", object()) == (3, ApprovalAction.REJECT)


class TestApprovalTransition:
    """Test cases for ApprovalTransitionService."""

    @pytest.mark.asyncio
    async def test_two_level_approval(self, db_session, chain):
        """Level 1 then level 2 approve; the bonus ends fully approved."""
        await enter_and_submit(db_session, chain["supervisor"], chain["employee"])
        service = ApprovalTransitionService(db_session)

        employee = await service.decide(
            chain["employee"].id, 1, chain["approver1"].id, "approve", "Looks good",
        )
        status = approval_status_for(employee)
        assert status.level(1).status == LevelStatus.APPROVED
        assert status.level(1).approved_by == chain["approver1"].id
        assert status.level(1).approved_at is not None
        assert status.level(1).comments == "Looks good"
        assert status.level(2).status == LevelStatus.PENDING

        employee = await service.decide(chain["employee"].id, 2, chain["approver2"].id, "approve")
        status = approval_status_for(employee)
        assert status.level(2).status == LevelStatus.APPROVED

    @pytest.mark.asyncio
    async def test_out_of_order_rejected(self, db_session, chain):
        """Level 2 cannot act before level 1 is approved."""
        await enter_and_submit(db_session, chain["supervisor"], chain["employee"])
        service = ApprovalTransitionService(db_session)

        with pytest.raises(PreviousLevelPendingException) as exc_info:
            await service.decide(chain["employee"].id, 2, chain["approver2"].id, "approve")

        assert exc_info.value.blocking_level == 1
        assert exc_info.value.details["blocking_level"] == 1

        employee = await service.get_active_employee(chain["employee"].id)
        assert approval_status_for(employee).level(2).status == LevelStatus.PENDING

    @pytest.mark.asyncio
    async def test_rejection_is_final(self, db_session, chain):
        """After a level 1 rejection, level 2 can never approve."""
        await enter_and_submit(db_session, chain["supervisor"], chain["employee"])
        service = ApprovalTransitionService(db_session)

        employee = await service.decide(
            chain["employee"].id, 1, chain["approver1"].id, ApprovalAction.REJECT, "Too high",
        )
        assert approval_status_for(employee).level(1).status == LevelStatus.REJECTED

        with pytest.raises(PreviousLevelPendingException) as exc_info:
            await service.decide(chain["employee"].id, 2, chain["approver2"].id, "approve")
        assert exc_info.value.blocking_level == 1

    @pytest.mark.asyncio
    async def test_resolved_level_cannot_change(self, db_session, chain):
        await enter_and_submit(db_session, chain["supervisor"], chain["employee"])
        service = ApprovalTransitionService(db_session)

        await service.decide(chain["employee"].id, 1, chain["approver1"].id, "approve")

        with pytest.raises(AlreadyProcessedException):
            await service.decide(chain["employee"].id, 1, chain["approver1"].id, "approve")
        with pytest.raises(AlreadyProcessedException):
            await service.decide(chain["employee"].id, 1, chain["approver1"].id, "reject")

        employee = await service.get_active_employee(chain["employee"].id)
        assert approval_status_for(employee).level(1).status == LevelStatus.APPROVED

    @pytest.mark.asyncio
    async def test_skipped_levels_are_transparent(self, db_session, make_employee):
        """Levels without an approver neither block nor get rows."""
        supervisor = await make_employee("Sam", "Supervisor")
        approver3 = await make_employee("Cara", "Approver", role=EmployeeRole.APPROVER)
        employee = await make_employee(
            "Eve", "Worker", supervisor=supervisor, approvers=(None, None, approver3),
        )
        await enter_and_submit(db_session, supervisor, employee)

        service = ApprovalTransitionService(db_session)
        employee = await service.decide(employee.id, 3, approver3.id, "approve")

        assert [record.level for record in employee.approval_levels] == [3]
        assert approval_status_for(employee).level(3).status == LevelStatus.APPROVED

    @pytest.mark.asyncio
    async def test_not_submitted(self, db_session, chain):
        workflow = BonusWorkflowService(db_session)
        await workflow.enter_bonus(chain["employee"].id, chain["supervisor"].id, Decimal("500"))
        service = ApprovalTransitionService(db_session)

        with pytest.raises(NotSubmittedException):
            await service.decide(chain["employee"].id, 1, chain["approver1"].id, "approve")

    @pytest.mark.asyncio
    async def test_bonus_missing(self, db_session, chain):
        """A submitted record whose bonus was cleared cannot be decided."""
        await enter_and_submit(db_session, chain["supervisor"], chain["employee"])
        employee = await ApprovalTransitionService(db_session).get_active_employee(chain["employee"].id)
        employee.bonus_2025 = Decimal("0")
        employee.bonus_entered_by_id = None
        await db_session.commit()

        with pytest.raises(BonusMissingException):
            await ApprovalTransitionService(db_session).decide(
                chain["employee"].id, 1, chain["approver1"].id, "approve",
            )

    @pytest.mark.asyncio
    async def test_wrong_approver(self, db_session, chain):
        await enter_and_submit(db_session, chain["supervisor"], chain["employee"])
        service = ApprovalTransitionService(db_session)

        with pytest.raises(AuthorizationException):
            await service.decide(chain["employee"].id, 1, chain["approver2"].id, "approve")

    @pytest.mark.asyncio
    async def test_inactive_employee_not_found(self, db_session, make_employee, chain):
        inactive = await make_employee("Gone", "Person", is_active=False, approvers=(chain["approver1"],))
        service = ApprovalTransitionService(db_session)

        with pytest.raises(EmployeeNotFoundException):
            await service.decide(inactive.id, 1, chain["approver1"].id, "approve")

    @pytest.mark.asyncio
    async def test_empty_comment_keeps_previous(self, db_session, chain):
        await enter_and_submit(db_session, chain["supervisor"], chain["employee"])
        record = (await ApprovalTransitionService(db_session).get_active_employee(
            chain["employee"].id
        )).level_record(1)
        record.comments = "Pre-filled note"
        await db_session.commit()

        employee = await ApprovalTransitionService(db_session).decide(
            chain["employee"].id, 1, chain["approver1"].id, "approve", "",
        )
        assert approval_status_for(employee).level(1).comments == "Pre-filled note"

    @pytest.mark.asyncio
    async def test_concurrent_decisions_one_winner(self, session_factory, db_session, chain):
        """Two approvals racing on the same level: the second writer loses."""
        await enter_and_submit(db_session, chain["supervisor"], chain["employee"])

        async with session_factory() as session_a, session_factory() as session_b:
            service_a = ApprovalTransitionService(session_a)
            stale = await service_a.get_active_employee(chain["employee"].id)

            await ApprovalTransitionService(session_b).decide(
                chain["employee"].id, 1, chain["approver1"].id, "approve", "first",
            )

            with pytest.raises(AlreadyProcessedException):
                await service_a.apply_decision(
                    stale, 1, chain["approver1"].id, "reject", "second",
                )
            await session_a.rollback()

        employee = await ApprovalTransitionService(db_session).get_active_employee(chain["employee"].id)
        level1 = approval_status_for(employee).level(1)
        assert level1.status == LevelStatus.APPROVED
        assert level1.comments == "first"
