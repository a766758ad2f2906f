"""
Bonus Approval Service - Bonus Workflow Service

Supervisor and HR side of the workflow:
- Bonus entry (before the submission lock)
- Submitting a supervisor's team for approval
- Team and approval queues
- Readiness check before the final export
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List
import logging

from sqlalchemy import Uuid, delete, func, literal, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.employee import (
    APPROVAL_LEVELS,
    ApprovalLevel,
    Employee,
    LevelStatus,
)
from app.services.approval_status import is_bonus_entered
from app.services.bulk_approval import approver_filter
from app.services.level_resolver import (
    first_unapproved_level,
    is_fully_approved,
    next_pending_level,
)
from app.utils.error_handling import (
    AlreadySubmittedException,
    AuthorizationException,
    EmployeeNotFoundException,
    ErrorCode,
    InvalidAmountException,
    ValidationException,
)

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    count: int
    employee_ids: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            "Great work! You have assigned bonuses for all the employees designated to you. "
            "They are sent to the next level for review."
        )


@dataclass
class QueueEntry:
    employee: Employee
    actionable: bool


@dataclass
class ApprovalQueue:
    """Employees assigned to one approver, grouped by the level they hold."""
    levels: Dict[int, List[QueueEntry]] = field(
        default_factory=lambda: {level: [] for level in APPROVAL_LEVELS}
    )

    @property
    def counts(self) -> Dict[int, int]:
        return {level: len(entries) for level, entries in self.levels.items()}


@dataclass
class ApprovalReadiness:
    total_employees_with_bonuses: int
    pending_employees: List[Dict[str, Any]]

    @property
    def all_approvals_completed(self) -> bool:
        return self.total_employees_with_bonuses > 0 and not self.pending_employees

    @property
    def message(self) -> str:
        if self.total_employees_with_bonuses == 0:
            return "No employees with bonuses found"
        if self.all_approvals_completed:
            return "All approvals completed! Ready for export."
        return f"{len(self.pending_employees)} employee(s) still have pending approvals"


def _parse_amount(amount: Any) -> Decimal:
    if amount is None:
        raise ValidationException("Bonus amount is required", field="bonus_2025", code=ErrorCode.INVALID_AMOUNT)
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidAmountException(amount, message=f"Invalid amount: {amount}. Bonus amount must be a number.")
    if not value.is_finite():
        raise InvalidAmountException(amount, message=f"Invalid amount: {amount}. Bonus amount must be a number.")
    if value < 0:
        raise InvalidAmountException(amount)
    return value.quantize(Decimal("0.01"))


class BonusWorkflowService:
    """Service for bonus entry, submission and workflow queues."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _employees_query(self):
        return (
            select(Employee)
            .options(selectinload(Employee.approval_levels))
            .execution_options(populate_existing=True)
        )

    async def get_employee(self, employee_id: uuid.UUID) -> Employee:
        result = await self.db.execute(
            self._employees_query().where(
                Employee.id == employee_id,
                Employee.is_active.is_(True),
            )
        )
        employee = result.scalar_one_or_none()
        if not employee:
            raise EmployeeNotFoundException(employee_id)
        return employee

    # ===========================================
    # BONUS ENTRY
    # ===========================================

    async def enter_bonus(
        self,
        employee_id: uuid.UUID,
        supervisor_id: uuid.UUID,
        amount: Any,
    ) -> Employee:
        """
        Set the bonus under approval. Only the employee's supervisor may do
        this, and only before the bonus is submitted.
        """
        if supervisor_id is None:
            raise ValidationException("Supervisor ID is required", field="supervisor_id")
        value = _parse_amount(amount)

        employee = await self.get_employee(employee_id)

        if employee.supervisor_id is None or employee.supervisor_id != supervisor_id:
            raise AuthorizationException(
                message="You are not authorized to set bonus for this employee",
                details={"employee_id": employee.employee_id},
            )

        if employee.submitted_for_approval:
            raise AlreadySubmittedException(employee.employee_id)

        result = await self.db.execute(
            update(Employee)
            .where(
                Employee.id == employee.id,
                Employee.submitted_for_approval.is_(False),
            )
            .values(
                bonus_2025=value,
                bonus_entered_by_id=supervisor_id,
                bonus_entered_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise AlreadySubmittedException(employee.employee_id)

        await self.db.commit()
        logger.info(f"Bonus {value} entered for employee {employee.employee_id} by {supervisor_id}")

        return await self.get_employee(employee.id)

    # ===========================================
    # SUBMISSION LOCK
    # ===========================================

    async def list_my_team(self, supervisor_id: uuid.UUID) -> List[Employee]:
        """Active employees reporting to the supervisor."""
        if supervisor_id is None:
            raise ValidationException("Supervisor ID is required", field="supervisor_id")
        result = await self.db.execute(
            self._employees_query()
            .where(
                Employee.supervisor_id == supervisor_id,
                Employee.is_active.is_(True),
                Employee.id != supervisor_id,
            )
            .order_by(Employee.employee_id)
        )
        return list(result.scalars().all())

    async def submit_for_approval(self, supervisor_id: uuid.UUID) -> SubmissionResult:
        """
        Lock every entered, unsubmitted bonus of the supervisor's team and
        open a pending level row for each level that has an approver.
        """
        team = await self.list_my_team(supervisor_id)
        if not team:
            raise EmployeeNotFoundException(message="No employees found under your supervision")

        to_submit = [
            employee for employee in team
            if not employee.submitted_for_approval and is_bonus_entered(employee)
        ]
        if not to_submit:
            raise ValidationException(
                "No bonuses available to submit. Please ensure bonuses are entered and not already submitted.",
                code=ErrorCode.NOTHING_TO_SUBMIT,
            )

        # Copy what we need; commits below must not depend on loaded objects.
        pending = [
            (employee.id, employee.employee_id, employee.approver_ids)
            for employee in to_submit
        ]

        submitted: List[str] = []
        for employee_pk, business_id, approver_ids in pending:
            if await self._submit_one(employee_pk, supervisor_id, approver_ids):
                submitted.append(business_id)
            else:
                logger.warning(f"Employee {business_id} was submitted concurrently; skipping")

        logger.info(f"Supervisor {supervisor_id} submitted {len(submitted)} bonuses for approval")
        return SubmissionResult(count=len(submitted), employee_ids=submitted)

    async def _submit_one(
        self,
        employee_pk: uuid.UUID,
        supervisor_id: uuid.UUID,
        approver_ids: tuple,
    ) -> bool:
        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            update(Employee)
            .where(
                Employee.id == employee_pk,
                Employee.submitted_for_approval.is_(False),
            )
            .values(
                submitted_for_approval=True,
                submitted_at=now,
                bonus_entered_by_id=func.coalesce(Employee.bonus_entered_by_id, literal(supervisor_id, Uuid(as_uuid=True))),
                bonus_entered_at=func.coalesce(Employee.bonus_entered_at, now),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            return False

        await self.db.execute(
            delete(ApprovalLevel)
            .where(ApprovalLevel.employee_id == employee_pk)
            .execution_options(synchronize_session=False)
        )
        for level, approver_id in zip(APPROVAL_LEVELS, approver_ids):
            if approver_id is None:
                continue
            self.db.add(ApprovalLevel(
                employee_id=employee_pk,
                level=level,
                status=LevelStatus.PENDING,
            ))

        await self.db.commit()
        return True

    # ===========================================
    # APPROVAL QUEUE
    # ===========================================

    async def list_my_approvals(self, approver_id: uuid.UUID) -> ApprovalQueue:
        """
        Submitted employees assigned to the approver, grouped by level.

        An entry is actionable when the employee's next pending level is the
        one this approver holds.
        """
        if approver_id is None:
            raise ValidationException("Approver ID is required", field="approver_id")

        result = await self.db.execute(
            self._employees_query()
            .where(
                Employee.is_active.is_(True),
                Employee.submitted_for_approval.is_(True),
                Employee.id != approver_id,
                approver_filter(approver_id),
            )
            .order_by(Employee.employee_id)
        )

        queue = ApprovalQueue()
        for employee in result.scalars().all():
            pending = next_pending_level(employee)
            for level in APPROVAL_LEVELS:
                if employee.approver_id_for(level) != approver_id:
                    continue
                actionable = (
                    pending is not None
                    and pending.level == level
                    and pending.approver_id == approver_id
                )
                queue.levels[level].append(QueueEntry(employee=employee, actionable=actionable))
        return queue

    # ===========================================
    # EXPORT READINESS
    # ===========================================

    async def check_all_approvals_completed(self) -> ApprovalReadiness:
        """
        Report every employee with an entered bonus whose approvals are not
        complete, with the first level still outstanding.
        """
        result = await self.db.execute(
            self._employees_query()
            .where(
                Employee.is_active.is_(True),
                or_(
                    Employee.bonus_entered_by_id.is_not(None),
                    Employee.bonus_2025 > 0,
                ),
            )
            .order_by(Employee.employee_id)
        )
        employees = list(result.scalars().all())

        pending_employees: List[Dict[str, Any]] = []
        for employee in employees:
            if is_fully_approved(employee):
                continue

            level = first_unapproved_level(employee)

            if not employee.submitted_for_approval:
                current_status = "not submitted"
            else:
                record = employee.level_record(level)
                current_status = record.status.value if record else "not started"

            pending_employees.append({
                "employee_id": employee.employee_id,
                "name": employee.full_name,
                "pending_level": level,
                "current_status": current_status,
            })

        return ApprovalReadiness(
            total_employees_with_bonuses=len(employees),
            pending_employees=pending_employees,
        )


def get_bonus_workflow_service(db: AsyncSession) -> BonusWorkflowService:
    """Factory used by the routers."""
    return BonusWorkflowService(db)
