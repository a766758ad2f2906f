"""
Bonus Approval Service - Approval Transition Engine

Validates and applies a single approve/reject decision on one level of an
employee's bonus. This is the only code path that moves a level out of
``pending``.

Writes are conditional on the level still being pending, so two approvers
racing on the same level cannot both succeed: the loser gets
AlreadyProcessedException.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple, Union
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.employee import (
    ApprovalAction,
    ApprovalLevel,
    Employee,
    LevelStatus,
    MAX_APPROVAL_LEVEL,
)
from app.services.approval_status import approval_status_for, is_bonus_entered
from app.services.eligibility import IneligibleReason, can_act
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

logger = logging.getLogger(__name__)


def validate_decision_input(
    level: object,
    action: Union[ApprovalAction, str, None],
    approver_id: Optional[uuid.UUID],
) -> Tuple[int, ApprovalAction]:
    """Check the raw inputs of a decision before touching any employee."""
    if approver_id is None:
        raise ValidationException("Approver ID is required", field="approver_id")

    if isinstance(level, bool) or not isinstance(level, int) or not 1 <= level <= MAX_APPROVAL_LEVEL:
        raise InvalidLevelException(level, MAX_APPROVAL_LEVEL)

    if action is None:
        raise ValidationException(
            "Action must be either approve or reject", field="action", code=ErrorCode.INVALID_ACTION,
        )
    try:
        parsed_action = ApprovalAction(action)
    except ValueError:
        raise ValidationException(
            "Action must be either approve or reject",
            field="action",
            code=ErrorCode.INVALID_ACTION,
            details={"provided_action": str(action)},
        )

    return level, parsed_action


class ApprovalTransitionService:
    """Single-employee approve/reject transitions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_employee(
        self,
        employee_id: uuid.UUID,
        for_update: bool = False,
    ) -> Employee:
        """
        Load an active employee with its level rows, or raise NotFound.

        Always refreshes objects already in the session; level rows are
        written with bulk UPDATEs that bypass the identity map.
        """
        query = (
            select(Employee)
            .options(selectinload(Employee.approval_levels))
            .where(Employee.id == employee_id, Employee.is_active.is_(True))
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        employee = result.scalar_one_or_none()
        if not employee:
            raise EmployeeNotFoundException(employee_id)
        return employee

    async def decide(
        self,
        employee_id: uuid.UUID,
        level: int,
        approver_id: uuid.UUID,
        action: Union[ApprovalAction, str],
        comments: Optional[str] = None,
    ) -> Employee:
        """Load the employee and apply one decision."""
        validate_decision_input(level, action, approver_id)
        employee = await self.get_active_employee(employee_id, for_update=True)
        return await self.apply_decision(employee, level, approver_id, action, comments)

    async def apply_decision(
        self,
        employee: Employee,
        level: int,
        approver_id: uuid.UUID,
        action: Union[ApprovalAction, str],
        comments: Optional[str] = None,
    ) -> Employee:
        """
        Apply an approve/reject decision at ``level``.

        Preconditions are checked in order and the first failure is raised:
        submission lock, bonus entered, caller is the level's approver,
        level still pending, every lower populated level approved.

        Returns:
            The employee reloaded with its updated level rows.
        """
        level, action = validate_decision_input(level, action, approver_id)
        status = approval_status_for(employee)

        if not status.submitted_for_approval:
            raise NotSubmittedException(employee.employee_id)

        if not is_bonus_entered(employee):
            raise BonusMissingException(employee.employee_id)

        if employee.approver_id_for(level) != approver_id:
            raise AuthorizationException(
                message="You are not authorized to approve bonus for this employee at this level",
                details={"employee_id": employee.employee_id, "level": level},
            )

        current = status.level(level)
        if current.is_resolved:
            raise AlreadyProcessedException(level, current.status.value)

        eligibility = can_act(employee, level)
        if not eligibility.allowed:
            if eligibility.reason == IneligibleReason.PREVIOUS_LEVEL_PENDING:
                raise PreviousLevelPendingException(level, eligibility.blocking_level)
            if eligibility.reason == IneligibleReason.BONUS_MISSING:
                raise BonusMissingException(employee.employee_id)
            raise AlreadyProcessedException(level, current.status.value)

        await self._write_decision(employee, level, approver_id, action, comments)
        await self.db.commit()

        logger.info(
            f"Level {level} {action.resulting_status.value} for employee "
            f"{employee.employee_id} by approver {approver_id}"
        )

        return await self.get_active_employee(employee.id)

    async def _write_decision(
        self,
        employee: Employee,
        level: int,
        approver_id: uuid.UUID,
        action: ApprovalAction,
        comments: Optional[str],
    ) -> None:
        """Compare-and-swap the level row from pending to the decided status."""
        now = datetime.now(timezone.utc)
        record = employee.level_record(level)

        if record is None:
            # Level gained an approver after submission; create its row.
            self.db.add(ApprovalLevel(
                employee_id=employee.id,
                level=level,
                status=action.resulting_status,
                approved_by_id=approver_id,
                approved_at=now,
                comments=comments or None,
            ))
            try:
                await self.db.flush()
            except IntegrityError:
                await self.db.rollback()
                raise AlreadyProcessedException(level, await self._current_status_label(employee.id, level))
            return

        values = {
            "status": action.resulting_status,
            "approved_by_id": approver_id,
            "approved_at": now,
        }
        if comments:
            values["comments"] = comments

        result = await self.db.execute(
            update(ApprovalLevel)
            .where(
                ApprovalLevel.id == record.id,
                ApprovalLevel.status == LevelStatus.PENDING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                f"Concurrent decision detected on level {level} for employee {employee.employee_id}"
            )
            raise AlreadyProcessedException(level, await self._current_status_label(employee.id, level))

    async def _current_status_label(self, employee_id: uuid.UUID, level: int) -> str:
        result = await self.db.execute(
            select(ApprovalLevel.status).where(
                ApprovalLevel.employee_id == employee_id,
                ApprovalLevel.level == level,
            )
        )
        current = result.scalar_one_or_none()
        return current.value if current else "processed"


def get_approval_transition_service(db: AsyncSession) -> ApprovalTransitionService:
    """Factory used by the routers."""
    return ApprovalTransitionService(db)
