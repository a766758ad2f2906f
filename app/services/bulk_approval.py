"""
Bonus Approval Service - Bulk Approval

Approves every employee currently waiting on one approver. Employees are
processed one at a time, each with its own read-modify-write and commit, so
one ineligible employee never blocks the rest. Every employee that is not
approved ends up in the skip list with a reason.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.employee import APPROVAL_LEVELS, ApprovalAction, Employee
from app.services.approval_status import is_bonus_entered
from app.services.approval_transition import ApprovalTransitionService
from app.services.level_resolver import is_rejected, next_pending_level
from app.utils.error_handling import AppException, ValidationException

logger = logging.getLogger(__name__)


@dataclass
class BulkSkip:
    employee_id: str
    reason: str
    code: str

    def to_dict(self) -> Dict[str, Any]:
        return {"employee_id": self.employee_id, "reason": self.reason, "code": self.code}


@dataclass
class BulkApprovalResult:
    approved: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[BulkSkip] = field(default_factory=list)

    @property
    def approved_count(self) -> int:
        return len(self.approved)

    @property
    def message(self) -> str:
        if not self.approved and not self.skipped:
            return "No employees found awaiting your approval"
        return f"Successfully approved bonuses for {self.approved_count} employees"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "approved_count": self.approved_count,
            "approved": self.approved,
            "skipped": [skip.to_dict() for skip in self.skipped],
            "message": self.message,
        }


@dataclass(frozen=True)
class _Candidate:
    id: uuid.UUID
    employee_id: str
    level: int


def approver_filter(approver_id: uuid.UUID):
    """SQL criterion: approver assigned at any of the five levels."""
    return or_(*[
        getattr(Employee, f"level{level}_approver_id") == approver_id
        for level in APPROVAL_LEVELS
    ])


class BulkApprovalService:
    """Approve-all for one approver's queue."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.transitions = ApprovalTransitionService(db)

    async def bulk_approve(
        self,
        approver_id: uuid.UUID,
        comments: Optional[str] = None,
    ) -> BulkApprovalResult:
        """
        Approve every submitted employee whose next pending level belongs to
        ``approver_id``, all with the same comments.

        Never raises for an individual employee; per-employee failures are
        reported as skips.
        """
        if approver_id is None:
            raise ValidationException("Approver ID is required", field="approver_id")

        result = BulkApprovalResult()
        candidates = await self._scan(approver_id, result)

        for candidate in candidates:
            try:
                await self.transitions.decide(
                    candidate.id,
                    candidate.level,
                    approver_id,
                    ApprovalAction.APPROVE,
                    comments,
                )
            except AppException as exc:
                await self.db.rollback()
                logger.warning(
                    f"Bulk approval skipped employee {candidate.employee_id}: {exc.message}"
                )
                result.skipped.append(BulkSkip(
                    employee_id=candidate.employee_id,
                    reason=exc.message,
                    code=exc.code.value,
                ))
                continue

            result.approved.append({"employee_id": candidate.employee_id, "level": candidate.level})

        logger.info(
            f"Bulk approval by {approver_id}: {result.approved_count} approved, "
            f"{len(result.skipped)} skipped"
        )
        return result

    async def _scan(self, approver_id: uuid.UUID, result: BulkApprovalResult) -> List[_Candidate]:
        """Split the approver's submitted employees into candidates and skips."""
        query = (
            select(Employee)
            .options(selectinload(Employee.approval_levels))
            .where(
                Employee.is_active.is_(True),
                Employee.submitted_for_approval.is_(True),
                approver_filter(approver_id),
            )
            .order_by(Employee.employee_id)
            .execution_options(populate_existing=True)
        )
        rows = await self.db.execute(query)

        candidates: List[_Candidate] = []
        for employee in rows.scalars().all():
            pending = next_pending_level(employee)
            if pending is None or pending.approver_id != approver_id:
                result.skipped.append(BulkSkip(
                    employee_id=employee.employee_id,
                    reason=self._not_your_turn_reason(employee, pending),
                    code="NOT_YOUR_TURN",
                ))
                continue

            if not is_bonus_entered(employee):
                result.skipped.append(BulkSkip(
                    employee_id=employee.employee_id,
                    reason="No bonus has been entered for this employee",
                    code="BONUS_MISSING",
                ))
                continue

            candidates.append(_Candidate(employee.id, employee.employee_id, pending.level))

        return candidates

    @staticmethod
    def _not_your_turn_reason(employee: Employee, pending) -> str:
        if pending is not None:
            return f"Not your turn: awaiting level {pending.level} approval"
        if is_rejected(employee):
            return "Not your turn: bonus was rejected"
        return "Not your turn: all approval levels are complete"


def get_bulk_approval_service(db: AsyncSession) -> BulkApprovalService:
    """Factory used by the routers."""
    return BulkApprovalService(db)
