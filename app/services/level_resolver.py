"""
Bonus Approval Service - Level Resolver

Finds the level an employee's bonus is currently waiting on.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from app.models.employee import APPROVAL_LEVELS, Employee, LevelStatus
from app.services.approval_status import approval_status_for


@dataclass(frozen=True)
class PendingLevel:
    level: int
    approver_id: uuid.UUID


def next_pending_level(employee: Employee) -> Optional[PendingLevel]:
    """
    Return the first populated level still pending, with its approver.

    None when the bonus is not submitted, when every populated level is
    approved, or when a rejection ended the cycle.
    """
    status = approval_status_for(employee)
    if not status.submitted_for_approval:
        return None

    for level in APPROVAL_LEVELS:
        approver_id = employee.approver_id_for(level)
        if approver_id is None:
            continue
        level_status = status.level(level).status
        if level_status == LevelStatus.PENDING:
            return PendingLevel(level=level, approver_id=approver_id)
        if level_status == LevelStatus.REJECTED:
            return None
    return None


def first_unapproved_level(employee: Employee) -> Optional[int]:
    """First populated level whose status is not approved (pending or rejected)."""
    status = approval_status_for(employee)
    for level in APPROVAL_LEVELS:
        if employee.approver_id_for(level) is None:
            continue
        if status.level(level).status != LevelStatus.APPROVED:
            return level
    return None


def is_rejected(employee: Employee) -> bool:
    status = approval_status_for(employee)
    return any(
        employee.approver_id_for(level) is not None
        and status.level(level).status == LevelStatus.REJECTED
        for level in APPROVAL_LEVELS
    )


def is_fully_approved(employee: Employee) -> bool:
    """Submitted, and every populated level approved."""
    return bool(employee.submitted_for_approval) and first_unapproved_level(employee) is None
