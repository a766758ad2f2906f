"""
Bonus Approval Service - Eligibility

Pure decision functions answering whether a level of an employee's bonus
may be approved or rejected right now.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.models.employee import Employee, LevelStatus
from app.services.approval_status import approval_status_for, is_bonus_entered


class IneligibleReason(str, Enum):
    BONUS_MISSING = "bonus missing"
    ALREADY_PROCESSED = "already processed"
    PREVIOUS_LEVEL_PENDING = "previous level pending"


@dataclass(frozen=True)
class Eligibility:
    allowed: bool
    reason: Optional[IneligibleReason] = None
    blocking_level: Optional[int] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = Eligibility(allowed=True)


def can_act(employee: Employee, level: int) -> Eligibility:
    """
    Decide whether ``level`` may be acted upon.

    Lower levels without an approver never block. The level's own approver
    and the submission lock are checked by the transition engine.
    """
    if not is_bonus_entered(employee):
        return Eligibility(allowed=False, reason=IneligibleReason.BONUS_MISSING)

    status = approval_status_for(employee)
    if status.level(level).is_resolved:
        return Eligibility(allowed=False, reason=IneligibleReason.ALREADY_PROCESSED)

    for lower in range(1, level):
        if employee.approver_id_for(lower) is None:
            continue
        if status.level(lower).status != LevelStatus.APPROVED:
            return Eligibility(
                allowed=False,
                reason=IneligibleReason.PREVIOUS_LEVEL_PENDING,
                blocking_level=lower,
            )

    return ALLOWED
