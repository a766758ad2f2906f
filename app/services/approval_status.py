"""
Bonus Approval Service - Approval Status

Read model of an employee's approval record. Normalizes whatever is stored
(no level rows, some level rows, legacy data without entry metadata) into a
canonical structure with all five levels present.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from app.models.employee import APPROVAL_LEVELS, Employee, LevelStatus


@dataclass(frozen=True)
class LevelState:
    """State of one approval level."""
    status: LevelStatus = LevelStatus.PENDING
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    comments: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.status != LevelStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "approved_by": str(self.approved_by) if self.approved_by else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "comments": self.comments,
        }


@dataclass(frozen=True)
class ApprovalStatus:
    """Canonical per-employee approval record."""
    entered_by: Optional[uuid.UUID] = None
    entered_at: Optional[datetime] = None
    submitted_for_approval: bool = False
    submitted_at: Optional[datetime] = None
    levels: Dict[int, LevelState] = field(
        default_factory=lambda: {level: LevelState() for level in APPROVAL_LEVELS}
    )

    def level(self, level: int) -> LevelState:
        return self.levels.get(level, LevelState())

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "entered_by": str(self.entered_by) if self.entered_by else None,
            "entered_at": self.entered_at.isoformat() if self.entered_at else None,
            "submitted_for_approval": self.submitted_for_approval,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
        }
        for level in APPROVAL_LEVELS:
            data[f"level{level}"] = self.level(level).to_dict()
        return data


def approval_status_for(employee: Employee) -> ApprovalStatus:
    """Build the normalized approval record of an employee. Never raises."""
    levels = {level: LevelState() for level in APPROVAL_LEVELS}
    for record in employee.approval_levels or []:
        if record.level not in levels:
            continue
        levels[record.level] = LevelState(
            status=record.status or LevelStatus.PENDING,
            approved_by=record.approved_by_id,
            approved_at=record.approved_at,
            comments=record.comments,
        )

    return ApprovalStatus(
        entered_by=employee.bonus_entered_by_id,
        entered_at=employee.bonus_entered_at,
        submitted_for_approval=bool(employee.submitted_for_approval),
        submitted_at=employee.submitted_at,
        levels=levels,
    )


def is_bonus_entered(employee: Employee) -> bool:
    """
    A bonus counts as entered when the entry metadata is present or the
    amount is positive. Legacy rows carry an amount without metadata.
    """
    if employee.bonus_entered_by_id is not None:
        return True
    return Decimal(employee.bonus_2025 or 0) > 0
