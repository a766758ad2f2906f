"""
Bonus Approval Service - Employee Model

Employees, their supervisor/approver chain and the per-level approval rows.
Supports:
- Bonus entry by the supervisor
- One-time submission lock
- Up to five sequential approval levels
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from sqlalchemy import (
    Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid,
    UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel


MAX_APPROVAL_LEVEL = 5
APPROVAL_LEVELS = tuple(range(1, MAX_APPROVAL_LEVEL + 1))


class EmployeeRole(str, Enum):
    """Closed set of roles an employee can hold in the bonus portal."""
    EMPLOYEE = "employee"
    HR = "hr"
    APPROVER = "approver"
    ADMIN = "admin"


class LevelStatus(str, Enum):
    """Status of a single approval level."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalAction(str, Enum):
    """Decision an approver can take on a level."""
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def resulting_status(self) -> LevelStatus:
        return LevelStatus.APPROVED if self is ApprovalAction.APPROVE else LevelStatus.REJECTED


def _approver_fk() -> Mapped[Optional[uuid.UUID]]:
    return mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )


# ===========================================
# EMPLOYEE
# ===========================================

class Employee(BaseModel):
    """
    Employee record. Aggregate root for the bonus approval workflow.
    """

    __tablename__ = "employees"

    employee_id: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True,
        comment="Business employee number",
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    position: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    role: Mapped[EmployeeRole] = mapped_column(
        SQLEnum(EmployeeRole),
        default=EmployeeRole.EMPLOYEE,
        nullable=False,
    )

    # Bonuses
    bonus_2024: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )
    bonus_2025: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )

    # Supervisor and approver chain
    supervisor_id: Mapped[Optional[uuid.UUID]] = _approver_fk()
    supervisor_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    level1_approver_id: Mapped[Optional[uuid.UUID]] = _approver_fk()
    level1_approver_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    level2_approver_id: Mapped[Optional[uuid.UUID]] = _approver_fk()
    level2_approver_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    level3_approver_id: Mapped[Optional[uuid.UUID]] = _approver_fk()
    level3_approver_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    level4_approver_id: Mapped[Optional[uuid.UUID]] = _approver_fk()
    level4_approver_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    level5_approver_id: Mapped[Optional[uuid.UUID]] = _approver_fk()
    level5_approver_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Bonus entry and submission lock
    bonus_entered_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), nullable=True,
    )
    bonus_entered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    submitted_for_approval: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True,
    )
    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    # Relationships
    approval_levels: Mapped[List["ApprovalLevel"]] = relationship(
        "ApprovalLevel",
        back_populates="employee",
        foreign_keys="ApprovalLevel.employee_id",
        cascade="all, delete-orphan",
        order_by="ApprovalLevel.level",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def approver_id_for(self, level: int) -> Optional[uuid.UUID]:
        """Approver assigned at the given level, or None when the level is skipped."""
        return getattr(self, f"level{level}_approver_id")

    @property
    def approver_ids(self) -> Tuple[Optional[uuid.UUID], ...]:
        return tuple(self.approver_id_for(level) for level in APPROVAL_LEVELS)

    def level_record(self, level: int) -> Optional["ApprovalLevel"]:
        for record in self.approval_levels:
            if record.level == level:
                return record
        return None

    def __repr__(self) -> str:
        return f"<Employee(employee_id={self.employee_id}, name={self.full_name})>"


# ===========================================
# APPROVAL LEVEL
# ===========================================

class ApprovalLevel(BaseModel):
    """
    Outcome of one approval level for one employee.

    One row per (employee, level). Rows only exist for levels that were
    populated when the bonus was submitted.
    """

    __tablename__ = "employee_approval_levels"
    __table_args__ = (
        UniqueConstraint("employee_id", "level"),
    )

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[LevelStatus] = mapped_column(
        SQLEnum(LevelStatus),
        default=LevelStatus.PENDING,
        nullable=False,
        index=True,
    )
    approved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    employee: Mapped["Employee"] = relationship(
        "Employee",
        back_populates="approval_levels",
        foreign_keys=[employee_id],
    )

    def __repr__(self) -> str:
        return f"<ApprovalLevel(employee_id={self.employee_id}, level={self.level}, status={self.status.value})>"
