"""
Bonus Approval Service - Bonus Approval Schemas

Pydantic schemas for bonus entry, submission and approval requests and
responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.employee import APPROVAL_LEVELS, Employee
from app.services.approval_status import approval_status_for


# ===========================================
# REQUESTS
# ===========================================

class BonusEntryRequest(BaseModel):
    """Bonus amount entered by the supervisor."""
    bonus_2025: Decimal = Field(..., description="Bonus amount under approval")


class ApprovalDecisionRequest(BaseModel):
    """Approve or reject one level of an employee's bonus."""
    level: int = Field(..., description="Approval level (1-5)")
    action: str = Field(..., description="approve or reject")
    comments: Optional[str] = Field(None, max_length=2000)


class BulkApproveRequest(BaseModel):
    """Comments shared by every approval of a bulk run."""
    comments: Optional[str] = Field(None, max_length=2000)


# ===========================================
# EMPLOYEE RESPONSES
# ===========================================

class LevelStateResponse(BaseModel):
    status: str
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None
    comments: Optional[str] = None


class ApprovalStatusResponse(BaseModel):
    """Normalized approval record with all five levels."""
    entered_by: Optional[str] = None
    entered_at: Optional[str] = None
    submitted_for_approval: bool = False
    submitted_at: Optional[str] = None
    level1: LevelStateResponse
    level2: LevelStateResponse
    level3: LevelStateResponse
    level4: LevelStateResponse
    level5: LevelStateResponse


class EmployeeResponse(BaseModel):
    """Employee with bonus fields and approval status."""
    id: UUID
    employee_id: str
    first_name: str
    last_name: str
    full_name: str
    email: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    role: str
    bonus_2024: Decimal
    bonus_2025: Decimal
    supervisor_id: Optional[UUID] = None
    supervisor_name: Optional[str] = None
    level1_approver_id: Optional[UUID] = None
    level1_approver_name: Optional[str] = None
    level2_approver_id: Optional[UUID] = None
    level2_approver_name: Optional[str] = None
    level3_approver_id: Optional[UUID] = None
    level3_approver_name: Optional[str] = None
    level4_approver_id: Optional[UUID] = None
    level4_approver_name: Optional[str] = None
    level5_approver_id: Optional[UUID] = None
    level5_approver_name: Optional[str] = None
    is_active: bool
    approval_status: ApprovalStatusResponse

    @classmethod
    def from_employee(cls, employee: Employee) -> "EmployeeResponse":
        data: Dict[str, Any] = {
            "id": employee.id,
            "employee_id": employee.employee_id,
            "first_name": employee.first_name,
            "last_name": employee.last_name,
            "full_name": employee.full_name,
            "email": employee.email,
            "position": employee.position,
            "department": employee.department,
            "role": employee.role.value,
            "bonus_2024": employee.bonus_2024 or Decimal("0.00"),
            "bonus_2025": employee.bonus_2025 or Decimal("0.00"),
            "supervisor_id": employee.supervisor_id,
            "supervisor_name": employee.supervisor_name,
            "is_active": employee.is_active,
            "approval_status": approval_status_for(employee).to_dict(),
        }
        for level in APPROVAL_LEVELS:
            data[f"level{level}_approver_id"] = employee.approver_id_for(level)
            data[f"level{level}_approver_name"] = getattr(employee, f"level{level}_approver_name")
        return cls(**data)


class ApprovalQueueEntry(BaseModel):
    """One employee in an approver's queue."""
    level: int
    actionable: bool
    employee: EmployeeResponse


class MyApprovalsResponse(BaseModel):
    """Approver queue grouped by level (keys level1..level5)."""
    approvals: Dict[str, List[ApprovalQueueEntry]]
    counts: Dict[str, int]
    total: int


# ===========================================
# WORKFLOW RESPONSES
# ===========================================

class SubmissionResponse(BaseModel):
    count: int
    employee_ids: List[str]
    message: str


class BulkApprovedEntry(BaseModel):
    employee_id: str
    level: int


class BulkSkippedEntry(BaseModel):
    employee_id: str
    reason: str
    code: str


class BulkApprovalResponse(BaseModel):
    approved_count: int
    approved: List[BulkApprovedEntry]
    skipped: List[BulkSkippedEntry]
    message: str


class PendingEmployee(BaseModel):
    employee_id: str
    name: str
    pending_level: Optional[int] = None
    current_status: str


class ApprovalReadinessResponse(BaseModel):
    """Export readiness report for HR."""
    all_approvals_completed: bool
    total_employees_with_bonuses: int
    pending_approvals: int
    pending_employees: List[PendingEmployee]
    message: str
    checked_at: datetime


# ===========================================
# APPROVER SYNC RESPONSES
# ===========================================

class SyncErrorEntry(BaseModel):
    employee_id: str
    employee_name: str
    level: str
    approver_name: str
    reason: str
    candidates: List[str] = Field(default_factory=list)


class SyncResponse(BaseModel):
    updated: int
    total: int
    errors: List[SyncErrorEntry]
    message: str


class SetApproverRolesResponse(BaseModel):
    updated: int
    total_approvers: int
    message: str
