"""
Bonus Approval Service - Bonus Approvals Router

API endpoints for the bonus workflow:
- Supervisor bonus entry and submission
- Approver queue, single decisions and bulk approval
- HR export readiness check
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_employee, require_hr_or_admin
from app.models.employee import Employee
from app.schemas.bonus_approval import (
    ApprovalDecisionRequest,
    ApprovalQueueEntry,
    ApprovalReadinessResponse,
    BonusEntryRequest,
    BulkApprovalResponse,
    BulkApproveRequest,
    EmployeeResponse,
    MyApprovalsResponse,
    SubmissionResponse,
)
from app.services.approval_transition import get_approval_transition_service
from app.services.bonus_service import get_bonus_workflow_service
from app.services.bulk_approval import get_bulk_approval_service

router = APIRouter(prefix="/employees", tags=["Bonus Approvals"])


# ===========================================
# SUPERVISOR ENDPOINTS
# ===========================================

@router.put(
    "/{employee_id}/bonus",
    response_model=EmployeeResponse,
    summary="Enter bonus for a direct report",
)
async def enter_bonus(
    employee_id: uuid.UUID,
    request: BonusEntryRequest,
    db: AsyncSession = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    """Set the bonus of one of the caller's reports before submission."""
    service = get_bonus_workflow_service(db)
    employee = await service.enter_bonus(
        employee_id=employee_id,
        supervisor_id=current_employee.id,
        amount=request.bonus_2025,
    )
    return EmployeeResponse.from_employee(employee)


@router.get(
    "/supervisor/my-team",
    response_model=List[EmployeeResponse],
    summary="List the caller's reports",
)
async def list_my_team(
    db: AsyncSession = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    service = get_bonus_workflow_service(db)
    team = await service.list_my_team(current_employee.id)
    return [EmployeeResponse.from_employee(e) for e in team]


@router.post(
    "/supervisor/submit-for-approval",
    response_model=SubmissionResponse,
    summary="Submit the team's bonuses for approval",
)
async def submit_for_approval(
    db: AsyncSession = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    """
    Lock every entered bonus of the caller's reports. Submitted bonuses can
    no longer be edited.
    """
    service = get_bonus_workflow_service(db)
    result = await service.submit_for_approval(current_employee.id)
    return SubmissionResponse(
        count=result.count,
        employee_ids=result.employee_ids,
        message=result.message,
    )


# ===========================================
# APPROVER ENDPOINTS
# ===========================================

@router.get(
    "/approvals/my-approvals",
    response_model=MyApprovalsResponse,
    summary="List employees awaiting the caller's approval",
)
async def list_my_approvals(
    db: AsyncSession = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    service = get_bonus_workflow_service(db)
    queue = await service.list_my_approvals(current_employee.id)

    approvals = {
        f"level{level}": [
            ApprovalQueueEntry(
                level=level,
                actionable=entry.actionable,
                employee=EmployeeResponse.from_employee(entry.employee),
            )
            for entry in entries
        ]
        for level, entries in queue.levels.items()
    }
    counts = {f"level{level}": count for level, count in queue.counts.items()}

    return MyApprovalsResponse(
        approvals=approvals,
        counts=counts,
        total=sum(counts.values()),
    )


@router.post(
    "/{employee_id}/bonus-approval",
    response_model=EmployeeResponse,
    summary="Approve or reject one approval level",
)
async def process_bonus_approval(
    employee_id: uuid.UUID,
    request: ApprovalDecisionRequest,
    db: AsyncSession = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    """
    Apply an approve/reject decision at the given level. Levels are decided
    strictly in order and each level can be decided only once.
    """
    service = get_approval_transition_service(db)
    employee = await service.decide(
        employee_id=employee_id,
        level=request.level,
        approver_id=current_employee.id,
        action=request.action,
        comments=request.comments,
    )
    return EmployeeResponse.from_employee(employee)


@router.post(
    "/approvals/bulk-approve",
    response_model=BulkApprovalResponse,
    summary="Approve every employee awaiting the caller",
)
async def bulk_approve(
    request: Optional[BulkApproveRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    service = get_bulk_approval_service(db)
    result = await service.bulk_approve(
        approver_id=current_employee.id,
        comments=request.comments if request else None,
    )
    return BulkApprovalResponse(**result.to_dict())


# ===========================================
# HR ENDPOINTS
# ===========================================

@router.get(
    "/approvals/status",
    response_model=ApprovalReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Check whether every bonus is fully approved",
)
async def check_all_approvals_completed(
    db: AsyncSession = Depends(get_db),
    current_employee: Employee = Depends(require_hr_or_admin()),
):
    service = get_bonus_workflow_service(db)
    readiness = await service.check_all_approvals_completed()
    return ApprovalReadinessResponse(
        all_approvals_completed=readiness.all_approvals_completed,
        total_employees_with_bonuses=readiness.total_employees_with_bonuses,
        pending_approvals=len(readiness.pending_employees),
        pending_employees=readiness.pending_employees,
        message=readiness.message,
        checked_at=datetime.now(timezone.utc),
    )
