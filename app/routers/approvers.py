"""
Bonus Approval Service - Approvers Router

Admin utilities resolving imported approver names to employee ids.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_admin
from app.models.employee import Employee
from app.schemas.bonus_approval import SetApproverRolesResponse, SyncResponse
from app.services.approver_sync_service import get_approver_sync_service

router = APIRouter(prefix="/employees/approvers", tags=["Approver Sync"])


@router.post(
    "/sync",
    response_model=SyncResponse,
    summary="Resolve approver names to employee ids",
)
async def sync_approver_ids(
    db: AsyncSession = Depends(get_db),
    current_employee: Employee = Depends(require_admin()),
):
    """Fill missing or changed approver links from the imported names."""
    service = get_approver_sync_service(db)
    result = await service.sync_approver_ids()
    return SyncResponse(**result.to_dict())


@router.post(
    "/reset-and-sync",
    response_model=SyncResponse,
    summary="Clear all approver links and resolve them again",
)
async def reset_and_sync_approvers(
    db: AsyncSession = Depends(get_db),
    current_employee: Employee = Depends(require_admin()),
):
    service = get_approver_sync_service(db)
    result = await service.reset_and_sync_approvers()
    return SyncResponse(**result.to_dict())


@router.post(
    "/set-roles",
    response_model=SetApproverRolesResponse,
    summary="Grant the approver role to every referenced approver",
)
async def set_approver_roles(
    db: AsyncSession = Depends(get_db),
    current_employee: Employee = Depends(require_admin()),
):
    service = get_approver_sync_service(db)
    result = await service.set_approver_roles()
    return SetApproverRolesResponse(**result)
