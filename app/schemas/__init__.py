"""
Bonus Approval Service - Schemas Package

Pydantic schemas for request/response validation.
"""

from app.schemas.bonus_approval import (
    ApprovalDecisionRequest,
    ApprovalQueueEntry,
    ApprovalReadinessResponse,
    ApprovalStatusResponse,
    BonusEntryRequest,
    BulkApprovalResponse,
    BulkApproveRequest,
    EmployeeResponse,
    MyApprovalsResponse,
    PendingEmployee,
    SetApproverRolesResponse,
    SubmissionResponse,
    SyncResponse,
)

__all__ = [
    "ApprovalDecisionRequest",
    "ApprovalQueueEntry",
    "ApprovalReadinessResponse",
    "ApprovalStatusResponse",
    "BonusEntryRequest",
    "BulkApprovalResponse",
    "BulkApproveRequest",
    "EmployeeResponse",
    "MyApprovalsResponse",
    "PendingEmployee",
    "SetApproverRolesResponse",
    "SubmissionResponse",
    "SyncResponse",
]
