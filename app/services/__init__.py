"""
Bonus Approval Service - Services Package

Business logic services.
"""

from app.services.approval_transition import ApprovalTransitionService, get_approval_transition_service
from app.services.bulk_approval import BulkApprovalService, get_bulk_approval_service
from app.services.bonus_service import BonusWorkflowService, get_bonus_workflow_service
from app.services.approver_sync_service import ApproverSyncService, get_approver_sync_service

__all__ = [
    "ApprovalTransitionService",
    "get_approval_transition_service",
    "BulkApprovalService",
    "get_bulk_approval_service",
    "BonusWorkflowService",
    "get_bonus_workflow_service",
    "ApproverSyncService",
    "get_approver_sync_service",
]
