"""
Bonus Approval Service - Routers Package

FastAPI route handlers.

Routers:
- bonus_approvals: Bonus entry, submission, approval queue and decisions
- approvers: Admin utilities for approver assignment sync
"""

from app.routers import (
    bonus_approvals,
    approvers,
)

__all__ = [
    "bonus_approvals",
    "approvers",
]
