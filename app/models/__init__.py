"""
Bonus Approval Service - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, TimestampMixin
from app.models.employee import (
    Employee,
    ApprovalLevel,
    EmployeeRole,
    LevelStatus,
    ApprovalAction,
    MAX_APPROVAL_LEVEL,
    APPROVAL_LEVELS,
)

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "Employee",
    "ApprovalLevel",
    "EmployeeRole",
    "LevelStatus",
    "ApprovalAction",
    "MAX_APPROVAL_LEVEL",
    "APPROVAL_LEVELS",
]
