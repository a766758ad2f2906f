"""
Bonus Approval Service - FastAPI Dependencies

Shared dependencies for authentication and role checks.

This module provides dependency injection for:
1. Database sessions
2. Current employee authentication
3. Role-based access control for HR/admin operations
"""

import uuid
from typing import List, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.models.employee import Employee, EmployeeRole
from app.utils.error_handling import (
    AuthenticationException,
    AuthorizationException,
    ErrorCode,
    InsufficientPermissionsException,
)
from app.utils.security import verify_access_token


# HTTP Bearer token security
security = HTTPBearer(auto_error=False)


async def get_current_employee(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_session),
) -> Employee:
    """
    Get the calling employee from the JWT token.

    Token can be provided via:
    1. Authorization: Bearer <token> header
    2. access_token cookie

    Raises:
        AuthenticationException: If token is invalid or the employee is unknown
        AuthorizationException: If the employee is deactivated
    """
    token = None

    # Try Bearer header first
    if credentials:
        token = credentials.credentials
    else:
        # Fallback to cookie
        token = request.cookies.get("access_token")
        if token and token.startswith("Bearer "):
            token = token[7:]

    if not token:
        raise AuthenticationException("Not authenticated")

    payload = verify_access_token(token)
    if not payload:
        raise AuthenticationException("Invalid or expired token", code=ErrorCode.TOKEN_INVALID)

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationException("Invalid token payload", code=ErrorCode.TOKEN_INVALID)

    try:
        employee_uuid = uuid.UUID(subject)
    except ValueError:
        raise AuthenticationException("Invalid employee ID in token", code=ErrorCode.TOKEN_INVALID)

    result = await db.execute(select(Employee).where(Employee.id == employee_uuid))
    employee = result.scalar_one_or_none()

    if not employee:
        raise AuthenticationException("Employee not found")

    if not employee.is_active:
        raise AuthorizationException("Employee account is deactivated")

    return employee


def require_role(allowed_roles: List[EmployeeRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/hr-only")
        async def hr_endpoint(employee: Employee = Depends(require_role([EmployeeRole.HR]))):
            ...
    """
    async def role_checker(
        current_employee: Employee = Depends(get_current_employee),
    ) -> Employee:
        if current_employee.role not in allowed_roles:
            raise InsufficientPermissionsException(
                required_roles=[r.value for r in allowed_roles],
                user_role=current_employee.role.value,
            )
        return current_employee

    return role_checker


def require_admin():
    """Require the caller to be a portal administrator."""
    return require_role([EmployeeRole.ADMIN])


def require_hr_or_admin():
    """Require the caller to be HR or an administrator."""
    return require_role([EmployeeRole.HR, EmployeeRole.ADMIN])
