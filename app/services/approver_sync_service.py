"""
Bonus Approval Service - Approver Assignment Sync

One-time import utility. Employee rows arrive from the HR spreadsheet with
supervisor and approver *names*; this service resolves those names to
employee ids so the workflow can run on ids only.

Resolution order for a name:
1. Exact business employee number
2. "First Last"
3. "Last, First"

A name that matches nobody is reported as not found. A name that matches
several employees is reported as ambiguous with its candidates and left
unresolved.
"""

import re
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.employee import APPROVAL_LEVELS, Employee, EmployeeRole

logger = logging.getLogger(__name__)


_WHITESPACE = re.compile(r"\s+")


def normalize_name(value: Optional[str]) -> str:
    """Lowercase and collapse whitespace; commas keep no surrounding spaces."""
    if not value:
        return ""
    value = _WHITESPACE.sub(" ", value.strip().lower())
    return value.replace(" ,", ",").replace(", ", ",")


@dataclass
class SyncError:
    employee_id: str
    employee_name: str
    level: str
    approver_name: str
    reason: str
    candidates: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "level": self.level,
            "approver_name": self.approver_name,
            "reason": self.reason,
        }
        if self.candidates:
            data["candidates"] = self.candidates
        return data


@dataclass
class SyncResult:
    updated: int
    total: int
    errors: List[SyncError] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Synced approver IDs for {self.updated} of {self.total} employees"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updated": self.updated,
            "total": self.total,
            "errors": [error.to_dict() for error in self.errors],
            "message": self.message,
        }


class NameIndex:
    """Lookup table from business ids and name variants to employees."""

    def __init__(self, employees: Iterable[Employee]):
        self._by_business_id: Dict[str, Employee] = {}
        self._by_name: Dict[str, Dict[uuid.UUID, Employee]] = defaultdict(dict)

        for employee in employees:
            self._by_business_id[normalize_name(employee.employee_id)] = employee
            first = (employee.first_name or "").strip()
            last = (employee.last_name or "").strip()
            for variant in (f"{first} {last}", f"{last}, {first}"):
                key = normalize_name(variant)
                if key:
                    self._by_name[key][employee.id] = employee

    def resolve(self, name: str) -> List[Employee]:
        """Return every employee the name could refer to."""
        key = normalize_name(name)
        if not key:
            return []
        if key in self._by_business_id:
            return [self._by_business_id[key]]
        return sorted(self._by_name.get(key, {}).values(), key=lambda e: e.employee_id)


class ApproverSyncService:
    """Service resolving imported approver names to employee ids."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load_employees(self) -> List[Employee]:
        result = await self.db.execute(
            select(Employee)
            .where(Employee.is_active.is_(True))
            .order_by(Employee.employee_id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def sync_approver_ids(self) -> SyncResult:
        """Fill supervisor and level approver ids from the imported names."""
        employees = await self._load_employees()
        index = NameIndex(employees)

        updated = 0
        errors: List[SyncError] = []

        for employee in employees:
            links = [("supervisor", "supervisor_id", employee.supervisor_name)]
            links.extend(
                (str(level), f"level{level}_approver_id", getattr(employee, f"level{level}_approver_name"))
                for level in APPROVAL_LEVELS
            )

            changes: Dict[str, uuid.UUID] = {}
            for label, attribute, name in links:
                if not name or not name.strip():
                    continue

                matches = index.resolve(name)
                if not matches:
                    errors.append(SyncError(
                        employee_id=employee.employee_id,
                        employee_name=employee.full_name,
                        level=label,
                        approver_name=name,
                        reason="Person not found in database",
                    ))
                    continue
                if len(matches) > 1:
                    errors.append(SyncError(
                        employee_id=employee.employee_id,
                        employee_name=employee.full_name,
                        level=label,
                        approver_name=name,
                        reason="Ambiguous name matches several employees",
                        candidates=[match.employee_id for match in matches],
                    ))
                    continue

                resolved_id = matches[0].id
                if getattr(employee, attribute) != resolved_id:
                    changes[attribute] = resolved_id

            if changes:
                for attribute, value in changes.items():
                    setattr(employee, attribute, value)
                updated += 1

        await self.db.commit()

        if errors:
            logger.warning(f"Approver sync left {len(errors)} names unresolved")
        logger.info(f"Approver sync updated {updated} of {len(employees)} employees")

        return SyncResult(updated=updated, total=len(employees), errors=errors)

    async def reset_and_sync_approvers(self) -> SyncResult:
        """Clear every supervisor and approver link, then sync from names."""
        cleared: Dict[str, Any] = {"supervisor_id": None}
        cleared.update({f"level{level}_approver_id": None for level in APPROVAL_LEVELS})

        await self.db.execute(
            update(Employee)
            .values(**cleared)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info("Cleared all supervisor and approver links")

        return await self.sync_approver_ids()

    async def set_approver_roles(self) -> Dict[str, Any]:
        """
        Promote every employee referenced as a level approver from the plain
        ``employee`` role to ``approver``. HR and admin roles are kept.
        """
        result = await self.db.execute(
            select(*[
                getattr(Employee, f"level{level}_approver_id")
                for level in APPROVAL_LEVELS
            ]).where(Employee.is_active.is_(True))
        )

        approver_ids: Set[uuid.UUID] = set()
        for row in result.all():
            approver_ids.update(value for value in row if value is not None)

        promoted = 0
        if approver_ids:
            update_result = await self.db.execute(
                update(Employee)
                .where(
                    Employee.id.in_(list(approver_ids)),
                    Employee.role == EmployeeRole.EMPLOYEE,
                )
                .values(role=EmployeeRole.APPROVER)
                .execution_options(synchronize_session=False)
            )
            promoted = update_result.rowcount
            await self.db.commit()

        logger.info(f"Promoted {promoted} employees to approver role ({len(approver_ids)} approvers referenced)")
        return {
            "updated": promoted,
            "total_approvers": len(approver_ids),
            "message": f"Set approver role for {promoted} employees",
        }


def get_approver_sync_service(db: AsyncSession) -> ApproverSyncService:
    """Factory used by the routers."""
    return ApproverSyncService(db)
