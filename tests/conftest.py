"""
Bonus Approval Service - Test Configuration

Pytest fixtures and configuration.
"""

import itertools
from decimal import Decimal
from typing import AsyncGenerator, Dict, Optional, Sequence

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401
from app.database import Base, build_session_factory, get_async_session
from app.models.employee import Employee, EmployeeRole
from app.utils.security import create_access_token
from main import app


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database file for each test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

@pytest_asyncio.fixture
async def make_employee(db_session: AsyncSession):
    """
    Factory creating committed employees.

    ``approvers`` lists the level 1..5 approvers in order; use None for a
    level without an approver.
    """
    counter = itertools.count(1)

    async def _make(
        first_name: str = "Test",
        last_name: Optional[str] = None,
        supervisor: Optional[Employee] = None,
        approvers: Sequence[Optional[Employee]] = (),
        bonus: Decimal = Decimal("0.00"),
        role: EmployeeRole = EmployeeRole.EMPLOYEE,
        **fields,
    ) -> Employee:
        number = next(counter)
        employee = Employee(
            employee_id=fields.pop("employee_id", f"E{number:04d}"),
            first_name=first_name,
            last_name=last_name or f"Employee{number}",
            role=role,
            bonus_2025=bonus,
            supervisor_id=supervisor.id if supervisor else None,
            is_active=fields.pop("is_active", True),
            **fields,
        )
        for level, approver in enumerate(approvers, start=1):
            if approver is not None:
                setattr(employee, f"level{level}_approver_id", approver.id)
        db_session.add(employee)
        await db_session.commit()
        return employee

    return _make


@pytest.fixture
def auth_headers():
    """Build bearer headers for an employee."""

    def _headers(employee: Employee) -> Dict[str, str]:
        token = create_access_token({"sub": str(employee.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def chain(make_employee):
    """
    Supervisor with one report routed through two approvers.

    Returns a dict with supervisor, approver1, approver2 and employee.
    """
    supervisor = await make_employee("Sam", "Supervisor")
    approver1 = await make_employee("Alice", "Approver", role=EmployeeRole.APPROVER)
    approver2 = await make_employee("Bob", "Approver", role=EmployeeRole.APPROVER)
    employee = await make_employee(
        "Eve", "Worker",
        supervisor=supervisor,
        approvers=(approver1, approver2),
    )
    return {
        "supervisor": supervisor,
        "approver1": approver1,
        "approver2": approver2,
        "employee": employee,
    }
