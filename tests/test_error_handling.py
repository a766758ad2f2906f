"""
Bonus Approval Service - Error Handler Tests
"""

import json

import pytest
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from app.utils.error_handling import http_exception_handler, sqlalchemy_exception_handler


def make_request(path: str = "/api/v1/employees") -> Request:
    return Request({"type": "http", "method": "POST", "path": path, "headers": []})


def body_of(response) -> dict:
    return json.loads(response.body)["detail"]


class TestExceptionHandlers:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code,code", [
        (400, "VALIDATION_ERROR"),
        (401, "UNAUTHORIZED"),
        (404, "NOT_FOUND"),
        (409, "RESOURCE_CONFLICT"),
        (418, "INTERNAL_ERROR"),
    ])
    async def test_http_status_mapping(self, status_code, code):
        response = await http_exception_handler(make_request(), StarletteHTTPException(status_code, "Nope"))

        assert response.status_code == status_code
        assert body_of(response)["code"] == code
        assert body_of(response)["message"] == "Nope"

    @pytest.mark.asyncio
    async def test_unique_violation_is_conflict(self):
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: employees.employee_id"))

        response = await sqlalchemy_exception_handler(make_request(), exc)

        assert response.status_code == 409
        assert body_of(response)["code"] == "RESOURCE_CONFLICT"
        assert body_of(response)["message"] == "A record with this value already exists"
