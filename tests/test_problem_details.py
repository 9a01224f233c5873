"""Tests for RFC 7807 error bodies and request ID propagation."""
import pytest
from httpx import AsyncClient

from app.exceptions import ErrorCode, IncompleteStructureError, NotFoundError, problem_type
from app.middleware.request_id import MAX_REQUEST_ID_LENGTH, accept_request_id


class TestProblemDetail:
    """Tests for converting exceptions into problem bodies."""

    def test_not_found_problem(self):
        """NotFoundError carries its status, code and type URI."""
        problem = NotFoundError("Flat", "101").to_problem_detail(instance="/api/v2/structures/x")

        assert problem.status == 404
        assert problem.title == "Not Found"
        assert problem.code == "RES_001"
        assert problem.type == problem_type(ErrorCode.NOT_FOUND)
        assert problem.detail == "Flat 101 was not found"
        assert problem.instance == "/api/v2/structures/x"

    def test_incomplete_structure_extra_members(self):
        """The completion percentage travels as an extension member."""
        problem = IncompleteStructureError(50, ["floors_added"]).to_problem_detail()

        assert problem.status == 400
        assert problem.extra == {"overall_percentage": 50, "missing": ["floors_added"]}


class TestProblemResponses:
    """Tests for the registered exception handlers."""

    @pytest.mark.asyncio
    async def test_unknown_route(self, client: AsyncClient):
        """Router 404s are problem bodies too."""
        response = await client.get("/api/v2/nowhere")

        assert response.status_code == 404
        assert response.headers["content-type"].startswith("application/problem+json")
        assert response.json()["code"] == "RES_001"

    @pytest.mark.asyncio
    async def test_request_id_is_trace_id(self, client: AsyncClient):
        """A caller-supplied request ID is echoed and used as the trace ID."""
        response = await client.get("/api/v2/identity/decode/SHORT", headers={"X-Request-ID": "req-42"})

        assert response.status_code == 422
        assert response.headers["X-Request-ID"] == "req-42"
        assert response.json()["trace_id"] == "req-42"

    @pytest.mark.asyncio
    async def test_field_errors_listed(self, client: AsyncClient):
        """Schema violations list the offending fields."""
        response = await client.post("/api/v2/identity/validate", json={})

        fields = [e["field"] for e in response.json()["errors"]]
        assert "body.structure_numbers" in fields

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        """The health endpoint answers without touching the database."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_unsafe_request_id_replaced(self, client: AsyncClient):
        """Header values with spaces are not echoed."""
        response = await client.get("/health", headers={"X-Request-ID": "bad id value"})

        echoed = response.headers["X-Request-ID"]
        assert echoed != "bad id value"
        assert len(echoed) == 12


class TestAcceptRequestId:
    def test_keeps_safe_id(self):
        assert accept_request_id(" trace-7:a.b ") == "trace-7:a.b"

    def test_missing_id_generated(self):
        generated = accept_request_id(None)

        assert len(generated) == 12
        assert generated != accept_request_id("")

    def test_overlong_id_replaced(self):
        assert len(accept_request_id("x" * (MAX_REQUEST_ID_LENGTH + 1))) == 12
