"""
HTTP tests for the household task endpoints.

Covers authentication and household scoping, the error envelope, the
blocked-by scenarios end to end, and the auxiliary listings.
"""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient

from app.core.auth import create_jwt


def _tasks_url(household_id, suffix: str = "") -> str:
    return f"/api/v1/households/{household_id}/tasks/{suffix}"


async def _create(client: AsyncClient, headers, household_id, **body) -> dict:
    response = await client.post(_tasks_url(household_id), json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _patch(client: AsyncClient, headers, household_id, task_id, **body):
    return await client.patch(_tasks_url(household_id, task_id), json=body, headers=headers)


def _error_code(response) -> str:
    return response.json()["error"]["code"]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestAuth:

    @pytest.mark.asyncio
    async def test_missing_token(self, client, household):
        response = await client.get(_tasks_url(household.id))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token(self, client, household):
        response = await client.get(
            _tasks_url(household.id), headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired session"

    @pytest.mark.asyncio
    async def test_non_member_forbidden(self, client, household, outsider):
        headers = {"Authorization": f"Bearer {create_jwt(outsider.id)}"}
        response = await client.get(_tasks_url(household.id), headers=headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_member_cannot_reach_other_household(
        self, client, auth_headers, other_household
    ):
        response = await client.get(_tasks_url(other_household.id), headers=auth_headers)
        assert response.status_code == 403


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


class TestTaskCrud:

    @pytest.mark.asyncio
    async def test_create_and_get(self, client, auth_headers, household, member, category):
        created = await _create(
            client,
            auth_headers,
            household.id,
            title="  Clean oven  ",
            priority="high",
            assignee_id=str(member.id),
            category_id=str(category.id),
        )
        assert created["title"] == "Clean oven"
        assert created["status"] == "todo"
        assert created["priority"] == "high"
        assert created["completed_at"] is None
        assert created["blocked_by"] is None
        assert created["blocking"] == []

        response = await client.get(_tasks_url(household.id, created["id"]), headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_blank_title_is_validation_error(self, client, auth_headers, household):
        response = await client.post(
            _tasks_url(household.id), json={"title": "   "}, headers=auth_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_task_envelope(self, client, auth_headers, household):
        response = await client.get(_tasks_url(household.id, uuid.uuid4()), headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {
            "data": None,
            "error": {
                "code": "TASK_NOT_FOUND_OR_ACCESS_DENIED",
                "message": "Task not found or access denied",
                "status": 404,
            },
        }

    @pytest.mark.asyncio
    async def test_outside_assignee_rejected(self, client, auth_headers, household, outsider):
        response = await client.post(
            _tasks_url(household.id),
            json={"title": "Nope", "assignee_id": str(outsider.id)},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert _error_code(response) == "ASSIGNEE_NOT_IN_HOUSEHOLD"

    @pytest.mark.asyncio
    async def test_list_filters_by_status(self, client, auth_headers, household):
        a = await _create(client, auth_headers, household.id, title="A")
        await _create(client, auth_headers, household.id, title="B")
        await _patch(client, auth_headers, household.id, a["id"], status="in_progress")

        response = await client.get(
            _tasks_url(household.id), params={"status": "in_progress"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert [t["title"] for t in response.json()] == ["A"]


# ---------------------------------------------------------------------------
# Blocked-by scenarios
# ---------------------------------------------------------------------------


class TestBlockedBy:

    @pytest.mark.asyncio
    async def test_cycle_is_conflict(self, client, auth_headers, household):
        a = await _create(client, auth_headers, household.id, title="A")
        b = await _create(client, auth_headers, household.id, title="B")

        response = await _patch(client, auth_headers, household.id, a["id"], blocked_by_task_id=b["id"])
        assert response.status_code == 200
        assert response.json()["blocked_by"]["id"] == b["id"]

        response = await _patch(client, auth_headers, household.id, b["id"], blocked_by_task_id=a["id"])
        assert response.status_code == 409
        assert response.json()["error"] == {
            "code": "CYCLIC_DEPENDENCY",
            "message": "Cannot create circular dependency",
            "status": 409,
        }

        stored = await client.get(_tasks_url(household.id, b["id"]), headers=auth_headers)
        assert stored.json()["blocked_by_task_id"] is None
        assert [s["id"] for s in stored.json()["blocking"]] == [a["id"]]

    @pytest.mark.asyncio
    async def test_self_block(self, client, auth_headers, household):
        a = await _create(client, auth_headers, household.id, title="A")
        response = await _patch(client, auth_headers, household.id, a["id"], blocked_by_task_id=a["id"])
        assert response.status_code == 422
        assert _error_code(response) == "SELF_BLOCK"

    @pytest.mark.asyncio
    async def test_unknown_blocker(self, client, auth_headers, household):
        stranger = uuid.uuid4()
        response = await client.post(
            _tasks_url(household.id),
            json={"title": "A", "blocked_by_task_id": str(stranger)},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert _error_code(response) == "BLOCKER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_completion_gate(self, client, auth_headers, household):
        b = await _create(client, auth_headers, household.id, title="B")
        a = await _create(client, auth_headers, household.id, title="A", blocked_by_task_id=b["id"])

        response = await _patch(client, auth_headers, household.id, a["id"], status="done")
        assert response.status_code == 409
        assert _error_code(response) == "BLOCKED_BY_INCOMPLETE_TASK"

        response = await _patch(client, auth_headers, household.id, b["id"], status="done")
        assert response.status_code == 200
        assert response.json()["completed_at"] is not None

        response = await _patch(client, auth_headers, household.id, a["id"], status="done")
        assert response.status_code == 200
        assert response.json()["status"] == "done"

        response = await _patch(client, auth_headers, household.id, a["id"], status="todo")
        assert response.json()["completed_at"] is None

    @pytest.mark.asyncio
    async def test_delete_clears_dependents(self, client, auth_headers, household):
        b = await _create(client, auth_headers, household.id, title="B")
        a = await _create(client, auth_headers, household.id, title="A", blocked_by_task_id=b["id"])
        c = await _create(client, auth_headers, household.id, title="C", blocked_by_task_id=b["id"])

        response = await client.delete(_tasks_url(household.id, b["id"]), headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"ok": True}

        gone = await client.get(_tasks_url(household.id, b["id"]), headers=auth_headers)
        assert gone.status_code == 404
        for task in (a, c):
            stored = await client.get(_tasks_url(household.id, task["id"]), headers=auth_headers)
            assert stored.status_code == 200
            assert stored.json()["blocked_by_task_id"] is None
            assert stored.json()["blocked_by"] is None

    @pytest.mark.asyncio
    async def test_chain_in_detail(self, client, auth_headers, household):
        c = await _create(client, auth_headers, household.id, title="C")
        b = await _create(client, auth_headers, household.id, title="B", blocked_by_task_id=c["id"])
        a = await _create(client, auth_headers, household.id, title="A", blocked_by_task_id=b["id"])

        detail = (await client.get(_tasks_url(household.id, a["id"]), headers=auth_headers)).json()
        assert [s["title"] for s in detail["blocking_chain"]] == ["B", "C"]


# ---------------------------------------------------------------------------
# Auxiliary listings
# ---------------------------------------------------------------------------


class TestListings:

    @pytest.mark.asyncio
    async def test_available_blockers(self, client, auth_headers, household):
        a = await _create(client, auth_headers, household.id, title="a task")
        await _create(client, auth_headers, household.id, title="Zebra")
        await _create(client, auth_headers, household.id, title="apple")
        done = await _create(client, auth_headers, household.id, title="Done")
        await _patch(client, auth_headers, household.id, done["id"], status="done")

        response = await client.get(
            _tasks_url(household.id, "available-blockers"),
            params={"exclude_task_id": a["id"]},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert [s["title"] for s in response.json()] == ["apple", "Zebra"]

    @pytest.mark.asyncio
    async def test_dependents(self, client, auth_headers, household):
        b = await _create(client, auth_headers, household.id, title="B")
        await _create(client, auth_headers, household.id, title="A", blocked_by_task_id=b["id"])

        response = await client.get(_tasks_url(household.id, "dependents"), headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert list(body) == [b["id"]]
        assert [s["title"] for s in body[b["id"]]] == ["A"]

    @pytest.mark.asyncio
    async def test_today_is_empty_without_due_dates(self, client, auth_headers, household):
        await _create(client, auth_headers, household.id, title="Someday")
        response = await client.get(_tasks_url(household.id, "today"), headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_members(self, client, auth_headers, household, member, outsider):
        response = await client.get(
            f"/api/v1/households/{household.id}/members", headers=auth_headers
        )
        assert response.status_code == 200
        assert [m["name"] for m in response.json()] == ["Alice"]


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class TestMiddleware:

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, client):
        response = await client.get("/health")
        assert len(response.headers["X-Request-ID"]) == 32

    @pytest.mark.asyncio
    async def test_security_headers(self, client):
        response = await client.get("/health")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
