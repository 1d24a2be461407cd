"""
User Directory API: HTTP Endpoint Tests
==========================================

What:  End-to-end tests of the five user routes against a real SQLite store.
How:   Each test gets a fresh app and database from conftest fixtures and
       talks to it through HTTPX's ASGITransport.

What we test:
    ✅ Create → 201, record retrievable field-for-field, createdAt set
    ✅ Missing / empty / misspelled fields → 400, nothing persisted
    ✅ Malformed and unknown IDs on GET → 500
    ✅ Edit → 200 with new values and unchanged createdAt; unknown ID → 404
    ✅ Delete → 200 once, then 404
    ✅ List after N creates → exactly those N records
    ✅ Envelope shape on success and error, X-Request-ID header (also on
       unexpected 500s)
    ✅ Expired operation budget → 500 envelope
"""

import asyncio
import logging
from uuid import uuid4

import pytest
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from userapi.database import Base


async def create(client, payload):
    response = await client.post("/user", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]["data"]["InsertedID"]


def assert_envelope(body, status, message):
    assert body["status"] == status
    assert body["message"] == message
    assert set(body["data"]) == {"data"}


class TestCreateUser:

    @pytest.mark.asyncio
    async def test_create_returns_201_and_id(self, test_client, user_payload):
        response = await test_client.post("/user", json=user_payload)

        assert response.status_code == 201
        body = response.json()
        assert_envelope(body, 201, "success")
        assert body["data"]["data"]["InsertedID"]

    @pytest.mark.asyncio
    async def test_created_user_is_retrievable(self, test_client, user_payload):
        user_id = await create(test_client, user_payload)

        response = await test_client.get(f"/user/{user_id}")

        assert response.status_code == 200
        record = response.json()["data"]["data"]
        assert record["id"] == user_id
        for field, value in user_payload.items():
            assert record[field] == value
        assert record["createdAt"]

    @pytest.mark.asyncio
    async def test_client_supplied_created_at_is_ignored(self, test_client, user_payload):
        user_id = await create(test_client, {**user_payload, "createdAt": "1999-01-01"})

        record = (await test_client.get(f"/user/{user_id}")).json()["data"]["data"]

        assert not record["createdAt"].startswith("1999")

    @pytest.mark.asyncio
    async def test_created_at_is_utc(self, test_client, user_payload):
        user_id = await create(test_client, user_payload)

        record = (await test_client.get(f"/user/{user_id}")).json()["data"]["data"]

        assert record["createdAt"].endswith("Z")

    @pytest.mark.asyncio
    async def test_long_field_values_are_accepted(self, test_client, user_payload):
        body = {**user_payload, "name": "N" * 300, "dob": "born " * 40}

        user_id = await create(test_client, body)

        record = (await test_client.get(f"/user/{user_id}")).json()["data"]["data"]
        assert record["name"] == body["name"]
        assert record["dob"] == body["dob"]

    @pytest.mark.asyncio
    async def test_rejection_is_logged_as_validation_error(self, test_client, user_payload, caplog):
        caplog.set_level(logging.WARNING, logger="userapi.main")
        body = {k: v for k, v in user_payload.items() if k != "dob"}

        response = await test_client.post("/user", json=body)

        assert response.status_code == 400
        assert any(
            "ValidationError: dob" in record.getMessage() for record in caplog.records
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["name", "dob", "address", "description"])
    async def test_missing_field_is_rejected(self, test_client, user_payload, missing):
        body = {k: v for k, v in user_payload.items() if k != missing}

        response = await test_client.post("/user", json=body)

        assert response.status_code == 400
        payload = response.json()
        assert_envelope(payload, 400, "error")
        assert missing in payload["data"]["data"]

        listing = await test_client.get("/users")
        assert listing.json()["data"]["data"] == []

    @pytest.mark.asyncio
    async def test_misspelled_field_is_rejected(self, test_client, user_payload):
        body = dict(user_payload)
        body["adddress"] = body.pop("address")

        response = await test_client.post("/user", json=body)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_empty_field_is_rejected(self, test_client, user_payload):
        response = await test_client.post("/user", json={**user_payload, "name": ""})

        assert response.status_code == 400
        assert "name" in response.json()["data"]["data"]

    @pytest.mark.asyncio
    async def test_malformed_json_is_rejected(self, test_client):
        response = await test_client.post(
            "/user",
            content=b'{"name": "Peter",',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert_envelope(response.json(), 400, "error")


class TestGetUser:

    @pytest.mark.asyncio
    async def test_malformed_id_is_store_error(self, test_client):
        response = await test_client.get("/user/not-an-id")

        assert response.status_code == 500
        body = response.json()
        assert_envelope(body, 500, "error")
        assert "not-an-id" in body["data"]["data"]

    @pytest.mark.asyncio
    async def test_unknown_id_is_store_error(self, test_client):
        response = await test_client.get(f"/user/{uuid4()}")

        assert response.status_code == 500
        assert_envelope(response.json(), 500, "error")


class TestEditUser:

    @pytest.mark.asyncio
    async def test_edit_replaces_fields_and_keeps_created_at(self, test_client, user_payload):
        user_id = await create(test_client, user_payload)
        original = (await test_client.get(f"/user/{user_id}")).json()["data"]["data"]

        changes = {
            "name": "Miles Morales",
            "dob": "3 Aug 2004",
            "address": "Brooklyn Visions Academy",
            "description": "Student",
        }
        response = await test_client.put(f"/user/{user_id}", json=changes)

        assert response.status_code == 200
        body = response.json()
        assert_envelope(body, 200, "success")
        record = body["data"]["data"]
        for field, value in changes.items():
            assert record[field] == value
        assert record["id"] == user_id
        assert record["createdAt"] == original["createdAt"]

        fetched = (await test_client.get(f"/user/{user_id}")).json()["data"]["data"]
        assert fetched == record

    @pytest.mark.asyncio
    async def test_edit_requires_all_fields(self, test_client, user_payload):
        user_id = await create(test_client, user_payload)

        response = await test_client.put(f"/user/{user_id}", json={"name": "Only Name"})

        assert response.status_code == 400
        fetched = (await test_client.get(f"/user/{user_id}")).json()["data"]["data"]
        assert fetched["name"] == user_payload["name"]

    @pytest.mark.asyncio
    async def test_edit_unknown_id_is_not_found(self, test_client, user_payload):
        response = await test_client.put(f"/user/{uuid4()}", json=user_payload)

        assert response.status_code == 404
        assert_envelope(response.json(), 404, "error")

    @pytest.mark.asyncio
    async def test_edit_malformed_id_is_store_error(self, test_client, user_payload):
        response = await test_client.put("/user/not-an-id", json=user_payload)

        assert response.status_code == 500


class TestDeleteUser:

    @pytest.mark.asyncio
    async def test_delete_once_then_not_found(self, test_client, user_payload):
        user_id = await create(test_client, user_payload)

        first = await test_client.delete(f"/user/{user_id}")
        assert first.status_code == 200
        assert first.json()["data"]["data"] == "User successfully deleted!"

        second = await test_client.delete(f"/user/{user_id}")
        assert second.status_code == 404
        assert_envelope(second.json(), 404, "error")
        assert second.json()["data"]["data"] == "User with specified ID not found!"

    @pytest.mark.asyncio
    async def test_deleted_user_is_gone(self, test_client, user_payload):
        user_id = await create(test_client, user_payload)
        await test_client.delete(f"/user/{user_id}")

        response = await test_client.get(f"/user/{user_id}")

        assert response.status_code == 500


class TestListUsers:

    @pytest.mark.asyncio
    async def test_empty_store(self, test_client):
        response = await test_client.get("/users")

        assert response.status_code == 200
        body = response.json()
        assert_envelope(body, 200, "success")
        assert body["data"]["data"] == []

    @pytest.mark.asyncio
    async def test_lists_exactly_the_created_users(self, test_client, user_payload):
        created = {
            await create(test_client, {**user_payload, "name": f"User {i}"})
            for i in range(4)
        }

        response = await test_client.get("/users")

        records = response.json()["data"]["data"]
        assert len(records) == 4
        assert {r["id"] for r in records} == created

    @pytest.mark.asyncio
    async def test_store_failure_is_500(self, test_app, test_client):
        async with test_app.state.database.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        response = await test_client.get("/users")

        assert response.status_code == 500
        body = response.json()
        assert_envelope(body, 500, "error")
        assert "users" in body["data"]["data"]

    @pytest.mark.asyncio
    async def test_expired_budget_is_500(self, test_app, test_client, monkeypatch):
        async def slow_execute(self, *args, **kwargs):
            await asyncio.sleep(1)

        monkeypatch.setattr(AsyncSession, "execute", slow_execute)
        test_app.state.user_service.operation_timeout = 0.01

        response = await test_client.get("/users")

        assert response.status_code == 500
        body = response.json()
        assert_envelope(body, 500, "error")
        assert body["data"]["data"] == "store operation 'find_all' timed out after 0.01s"


class TestEnvelopeAndHeaders:

    @pytest.mark.asyncio
    async def test_unknown_route_is_404_envelope(self, test_client):
        response = await test_client.get("/not-found")

        assert response.status_code == 404
        assert_envelope(response.json(), 404, "error")

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.get("/users", headers={"X-Request-ID": "abc12345"})

        assert response.headers["X-Request-ID"] == "abc12345"

    @pytest.mark.asyncio
    async def test_request_id_is_generated(self, test_client):
        response = await test_client.get("/users")

        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_request_id(self, test_app):
        test_app.state.user_service.list_users = AsyncMock(side_effect=KeyError("boom"))
        transport = ASGITransport(app=test_app, raise_app_exceptions=False)

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/users", headers={"X-Request-ID": "feed1234"})

        assert response.status_code == 500
        body = response.json()
        assert_envelope(body, 500, "error")
        assert body["data"]["data"] == "'boom'"
        assert response.headers["X-Request-ID"] == "feed1234"


class TestHealth:

    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_unhealthy_when_store_unreachable(self, test_app, test_client, monkeypatch):
        monkeypatch.setattr(test_app.state.database, "ping", AsyncMock(return_value=False))

        response = await test_client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
