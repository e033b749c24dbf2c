"""Tests for timeboard HTTP endpoints using SQLite."""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from timeboard.config import settings
from timeboard.database import get_session_factory
from timeboard.main import app

PREFIX = settings.api_prefix

ADMIN_HEADERS = {"X-Principal-Id": "1", "X-Principal-Email": "admin@example.com", "X-Principal-Role": "admin"}
ALICE_HEADERS = {"X-Principal-Id": "2", "X-Principal-Email": "alice@example.com", "X-Principal-Role": "user"}
BOB_HEADERS = {"X-Principal-Id": "3", "X-Principal-Email": "bob@example.com"}

MEMBER = {"name": "Phillip", "location": "Hanoi, Vietnam", "timezone": "Asia/Ho_Chi_Minh", "flag": "🇻🇳"}


@pytest.fixture(autouse=True)
def trusted_headers(monkeypatch):
    # Debug mode trusts forwarded identity headers without a shared key
    monkeypatch.setattr(settings, "debug", True)
    monkeypatch.setattr(settings, "identity_key", "")
    monkeypatch.setattr(settings, "registry_backend", "table")
    monkeypatch.setattr(settings, "require_auth_for_reads", False)


@pytest_asyncio.fixture
async def client(session_factory):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["service"] == "timeboard"


class TestTeamMembers:
    @pytest.mark.asyncio
    async def test_create_and_list(self, client):
        resp = await client.post(f"{PREFIX}/team-members", json=MEMBER, headers=ALICE_HEADERS)
        assert resp.status_code == 201
        data = resp.json()
        assert isinstance(data["id"], int)
        assert data["status"] == "active"
        assert data["created_by"] == "2"
        assert data["working_status"] in {"working", "outside"}
        assert data["utc_offset"] == "+07:00"

        listing = await client.get(f"{PREFIX}/team-members")
        assert listing.status_code == 200
        assert [m["id"] for m in listing.json()] == [data["id"]]

    @pytest.mark.asyncio
    async def test_anonymous_signup_is_pending(self, client):
        resp = await client.post(f"{PREFIX}/team-members", json=MEMBER)
        assert resp.status_code == 201
        assert resp.json()["status"] == "pending"
        assert resp.json()["created_by"] is None

    @pytest.mark.asyncio
    async def test_missing_fields_400(self, client):
        resp = await client.post(f"{PREFIX}/team-members", json={"name": "X"}, headers=ALICE_HEADERS)
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_invalid_timezone_400(self, client):
        resp = await client.post(
            f"{PREFIX}/team-members", json={**MEMBER, "timezone": "Vietnam"}, headers=ALICE_HEADERS
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_second_member_conflict(self, client):
        await client.post(f"{PREFIX}/team-members", json=MEMBER, headers=ALICE_HEADERS)
        resp = await client.post(
            f"{PREFIX}/team-members", json={**MEMBER, "name": "Again"}, headers=ALICE_HEADERS
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "quota_exceeded"

    @pytest.mark.asyncio
    async def test_get_member(self, client):
        created = await client.post(f"{PREFIX}/team-members", json=MEMBER, headers=ALICE_HEADERS)
        mid = created.json()["id"]
        resp = await client.get(f"{PREFIX}/team-members/{mid}")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Phillip"

        missing = await client.get(f"{PREFIX}/team-members/{mid + 1}")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_flow(self, client):
        created = await client.post(f"{PREFIX}/team-members", json=MEMBER, headers=ALICE_HEADERS)
        mid = created.json()["id"]

        anon = await client.delete(f"{PREFIX}/team-members/{mid}")
        assert anon.status_code == 401

        other = await client.delete(f"{PREFIX}/team-members/{mid}", headers=BOB_HEADERS)
        assert other.status_code == 403
        assert len((await client.get(f"{PREFIX}/team-members")).json()) == 1

        own = await client.delete(f"{PREFIX}/team-members/{mid}", headers=ALICE_HEADERS)
        assert own.status_code == 204
        assert (await client.get(f"{PREFIX}/team-members")).json() == []

        again = await client.delete(f"{PREFIX}/team-members/{mid}", headers=ALICE_HEADERS)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_admin_deletes_any(self, client):
        created = await client.post(f"{PREFIX}/team-members", json=MEMBER)
        resp = await client.delete(f"{PREFIX}/team-members/{created.json()['id']}", headers=ADMIN_HEADERS)
        assert resp.status_code == 204

    @pytest.mark.asyncio
    async def test_idempotency_header(self, client):
        headers = {**ALICE_HEADERS, "Idempotency-Key": "submit-42"}
        first = await client.post(f"{PREFIX}/team-members", json=MEMBER, headers=headers)
        second = await client.post(f"{PREFIX}/team-members", json=MEMBER, headers=headers)
        assert first.status_code == 201
        assert second.status_code == 201
        assert first.json()["id"] == second.json()["id"]

    @pytest.mark.asyncio
    async def test_idempotency_key_of_another_caller_409(self, client):
        await client.post(
            f"{PREFIX}/team-members", json=MEMBER, headers={**ALICE_HEADERS, "Idempotency-Key": "submit-7"}
        )
        resp = await client.post(
            f"{PREFIX}/team-members",
            json={**MEMBER, "name": "Bob"},
            headers={**BOB_HEADERS, "Idempotency-Key": "submit-7"},
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "conflict"
        assert len((await client.get(f"{PREFIX}/team-members")).json()) == 1

    @pytest.mark.asyncio
    async def test_reads_closed_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "require_auth_for_reads", True)
        assert (await client.get(f"{PREFIX}/team-members")).status_code == 401
        assert (await client.get(f"{PREFIX}/team-members", headers=BOB_HEADERS)).status_code == 200

    @pytest.mark.asyncio
    async def test_document_backend(self, client, monkeypatch):
        monkeypatch.setattr(settings, "registry_backend", "document")
        resp = await client.post(f"{PREFIX}/team-members", json=MEMBER, headers=ALICE_HEADERS)
        assert resp.status_code == 201
        conflict = await client.post(f"{PREFIX}/team-members", json=MEMBER, headers=ALICE_HEADERS)
        assert conflict.status_code == 409


class TestIdentityBoundary:
    @pytest.mark.asyncio
    async def test_unknown_role_rejected(self, client):
        headers = {**ALICE_HEADERS, "X-Principal-Role": "superuser"}
        resp = await client.post(f"{PREFIX}/team-members", json=MEMBER, headers=headers)
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_identity_key_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "identity_key", "proxy-secret")
        resp = await client.post(f"{PREFIX}/team-members", json=MEMBER, headers=ALICE_HEADERS)
        assert resp.status_code == 401

        ok = await client.post(
            f"{PREFIX}/team-members",
            json=MEMBER,
            headers={**ALICE_HEADERS, "X-Identity-Key": "proxy-secret"},
        )
        assert ok.status_code == 201
        assert ok.json()["status"] == "active"

    @pytest.mark.asyncio
    async def test_untrusted_headers_outside_debug(self, client, monkeypatch):
        monkeypatch.setattr(settings, "debug", False)
        resp = await client.post(f"{PREFIX}/team-members", json=MEMBER, headers=ALICE_HEADERS)
        assert resp.status_code == 500

    @pytest.mark.asyncio
    async def test_admin_email_promoted(self, client, monkeypatch):
        monkeypatch.setattr(settings, "admin_emails", "Bob@Example.com, ops@example.com")
        for name in ("One", "Two"):
            resp = await client.post(
                f"{PREFIX}/team-members", json={**MEMBER, "name": name}, headers=BOB_HEADERS
            )
            assert resp.status_code == 201
