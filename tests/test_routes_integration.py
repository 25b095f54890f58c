"""Integration tests for API routes."""
import asyncio
import uuid

from fastapi import status

from company_service.core.errors import StorageError
from company_service.domain.events import COMPANY_CREATED, COMPANY_DELETED, COMPANY_UPDATED

from conftest import FailingPublisher, SlowPublisher


def create(client, headers, payload):
    return client.post("/companies", json=payload, headers=headers)


class TestAuthenticationGate:
    """Writes need a bearer token; reads do not."""

    def test_create_without_token(self, test_client, acme_payload):
        response = test_client.post("/companies", json=acme_payload)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert "error" in response.json()

    def test_create_with_wrong_scheme(self, test_client, acme_payload):
        response = test_client.post(
            "/companies", json=acme_payload, headers={"Authorization": "Basic abc"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_with_empty_token(self, test_client, acme_payload):
        response = test_client.post(
            "/companies", json=acme_payload, headers={"Authorization": "Bearer "}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_patch_and_delete_without_token(self, test_client, auth_headers, acme_payload):
        company_id = create(test_client, auth_headers, acme_payload).json()["id"]

        assert test_client.patch(f"/companies/{company_id}", json={"employees": 1}).status_code == 401
        assert test_client.delete(f"/companies/{company_id}").status_code == 401

    def test_get_needs_no_token(self, test_client, auth_headers, acme_payload):
        company_id = create(test_client, auth_headers, acme_payload).json()["id"]

        response = test_client.get(f"/companies/{company_id}")

        assert response.status_code == status.HTTP_200_OK


class TestCreateCompany:
    def test_create(self, test_client, auth_headers, acme_payload):
        response = create(test_client, auth_headers, acme_payload)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        uuid.UUID(data["id"])
        assert data["name"] == "Acme"
        assert data["description"] is None
        assert data["employees"] == 10
        assert data["registered"] is True
        assert data["type"] == "Corporations"

    def test_client_id_ignored(self, test_client, auth_headers, acme_payload):
        supplied = str(uuid.uuid4())
        response = create(test_client, auth_headers, {**acme_payload, "id": supplied})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["id"] != supplied

    def test_invalid_field_value(self, test_client, auth_headers, acme_payload):
        response = create(test_client, auth_headers, {**acme_payload, "name": "A" * 16})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "name must be 15 characters or fewer"}

    def test_missing_registered(self, test_client, auth_headers, acme_payload):
        payload = dict(acme_payload)
        del payload["registered"]

        response = create(test_client, auth_headers, payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_wrong_kind_rejected(self, test_client, auth_headers, acme_payload):
        response = create(test_client, auth_headers, {**acme_payload, "employees": "ten"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_malformed_json(self, test_client, auth_headers):
        response = test_client.post(
            "/companies",
            content=b"{not json",
            headers={**auth_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_duplicate_name(self, test_client, auth_headers, acme_payload):
        create(test_client, auth_headers, acme_payload)

        response = create(test_client, auth_headers, acme_payload)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json() == {"error": "company name already exists"}


class TestGetCompany:
    def test_round_trip(self, test_client, auth_headers, acme_payload):
        created = create(test_client, auth_headers, {**acme_payload, "description": "Widgets"}).json()

        response = test_client.get(f"/companies/{created['id']}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == created

    def test_unknown_id(self, test_client):
        response = test_client.get(f"/companies/{uuid.uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "company not found"}

    def test_malformed_id(self, test_client):
        response = test_client.get("/companies/not-a-uuid")

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestPatchCompany:
    def test_patch_merges(self, test_client, auth_headers, acme_payload):
        created = create(test_client, auth_headers, acme_payload).json()

        response = test_client.patch(
            f"/companies/{created['id']}", json={"employees": 20}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {**created, "employees": 20}

    def test_clear_description(self, test_client, auth_headers, acme_payload):
        created = create(test_client, auth_headers, {**acme_payload, "description": "Widgets"}).json()

        response = test_client.patch(
            f"/companies/{created['id']}", json={"description": None}, headers=auth_headers
        )

        assert response.json()["description"] is None

    def test_empty_patch(self, test_client, auth_headers, acme_payload):
        created = create(test_client, auth_headers, acme_payload).json()

        response = test_client.patch(f"/companies/{created['id']}", json={}, headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "no fields to update"}

    def test_only_id_is_empty_patch(self, test_client, auth_headers, acme_payload):
        created = create(test_client, auth_headers, acme_payload).json()

        response = test_client.patch(
            f"/companies/{created['id']}", json={"id": str(uuid.uuid4())}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_type_mismatch(self, test_client, auth_headers, acme_payload):
        created = create(test_client, auth_headers, acme_payload).json()

        response = test_client.patch(
            f"/companies/{created['id']}", json={"registered": "yes"}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "registered must be a boolean"}

    def test_invalid_merged_value(self, test_client, auth_headers, acme_payload):
        created = create(test_client, auth_headers, acme_payload).json()

        response = test_client.patch(
            f"/companies/{created['id']}", json={"employees": -1}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_id(self, test_client, auth_headers):
        response = test_client.patch(
            f"/companies/{uuid.uuid4()}", json={"employees": 1}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_name_taken_by_other(self, test_client, auth_headers, acme_payload):
        create(test_client, auth_headers, acme_payload)
        other = create(test_client, auth_headers, {**acme_payload, "name": "Globex"}).json()

        response = test_client.patch(
            f"/companies/{other['id']}", json={"name": "Acme"}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_body_must_be_object(self, test_client, auth_headers, acme_payload):
        created = create(test_client, auth_headers, acme_payload).json()

        response = test_client.patch(
            f"/companies/{created['id']}", json=["employees", 1], headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestDeleteCompany:
    def test_delete(self, test_client, auth_headers, acme_payload):
        created = create(test_client, auth_headers, acme_payload).json()

        response = test_client.delete(f"/companies/{created['id']}", headers=auth_headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert response.content == b""
        assert test_client.get(f"/companies/{created['id']}").status_code == 404

    def test_delete_twice(self, test_client, auth_headers, acme_payload):
        created = create(test_client, auth_headers, acme_payload).json()
        test_client.delete(f"/companies/{created['id']}", headers=auth_headers)

        response = test_client.delete(f"/companies/{created['id']}", headers=auth_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_malformed_id(self, test_client, auth_headers):
        response = test_client.delete("/companies/123", headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestEvents:
    def test_lifecycle_emits_events(self, test_client, recorded_events, auth_headers, acme_payload):
        created = create(test_client, auth_headers, acme_payload).json()
        test_client.patch(f"/companies/{created['id']}", json={"employees": 20}, headers=auth_headers)
        test_client.delete(f"/companies/{created['id']}", headers=auth_headers)

        assert recorded_events.event_types == [COMPANY_CREATED, COMPANY_UPDATED, COMPANY_DELETED]
        assert recorded_events.events[0][1]["id"] == created["id"]

    def test_failing_event_port(self, test_client, auth_headers, acme_payload):
        test_client.app.state.company_service.publisher = FailingPublisher()

        response = create(test_client, auth_headers, acme_payload)
        assert response.status_code == status.HTTP_201_CREATED
        company_id = response.json()["id"]

        response = test_client.patch(f"/companies/{company_id}", json={"employees": 3}, headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK
        assert test_client.get(f"/companies/{company_id}").json()["employees"] == 3

        response = test_client.delete(f"/companies/{company_id}", headers=auth_headers)
        assert response.status_code == status.HTTP_204_NO_CONTENT


class TestStorageFailure:
    def test_storage_error_is_opaque(self, test_client, auth_headers, acme_payload, monkeypatch):
        repository = test_client.app.state.company_service.repository

        async def broken(name):
            raise StorageError("password authentication failed for user admin")

        monkeypatch.setattr(repository, "get_by_name", broken)

        response = create(test_client, auth_headers, acme_payload)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "internal server error"}


class TestRequestDeadline:
    """REQUEST_TIMEOUT_SECONDS bounds the work up to the write."""

    def test_stalled_write_answers_504_and_stores_nothing(
        self, test_client, recorded_events, auth_headers, acme_payload, monkeypatch
    ):
        service = test_client.app.state.company_service
        monkeypatch.setattr(service, "operation_timeout", 0.05)

        async def stalled(company):
            await asyncio.sleep(3600)

        monkeypatch.setattr(service.repository, "create", stalled)

        response = create(test_client, auth_headers, acme_payload)

        assert response.status_code == status.HTTP_504_GATEWAY_TIMEOUT
        assert response.json() == {"error": "request timed out"}
        assert len(service.repository) == 0
        assert recorded_events.events == []

    def test_slow_publish_after_write_still_succeeds(self, test_client, auth_headers, acme_payload, monkeypatch):
        service = test_client.app.state.company_service
        publisher = SlowPublisher(delay=0.2)
        monkeypatch.setattr(service, "operation_timeout", 0.05)
        monkeypatch.setattr(service, "publish_timeout", 1.0)
        service.publisher = publisher

        response = create(test_client, auth_headers, acme_payload)

        assert response.status_code == status.HTTP_201_CREATED
        company_id = response.json()["id"]
        assert test_client.get(f"/companies/{company_id}").status_code == status.HTTP_200_OK
        assert publisher.event_types == [COMPANY_CREATED]

        retry = create(test_client, auth_headers, acme_payload)
        assert retry.status_code == status.HTTP_409_CONFLICT


class TestHealth:
    def test_root(self, test_client):
        response = test_client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "running"

    def test_liveness(self, test_client):
        assert test_client.get("/health/live").json() == {"status": "ok"}

    def test_readiness(self, test_client):
        response = test_client.get("/health/ready")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["services"]["database"] == "healthy"

    def test_readiness_unhealthy(self, test_client, monkeypatch):
        async def down():
            return False

        monkeypatch.setattr(test_client.app.state.repository, "ping", down)

        response = test_client.get("/health/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_request_id_header(self, test_client):
        response = test_client.get("/health/live")

        assert "X-Request-ID" in response.headers

    def test_debug_follows_settings(self, test_client):
        from company_service.core.config import settings

        assert test_client.app.debug is settings.debug
