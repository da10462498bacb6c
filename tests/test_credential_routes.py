"""Integration tests for the credential management endpoints."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import FakeSearchClient

from app.core.app_factory import create_app
from app.core.config import settings
from app.services.aggregation_service import AggregationService
from app.services.credential_service import CredentialService


@pytest.fixture
def app(store) -> FastAPI:
    application = create_app()
    application.state.credential_store = store
    application.state.aggregation_service = AggregationService(store, FakeSearchClient())
    application.state.credential_service = CredentialService(store)
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin_guard():
    with (
        patch.object(settings.app, "admin_key_required", True),
        patch.object(settings.app, "admin_keys", "admin-1,admin-2"),
    ):
        yield


class TestCredentialCrud:
    def test_create_then_list(self, client) -> None:
        created = client.post("/v1/apikey", json={"cx": "cx-1", "apikey": "key-1"})

        assert created.status_code == 200
        body = created.json()
        assert body["quotas"] == 100
        assert body["id"]

        listed = client.get("/v1/apikeys")
        assert listed.status_code == 200
        assert [c["id"] for c in listed.json()] == [body["id"]]

    def test_create_with_blank_field_is_rejected(self, client) -> None:
        response = client.post("/v1/apikey", json={"cx": " ", "apikey": "key-1"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "credential_missing_fields"

    def test_create_without_body_field_is_bad_request(self, client) -> None:
        response = client.post("/v1/apikey", json={"cx": "cx-1"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "request_validation_failed"
        assert "body.apikey" in error["details"]["context"]["fields"]

    def test_delete_returns_removed_credential(self, client, add_credential) -> None:
        credential = add_credential("key-1")

        response = client.delete("/v1/apikey", params={"id": credential.id})

        assert response.status_code == 200
        assert response.json()["id"] == credential.id
        assert client.get("/v1/apikeys").json() == []

    def test_delete_unknown_id_is_not_found(self, client) -> None:
        response = client.delete("/v1/apikey", params={"id": "nope"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "credential_not_found"

    def test_delete_without_id_is_bad_request(self, client) -> None:
        response = client.delete("/v1/apikey")

        assert response.status_code == 400

    def test_listing_reflects_consumed_quota(self, client, store, add_credential) -> None:
        credential = add_credential("key-1", quotas=5)
        store.try_consume(credential.id)

        assert client.get("/v1/apikeys").json()[0]["quotas"] == 4


@pytest.mark.usefixtures("admin_guard")
class TestAdminGuard:
    def test_missing_key_is_forbidden(self, client) -> None:
        response = client.get("/v1/apikeys")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "admin_key_missing"

    def test_wrong_key_is_forbidden(self, client) -> None:
        response = client.get("/v1/apikeys", headers={"X-Admin-Key": "guess"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "invalid_admin_key"

    def test_valid_key_is_accepted(self, client) -> None:
        response = client.get("/v1/apikeys", headers={"X-Admin-Key": "admin-2"})

        assert response.status_code == 200

    def test_search_is_not_guarded(self, client) -> None:
        response = client.get("/v1/search")

        assert response.status_code == 200
