"""Integration tests for the case HTTP API."""

import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import UploadFile

from patient_case_service.api.dependencies import (
    get_authenticator,
    get_blob_store,
    get_case_manager,
    get_case_repository,
)
from patient_case_service.main import app
from tests.conftest import TEST_EMAIL, TEST_PASSWORD


def pdf(name: str, data: bytes = b"%PDF-1.4 scan"):
    return ("investigation", (name, data, "application/pdf"))


@pytest.fixture
def client(repository, blob_store, authenticator, case_manager):
    # case_manager wraps the same fakes with a 1 KiB per-file limit
    app.dependency_overrides[get_case_repository] = lambda: repository
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_case_manager] = lambda: case_manager
    app.dependency_overrides[get_authenticator] = lambda: authenticator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client):
    response = client.post("/auth/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD})
    assert response.status_code == 200
    return client


@pytest.mark.integration
class TestHealth:
    """Test health endpoint"""

    def test_health_returns_ok(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


@pytest.mark.integration
class TestAuthRoutes:
    """Test login / logout / me"""

    def test_login_sets_cookie(self, client):
        response = client.post("/auth/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "message": "Logged in"}
        assert "token" in response.cookies

    def test_login_rejects_bad_password(self, client):
        response = client.post("/auth/login", json={"email": TEST_EMAIL, "password": "nope"})

        assert response.status_code == 401
        assert response.json()["ok"] is False

    @pytest.mark.parametrize("body", [{}, {"email": TEST_EMAIL}, ["not", "an", "object"]])
    def test_malformed_login_body_is_structured_error(self, client, body):
        response = client.post("/auth/login", json=body)

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "ValidationError"
        assert "detail" not in response.json()

    def test_me_reflects_session(self, client):
        assert client.get("/auth/me").json() == {"authenticated": False, "user": None}

        client.post("/auth/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD})

        assert client.get("/auth/me").json() == {"authenticated": True, "user": {"email": TEST_EMAIL}}

    def test_bearer_token_is_accepted(self, client, authenticator):
        token = authenticator.login(TEST_EMAIL, TEST_PASSWORD)

        response = client.get("/api/cases", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200

    def test_logout_ends_session(self, auth_client):
        auth_client.post("/auth/logout")

        assert auth_client.get("/api/cases").status_code == 401


@pytest.mark.integration
class TestCaseRoutes:
    """Test /api/cases endpoints"""

    @pytest.mark.parametrize(
        "method,path",
        [("get", "/api/cases"), ("post", "/api/cases"), ("patch", "/api/cases/x"), ("delete", "/api/cases/x")],
    )
    def test_unauthenticated_calls_rejected(self, client, blob_store, method, path):
        response = getattr(client, method)(path)

        assert response.status_code == 401
        assert response.json()["error"]["kind"] == "Unauthorized"
        assert len(blob_store) == 0

    def test_create_case(self, auth_client, blob_store):
        response = auth_client.post(
            "/api/cases",
            data={"patientName": "Jane Doe", "age": "54", "history": "smoker"},
            files=[pdf("ct.pdf")],
        )

        assert response.status_code == 201
        body = response.json()
        assert body["patientName"] == "Jane Doe"
        assert body["age"] == 54
        assert body["createdBy"] == TEST_EMAIL
        assert len(body["attachments"]) == 1
        attachment = body["attachments"][0]
        assert attachment["originalName"] == "ct.pdf"
        assert attachment["mimeType"] == "application/pdf"
        assert blob_store.exists(attachment["storageKey"])

    def test_create_without_patient_name(self, auth_client, blob_store):
        response = auth_client.post("/api/cases", data={"age": "54"}, files=[pdf("ct.pdf")])

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "ValidationError"
        assert len(blob_store) == 0

    def test_create_with_eleven_files(self, auth_client, blob_store):
        files = [pdf(f"{i}.pdf") for i in range(11)]

        response = auth_client.post("/api/cases", data={"patientName": "Jane Doe"}, files=files)

        assert response.status_code == 400
        assert len(blob_store) == 0

    def test_create_with_oversize_file(self, auth_client, blob_store):
        response = auth_client.post(
            "/api/cases", data={"patientName": "Jane Doe"}, files=[pdf("big.pdf", b"x" * 2048)]
        )

        assert response.status_code == 413
        assert response.json()["error"]["kind"] == "ValidationError"
        assert len(blob_store) == 0

    def test_create_with_invalid_age(self, auth_client):
        response = auth_client.post("/api/cases", data={"patientName": "Jane Doe", "age": "old"})

        assert response.status_code == 400

    def test_list_and_get(self, auth_client):
        first = auth_client.post("/api/cases", data={"patientName": "First"}).json()
        second = auth_client.post("/api/cases", data={"patientName": "Second"}).json()

        listed = auth_client.get("/api/cases").json()
        assert [c["id"] for c in listed] == [second["id"], first["id"]]

        response = auth_client.get(f"/api/cases/{first['id']}")
        assert response.status_code == 200
        assert response.json()["patientName"] == "First"

        assert auth_client.get("/api/cases/case_missing").status_code == 404

    def test_patch_replaces_attachment_and_notes(self, auth_client, blob_store):
        created = auth_client.post(
            "/api/cases",
            data={"patientName": "Jane Doe", "history": "smoker", "progressionNotes": "stable"},
            files=[pdf("a.pdf")],
        ).json()
        old_key = created["attachments"][0]["storageKey"]

        response = auth_client.patch(
            f"/api/cases/{created['id']}",
            data={"deletedFiles": [old_key, "unknown.pdf"], "progressionNotes": ""},
            files=[pdf("b.pdf")],
        )

        assert response.status_code == 200
        body = response.json()
        assert [a["originalName"] for a in body["attachments"]] == ["b.pdf"]
        assert body["progressionNotes"] == ""
        assert body["history"] == "smoker"
        assert not blob_store.exists(old_key)
        assert blob_store.exists(body["attachments"][0]["storageKey"])

    def test_patch_missing_case(self, auth_client, blob_store):
        response = auth_client.patch("/api/cases/case_missing", data={"history": "x"}, files=[pdf("a.pdf")])

        assert response.status_code == 404
        assert response.json()["error"]["kind"] == "NotFound"
        assert len(blob_store) == 0

    def test_delete_case(self, auth_client, blob_store, repository):
        created = auth_client.post(
            "/api/cases", data={"patientName": "Jane Doe"}, files=[pdf("a.pdf"), pdf("b.pdf")]
        ).json()
        keys = [a["storageKey"] for a in created["attachments"]]

        response = auth_client.delete(f"/api/cases/{created['id']}")

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert response.json()["warnings"] == []
        assert not any(blob_store.exists(k) for k in keys)

        second = auth_client.delete(f"/api/cases/{created['id']}")
        assert second.status_code == 404

    def test_storage_outage_is_structured_error(self, auth_client, repository):
        repository.fail_reads = True

        response = auth_client.get("/api/cases")

        assert response.status_code == 503
        assert response.json() == {
            "error": {"kind": "StorageUnavailable", "message": "Case storage is unavailable"}
        }

    def test_limits_checked_before_file_contents_are_read(self, auth_client, blob_store, monkeypatch):
        async def fail_read(self, size=-1):
            raise AssertionError("file part read before limit check")

        monkeypatch.setattr(UploadFile, "read", fail_read)

        oversize = auth_client.post(
            "/api/cases", data={"patientName": "Jane Doe"}, files=[pdf("big.pdf", b"x" * 2048)]
        )
        too_many = auth_client.post(
            "/api/cases", data={"patientName": "Jane Doe"}, files=[pdf(f"{i}.pdf") for i in range(11)]
        )

        assert oversize.status_code == 413
        assert too_many.status_code == 400
        assert len(blob_store) == 0

    def test_overlong_patient_name_rejected(self, auth_client, blob_store):
        response = auth_client.post(
            "/api/cases", data={"patientName": "x" * 201}, files=[pdf("ct.pdf")]
        )

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "ValidationError"
        assert len(blob_store) == 0

    def test_overlong_gender_rejected_on_patch(self, auth_client):
        created = auth_client.post("/api/cases", data={"patientName": "Jane Doe"}).json()

        response = auth_client.patch(f"/api/cases/{created['id']}", data={"gender": "x" * 51})

        assert response.status_code == 400
        assert auth_client.get(f"/api/cases/{created['id']}").json()["gender"] is None
