"""Integration tests for the submit → moderate → publish flow over HTTP

Tests cover:
- Upload lands in the admin queue and not in public search
- Approve with curated metadata publishes; incomplete approve refused
- Reject removes the resource and its file
- Public download URLs, admin preview, file manager and reconcile
"""

import pytest
from fastapi.testclient import TestClient

from conftest import auth_header, make_pdf
from notehub.domain.resources import ResourceStatus


pytestmark = pytest.mark.integration

CURATED_NOTES = {"title": "Paging and segmentation", "subject": "Operating Systems", "branch": "CSE", "semester": "4"}


def _upload(client: TestClient, token: str, content: bytes, kind: str = "notes", filename: str = "os-unit-3.pdf"):
    return client.post(
        "/resources",
        headers=auth_header(token),
        files={"file": (filename, content, "application/pdf")},
        data={"kind": kind},
    )


class TestSubmitAndModerate:
    def test_full_publication_flow(self, client: TestClient, member_token, admin_token, storage):
        upload = _upload(client, member_token, make_pdf("flow"))
        assert upload.status_code == 201
        resource = upload.json()["value"]
        assert resource["status"] == "pending"
        assert resource["subject"] == "Pending Review"

        # Not public yet
        search = client.get("/resources/search", params={"kind": "notes"})
        assert search.json()["value"] == []

        queue = client.get("/admin/moderation", headers=auth_header(admin_token))
        assert [entry["id"] for entry in queue.json()["value"]] == [resource["id"]]
        assert queue.json()["value"][0]["uploader_email"] == "student@college.edu"

        approve = client.post(
            f"/admin/moderation/{resource['id']}/approve",
            headers=auth_header(admin_token),
            json={**CURATED_NOTES, "expected_version": 1},
        )
        assert approve.status_code == 200
        assert approve.json()["value"]["status"] == "approved"

        search = client.get("/resources/search", params={"kind": "notes", "subject": "operating"})
        results = search.json()["value"]
        assert [r["id"] for r in results] == [resource["id"]]
        assert results[0]["title"] == "Paging and segmentation"

        download = client.get(f"/resources/{resource['id']}/download")
        assert download.status_code == 200
        assert download.json()["value"]["url"].startswith("https://storage.test/pending/")

        queue = client.get("/admin/moderation", headers=auth_header(admin_token))
        assert queue.json()["value"] == []

    def test_duplicate_upload_refused(self, client: TestClient, member_token):
        content = make_pdf("twice")
        assert _upload(client, member_token, content).status_code == 201

        response = _upload(client, member_token, content, filename="copy.pdf")

        assert response.status_code == 409
        assert response.json()["kind"] == "DuplicateContent"

    def test_non_pdf_upload_refused(self, client: TestClient, member_token):
        response = client.post(
            "/resources",
            headers=auth_header(member_token),
            files={"file": ("essay.docx", b"PK\x03\x04", "application/msword")},
            data={"kind": "notes"},
        )

        assert response.status_code == 422
        assert response.json()["kind"] == "ValidationError"
        assert "content_type" in response.json()["details"]["fields"]

    def test_anonymous_upload_redirected_to_login(self, client: TestClient):
        response = client.post(
            "/resources",
            files={"file": ("a.pdf", make_pdf(), "application/pdf")},
            data={"kind": "notes"},
        )
        assert response.status_code == 401
        assert response.json()["redirect_to"] == "/login"

    def test_incomplete_pyq_approval(self, client: TestClient, member_token, admin_token):
        resource = _upload(client, member_token, make_pdf("pyq"), kind="pyq").json()["value"]

        response = client.post(
            f"/admin/moderation/{resource['id']}/approve",
            headers=auth_header(admin_token),
            json=CURATED_NOTES,
        )

        assert response.status_code == 422
        assert set(response.json()["details"]["fields"]) == {"exam_type", "academic_year", "semester_type"}

    def test_second_approval_is_invalid_transition(self, client: TestClient, member_token, admin_token):
        resource = _upload(client, member_token, make_pdf("again")).json()["value"]
        url = f"/admin/moderation/{resource['id']}/approve"

        assert client.post(url, headers=auth_header(admin_token), json=CURATED_NOTES).status_code == 200
        response = client.post(url, headers=auth_header(admin_token), json=CURATED_NOTES)

        assert response.status_code == 409
        assert response.json()["kind"] == "InvalidTransition"

    def test_reject_removes_resource_and_file(self, client: TestClient, member_token, admin_token, storage):
        resource = _upload(client, member_token, make_pdf("bad")).json()["value"]

        response = client.post(f"/admin/moderation/{resource['id']}/reject", headers=auth_header(admin_token))

        assert response.status_code == 200
        assert response.json()["value"]["blob_deleted"] is True
        assert resource["storage_path"] not in storage.blobs
        assert client.get("/admin/moderation", headers=auth_header(admin_token)).json()["value"] == []

        # Same bytes may be submitted again after a reject
        assert _upload(client, member_token, make_pdf("bad")).status_code == 201

    def test_admin_preview_of_pending(self, client: TestClient, member_token, admin_token):
        resource = _upload(client, member_token, make_pdf("preview")).json()["value"]

        preview = client.get(f"/admin/moderation/{resource['id']}/preview", headers=auth_header(admin_token))
        public = client.get(f"/resources/{resource['id']}/download")

        assert preview.status_code == 200
        assert public.status_code == 404

    def test_stats(self, client: TestClient, member_token, admin_token):
        _upload(client, member_token, make_pdf("stats"))

        stats = client.get("/admin/stats", headers=auth_header(admin_token)).json()["value"]

        assert stats["pending_resources"] == 1
        assert stats["total_identities"] == 2


class TestSearchEndpoint:
    def test_unknown_kind(self, client: TestClient):
        response = client.get("/resources/search", params={"kind": "slides"})
        assert response.status_code == 422
        assert response.json()["kind"] == "ValidationError"

    def test_kind_required(self, client: TestClient):
        assert client.get("/resources/search").status_code == 422

    def test_invalid_token_treated_as_anonymous(self, client: TestClient, member, make_resource):
        make_resource(member, status=ResourceStatus.APPROVED)

        response = client.get("/resources/search", params={"kind": "notes"}, headers=auth_header("garbage"))

        assert response.status_code == 200
        assert len(response.json()["value"]) == 1


class TestFileManager:
    def test_list_and_hard_delete_published(self, client: TestClient, admin_token, member, make_resource, storage):
        resource = make_resource(member, status=ResourceStatus.APPROVED)
        headers = auth_header(admin_token)

        files = client.get("/admin/files", headers=headers).json()["value"]
        assert [f["storage_path"] for f in files] == [resource.storage_path]

        response = client.delete("/admin/files", headers=headers, params={"storage_path": resource.storage_path})

        assert response.status_code == 200
        assert response.json()["value"]["resource_id"] == str(resource.id)
        assert storage.blobs == {}
        assert client.get("/resources/search", params={"kind": "notes"}).json()["value"] == []

    def test_edit_published_metadata(self, client: TestClient, admin_token, member, make_resource):
        resource = make_resource(member, status=ResourceStatus.APPROVED)

        response = client.patch(
            f"/admin/files/{resource.id}",
            headers=auth_header(admin_token),
            json={"subject": "Database Systems"},
        )

        assert response.status_code == 200
        assert response.json()["value"]["subject"] == "Database Systems"
        assert response.json()["value"]["title"] == "Unit notes"

    def test_replace_published_file(self, client: TestClient, admin_token, member, make_resource, storage):
        resource = make_resource(member, status=ResourceStatus.APPROVED)
        corrected = make_pdf("rescanned")

        response = client.put(
            f"/admin/files/{resource.id}",
            headers=auth_header(admin_token),
            files={"file": ("dbms-unit-2.pdf", corrected, "application/pdf")},
        )

        assert response.status_code == 200
        assert response.json()["value"]["size_bytes"] == len(corrected)
        assert storage.blobs[resource.storage_path] == corrected

    def test_replace_with_non_pdf_refused(self, client: TestClient, admin_token, member, make_resource):
        resource = make_resource(member, status=ResourceStatus.APPROVED)

        response = client.put(
            f"/admin/files/{resource.id}",
            headers=auth_header(admin_token),
            files={"file": ("notes.docx", b"PK\x03\x04", "application/msword")},
        )

        assert response.status_code == 422
        assert response.json()["kind"] == "ValidationError"

    def test_reconcile_reports_orphans(self, client: TestClient, admin_token, member, storage):
        orphan = f"pending/{member.id}/orphan.pdf"
        storage.put_blob(orphan, age_seconds=7200)

        response = client.post("/admin/reconcile", headers=auth_header(admin_token))

        assert response.status_code == 200
        assert response.json()["value"]["orphan_blobs"] == [orphan]
        assert orphan in storage.blobs


class TestIdentityAdministration:
    def test_identities_listed_with_ban_state(self, client: TestClient, admin_token, member):
        headers = auth_header(admin_token)
        client.post(f"/admin/identities/{member.id}/ban", headers=headers, json={"reason": "Spam"})

        response = client.get("/admin/identities", headers=headers)

        assert response.status_code == 200
        by_email = {entry["email"]: entry for entry in response.json()["value"]}
        assert by_email[member.email]["is_banned"] is True
        assert by_email[member.email]["ban_reason"] == "Spam"
        assert len(by_email) == 2


class TestObservability:
    def test_health_degraded_without_redis(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["components"]["database"]["status"] == "healthy"
        assert body["components"]["storage"]["status"] == "healthy"
        assert body["components"]["cache"]["status"] == "degraded"

    def test_health_storage_outage_is_not_fatal(self, client: TestClient, storage):
        storage.fail_exists = True

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["components"]["storage"]["status"] == "degraded"

    def test_request_id_echoed(self, client: TestClient):
        response = client.get("/", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_metrics_exposed(self, client: TestClient, member_token):
        _upload(client, member_token, make_pdf("metrics"))

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "notehub_uploads_total" in response.text
