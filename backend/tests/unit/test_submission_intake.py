"""Unit tests for SubmissionIntake and DuplicateGuard

Tests cover:
- Accepted uploads land as pending with the placeholder subject
- Validation of kind, filename, content type, size and content
- Duplicate refusal across statuses
- Storage-before-database ordering on failure
"""

import hashlib
import io
from uuid import UUID

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from conftest import make_pdf
from notehub.domain.errors import (
    DuplicateContent,
    FieldValidationError,
    MetadataWriteFailed,
    StorageWriteFailed,
    Unauthenticated,
)
from notehub.domain.resources import ResourceStatus, SENTINEL_SUBJECT
from notehub.intake.service import DuplicateGuard, SubmissionIntake
from notehub.models import Resource
from notehub.moderation.curation import CurationEngine


@pytest.fixture
def intake(db_session, storage):
    return SubmissionIntake(db_session, storage, max_size_bytes=1024)


async def _submit(intake, context, content, kind="notes", filename="unit-1.pdf", content_type="application/pdf", **kwargs):
    return await intake.submit(context, io.BytesIO(content), kind, filename, content_type, **kwargs)


class TestAcceptedUpload:
    @pytest.mark.asyncio
    async def test_upload_creates_pending_resource(self, intake, member_context, db_session, storage):
        content = make_pdf("first")

        result = await _submit(intake, member_context, content, title="  Unit 1  ")

        assert result["status"] == "pending"
        assert result["subject"] == SENTINEL_SUBJECT
        assert result["title"] == "Unit 1"
        assert result["kind"] == "notes"
        assert result["owner_id"] == str(member_context.identity_id)
        assert result["storage_path"].startswith(f"pending/{member_context.identity_id}/")
        assert result["size_bytes"] == len(content)
        assert result["version"] == 1

        resource = db_session.query(Resource).one()
        assert resource.status == ResourceStatus.PENDING
        assert storage.blobs[resource.storage_path] == content

    @pytest.mark.asyncio
    async def test_pyq_kind_case_insensitive(self, intake, member_context):
        result = await _submit(intake, member_context, make_pdf("pyq"), kind=" PYQ ")
        assert result["kind"] == "pyq"

    @pytest.mark.asyncio
    async def test_filename_sanitized(self, intake, member_context):
        result = await _submit(intake, member_context, make_pdf("name"), filename="OS notes (final).pdf")
        assert result["original_filename"] == "OS_notes_final_.pdf"

    @pytest.mark.asyncio
    async def test_upload_not_publicly_visible(self, intake, member_context, db_session):
        await _submit(intake, member_context, make_pdf("hidden"))
        assert db_session.query(Resource).one().is_published is False


class TestUploadValidation:
    @pytest.mark.asyncio
    async def test_anonymous_upload_rejected(self, intake, storage):
        with pytest.raises(Unauthenticated):
            await _submit(intake, None, make_pdf())
        assert storage.calls == []

    @pytest.mark.asyncio
    async def test_unknown_kind(self, intake, member_context):
        with pytest.raises(FieldValidationError) as exc_info:
            await _submit(intake, member_context, make_pdf(), kind="slides")
        assert "kind" in exc_info.value.fields

    @pytest.mark.asyncio
    async def test_non_pdf_type_and_name_reported_together(self, intake, member_context, storage):
        with pytest.raises(FieldValidationError) as exc_info:
            await _submit(
                intake, member_context, make_pdf(),
                filename="notes.docx",
                content_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            )
        assert set(exc_info.value.fields) == {"filename", "content_type"}
        assert storage.blobs == {}

    @pytest.mark.asyncio
    async def test_pdf_name_with_non_pdf_bytes(self, intake, member_context):
        with pytest.raises(FieldValidationError) as exc_info:
            await _submit(intake, member_context, b"PK\x03\x04 not a pdf")
        assert exc_info.value.fields == {"file": "File is not a valid PDF"}

    @pytest.mark.asyncio
    async def test_empty_file(self, intake, member_context):
        with pytest.raises(FieldValidationError) as exc_info:
            await _submit(intake, member_context, b"")
        assert "empty" in exc_info.value.fields["file"]

    @pytest.mark.asyncio
    async def test_oversized_file(self, intake, member_context, storage, db_session):
        with pytest.raises(FieldValidationError) as exc_info:
            await _submit(intake, member_context, b"%PDF-" + b"A" * 2048)
        assert "exceeds maximum size" in exc_info.value.fields["file"]
        assert storage.blobs == {}
        assert db_session.query(Resource).count() == 0


class TestDuplicates:
    @pytest.mark.asyncio
    async def test_identical_bytes_refused(self, intake, member_context, storage, db_session):
        content = make_pdf("dup")
        await _submit(intake, member_context, content)

        with pytest.raises(DuplicateContent) as exc_info:
            await _submit(intake, member_context, content, filename="renamed.pdf")

        assert "already been uploaded" in exc_info.value.message
        assert db_session.query(Resource).count() == 1
        assert len(storage.blobs) == 1

    @pytest.mark.asyncio
    async def test_duplicate_of_approved_resource_refused(self, intake, member, member_context, make_resource, storage):
        existing = make_resource(member, status=ResourceStatus.APPROVED)
        content = storage.blobs[existing.storage_path]
        existing.content_fingerprint = hashlib.sha256(content).hexdigest()
        intake.db.commit()

        with pytest.raises(DuplicateContent):
            await _submit(intake, member_context, content)

    @pytest.mark.asyncio
    async def test_rejected_file_can_be_resubmitted(self, intake, member_context, admin_context, db_session, storage):
        content = make_pdf("again")
        first = await _submit(intake, member_context, content)
        await CurationEngine(db_session, storage).reject(admin_context, UUID(first["id"]))

        result = await _submit(intake, member_context, content)

        assert result["status"] == "pending"
        assert result["id"] != first["id"]
        assert result["content_fingerprint"] == first["content_fingerprint"]
        assert list(storage.blobs) == [result["storage_path"]]

    def test_guard_checks_fingerprint(self, db_session, member, make_resource):
        resource = make_resource(member)
        guard = DuplicateGuard(db_session)
        assert guard.check_duplicate(resource.content_fingerprint) is True
        assert guard.check_duplicate("0" * 64) is False


class TestFailureOrdering:
    @pytest.mark.asyncio
    async def test_storage_failure_creates_no_row(self, intake, member_context, storage, db_session):
        storage.fail_store = True

        with pytest.raises(StorageWriteFailed):
            await _submit(intake, member_context, make_pdf())

        assert db_session.query(Resource).count() == 0

    @pytest.mark.asyncio
    async def test_insert_failure_leaves_orphan_blob(self, intake, member_context, storage, db_session, monkeypatch, caplog):
        def failing_commit():
            raise OperationalError("INSERT", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(MetadataWriteFailed):
            await _submit(intake, member_context, make_pdf())

        monkeypatch.undo()
        assert db_session.query(Resource).count() == 0
        assert len(storage.blobs) == 1
        orphan = next(iter(storage.blobs))
        assert any(orphan in record.getMessage() for record in caplog.records)

    @pytest.mark.asyncio
    async def test_race_lost_to_identical_upload(self, intake, member_context, storage, monkeypatch):
        """Insert hits the unique fingerprint: blob discarded, DuplicateContent"""
        calls = {"n": 0}

        def check_duplicate(fingerprint):
            calls["n"] += 1
            return calls["n"] > 1

        def failing_commit():
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(intake.duplicates, "check_duplicate", check_duplicate)
        monkeypatch.setattr(intake.db, "commit", failing_commit)

        with pytest.raises(DuplicateContent):
            await _submit(intake, member_context, make_pdf())

        assert storage.blobs == {}
