"""Unit tests for upload validation utilities"""

import pytest

from notehub.domain.resources import (
    PDF_MIME_TYPE,
    content_problem,
    filename_problem,
    is_supported_mime_type,
    looks_like_pdf,
    sanitize_filename,
)

LIMIT = 10 * 1024 * 1024
PDF = b"%PDF-1.7\n..."


class TestMimeTypeValidation:
    """Only PDFs are accepted"""

    def test_pdf_mime_type_supported(self):
        assert is_supported_mime_type(PDF_MIME_TYPE) is True

    def test_mime_type_parameters_ignored(self):
        assert is_supported_mime_type("application/pdf; charset=binary") is True
        assert is_supported_mime_type("Application/PDF") is True

    @pytest.mark.parametrize("mime_type", [
        "application/msword",
        "image/png",
        "text/plain",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "",
        None,
    ])
    def test_other_mime_types_rejected(self, mime_type):
        assert is_supported_mime_type(mime_type) is False


class TestPdfMagic:
    def test_pdf_header_detected(self):
        assert looks_like_pdf(PDF) is True

    def test_non_pdf_content(self):
        assert looks_like_pdf(b"PK\x03\x04 zip archive") is False
        assert looks_like_pdf(b"") is False


class TestContentProblem:
    def test_valid_pdf(self):
        assert content_problem(PDF, LIMIT) is None

    def test_empty_file_rejected(self):
        assert "empty" in content_problem(b"", LIMIT)

    def test_exactly_max_size_accepted(self):
        assert content_problem(PDF + b"x" * (100 - len(PDF)), max_size=100) is None

    def test_over_max_size_rejected(self):
        assert "exceeds maximum size" in content_problem(PDF + b"x" * 100, max_size=100)

    def test_renamed_docx_rejected(self):
        """The bytes decide, not the declared type"""
        assert content_problem(b"PK\x03\x04 word document", LIMIT) == "File is not a valid PDF"


class TestFilenameValidation:
    @pytest.mark.parametrize("filename", ["dbms-unit-2.pdf", "Maths Notes.PDF"])
    def test_valid_filename(self, filename):
        assert filename_problem(filename) is None

    @pytest.mark.parametrize("filename", ["", "   ", None])
    def test_empty_filename(self, filename):
        assert "empty" in filename_problem(filename)

    @pytest.mark.parametrize("filename", ["../secret.pdf", "a/b.pdf", "a\\b.pdf"])
    def test_path_traversal_rejected(self, filename):
        assert "path traversal" in filename_problem(filename)

    def test_control_characters_rejected(self):
        assert filename_problem("notes\x00.pdf") is not None

    def test_too_long_rejected(self):
        assert "255" in filename_problem("a" * 252 + ".pdf")

    def test_non_pdf_extension_rejected(self):
        assert ".pdf" in filename_problem("notes.docx")


class TestSanitizeFilename:
    def test_special_characters_replaced(self):
        assert sanitize_filename("DBMS notes (unit 2).pdf") == "DBMS_notes_unit_2_.pdf"

    def test_directory_components_stripped(self):
        assert sanitize_filename("/tmp/uploads/os.pdf") == "os.pdf"

    def test_long_name_truncated_keeping_extension(self):
        result = sanitize_filename("x" * 300 + ".pdf")
        assert len(result) == 255
        assert result.endswith(".pdf")
