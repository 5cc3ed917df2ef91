"""Unit tests for upload and text validation.

Tests for app/core/validation.py.

Run with:
    pytest tests/unit/test_core/test_validation.py -v
"""

import pytest

from app.core.validation import (
    UploadLimits,
    escape_text,
    validate_file,
    validate_file_count,
    validate_submission,
    validate_text,
)
from app.config import Settings
from app.errors import ValidationError
from tests.fixtures.records import PNG_BYTES, make_file


@pytest.mark.fast
class TestEscapeText:
    """Tests for escape_text()."""

    def test_escapes_markup(self):
        assert escape_text("<b>Ann</b>") == "&lt;b&gt;Ann&lt;&#x2F;b&gt;"

    def test_escapes_quotes_and_ampersand(self):
        assert escape_text("Tom & \"Jo\"") == "Tom &amp; &quot;Jo&quot;"

    def test_plain_text_unchanged(self):
        assert escape_text("Congrats Anna") == "Congrats Anna"


@pytest.mark.fast
class TestValidateText:
    """Tests for validate_text()."""

    def test_strips_whitespace(self):
        assert validate_text("  Ann  ", "guestName", 100, True, "Guest name") == "Ann"

    def test_required_missing(self):
        with pytest.raises(ValidationError) as exc:
            validate_text("   ", "guestName", 100, True, "Guest name")
        assert exc.value.field == "guestName"

    def test_optional_missing(self):
        assert validate_text(None, "message", 500, False, "Message") == ""

    def test_too_long(self):
        with pytest.raises(ValidationError) as exc:
            validate_text("x" * 101, "guestName", 100, True, "Guest name")
        assert exc.value.message == "Guest name must be at most 100 characters"

    def test_exact_limit_allowed(self):
        assert validate_text("x" * 100, "guestName", 100, True, "Guest name") == "x" * 100


@pytest.mark.fast
class TestValidateFile:
    """Tests for validate_file()."""

    def test_accepts_jpeg(self, limits):
        result = validate_file(make_file("IMG_001.JPG"), 0, limits)
        assert result.content_type == "image/jpeg"
        assert result.extension == ".jpg"

    def test_content_type_parameters_ignored(self, limits):
        result = validate_file(make_file("a.png", "image/png; charset=binary", PNG_BYTES), 0, limits)
        assert result.content_type == "image/png"

    def test_rejects_executable(self, limits):
        with pytest.raises(ValidationError) as exc:
            validate_file(make_file("virus.exe", "application/x-msdownload"), 3, limits)
        assert exc.value.field == "files[3]"
        assert "Invalid file type" in exc.value.message

    def test_rejects_mismatched_extension(self, limits):
        with pytest.raises(ValidationError) as exc:
            validate_file(make_file("photo.exe", "image/jpeg"), 0, limits)
        assert "does not match" in exc.value.message

    def test_rejects_empty_file(self, limits):
        with pytest.raises(ValidationError) as exc:
            validate_file(make_file(data=b""), 0, limits)
        assert "empty" in exc.value.message

    def test_rejects_oversized_file(self):
        limits = UploadLimits(max_file_size=1024 * 1024)
        with pytest.raises(ValidationError) as exc:
            validate_file(make_file(data=b"x" * (1024 * 1024 + 1)), 0, limits)
        assert "Maximum file size is 1MB" in exc.value.message

    def test_strips_client_path(self, limits):
        result = validate_file(make_file("../../secret/photo.jpg"), 0, limits)
        assert result.filename == "photo.jpg"


@pytest.mark.fast
class TestValidateSubmission:
    """Tests for validate_submission()."""

    def test_valid_submission_is_escaped(self, limits):
        submission = validate_submission("<Ann>", "Hi & bye", [make_file()], limits)
        assert submission.guest_name == "&lt;Ann&gt;"
        assert submission.message == "Hi &amp; bye"
        assert len(submission.files) == 1

    def test_missing_guest_name(self, limits):
        with pytest.raises(ValidationError) as exc:
            validate_submission("", None, [make_file()], limits)
        assert exc.value.field == "guestName"

    def test_message_too_long(self, limits):
        with pytest.raises(ValidationError) as exc:
            validate_submission("Ann", "x" * 501, [make_file()], limits)
        assert exc.value.field == "message"

    def test_no_files(self, limits):
        with pytest.raises(ValidationError) as exc:
            validate_submission("Ann", None, [], limits)
        assert exc.value.field == "files"

    def test_too_many_files(self):
        limits = UploadLimits(max_files=2)
        with pytest.raises(ValidationError) as exc:
            validate_submission("Ann", None, [make_file()] * 3, limits)
        assert exc.value.field == "files"
        assert "Maximum 2 files" in exc.value.message

    def test_file_count_at_limit_allowed(self):
        validate_file_count(20, 20)

    def test_file_count_over_limit(self):
        with pytest.raises(ValidationError) as exc:
            validate_file_count(21, 20)
        assert exc.value.message == "Too many files. Maximum 20 files per upload."

    def test_one_bad_file_rejects_all(self, limits):
        files = [make_file(), make_file("virus.exe", "application/octet-stream")]
        with pytest.raises(ValidationError) as exc:
            validate_submission("Ann", None, files, limits)
        assert exc.value.field == "files[1]"

    def test_limits_from_settings(self):
        settings = Settings(MAX_FILES_PER_UPLOAD=5, MAX_FILE_SIZE_BYTES=2048)
        limits = UploadLimits.from_settings(settings)
        assert limits.max_files == 5
        assert limits.max_file_size == 2048
