"""Tests for upload validation and settings."""

import pytest

from receivables.config import AppSettings
from receivables.validation import UploadValidationError, UploadValidator, validate_upload


@pytest.fixture
def app_settings():
    return AppSettings(max_upload_size_mb=1, supported_ledger_formats="csv, XLSX")


class TestUploadValidator:

    def test_accepts_supported_file(self, app_settings):
        assert UploadValidator(app_settings).check("ledger.xlsx", 2048) == []

    def test_rejects_unsupported_extension(self, app_settings):
        issues = UploadValidator(app_settings).check("ledger.pdf", 2048)
        assert len(issues) == 1
        assert "pdf" in issues[0]

    def test_rejects_empty_and_oversized(self, app_settings):
        validator = UploadValidator(app_settings)
        assert validator.check("ledger.csv", 0) == ["File is empty"]
        assert "limit is 1 MB" in validator.check("ledger.csv", 2 * 1024 * 1024)[0]

    def test_lists_every_issue(self, app_settings):
        with pytest.raises(UploadValidationError) as exc_info:
            validate_upload("", 0, app_settings)
        assert len(exc_info.value.issues) == 2


class TestAppSettings:

    def test_formats_list_normalized(self, app_settings):
        assert app_settings.supported_formats_list == ["csv", "xlsx"]

    def test_upload_size_bytes(self, app_settings):
        assert app_settings.max_upload_size_bytes == 1024 * 1024
