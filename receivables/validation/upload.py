"""
Upload Validation

Cheap checks that run before a ledger or prefix guide is parsed: a
missing name, an unsupported extension, an empty or oversized file.

IMPORTANT: Validation never fixes anything. A failed check rejects the
whole upload with every problem listed, and nothing is committed.
"""

from pathlib import Path
from typing import Optional

from receivables.config import AppSettings, get_settings


class UploadValidationError(Exception):
    """The upload was rejected before parsing."""

    def __init__(self, issues: list[str]):
        self.issues = issues
        super().__init__("; ".join(issues))


class UploadValidator:
    """Checks an uploaded file against the configured limits."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def check(self, filename: str, file_size: int) -> list[str]:
        """Every problem with the upload, empty when it is acceptable."""
        issues = []

        if not filename or not filename.strip():
            issues.append("File name is missing")
        else:
            ext = Path(filename).suffix.lower().lstrip(".")
            if ext not in self._settings.supported_formats_list:
                allowed = ", ".join(self._settings.supported_formats_list)
                issues.append(f"Unsupported file type '{ext or filename}'. Allowed: {allowed}")

        if file_size <= 0:
            issues.append("File is empty")
        elif file_size > self._settings.max_upload_size_bytes:
            issues.append(
                f"File is {file_size / (1024 * 1024):.1f} MB; "
                f"the limit is {self._settings.max_upload_size_mb} MB"
            )

        return issues

    def validate(self, filename: str, file_size: int) -> None:
        """
        Raises:
            UploadValidationError: listing every problem found
        """
        issues = self.check(filename, file_size)
        if issues:
            raise UploadValidationError(issues)


def validate_upload(filename: str, file_size: int, settings: Optional[AppSettings] = None) -> None:
    UploadValidator(settings).validate(filename, file_size)
