"""Upload validation package."""

from receivables.validation.upload import (
    UploadValidationError,
    UploadValidator,
    validate_upload,
)

__all__ = [
    "UploadValidationError",
    "UploadValidator",
    "validate_upload",
]
