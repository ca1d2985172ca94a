"""Upload error taxonomy and structured error bodies."""

from __future__ import annotations


class UploadError(Exception):
    """Base class for user-facing upload failures."""

    detail = "Upload failed"

    def __init__(self, message: str, value: object = None):
        self.message = message
        self.value = value
        super().__init__(message)

    def to_dict(self) -> dict:
        d: dict = {"message": self.message}
        if self.value is not None:
            d["value"] = repr(self.value)
        return d

    def to_response_body(self) -> dict:
        return {
            "detail": self.detail,
            "errors": [self.to_dict()],
        }


class ValidationError(UploadError):
    """Raised when an uploaded part is rejected, e.g. a disallowed extension."""

    detail = "Validation failed"


class ParseError(UploadError):
    """Raised when the request body is not a well-formed multipart form."""

    detail = "Malformed upload request"
