"""Service-level exceptions.

Every failure surfaced by the case service carries a ``kind`` that the API
layer renders as ``{"error": {"kind": ..., "message": ...}}``.
"""


class CaseServiceException(Exception):
    """Base exception for case service errors."""

    kind = "InternalError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ValidationException(CaseServiceException):
    """Bad input: empty required field, duplicate storage key, too many files."""

    kind = "ValidationError"
    status_code = 400


class UploadTooLargeException(ValidationException):
    """An uploaded file exceeds the per-file size limit."""

    status_code = 413


class CaseNotFoundException(CaseServiceException):
    """No case exists with the requested id."""

    kind = "NotFound"
    status_code = 404

    def __init__(self, case_id: str):
        super().__init__(f"Case {case_id} not found")
        self.case_id = case_id


class UnauthorizedException(CaseServiceException):
    """Missing, invalid or expired session token."""

    kind = "Unauthorized"
    status_code = 401


class StorageUnavailableException(CaseServiceException):
    """Blob store or repository could not be reached for a read or upload."""

    kind = "StorageUnavailable"
    status_code = 503


class PersistenceException(CaseServiceException):
    """Writing a case record failed."""

    kind = "PersistenceError"
    status_code = 500
