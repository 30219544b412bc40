"""
Error taxonomy shared by the services and mapped to HTTP responses in the API layer.
"""


class StudyBankError(Exception):
    """Base exception for studybank errors."""

    status_code = 500
    error_type = "internal_error"


class AuthError(StudyBankError):
    """Raised when an operation needs an authenticated user and there is none."""

    status_code = 401
    error_type = "auth_error"


class PersistenceError(StudyBankError):
    """Raised when a record store call fails."""

    status_code = 503
    error_type = "persistence_error"


class ValidationError(StudyBankError):
    """Raised when input would violate a data invariant before anything is written."""

    status_code = 422
    error_type = "validation_error"


class NotFoundError(StudyBankError):
    """Raised when the row targeted by an update or delete does not exist."""

    status_code = 404
    error_type = "not_found"
