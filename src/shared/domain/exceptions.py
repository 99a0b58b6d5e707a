"""Error taxonomy shared by the catalog and notification services.

Errors are plain exception classes so the domain core can hand them back as
values (validators, publisher) while the service layer raises them up to the
HTTP boundary, where ``status_code`` and ``code`` pick the response.
"""

from typing import Any, Dict, List, Optional


class DomainError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Field-level validation failure."""
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.value = value
        self.detail = message

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "code": self.code, "message": self.detail}


class InvalidIsbnFormat(ValidationError):
    code = "INVALID_ISBN_FORMAT"


class InvalidIsbnChecksum(ValidationError):
    code = "INVALID_ISBN_CHECKSUM"


class FutureDateError(ValidationError):
    code = "FUTURE_DATE"


class NegativeValueError(ValidationError):
    code = "NEGATIVE_VALUE"


class BookValidationError(DomainError):
    """One or more field errors found while validating a book."""
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, errors: List[ValidationError]):
        super().__init__("Book validation failed: " + "; ".join(str(e) for e in errors))
        self.errors = list(errors)


class NotFoundError(DomainError):
    status_code = 404
    code = "NOT_FOUND"


class BookNotFound(NotFoundError):
    code = "BOOK_NOT_FOUND"

    def __init__(self, book_id: str):
        super().__init__(f"Book {book_id} not found")
        self.book_id = book_id


class DuplicateIsbnError(DomainError):
    status_code = 409
    code = "DUPLICATE_ISBN"

    def __init__(self, isbn: str):
        super().__init__(f"An active book with ISBN {isbn} already exists")
        self.isbn = isbn


class ExternalApiError(DomainError):
    status_code = 503
    code = "EXTERNAL_API_ERROR"


class PublishError(DomainError):
    """A single publish attempt failed at the transport."""
    code = "EVENT_PUBLISH_FAILED"

    def __init__(self, event_id: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.event_id = event_id
        self.cause = cause


class RetryExhausted(PublishError):
    code = "EVENT_PUBLISH_RETRY_EXHAUSTED"

    def __init__(self, event_id: str, attempts: int, last_error: Optional[BaseException]):
        super().__init__(
            event_id,
            f"Failed to publish event {event_id} after {attempts} attempts: {last_error}",
            cause=last_error,
        )
        self.attempts = attempts
        self.last_error = last_error


class RetryAborted(PublishError):
    code = "EVENT_PUBLISH_RETRY_ABORTED"

    def __init__(self, event_id: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(
            event_id,
            f"Publishing of event {event_id} cancelled after {attempts} attempts",
            cause=last_error,
        )
        self.attempts = attempts
        self.last_error = last_error


class DeserializationError(DomainError):
    status_code = 400
    code = "DESERIALIZATION_ERROR"
