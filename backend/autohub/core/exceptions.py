"""
Domain exception hierarchy.

Every error raised by services and repositories derives from AutoHubError.
Each exception carries a human readable message, a stable machine code, the
HTTP status the API layer should answer with, and keyword context that ends
up both in structured logs and in the error response body.
"""

from typing import Any


class AutoHubError(Exception):
    """Base exception for AutoHub domain errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": {key: _jsonable(value) for key, value in self.context.items()},
        }


class InvalidArgumentError(AutoHubError):
    """Raised for malformed identifiers, bad enum values or invalid payloads."""

    status_code = 400
    code = "invalid_argument"


class NotFoundError(AutoHubError):
    """Raised when a referenced entity does not exist."""

    status_code = 404
    code = "not_found"


class InsufficientStockError(AutoHubError):
    """Raised when an order asks for more units than a part has in stock."""

    status_code = 400
    code = "insufficient_stock"

    def __init__(self, message: str, part_id: Any, requested: int, available: int, **context: Any):
        super().__init__(
            message,
            part_id=part_id,
            requested=requested,
            available=available,
            **context,
        )
        self.part_id = part_id
        self.requested = requested
        self.available = available


class AmountMismatchError(AutoHubError):
    """Raised when a payment amount differs from its reference total."""

    status_code = 400
    code = "amount_mismatch"


class IllegalTransitionError(AutoHubError):
    """Raised when a requested status change is not allowed."""

    status_code = 400
    code = "illegal_transition"

    def __init__(self, message: str, current_status: Any, requested_status: Any, **context: Any):
        super().__init__(
            message,
            current_status=current_status,
            requested_status=requested_status,
            **context,
        )
        self.current_status = current_status
        self.requested_status = requested_status


class AlreadyShippedError(IllegalTransitionError):
    """Raised when cancelling an order that has already shipped."""

    code = "already_shipped"


class MissingTrackingInfoError(IllegalTransitionError):
    """Raised when marking an order shipped without a tracking number."""

    code = "missing_tracking_info"


class TransactionFinalizedError(IllegalTransitionError):
    """Raised when a completed transaction is moved anywhere but refunded."""

    code = "transaction_finalized"


class AttachmentRejectedError(AutoHubError):
    """Raised when an uploaded file has a disallowed type or size."""

    status_code = 400
    code = "attachment_rejected"


class ResourceInUseError(AutoHubError):
    """Raised when deleting an entity still referenced by open records."""

    status_code = 409
    code = "resource_in_use"


class StorageError(AutoHubError):
    """Raised when an attachment cannot be written to or removed from storage."""

    status_code = 500
    code = "storage_error"


class RepositoryError(AutoHubError):
    """Raised when a database operation fails."""

    status_code = 500
    code = "repository_error"


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if hasattr(value, "value") and isinstance(getattr(value, "value"), str):
        return value.value
    return str(value)
