"""
Error taxonomy for the inventory service.

Every error carries an ``ErrorCode`` tag. The HTTP boundary maps tags to
status codes through ``STATUS_BY_CODE``, so adding a tag without a status is
caught by ``test_every_code_has_a_status``.
"""

from enum import Enum


class ErrorCode(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    STORE_UNAVAILABLE = "store_unavailable"


STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INSUFFICIENT_STOCK: 400,
    ErrorCode.STORE_UNAVAILABLE: 503,
}


class InventoryError(Exception):
    """Base class for all errors raised by the inventory service."""

    code: ErrorCode
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE[self.code]


class InvalidArgument(InventoryError):
    """Malformed or out-of-range input."""

    code = ErrorCode.INVALID_ARGUMENT


class NotFound(InventoryError):
    """The referenced product does not exist."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, message: str = "Product not found") -> None:
        super().__init__(message)


class InsufficientStock(InventoryError):
    """A decrease asked for more units than are in stock."""

    code = ErrorCode.INSUFFICIENT_STOCK

    def __init__(self, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}"
        )
        self.available = available
        self.requested = requested


class StoreUnavailable(InventoryError):
    """
    The store failed or a row lock could not be acquired in time.

    The transaction has already been rolled back and its connection
    released; the request can be retried.
    """

    code = ErrorCode.STORE_UNAVAILABLE
    retryable = True
