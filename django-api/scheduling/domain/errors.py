"""Domain error codes for the scheduling module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    CONFIG_INVALID = "CONFIG_INVALID"
    EVENT_FULL = "EVENT_FULL"
    STORAGE_CONFLICT = "STORAGE_CONFLICT"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    INVALID_ID = "INVALID_ID"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ORDER_NOT_PAID = "ORDER_NOT_PAID"
    PAYMENT_MISMATCH = "PAYMENT_MISMATCH"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TERM_NOT_FOUND = "TERM_NOT_FOUND"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ConfigInvalidError(DomainError):
    """Raised for template, term, location or product misconfiguration."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.CONFIG_INVALID, message=message)


class EventFullError(DomainError):
    """Raised when an admission would exceed an event's capacity."""

    def __init__(self, event_id, capacity: int) -> None:
        super().__init__(
            code=ErrorCode.EVENT_FULL,
            message="Event is at capacity",
        )
        object.__setattr__(self, "event_id", event_id)
        object.__setattr__(self, "capacity", capacity)


class StorageConflictError(DomainError):
    """Raised for transient lock or transaction conflicts. Safe to retry."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.STORAGE_CONFLICT,
            message="Storage conflict, please retry",
        )


class InfrastructureError(DomainError):
    """Raised when storage is unreachable or otherwise broken."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INFRASTRUCTURE,
            message="Storage unavailable",
        )


class InvalidIdError(DomainError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, kind: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {kind} ID format",
        )


class InvalidTransitionError(DomainError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, kind: str, current: str, requested: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot move {kind} from {current} to {requested}",
        )


class OrderNotPaidError(DomainError):
    """Raised when reconciliation is requested for an order that is not PAID."""

    def __init__(self, order_id: str) -> None:
        super().__init__(
            code=ErrorCode.ORDER_NOT_PAID,
            message="Order is not paid",
        )
        object.__setattr__(self, "order_id", order_id)


class PaymentMismatchError(DomainError):
    """Raised when a payment confirmation does not match its order."""

    def __init__(self, order_id: str) -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_MISMATCH,
            message="Payment does not match order",
        )
        object.__setattr__(self, "order_id", order_id)


class OrderNotFoundError(DomainError):
    """Raised when an order is not found."""

    def __init__(self, order_id: str) -> None:
        super().__init__(code=ErrorCode.ORDER_NOT_FOUND, message="Order not found")
        object.__setattr__(self, "order_id", order_id)


class BookingNotFoundError(DomainError):
    """Raised when a booking is not found."""

    def __init__(self, booking_id: str) -> None:
        super().__init__(code=ErrorCode.BOOKING_NOT_FOUND, message="Booking not found")
        object.__setattr__(self, "booking_id", booking_id)


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_FOUND, message="Event not found")
        object.__setattr__(self, "event_id", event_id)


class TemplateNotFoundError(DomainError):
    """Raised when a recurring template is not found."""

    def __init__(self, template_id: str) -> None:
        super().__init__(
            code=ErrorCode.TEMPLATE_NOT_FOUND,
            message="Recurring template not found",
        )
        object.__setattr__(self, "template_id", template_id)


class TermNotFoundError(DomainError):
    """Raised when no term matches the request."""

    def __init__(self) -> None:
        super().__init__(code=ErrorCode.TERM_NOT_FOUND, message="Term not found")
