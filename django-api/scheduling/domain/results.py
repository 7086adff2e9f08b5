"""Structured results returned by scheduling operations."""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Generic, TypeVar

from scheduling.domain.errors import DomainError
from scheduling.domain.models import Booking, Event
from scheduling.domain.value_objects import (
    BookingId,
    EventId,
    OrderId,
    OrderItemId,
)

T = TypeVar("T")


class Admission(Enum):
    ADMITTED = "ADMITTED"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"


@dataclass(frozen=True)
class ExpansionResult:
    created: tuple[Event, ...] = ()
    already_existing: tuple[Event, ...] = ()
    skipped: tuple[date, ...] = ()


@dataclass(frozen=True)
class ItemReconciliation:
    """What reconciling one order item changed."""

    order_item_id: OrderItemId
    booking_id: BookingId | None
    event_id: EventId | None
    booking_created: bool = False
    event_created: bool = False
    event_linked: bool = False


@dataclass(frozen=True)
class RejectedItem:
    """An order item that could not be admitted to its event."""

    order_item_id: OrderItemId
    event_id: EventId
    capacity: int
    reason: str


@dataclass(frozen=True)
class ReconciliationResult:
    order_id: OrderId
    items: tuple[ItemReconciliation, ...] = ()
    rejected: tuple[RejectedItem, ...] = ()

    @property
    def bookings_created(self) -> int:
        return sum(item.booking_created for item in self.items)

    @property
    def events_created(self) -> int:
        return sum(item.event_created for item in self.items)

    @property
    def events_linked(self) -> int:
        return sum(item.event_linked for item in self.items)


@dataclass(frozen=True)
class RepairError:
    order_id: OrderId
    reason: str


@dataclass(frozen=True)
class RepairSummary:
    processed: int = 0
    bookings_created: int = 0
    events_created: int = 0
    events_linked: int = 0
    errors: tuple[RepairError, ...] = ()


@dataclass(frozen=True)
class CancellationResult:
    booking: Booking
    released: bool
    already_cancelled: bool = False
    event_count: int | None = None


@dataclass(frozen=True)
class EventCancellation:
    event: Event
    bookings_cancelled: tuple[BookingId, ...] = ()


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Value of an operation, or the business error that stopped it.

    A reconciliation can carry both: the partial result and the
    EVENT_FULL error for the items that were not admitted.
    """

    value: T | None = None
    error: DomainError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: DomainError, value: T | None = None) -> "Outcome[T]":
        return cls(value=value, error=error)


class AuditIssue(Enum):
    MISSING_BOOKING = "MISSING_BOOKING"
    MISSING_EVENT = "MISSING_EVENT"


@dataclass(frozen=True)
class AuditFinding:
    """A PAID order item whose booking or event link is missing."""

    order_id: OrderId
    order_item_id: OrderItemId
    issue: AuditIssue
    booking_id: BookingId | None = None


@dataclass(frozen=True)
class AuditReport:
    orders_checked: int = 0
    findings: tuple[AuditFinding, ...] = ()
