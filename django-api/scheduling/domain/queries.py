"""Typed query objects passed to stores.

Each query validates itself on construction so a store never sees an
unbounded or contradictory filter.
"""

from dataclasses import dataclass
from datetime import date, datetime

from scheduling.domain.models import Booking, Event
from scheduling.domain.value_objects import (
    BookingStatus,
    EventId,
    EventStatus,
    EventType,
    LocationId,
    OrderItemId,
    ProductId,
    StudentId,
    TemplateId,
)


@dataclass(frozen=True)
class BookingQuery:
    """Filter over bookings. Unset fields do not constrain."""

    student_id: StudentId | None = None
    product_id: ProductId | None = None
    service_date: date | None = None
    order_item_id: OrderItemId | None = None
    event_id: EventId | None = None
    statuses: frozenset[BookingStatus] | None = None

    def __post_init__(self) -> None:
        if not any((self.student_id, self.order_item_id, self.event_id)):
            raise ValueError("Booking queries need a student, order item or event")
        if self.statuses is not None and not self.statuses:
            raise ValueError("An empty status filter matches nothing")

    @classmethod
    def active_for_day(
        cls, student_id: StudentId, product_id: ProductId, service_date: date
    ) -> "BookingQuery":
        return cls(
            student_id=student_id,
            product_id=product_id,
            service_date=service_date,
            statuses=frozenset(set(BookingStatus) - {BookingStatus.CANCELLED}),
        )

    def matches(self, booking: Booking) -> bool:
        checks = (
            (self.student_id, booking.student_id),
            (self.product_id, booking.product_id),
            (self.service_date, booking.service_date),
            (self.order_item_id, booking.order_item_id),
            (self.event_id, booking.event_id),
        )
        if any(wanted is not None and wanted != actual for wanted, actual in checks):
            return False
        return self.statuses is None or booking.status in self.statuses


@dataclass(frozen=True)
class EventQuery:
    """Filter over events.

    ``starts_from``/``starts_before`` bound ``starts_at`` as a half-open
    range; ``starts_at``/``ends_at`` match exactly.
    """

    location_id: LocationId | None = None
    recurring_template_id: TemplateId | None = None
    event_type: EventType | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    starts_from: datetime | None = None
    starts_before: datetime | None = None
    exclude_statuses: frozenset[EventStatus] = frozenset()

    def __post_init__(self) -> None:
        if self.location_id is None and self.recurring_template_id is None:
            raise ValueError("Event queries need a location or a template")
        if (
            self.starts_from is not None
            and self.starts_before is not None
            and self.starts_before <= self.starts_from
        ):
            raise ValueError("Empty start range")

    def matches(self, event: Event) -> bool:
        checks = (
            (self.location_id, event.location_id),
            (self.recurring_template_id, event.recurring_template_id),
            (self.event_type, event.type),
            (self.starts_at, event.starts_at),
            (self.ends_at, event.ends_at),
        )
        if any(wanted is not None and wanted != actual for wanted, actual in checks):
            return False
        if self.starts_from is not None and event.starts_at < self.starts_from:
            return False
        if self.starts_before is not None and event.starts_at >= self.starts_before:
            return False
        return event.status not in self.exclude_statuses
