"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in scheduling/models.py (persistence layer).
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, time

from scheduling.domain.value_objects import (
    BookingId,
    BookingStatus,
    Capacity,
    EventId,
    EventStatus,
    EventType,
    LocationId,
    Money,
    OrderId,
    OrderItemId,
    OrderStatus,
    ProductId,
    ProductType,
    SessionWindowPolicy,
    StudentId,
    TemplateId,
    TermId,
    TimeWindow,
)

# Forward-only event transitions. CANCELLED and NO_SHOW are terminal.
EVENT_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.SCHEDULED: frozenset(
        {EventStatus.IN_PROGRESS, EventStatus.CANCELLED, EventStatus.NO_SHOW}
    ),
    EventStatus.IN_PROGRESS: frozenset(
        {EventStatus.COMPLETED, EventStatus.CANCELLED, EventStatus.NO_SHOW}
    ),
    EventStatus.COMPLETED: frozenset(),
    EventStatus.CANCELLED: frozenset(),
    EventStatus.NO_SHOW: frozenset(),
}

BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


@dataclass(frozen=True)
class Location:
    """Domain representation of a Location."""

    id: LocationId
    name: str
    active: bool = True
    address: str = ""
    capacity: Capacity = Capacity(20)


@dataclass(frozen=True)
class Product:
    """Domain representation of a bookable Product."""

    id: ProductId
    name: str
    type: ProductType
    session_window_policy: SessionWindowPolicy = SessionWindowPolicy.STANDARD_DAY
    duration_minutes: int = 360
    event_capacity: Capacity | None = None
    default_location_id: LocationId | None = None
    active: bool = True


@dataclass(frozen=True)
class Student:
    """Domain representation of a Student."""

    id: StudentId
    name: str
    birthdate: date | None = None
    allergies: str | None = None


@dataclass(frozen=True)
class Term:
    """A school term. Both bounds are inclusive."""

    id: TermId
    name: str
    start_date: date
    end_date: date

    def __post_init__(self) -> None:
        if self.start_date >= self.end_date:
            raise ValueError("Term must start before it ends")

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class ClosureDate:
    """A day the business is closed, either every year or once."""

    name: str
    recurring: bool
    month: int | None = None
    day: int | None = None
    on_date: date | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if self.recurring and (self.month is None or self.day is None):
            raise ValueError("Recurring closures need a month and a day")
        if not self.recurring and self.on_date is None:
            raise ValueError("One-off closures need a date")

    def matches(self, day: date) -> bool:
        if self.recurring:
            return day.month == self.month and day.day == self.day
        return day == self.on_date


@dataclass(frozen=True)
class RecurringTemplate:
    """Admin-defined recipe for a weekly session.

    ``days_of_week`` uses 0 for Sunday through 6 for Saturday.
    """

    id: TemplateId
    name: str
    days_of_week: frozenset[int]
    start_time: time
    end_time: time
    capacity: Capacity
    location_id: LocationId
    valid_from: date
    valid_to: date | None = None
    active: bool = True
    product_id: ProductId | None = None

    def __post_init__(self) -> None:
        if not self.days_of_week:
            raise ValueError("Template needs at least one day of week")
        if any(day not in range(7) for day in self.days_of_week):
            raise ValueError("Days of week must be between 0 and 6")

    def is_valid_on(self, day: date) -> bool:
        if day < self.valid_from:
            return False
        return self.valid_to is None or day <= self.valid_to


@dataclass(frozen=True)
class Event:
    """Domain representation of a dated, bookable occurrence."""

    id: EventId
    title: str
    type: EventType
    status: EventStatus
    window: TimeWindow
    location_id: LocationId
    capacity: Capacity
    current_count: int = 0
    recurring_template_id: TemplateId | None = None
    product_id: ProductId | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.current_count <= self.capacity.value:
            raise ValueError("Event count must stay within capacity")

    @property
    def starts_at(self) -> datetime:
        return self.window.starts_at

    @property
    def ends_at(self) -> datetime:
        return self.window.ends_at

    @property
    def has_room(self) -> bool:
        return self.current_count < self.capacity.value

    def can_transition_to(self, status: EventStatus) -> bool:
        return status in EVENT_TRANSITIONS[self.status]

    def with_status(self, status: EventStatus) -> "Event":
        return replace(self, status=status)


@dataclass(frozen=True)
class OrderItem:
    """One purchased (student x date) line of an Order. Immutable."""

    id: OrderItemId
    order_id: OrderId
    product_id: ProductId
    student_id: StudentId
    booking_date: datetime
    price: Money


@dataclass(frozen=True)
class Order:
    """Domain representation of an Order and its items."""

    id: OrderId
    customer_email: str
    customer_name: str
    status: OrderStatus
    total_amount: Money
    payment_ref: str | None = None
    location_id: LocationId | None = None
    items: tuple[OrderItem, ...] = ()


@dataclass(frozen=True)
class Booking:
    """A single student's attendance at one session.

    ``service_date`` is the business-local calendar day of ``starts_at``.
    """

    id: BookingId
    student_id: StudentId
    product_id: ProductId
    location_id: LocationId
    window: TimeWindow
    service_date: date
    status: BookingStatus
    total_price: Money
    event_id: EventId | None = None
    order_item_id: OrderItemId | None = None

    @property
    def starts_at(self) -> datetime:
        return self.window.starts_at

    @property
    def ends_at(self) -> datetime:
        return self.window.ends_at

    @property
    def is_active(self) -> bool:
        return self.status is not BookingStatus.CANCELLED

    def can_transition_to(self, status: BookingStatus) -> bool:
        return status in BOOKING_TRANSITIONS[self.status]


@dataclass(frozen=True)
class PaymentConfirmation:
    """What the payment gateway hands back once a charge succeeds."""

    id: str
    amount: Money
    customer_ref: str = ""
