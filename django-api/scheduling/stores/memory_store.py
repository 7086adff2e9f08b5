"""In-memory implementation of the SchedulingStore.

Used by unit tests and local tooling. A single re-entrant lock
serializes units of work, which gives every transaction the row-lock
guarantees the Django store gets from ``SELECT ... FOR UPDATE``.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from scheduling.domain import (
    Booking,
    BookingId,
    ClosureDate,
    Event,
    EventId,
    Location,
    LocationId,
    Order,
    OrderId,
    OrderStatus,
    Product,
    ProductId,
    RecurringTemplate,
    TemplateId,
    Term,
    TermId,
)
from scheduling.domain.errors import StorageConflictError
from scheduling.domain.queries import BookingQuery, EventQuery
from scheduling.stores.interfaces import SchedulingStore, UnitOfWork

logger = logging.getLogger(__name__)


@dataclass
class MemoryState:
    locations: dict[LocationId, Location] = field(default_factory=dict)
    products: dict[ProductId, Product] = field(default_factory=dict)
    terms: dict[TermId, Term] = field(default_factory=dict)
    closures: list[ClosureDate] = field(default_factory=list)
    templates: dict[TemplateId, RecurringTemplate] = field(default_factory=dict)
    events: dict[EventId, Event] = field(default_factory=dict)
    orders: dict[OrderId, Order] = field(default_factory=dict)
    bookings: dict[BookingId, Booking] = field(default_factory=dict)

    def snapshot(self) -> "MemoryState":
        # Domain objects are frozen, so copying the containers is enough.
        return MemoryState(
            locations=dict(self.locations),
            products=dict(self.products),
            terms=dict(self.terms),
            closures=list(self.closures),
            templates=dict(self.templates),
            events=dict(self.events),
            orders=dict(self.orders),
            bookings=dict(self.bookings),
        )


class MemoryDatabase:
    """Shared state plus the lock that serializes transactions."""

    def __init__(self) -> None:
        self.state = MemoryState()
        self.lock = threading.RLock()

    def unit_of_work(self) -> "MemoryUnitOfWork":
        return MemoryUnitOfWork(self)


class MemorySchedulingStore(SchedulingStore):
    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db

    @property
    def _state(self) -> MemoryState:
        return self._db.state

    def get_location(self, location_id: LocationId) -> Location | None:
        return self._state.locations.get(location_id)

    def first_active_location(self) -> Location | None:
        active = [loc for loc in self._state.locations.values() if loc.active]
        return min(active, key=lambda loc: loc.name, default=None)

    def lock_location(self, location_id: LocationId) -> Location | None:
        return self.get_location(location_id)

    def get_product(self, product_id: ProductId) -> Product | None:
        return self._state.products.get(product_id)

    def list_terms(self) -> list[Term]:
        return sorted(self._state.terms.values(), key=lambda term: term.start_date)

    def get_term(self, term_id: TermId) -> Term | None:
        return self._state.terms.get(term_id)

    def list_closures(self) -> list[ClosureDate]:
        return list(self._state.closures)

    def get_template(self, template_id: TemplateId) -> RecurringTemplate | None:
        return self._state.templates.get(template_id)

    def save_template(self, template: RecurringTemplate) -> None:
        self._state.templates[template.id] = template

    def get_event(self, event_id: EventId) -> Event | None:
        return self._state.events.get(event_id)

    def lock_event(self, event_id: EventId) -> Event | None:
        return self.get_event(event_id)

    def find_events(self, query: EventQuery) -> list[Event]:
        matches = [event for event in self._state.events.values() if query.matches(event)]
        return sorted(matches, key=lambda event: event.starts_at)

    def add_event(self, event: Event) -> None:
        if event.recurring_template_id is not None and self.find_events(
            EventQuery(
                recurring_template_id=event.recurring_template_id,
                starts_at=event.starts_at,
            )
        ):
            raise StorageConflictError()
        self._state.events[event.id] = event

    def save_event_status(self, event: Event) -> None:
        stored = self._state.events[event.id]
        self._state.events[event.id] = replace(stored, status=event.status)

    def adjust_event_count(self, event_id: EventId, delta: int) -> None:
        stored = self._state.events[event_id]
        self._state.events[event_id] = replace(stored, current_count=stored.current_count + delta)

    def get_order(self, order_id: OrderId) -> Order | None:
        return self._state.orders.get(order_id)

    def lock_order(self, order_id: OrderId) -> Order | None:
        return self.get_order(order_id)

    def list_order_ids(self, status: OrderStatus) -> list[OrderId]:
        return [order.id for order in self._state.orders.values() if order.status is status]

    def save_order(self, order: Order) -> None:
        stored = self._state.orders[order.id]
        self._state.orders[order.id] = replace(
            stored, status=order.status, payment_ref=order.payment_ref
        )

    def get_booking(self, booking_id: BookingId) -> Booking | None:
        return self._state.bookings.get(booking_id)

    def lock_booking(self, booking_id: BookingId) -> Booking | None:
        return self.get_booking(booking_id)

    def find_bookings(self, query: BookingQuery) -> list[Booking]:
        matches = [b for b in self._state.bookings.values() if query.matches(b)]
        return sorted(matches, key=lambda booking: booking.starts_at)

    def add_booking(self, booking: Booking) -> None:
        if booking.is_active:
            duplicate = self.find_bookings(
                BookingQuery.active_for_day(
                    booking.student_id, booking.product_id, booking.service_date
                )
            )
            if duplicate:
                raise StorageConflictError()
        self._state.bookings[booking.id] = booking

    def save_booking(self, booking: Booking) -> None:
        self._state.bookings[booking.id] = booking


class MemoryUnitOfWork(UnitOfWork):
    def __init__(self, db: MemoryDatabase) -> None:
        self._db = db
        self.store = MemorySchedulingStore(db)
        self._snapshot: MemoryState | None = None
        self._callbacks: list[Callable[[], None]] = []
        self._pending: list[Callable[[], None]] = []

    def __enter__(self) -> "MemoryUnitOfWork":
        self._db.lock.acquire()
        self._snapshot = self._db.state.snapshot()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        try:
            super().__exit__(exc_type, exc_val, exc_tb)
        finally:
            self._db.lock.release()
        callbacks, self._pending = self._pending, []
        for callback in callbacks:
            callback()
        return False

    def commit(self) -> None:
        self._snapshot = None
        self._pending = self._callbacks.copy()
        self._callbacks.clear()

    def rollback(self) -> None:
        if self._snapshot is not None:
            self._db.state = self._snapshot
        logger.debug("Rolled back memory transaction")
        self._snapshot = None
        self._callbacks.clear()

    def on_commit(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)
