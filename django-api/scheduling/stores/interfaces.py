"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every store call
happens inside a unit of work, which is the transaction handle passed
explicitly through the services.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

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
from scheduling.domain.queries import BookingQuery, EventQuery


class SchedulingStore(ABC):
    """Interface for scheduling persistence operations."""

    @abstractmethod
    def get_location(self, location_id: LocationId) -> Location | None:
        """Return a location by ID, or None if not found."""
        ...

    @abstractmethod
    def first_active_location(self) -> Location | None:
        """Return the first active location ordered by name."""
        ...

    @abstractmethod
    def lock_location(self, location_id: LocationId) -> Location | None:
        """Lock a location row for the rest of the transaction."""
        ...

    @abstractmethod
    def get_product(self, product_id: ProductId) -> Product | None:
        ...

    @abstractmethod
    def list_terms(self) -> list[Term]:
        """Return all terms ordered by start_date ascending."""
        ...

    @abstractmethod
    def get_term(self, term_id: TermId) -> Term | None:
        ...

    @abstractmethod
    def list_closures(self) -> list[ClosureDate]:
        ...

    @abstractmethod
    def get_template(self, template_id: TemplateId) -> RecurringTemplate | None:
        ...

    @abstractmethod
    def save_template(self, template: RecurringTemplate) -> None:
        """Persist the mutable fields of an existing template."""
        ...

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        ...

    @abstractmethod
    def lock_event(self, event_id: EventId) -> Event | None:
        """Return an event with its row locked (SELECT ... FOR UPDATE)."""
        ...

    @abstractmethod
    def find_events(self, query: EventQuery) -> list[Event]:
        """Return matching events ordered by starts_at ascending."""
        ...

    @abstractmethod
    def add_event(self, event: Event) -> None:
        ...

    @abstractmethod
    def save_event_status(self, event: Event) -> None:
        """Persist an event's status. Never touches current_count."""
        ...

    @abstractmethod
    def adjust_event_count(self, event_id: EventId, delta: int) -> None:
        """Add ``delta`` to current_count. Reserved for the capacity ledger."""
        ...

    @abstractmethod
    def get_order(self, order_id: OrderId) -> Order | None:
        """Return an order with its items, or None if not found."""
        ...

    @abstractmethod
    def lock_order(self, order_id: OrderId) -> Order | None:
        ...

    @abstractmethod
    def list_order_ids(self, status: OrderStatus) -> list[OrderId]:
        """Return IDs of orders in ``status``, oldest first."""
        ...

    @abstractmethod
    def save_order(self, order: Order) -> None:
        """Persist an order's status and payment reference."""
        ...

    @abstractmethod
    def get_booking(self, booking_id: BookingId) -> Booking | None:
        ...

    @abstractmethod
    def lock_booking(self, booking_id: BookingId) -> Booking | None:
        ...

    @abstractmethod
    def find_bookings(self, query: BookingQuery) -> list[Booking]:
        """Return matching bookings ordered by starts_at ascending."""
        ...

    @abstractmethod
    def add_booking(self, booking: Booking) -> None:
        ...

    @abstractmethod
    def save_booking(self, booking: Booking) -> None:
        ...


class UnitOfWork(ABC):
    """A single storage transaction.

    Commits when the ``with`` block exits cleanly and rolls back when it
    raises. Callbacks registered with ``on_commit`` run only after a
    successful commit.
    """

    store: SchedulingStore

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False

    @abstractmethod
    def commit(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...

    @abstractmethod
    def on_commit(self, callback: Callable[[], None]) -> None:
        ...


UnitOfWorkFactory = Callable[[], UnitOfWork]
