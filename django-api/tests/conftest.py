"""Pytest configuration and shared fixtures."""

from datetime import date, datetime, time
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from rest_framework.test import APIClient

from scheduling import models
from scheduling.conf import SchedulingSettings
from scheduling.domain import (
    Booking,
    BookingId,
    BookingStatus,
    Capacity,
    ClosureDate,
    Event,
    EventId,
    EventStatus,
    EventType,
    Location,
    LocationId,
    Money,
    Order,
    OrderId,
    OrderItem,
    OrderItemId,
    OrderStatus,
    Product,
    ProductId,
    ProductType,
    RecurringTemplate,
    SessionWindowPolicy,
    StudentId,
    TemplateId,
    Term,
    TermId,
    TimeWindow,
)
from scheduling.services.notifications import Notifier
from scheduling.services.scheduler import SchedulerFacade
from scheduling.stores.django_store import DjangoUnitOfWork
from scheduling.stores.memory_store import MemoryDatabase

SYDNEY = ZoneInfo("Australia/Sydney")


def at(day: date, hour: int = 9, minute: int = 0) -> datetime:
    """Business-local datetime on ``day``."""
    return datetime.combine(day, time(hour, minute), tzinfo=SYDNEY)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    def notify(self, notification):
        self.sent.append(notification)

    def of_type(self, notification_type):
        return [n for n in self.sent if n.type is notification_type]


class MemoryWorld:
    """Seeds and inspects a MemoryDatabase directly, outside any unit of work."""

    def __init__(self, db: MemoryDatabase):
        self._db = db

    @property
    def state(self):
        return self._db.state

    def location(self, name="Main Hall", active=True) -> Location:
        location = Location(id=LocationId.new(), name=name, active=active)
        self.state.locations[location.id] = location
        return location

    def product(
        self,
        name="Holiday Camp",
        type=ProductType.CAMP,
        policy=SessionWindowPolicy.STANDARD_DAY,
        capacity=None,
        default_location=None,
        duration_minutes=360,
    ) -> Product:
        product = Product(
            id=ProductId.new(),
            name=name,
            type=type,
            session_window_policy=policy,
            duration_minutes=duration_minutes,
            event_capacity=Capacity(capacity) if capacity is not None else None,
            default_location_id=default_location.id if default_location else None,
        )
        self.state.products[product.id] = product
        return product

    def term(self, name="Term 1 2026", start=date(2026, 2, 2), end=date(2026, 4, 2)) -> Term:
        term = Term(id=TermId.new(), name=name, start_date=start, end_date=end)
        self.state.terms[term.id] = term
        return term

    def closure(self, on_date=None, month=None, day=None, name="Closed") -> ClosureDate:
        closure = ClosureDate(
            name=name,
            recurring=on_date is None,
            month=month,
            day=day,
            on_date=on_date,
        )
        self.state.closures.append(closure)
        return closure

    def template(
        self,
        location,
        days=frozenset({1}),
        start=time(15, 30),
        end=time(16, 30),
        capacity=12,
        valid_from=date(2026, 1, 1),
        valid_to=None,
        active=True,
    ) -> RecurringTemplate:
        template = RecurringTemplate(
            id=TemplateId.new(),
            name="After School Robotics",
            days_of_week=frozenset(days),
            start_time=start,
            end_time=end,
            capacity=Capacity(capacity),
            location_id=location.id,
            valid_from=valid_from,
            valid_to=valid_to,
            active=active,
        )
        self.state.templates[template.id] = template
        return template

    def order(self, lines, status=OrderStatus.PAID, location=None) -> Order:
        """Create an order. ``lines`` holds (product, booking_date[, student_id]) tuples."""
        order_id = OrderId.new()
        items = []
        for line in lines:
            product, booking_date = line[0], line[1]
            student_id = line[2] if len(line) > 2 else StudentId.new()
            items.append(
                OrderItem(
                    id=OrderItemId.new(),
                    order_id=order_id,
                    product_id=product.id,
                    student_id=student_id,
                    booking_date=booking_date,
                    price=Money(Decimal("85.00")),
                )
            )
        order = Order(
            id=order_id,
            customer_email="parent@example.com",
            customer_name="Sam Parent",
            status=status,
            total_amount=Money(Decimal("85.00") * len(items)),
            location_id=location.id if location else None,
            items=tuple(items),
        )
        self.state.orders[order.id] = order
        return order

    def event(
        self,
        location,
        starts_at,
        ends_at,
        capacity=15,
        count=0,
        type=EventType.CAMP,
        status=EventStatus.SCHEDULED,
    ) -> Event:
        event = Event(
            id=EventId.new(),
            title="Holiday Camp",
            type=type,
            status=status,
            window=TimeWindow(starts_at=starts_at, ends_at=ends_at),
            location_id=location.id,
            capacity=Capacity(capacity),
            current_count=count,
        )
        self.state.events[event.id] = event
        return event

    def booking(
        self,
        product,
        location,
        starts_at,
        ends_at,
        status=BookingStatus.CONFIRMED,
        event=None,
        student_id=None,
        order_item_id=None,
    ) -> Booking:
        booking = Booking(
            id=BookingId.new(),
            student_id=student_id or StudentId.new(),
            product_id=product.id,
            location_id=location.id,
            window=TimeWindow(starts_at=starts_at, ends_at=ends_at),
            service_date=starts_at.astimezone(SYDNEY).date(),
            status=status,
            total_price=Money(Decimal("85.00")),
            event_id=event.id if event else None,
            order_item_id=order_item_id,
        )
        self.state.bookings[booking.id] = booking
        return booking

    def events(self) -> list[Event]:
        return sorted(self.state.events.values(), key=lambda event: event.starts_at)

    def bookings(self) -> list[Booking]:
        return list(self.state.bookings.values())

    def get_event(self, event_id) -> Event:
        return self.state.events[event_id]

    def get_booking(self, booking_id) -> Booking:
        return self.state.bookings[booking_id]

    def get_order(self, order_id) -> Order:
        return self.state.orders[order_id]


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def scheduling_config() -> SchedulingSettings:
    return SchedulingSettings(conflict_retry_backoff=0)


@pytest.fixture
def memory_db() -> MemoryDatabase:
    return MemoryDatabase()


@pytest.fixture
def uow_factory(memory_db):
    return memory_db.unit_of_work


@pytest.fixture
def world(memory_db) -> MemoryWorld:
    return MemoryWorld(memory_db)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def scheduler(uow_factory, notifier, scheduling_config) -> SchedulerFacade:
    return SchedulerFacade(uow_factory, notifier, scheduling_config)


class OrmWorld:
    """Seeds Django ORM rows for store, API and command tests."""

    def location(self, name="Main Hall", is_active=True):
        return models.Location.objects.create(name=name, is_active=is_active)

    def product(self, name="Holiday Camp", type="CAMP", event_capacity=None):
        return models.Product.objects.create(name=name, type=type, event_capacity=event_capacity)

    def term(self, name="Term 1 2026", start=date(2026, 2, 2), end=date(2026, 4, 2)):
        return models.Term.objects.create(name=name, start_date=start, end_date=end)

    def template(self, location, days=(1,), capacity=12):
        return models.RecurringTemplate.objects.create(
            name="After School Robotics",
            days_of_week=list(days),
            start_time=time(15, 30),
            end_time=time(16, 30),
            capacity=capacity,
            location=location,
            valid_from=date(2026, 1, 1),
        )

    def order(self, product, booking_dates, status="PAID", price=Decimal("85.00")):
        order = models.Order.objects.create(
            customer_email="parent@example.com",
            customer_name="Sam Parent",
            status=status,
            total_amount=price * len(booking_dates),
        )
        for booking_date in booking_dates:
            student = models.Student.objects.create(name="Alex Student")
            models.OrderItem.objects.create(
                order=order,
                product=product,
                student=student,
                booking_date=booking_date,
                price=price,
            )
        return order

    def event(self, location, starts_at, ends_at, capacity=15, current_count=0, type="CAMP"):
        return models.Event.objects.create(
            title="Holiday Camp",
            type=type,
            starts_at=starts_at,
            ends_at=ends_at,
            location=location,
            capacity=capacity,
            current_count=current_count,
        )


@pytest.fixture
def orm(db) -> OrmWorld:
    return OrmWorld()


@pytest.fixture
def django_scheduler(db, notifier, scheduling_config) -> SchedulerFacade:
    return SchedulerFacade(DjangoUnitOfWork, notifier, scheduling_config)
