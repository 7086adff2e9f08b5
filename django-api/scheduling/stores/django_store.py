"""Django ORM implementation of the SchedulingStore."""

import logging
from collections.abc import Callable

from django.db import DatabaseError, IntegrityError, OperationalError, transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from scheduling import models
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
from scheduling.domain.errors import DomainError, InfrastructureError, StorageConflictError
from scheduling.domain.queries import BookingQuery, EventQuery
from scheduling.stores.interfaces import SchedulingStore, UnitOfWork

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
_CONFLICT_SQLSTATES = {"40001", "40P01", "55P03"}


def _optional(id_cls, value):
    return id_cls(value) if value is not None else None


def _to_location(row: models.Location) -> Location:
    return Location(
        id=LocationId(row.id),
        name=row.name,
        active=row.is_active,
        address=row.address,
        capacity=Capacity(row.capacity),
    )


def _to_product(row: models.Product) -> Product:
    return Product(
        id=ProductId(row.id),
        name=row.name,
        type=ProductType(row.type),
        session_window_policy=SessionWindowPolicy(row.session_window_policy),
        duration_minutes=row.duration_minutes,
        event_capacity=Capacity(row.event_capacity) if row.event_capacity is not None else None,
        default_location_id=_optional(LocationId, row.default_location_id),
        active=row.is_active,
    )


def _to_term(row: models.Term) -> Term:
    return Term(id=TermId(row.id), name=row.name, start_date=row.start_date, end_date=row.end_date)


def _to_closure(row: models.ClosureDate) -> ClosureDate:
    return ClosureDate(
        name=row.name,
        recurring=row.recurring,
        month=row.month,
        day=row.day,
        on_date=row.date,
        description=row.description,
    )


def _to_template(row: models.RecurringTemplate) -> RecurringTemplate:
    return RecurringTemplate(
        id=TemplateId(row.id),
        name=row.name,
        days_of_week=frozenset(int(day) for day in row.days_of_week),
        start_time=row.start_time,
        end_time=row.end_time,
        capacity=Capacity(row.capacity),
        location_id=LocationId(row.location_id),
        valid_from=row.valid_from,
        valid_to=row.valid_to,
        active=row.is_active,
        product_id=_optional(ProductId, row.product_id),
    )


def _to_event(row: models.Event) -> Event:
    return Event(
        id=EventId(row.id),
        title=row.title,
        type=EventType(row.type),
        status=EventStatus(row.status),
        window=TimeWindow(starts_at=row.starts_at, ends_at=row.ends_at),
        location_id=LocationId(row.location_id),
        capacity=Capacity(row.capacity),
        current_count=row.current_count,
        recurring_template_id=_optional(TemplateId, row.recurring_template_id),
        product_id=_optional(ProductId, row.product_id),
    )


def _to_order_item(row: models.OrderItem) -> OrderItem:
    return OrderItem(
        id=OrderItemId(row.id),
        order_id=OrderId(row.order_id),
        product_id=ProductId(row.product_id),
        student_id=StudentId(row.student_id),
        booking_date=row.booking_date,
        price=Money(row.price),
    )


def _to_order(row: models.Order) -> Order:
    return Order(
        id=OrderId(row.id),
        customer_email=row.customer_email,
        customer_name=row.customer_name,
        status=OrderStatus(row.status),
        total_amount=Money(row.total_amount),
        payment_ref=row.payment_ref,
        location_id=_optional(LocationId, row.location_id),
        items=tuple(_to_order_item(item) for item in row.items.all()),
    )


def _to_booking(row: models.Booking) -> Booking:
    return Booking(
        id=BookingId(row.id),
        student_id=StudentId(row.student_id),
        product_id=ProductId(row.product_id),
        location_id=LocationId(row.location_id),
        window=TimeWindow(starts_at=row.starts_at, ends_at=row.ends_at),
        service_date=row.service_date,
        status=BookingStatus(row.status),
        total_price=Money(row.total_price),
        event_id=_optional(EventId, row.event_id),
        order_item_id=_optional(OrderItemId, row.order_item_id),
    )


def _booking_fields(booking: Booking) -> dict:
    return {
        "student_id": booking.student_id.value,
        "product_id": booking.product_id.value,
        "location_id": booking.location_id.value,
        "event_id": booking.event_id.value if booking.event_id else None,
        "order_item_id": booking.order_item_id.value if booking.order_item_id else None,
        "starts_at": booking.starts_at,
        "ends_at": booking.ends_at,
        "service_date": booking.service_date,
        "status": booking.status.value,
        "total_price": booking.total_price.amount,
    }


class DjangoSchedulingStore(SchedulingStore):
    """PostgreSQL-backed scheduling store using Django ORM."""

    def get_location(self, location_id: LocationId) -> Location | None:
        row = models.Location.objects.filter(pk=location_id.value).first()
        return _to_location(row) if row else None

    def first_active_location(self) -> Location | None:
        row = models.Location.objects.filter(is_active=True).order_by("name").first()
        return _to_location(row) if row else None

    def lock_location(self, location_id: LocationId) -> Location | None:
        row = models.Location.objects.select_for_update().filter(pk=location_id.value).first()
        return _to_location(row) if row else None

    def get_product(self, product_id: ProductId) -> Product | None:
        row = models.Product.objects.filter(pk=product_id.value).first()
        return _to_product(row) if row else None

    def list_terms(self) -> list[Term]:
        return [_to_term(row) for row in models.Term.objects.order_by("start_date")]

    def get_term(self, term_id: TermId) -> Term | None:
        row = models.Term.objects.filter(pk=term_id.value).first()
        return _to_term(row) if row else None

    def list_closures(self) -> list[ClosureDate]:
        return [_to_closure(row) for row in models.ClosureDate.objects.all()]

    def get_template(self, template_id: TemplateId) -> RecurringTemplate | None:
        row = models.RecurringTemplate.objects.filter(pk=template_id.value).first()
        return _to_template(row) if row else None

    def save_template(self, template: RecurringTemplate) -> None:
        models.RecurringTemplate.objects.filter(pk=template.id.value).update(
            name=template.name,
            capacity=template.capacity.value,
            valid_to=template.valid_to,
            is_active=template.active,
            updated_at=timezone.now(),
        )

    def get_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.filter(pk=event_id.value).first()
        return _to_event(row) if row else None

    def lock_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.select_for_update().filter(pk=event_id.value).first()
        return _to_event(row) if row else None

    def find_events(self, query: EventQuery) -> list[Event]:
        return [_to_event(row) for row in self._event_queryset(query)]

    def add_event(self, event: Event) -> None:
        models.Event.objects.create(
            id=event.id.value,
            title=event.title,
            type=event.type.value,
            status=event.status.value,
            starts_at=event.starts_at,
            ends_at=event.ends_at,
            location_id=event.location_id.value,
            capacity=event.capacity.value,
            current_count=event.current_count,
            recurring_template_id=(
                event.recurring_template_id.value if event.recurring_template_id else None
            ),
            product_id=event.product_id.value if event.product_id else None,
        )

    def save_event_status(self, event: Event) -> None:
        models.Event.objects.filter(pk=event.id.value).update(
            status=event.status.value, updated_at=timezone.now()
        )

    def adjust_event_count(self, event_id: EventId, delta: int) -> None:
        models.Event.objects.filter(pk=event_id.value).update(
            current_count=F("current_count") + delta, updated_at=timezone.now()
        )

    def get_order(self, order_id: OrderId) -> Order | None:
        row = (
            models.Order.objects.prefetch_related("items")
            .filter(pk=order_id.value)
            .first()
        )
        return _to_order(row) if row else None

    def lock_order(self, order_id: OrderId) -> Order | None:
        row = models.Order.objects.select_for_update().filter(pk=order_id.value).first()
        return _to_order(row) if row else None

    def list_order_ids(self, status: OrderStatus) -> list[OrderId]:
        ids = (
            models.Order.objects.filter(status=status.value)
            .order_by("created_at")
            .values_list("id", flat=True)
        )
        return [OrderId(value) for value in ids]

    def save_order(self, order: Order) -> None:
        models.Order.objects.filter(pk=order.id.value).update(
            status=order.status.value,
            payment_ref=order.payment_ref,
            updated_at=timezone.now(),
        )

    def get_booking(self, booking_id: BookingId) -> Booking | None:
        row = models.Booking.objects.filter(pk=booking_id.value).first()
        return _to_booking(row) if row else None

    def lock_booking(self, booking_id: BookingId) -> Booking | None:
        row = models.Booking.objects.select_for_update().filter(pk=booking_id.value).first()
        return _to_booking(row) if row else None

    def find_bookings(self, query: BookingQuery) -> list[Booking]:
        return [_to_booking(row) for row in self._booking_queryset(query)]

    def add_booking(self, booking: Booking) -> None:
        models.Booking.objects.create(id=booking.id.value, **_booking_fields(booking))

    def save_booking(self, booking: Booking) -> None:
        models.Booking.objects.filter(pk=booking.id.value).update(
            updated_at=timezone.now(), **_booking_fields(booking)
        )

    def _event_queryset(self, query: EventQuery) -> QuerySet:
        qs = models.Event.objects.all()
        if query.location_id is not None:
            qs = qs.filter(location_id=query.location_id.value)
        if query.recurring_template_id is not None:
            qs = qs.filter(recurring_template_id=query.recurring_template_id.value)
        if query.event_type is not None:
            qs = qs.filter(type=query.event_type.value)
        if query.starts_at is not None:
            qs = qs.filter(starts_at=query.starts_at)
        if query.ends_at is not None:
            qs = qs.filter(ends_at=query.ends_at)
        if query.starts_from is not None:
            qs = qs.filter(starts_at__gte=query.starts_from)
        if query.starts_before is not None:
            qs = qs.filter(starts_at__lt=query.starts_before)
        if query.exclude_statuses:
            qs = qs.exclude(status__in=[status.value for status in query.exclude_statuses])
        return qs.order_by("starts_at", "created_at")

    def _booking_queryset(self, query: BookingQuery) -> QuerySet:
        qs = models.Booking.objects.all()
        if query.student_id is not None:
            qs = qs.filter(student_id=query.student_id.value)
        if query.product_id is not None:
            qs = qs.filter(product_id=query.product_id.value)
        if query.service_date is not None:
            qs = qs.filter(service_date=query.service_date)
        if query.order_item_id is not None:
            qs = qs.filter(order_item_id=query.order_item_id.value)
        if query.event_id is not None:
            qs = qs.filter(event_id=query.event_id.value)
        if query.statuses is not None:
            qs = qs.filter(status__in=[status.value for status in query.statuses])
        return qs.order_by("starts_at", "created_at")


def translate_database_error(exc: DatabaseError) -> DomainError:
    """Map a Django database error onto the scheduling error taxonomy."""
    if isinstance(exc, IntegrityError):
        return StorageConflictError()
    if isinstance(exc, OperationalError):
        cause = exc.__cause__
        sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
        if sqlstate in _CONFLICT_SQLSTATES or "locked" in str(exc).lower():
            return StorageConflictError()
    return InfrastructureError()


class DjangoUnitOfWork(UnitOfWork):
    """Unit of work backed by ``transaction.atomic``.

    Usage:
        with DjangoUnitOfWork() as uow:
            event = uow.store.lock_event(event_id)
            ...
            # Transaction commits here
        # on_commit callbacks run after the commit
    """

    def __init__(self, using: str | None = None) -> None:
        self.store = DjangoSchedulingStore()
        self._using = using
        self._atomic = None
        self._callbacks: list[Callable[[], None]] = []

    def __enter__(self) -> "DjangoUnitOfWork":
        self._atomic = transaction.atomic(using=self._using)
        try:
            self._atomic.__enter__()
        except DatabaseError as exc:
            logger.error("Could not open transaction: %s", exc)
            raise translate_database_error(exc) from exc
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            try:
                self._atomic.__exit__(exc_type, exc_val, exc_tb)
            except DatabaseError as exc:
                logger.warning("Transaction failed on exit: %s", exc)
                raise translate_database_error(exc) from exc
        if isinstance(exc_val, DatabaseError):
            logger.warning("Transaction rolled back: %s", exc_val)
            raise translate_database_error(exc_val) from exc_val
        return False

    def commit(self) -> None:
        callbacks = self._callbacks.copy()
        self._callbacks.clear()
        for callback in callbacks:
            transaction.on_commit(callback, using=self._using)

    def rollback(self) -> None:
        if self._callbacks:
            logger.debug("Rolling back, discarding %d callbacks", len(self._callbacks))
        self._callbacks.clear()

    def on_commit(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)
