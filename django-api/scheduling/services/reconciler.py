"""Booking reconciler - all order-to-booking business logic lives here.

Derives the Booking/Event graph from the order ledger. Running it any
number of times over the same PAID order converges on the same state.
"""

import logging
from dataclasses import replace

from scheduling.conf import SchedulingSettings
from scheduling.domain import (
    Booking,
    BookingId,
    BookingStatus,
    Capacity,
    Event,
    EventId,
    EventStatus,
    Location,
    Order,
    OrderId,
    OrderItem,
    OrderStatus,
    Product,
)
from scheduling.domain.calendar import local_date
from scheduling.domain.errors import (
    ConfigInvalidError,
    EventFullError,
    OrderNotFoundError,
    OrderNotPaidError,
)
from scheduling.domain.policies import (
    EVENT_TYPE_FOR_PRODUCT,
    event_capacity_for,
    grouping_query,
    pick_event,
    session_window,
)
from scheduling.domain.queries import BookingQuery
from scheduling.domain.results import (
    Admission,
    AuditFinding,
    AuditIssue,
    ItemReconciliation,
    ReconciliationResult,
    RejectedItem,
)
from scheduling.services.capacity import CapacityLedger
from scheduling.services.notifications import Notification, NotificationType, Notifier
from scheduling.stores.interfaces import UnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)

# Bookings in these states are settled and never admitted again.
_SETTLED_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED})


class BookingReconciler:
    """Service for reconciling paid orders into bookings and events."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        ledger: CapacityLedger,
        notifier: Notifier,
        config: SchedulingSettings,
    ) -> None:
        self._uow_factory = uow_factory
        self._ledger = ledger
        self._notifier = notifier
        self._config = config

    def reconcile_order(self, order_id: OrderId) -> ReconciliationResult:
        """Ensure every item of a PAID order has a booking linked to an event.

        Each item is reconciled in its own transaction. An item whose event
        is full is rolled back, reported in ``rejected`` and announced as
        ``capacity_exceeded``; the remaining items still go through.

        Raises:
            OrderNotFoundError: If the order does not exist.
            OrderNotPaidError: If the order is not PAID.
            ConfigInvalidError: If no location or product can be resolved.
        """
        with self._uow_factory() as uow:
            order = uow.store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        if order.status is not OrderStatus.PAID:
            raise OrderNotPaidError(str(order_id))

        items, rejected = [], []
        for item in order.items:
            try:
                items.append(self._reconcile_item(order, item))
            except EventFullError as exc:
                logger.warning(
                    "Order %s item %s rejected: event %s is full",
                    order.id,
                    item.id,
                    exc.event_id,
                )
                rejected.append(
                    RejectedItem(
                        order_item_id=item.id,
                        event_id=exc.event_id,
                        capacity=exc.capacity,
                        reason=exc.message,
                    )
                )
                self._notifier.notify(
                    Notification(
                        NotificationType.CAPACITY_EXCEEDED,
                        {
                            "order_id": str(order.id),
                            "order_item_id": str(item.id),
                            "event_id": str(exc.event_id),
                            "capacity": exc.capacity,
                            "customer_email": order.customer_email,
                        },
                    )
                )

        result = ReconciliationResult(order_id=order.id, items=tuple(items), rejected=tuple(rejected))
        logger.info(
            "Reconciled order %s: %d bookings created, %d events created, "
            "%d events linked, %d rejected",
            order.id,
            result.bookings_created,
            result.events_created,
            result.events_linked,
            len(result.rejected),
        )
        return result

    def repair_order(self, order_id: OrderId) -> ReconciliationResult:
        """Backfill entry point; identical to reconcile_order."""
        logger.debug("Repairing order %s", order_id)
        return self.reconcile_order(order_id)

    def _reconcile_item(self, order: Order, item: OrderItem) -> ItemReconciliation:
        with self._uow_factory() as uow:
            product = uow.store.get_product(item.product_id)
            if product is None:
                raise ConfigInvalidError("Order item references an unknown product")

            booking, booking_created, confirmed = self._find_or_create_booking(
                uow, order, item, product
            )
            if booking.event_id is not None or booking.status in _SETTLED_STATUSES:
                return ItemReconciliation(
                    order_item_id=item.id,
                    booking_id=booking.id,
                    event_id=booking.event_id,
                    booking_created=booking_created,
                )

            event, event_created = self._admit(uow, booking, product)
            uow.store.save_booking(replace(booking, event_id=event.id))

            if booking_created or confirmed:
                uow.on_commit(
                    lambda: self._notifier.notify(
                        Notification(
                            NotificationType.BOOKING_CONFIRMED,
                            {
                                "order_id": str(order.id),
                                "booking_id": str(booking.id),
                                "event_id": str(event.id),
                                "customer_email": order.customer_email,
                                "starts_at": booking.starts_at.isoformat(),
                            },
                        )
                    )
                )
            return ItemReconciliation(
                order_item_id=item.id,
                booking_id=booking.id,
                event_id=event.id,
                booking_created=booking_created,
                event_created=event_created,
                event_linked=not event_created,
            )

    def audit_item(self, uow: UnitOfWork, item: OrderItem) -> AuditFinding | None:
        """Report what reconciling ``item`` would still have to do. Writes nothing."""
        booking = self._existing_booking(uow, item)
        if booking is None:
            return AuditFinding(item.order_id, item.id, AuditIssue.MISSING_BOOKING)
        if booking.event_id is None and booking.status not in _SETTLED_STATUSES:
            return AuditFinding(item.order_id, item.id, AuditIssue.MISSING_EVENT, booking.id)
        return None

    def _existing_booking(self, uow: UnitOfWork, item: OrderItem) -> Booking | None:
        """The booking the item produced, else the student's active one that day."""
        produced = uow.store.find_bookings(BookingQuery(order_item_id=item.id))
        if produced:
            return produced[0]
        service_date = local_date(item.booking_date, self._config.timezone)
        same_day = uow.store.find_bookings(
            BookingQuery.active_for_day(item.student_id, item.product_id, service_date)
        )
        return same_day[0] if same_day else None

    def _find_or_create_booking(
        self, uow: UnitOfWork, order: Order, item: OrderItem, product: Product
    ) -> tuple[Booking, bool, bool]:
        """Return (booking, created, confirmed_now) for an order item."""
        booking = self._existing_booking(uow, item)
        if booking is not None:
            if booking.status is not BookingStatus.PENDING:
                return booking, False, False
            booking = replace(
                booking,
                status=BookingStatus.CONFIRMED,
                order_item_id=booking.order_item_id or item.id,
            )
            uow.store.save_booking(booking)
            logger.info("Confirmed pending booking %s for order %s", booking.id, order.id)
            return booking, False, True

        location = self._resolve_location(uow, order, product)
        try:
            window = session_window(
                product, item, self._config.timezone, self._config.session_windows
            )
        except (KeyError, ValueError) as exc:
            raise ConfigInvalidError(f"Product {product.name} has no usable session window") from exc
        booking = Booking(
            id=BookingId.new(),
            student_id=item.student_id,
            product_id=item.product_id,
            location_id=location.id,
            window=window,
            service_date=local_date(window.starts_at, self._config.timezone),
            status=BookingStatus.CONFIRMED,
            total_price=item.price,
            order_item_id=item.id,
        )
        uow.store.add_booking(booking)
        logger.info("Created booking %s for order %s", booking.id, order.id)
        return booking, True, False

    def _resolve_location(self, uow: UnitOfWork, order: Order, product: Product) -> Location:
        if order.location_id is not None:
            location = uow.store.get_location(order.location_id)
            if location is None:
                raise ConfigInvalidError("Order references an unknown location")
            return location
        if product.default_location_id is not None:
            location = uow.store.get_location(product.default_location_id)
            if location is not None and location.active:
                return location
        location = uow.store.first_active_location()
        if location is None:
            raise ConfigInvalidError("No active location found")
        return location

    def _admit(self, uow: UnitOfWork, booking: Booking, product: Product) -> tuple[Event, bool]:
        """Find or create the booking's event and take one seat in it.

        Raises:
            EventFullError: If the matching event has no room left.
        """
        # Serializes event creation per location so two first bookings
        # for the same slot cannot each create an event.
        uow.store.lock_location(booking.location_id)

        event_type = EVENT_TYPE_FOR_PRODUCT[product.type]
        query = grouping_query(
            self._config.grouping_policy,
            booking.location_id,
            event_type,
            booking.window,
            self._config.timezone,
        )
        event = pick_event(uow.store.find_events(query), booking.window)
        if event is not None:
            created = False
        else:
            event = Event(
                id=EventId.new(),
                title=product.name,
                type=event_type,
                status=EventStatus.SCHEDULED,
                window=booking.window,
                location_id=booking.location_id,
                capacity=Capacity(
                    event_capacity_for(
                        product,
                        self._config.event_capacity,
                        self._config.fallback_event_capacity,
                    )
                ),
                current_count=0,
                product_id=product.id,
            )
            uow.store.add_event(event)
            created = True
            logger.info("Created event %s for %s", event.id, product.name)

        if self._ledger.try_admit(uow, event.id) is Admission.CAPACITY_EXCEEDED:
            raise EventFullError(event.id, event.capacity.value)
        return event, created
