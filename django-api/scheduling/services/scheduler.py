"""Scheduler facade - the single entry point for handlers and commands.

Facade methods:
- Accept raw string IDs and parse them into domain IDs
- Retry transient storage conflicts with exponential backoff
- Return an Outcome for business conditions (not found, full, invalid
  transition)
- Raise only for invalid configuration or infrastructure failure
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import date
from typing import TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from scheduling.conf import SchedulingSettings, get_scheduling_settings
from scheduling.domain import (
    Booking,
    BookingId,
    BookingStatus,
    Event,
    EventId,
    EventStatus,
    Order,
    OrderId,
    OrderStatus,
    PaymentConfirmation,
    RecurringTemplate,
    TemplateId,
    Term,
    TermId,
)
from scheduling.domain.calendar import TermCalendar
from scheduling.domain.errors import (
    BookingNotFoundError,
    ConfigInvalidError,
    DomainError,
    ErrorCode,
    EventFullError,
    EventNotFoundError,
    InvalidIdError,
    InvalidTransitionError,
    OrderNotFoundError,
    PaymentMismatchError,
    StorageConflictError,
    TemplateNotFoundError,
    TermNotFoundError,
)
from scheduling.domain.queries import BookingQuery
from scheduling.domain.results import (
    AuditFinding,
    AuditReport,
    CancellationResult,
    EventCancellation,
    ExpansionResult,
    Outcome,
    ReconciliationResult,
    RepairError,
    RepairSummary,
)
from scheduling.services.capacity import CapacityLedger
from scheduling.services.expander import EventExpander
from scheduling.services.notifications import (
    Notification,
    NotificationType,
    Notifier,
    SignalNotifier,
)
from scheduling.services.reconciler import BookingReconciler
from scheduling.stores.interfaces import UnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)

T = TypeVar("T")

# These propagate to the caller instead of becoming a failed Outcome.
_RAISED_CODES = frozenset(
    {ErrorCode.CONFIG_INVALID, ErrorCode.INFRASTRUCTURE, ErrorCode.STORAGE_CONFLICT}
)

_OPEN_BOOKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


def _parse_id(id_cls, value: str, kind: str):
    try:
        return id_cls.from_string(str(value))
    except ValueError:
        raise InvalidIdError(kind) from None


class SchedulerFacade:
    """Scheduling operations exposed to HTTP handlers and management commands."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        notifier: Notifier | None = None,
        config: SchedulingSettings | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._notifier = notifier or SignalNotifier()
        self._config = config or SchedulingSettings()
        self._ledger = CapacityLedger()
        self._expander = EventExpander(self._config)
        self._reconciler = BookingReconciler(
            uow_factory, self._ledger, self._notifier, self._config
        )

    # -- plumbing ---------------------------------------------------------

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self._config.conflict_retry_attempts),
            wait=wait_exponential(multiplier=self._config.conflict_retry_backoff),
            retry=retry_if_exception_type(StorageConflictError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def _run(
        self,
        operation: str,
        fn: Callable[..., T],
        *args,
        finish: Callable[[T], Outcome[T]] = Outcome.success,
    ) -> Outcome[T]:
        try:
            value = self._retrying()(fn, *args)
        except DomainError as exc:
            if exc.code in _RAISED_CODES:
                logger.error("%s failed: %s", operation, exc)
                raise
            logger.info("%s rejected: %s", operation, exc)
            return Outcome.failure(exc)
        outcome = finish(value)
        if outcome.ok:
            logger.info("%s succeeded", operation)
        else:
            logger.info("%s rejected: %s", operation, outcome.error)
        return outcome

    def _calendar(self, uow: UnitOfWork) -> TermCalendar:
        try:
            return TermCalendar(uow.store.list_terms(), uow.store.list_closures())
        except ValueError as exc:
            raise ConfigInvalidError(str(exc)) from exc

    def _notify_after_commit(
        self, uow: UnitOfWork, notification_type: NotificationType, **context
    ) -> None:
        uow.on_commit(lambda: self._notifier.notify(Notification(notification_type, context)))

    @staticmethod
    def _reconciliation_outcome(result: ReconciliationResult) -> Outcome[ReconciliationResult]:
        if result.rejected:
            first = result.rejected[0]
            return Outcome.failure(EventFullError(first.event_id, first.capacity), value=result)
        return Outcome.success(result)

    # -- calendar ---------------------------------------------------------

    def expand_template(self, template_id: str, term_id: str) -> Outcome[ExpansionResult]:
        """Materialize a template's sessions for one term.

        Runs in a single transaction: a configuration error creates nothing.
        Occurrences that land on closure dates are skipped and announced as
        ``calendar_conflict``.
        """

        def expand() -> ExpansionResult:
            tid = _parse_id(TemplateId, template_id, "template")
            rid = _parse_id(TermId, term_id, "term")
            with self._uow_factory() as uow:
                template = uow.store.get_template(tid)
                if template is None:
                    raise TemplateNotFoundError(str(tid))
                term = uow.store.get_term(rid)
                if term is None:
                    raise TermNotFoundError()
                result = self._expander.expand(uow, template, term, self._calendar(uow))
                if result.skipped:
                    self._notify_after_commit(
                        uow,
                        NotificationType.CALENDAR_CONFLICT,
                        template_id=str(tid),
                        term=term.name,
                        dates=[day.isoformat() for day in result.skipped],
                    )
                return result

        return self._run("Expand template %s" % template_id, expand)

    def resolve_term(self, on_date: date) -> Outcome[Term]:
        """Return the term a subscription bought on ``on_date`` starts in."""

        def resolve() -> Term:
            with self._uow_factory() as uow:
                calendar = self._calendar(uow)
            term = calendar.subscription_start_term(on_date)
            if term is None:
                raise TermNotFoundError()
            return term

        return self._run("Resolve term for %s" % on_date.isoformat(), resolve)

    def deactivate_template(self, template_id: str) -> Outcome[RecurringTemplate]:
        """Soft-deactivate a template. Its events are left as they are."""

        def deactivate() -> RecurringTemplate:
            tid = _parse_id(TemplateId, template_id, "template")
            with self._uow_factory() as uow:
                template = uow.store.get_template(tid)
                if template is None:
                    raise TemplateNotFoundError(str(tid))
                if template.active:
                    template = replace(template, active=False)
                    uow.store.save_template(template)
                return template

        return self._run("Deactivate template %s" % template_id, deactivate)

    # -- orders -----------------------------------------------------------

    def reconcile_order(self, order_id: str) -> Outcome[ReconciliationResult]:
        """Derive bookings and events for a PAID order.

        When some items could not be admitted, the outcome carries both the
        partial result and an EVENT_FULL error.
        """

        def reconcile() -> ReconciliationResult:
            oid = _parse_id(OrderId, order_id, "order")
            return self._reconciler.reconcile_order(oid)

        return self._run(
            "Reconcile order %s" % order_id, reconcile, finish=self._reconciliation_outcome
        )

    def repair_order(self, order_id: str) -> Outcome[ReconciliationResult]:
        def repair() -> ReconciliationResult:
            oid = _parse_id(OrderId, order_id, "order")
            return self._reconciler.repair_order(oid)

        return self._run("Repair order %s" % order_id, repair, finish=self._reconciliation_outcome)

    def repair_all_paid_orders(self) -> RepairSummary:
        """Re-run reconciliation over every PAID order.

        A failing order is recorded in ``errors`` and the run carries on.
        """
        with self._uow_factory() as uow:
            order_ids = uow.store.list_order_ids(OrderStatus.PAID)

        processed = bookings = events = linked = 0
        errors: list[RepairError] = []
        for order_id in order_ids:
            try:
                result = self._retrying()(self._reconciler.repair_order, order_id)
            except DomainError as exc:
                logger.error("Repair of order %s failed: %s", order_id, exc)
                errors.append(RepairError(order_id=order_id, reason=exc.message))
                continue
            processed += 1
            bookings += result.bookings_created
            events += result.events_created
            linked += result.events_linked
            errors.extend(
                RepairError(
                    order_id=order_id,
                    reason=f"Item {rejected.order_item_id}: {rejected.reason}",
                )
                for rejected in result.rejected
            )

        summary = RepairSummary(
            processed=processed,
            bookings_created=bookings,
            events_created=events,
            events_linked=linked,
            errors=tuple(errors),
        )
        logger.info(
            "Repaired %d paid orders: %d bookings created, %d events created, %d errors",
            summary.processed,
            summary.bookings_created,
            summary.events_created,
            len(summary.errors),
        )
        return summary

    def verify_paid_orders(self) -> AuditReport:
        """List PAID order items missing a booking or an event link.

        Read-only counterpart of ``repair_all_paid_orders``.
        """

        def audit() -> AuditReport:
            findings: list[AuditFinding] = []
            with self._uow_factory() as uow:
                order_ids = uow.store.list_order_ids(OrderStatus.PAID)
                for order_id in order_ids:
                    order = uow.store.get_order(order_id)
                    for item in order.items if order else ():
                        finding = self._reconciler.audit_item(uow, item)
                        if finding is not None:
                            findings.append(finding)
            return AuditReport(orders_checked=len(order_ids), findings=tuple(findings))

        report = self._retrying()(audit)
        logger.info(
            "Verified %d paid orders: %d issues", report.orders_checked, len(report.findings)
        )
        return report

    def confirm_payment(
        self, order_id: str, confirmation: PaymentConfirmation
    ) -> Outcome[ReconciliationResult]:
        """Mark a PENDING order PAID and reconcile it.

        Replaying a confirmation for an order that is already PAID only
        reconciles again.
        """

        def confirm() -> Order:
            oid = _parse_id(OrderId, order_id, "order")
            with self._uow_factory() as uow:
                order = uow.store.lock_order(oid)
                if order is None:
                    raise OrderNotFoundError(str(oid))
                if order.status is OrderStatus.CANCELLED:
                    raise InvalidTransitionError(
                        "order", order.status.value, OrderStatus.PAID.value
                    )
                if confirmation.amount != order.total_amount:
                    logger.warning(
                        "Payment %s for order %s is %s, expected %s",
                        confirmation.id,
                        oid,
                        confirmation.amount,
                        order.total_amount,
                    )
                    raise PaymentMismatchError(str(oid))
                if order.status is OrderStatus.PENDING:
                    order = replace(order, status=OrderStatus.PAID, payment_ref=confirmation.id)
                    uow.store.save_order(order)
                    logger.info("Order %s paid with %s", oid, confirmation.id)
                return order

        paid = self._run("Confirm payment for order %s" % order_id, confirm)
        if not paid.ok:
            return Outcome.failure(paid.error)
        return self.reconcile_order(str(paid.value.id))

    def fail_payment(self, order_id: str) -> Outcome[Order]:
        """Cancel a PENDING order whose payment failed. No-op otherwise."""

        def fail() -> Order:
            oid = _parse_id(OrderId, order_id, "order")
            with self._uow_factory() as uow:
                order = uow.store.lock_order(oid)
                if order is None:
                    raise OrderNotFoundError(str(oid))
                if order.status is not OrderStatus.PENDING:
                    logger.info("Payment failure for %s order %s ignored", order.status.value, oid)
                    return order
                order = replace(order, status=OrderStatus.CANCELLED)
                uow.store.save_order(order)
                return order

        return self._run("Fail payment for order %s" % order_id, fail)

    # -- bookings ---------------------------------------------------------

    def cancel_booking(self, booking_id: str) -> Outcome[CancellationResult]:
        """Cancel a booking and give its seat back.

        The event keeps its status even when its count drops to zero.
        Cancelling an already cancelled booking succeeds without changes.
        """

        def cancel() -> CancellationResult:
            bid = _parse_id(BookingId, booking_id, "booking")
            with self._uow_factory() as uow:
                booking = uow.store.lock_booking(bid)
                if booking is None:
                    raise BookingNotFoundError(str(bid))
                if booking.status is BookingStatus.CANCELLED:
                    return CancellationResult(booking=booking, released=False, already_cancelled=True)
                if not booking.can_transition_to(BookingStatus.CANCELLED):
                    raise InvalidTransitionError(
                        "booking", booking.status.value, BookingStatus.CANCELLED.value
                    )
                cancelled = replace(booking, status=BookingStatus.CANCELLED)
                uow.store.save_booking(cancelled)
                count = None
                if booking.event_id is not None:
                    count = self._ledger.release(uow, booking.event_id)
                self._notify_after_commit(
                    uow,
                    NotificationType.BOOKING_CANCELLED,
                    booking_id=str(bid),
                    event_id=str(booking.event_id) if booking.event_id else None,
                )
                return CancellationResult(
                    booking=cancelled,
                    released=booking.event_id is not None,
                    event_count=count,
                )

        return self._run("Cancel booking %s" % booking_id, cancel)

    def complete_booking(self, booking_id: str) -> Outcome[Booking]:
        def complete() -> Booking:
            bid = _parse_id(BookingId, booking_id, "booking")
            with self._uow_factory() as uow:
                booking = uow.store.lock_booking(bid)
                if booking is None:
                    raise BookingNotFoundError(str(bid))
                if not booking.can_transition_to(BookingStatus.COMPLETED):
                    raise InvalidTransitionError(
                        "booking", booking.status.value, BookingStatus.COMPLETED.value
                    )
                booking = replace(booking, status=BookingStatus.COMPLETED)
                uow.store.save_booking(booking)
                return booking

        return self._run("Complete booking %s" % booking_id, complete)

    # -- events -----------------------------------------------------------

    def cancel_event(self, event_id: str) -> Outcome[EventCancellation]:
        """Cancel an event, its open bookings, and zero its count."""

        def cancel() -> EventCancellation:
            eid = _parse_id(EventId, event_id, "event")
            with self._uow_factory() as uow:
                event = uow.store.lock_event(eid)
                if event is None:
                    raise EventNotFoundError(str(eid))
                if event.status is EventStatus.CANCELLED:
                    return EventCancellation(event=event)
                if not event.can_transition_to(EventStatus.CANCELLED):
                    raise InvalidTransitionError(
                        "event", event.status.value, EventStatus.CANCELLED.value
                    )
                uow.store.save_event_status(event.with_status(EventStatus.CANCELLED))
                bookings = uow.store.find_bookings(
                    BookingQuery(event_id=eid, statuses=_OPEN_BOOKING_STATUSES)
                )
                for booking in bookings:
                    uow.store.save_booking(replace(booking, status=BookingStatus.CANCELLED))
                self._ledger.reset(uow, eid)
                cancelled_ids = tuple(booking.id for booking in bookings)
                self._notify_after_commit(
                    uow,
                    NotificationType.EVENT_CANCELLED,
                    event_id=str(eid),
                    title=event.title,
                    starts_at=event.starts_at.isoformat(),
                    bookings_cancelled=[str(bid) for bid in cancelled_ids],
                )
                logger.info("Cancelled event %s and %d bookings", eid, len(cancelled_ids))
                return EventCancellation(
                    event=replace(event, status=EventStatus.CANCELLED, current_count=0),
                    bookings_cancelled=cancelled_ids,
                )

        return self._run("Cancel event %s" % event_id, cancel)

    def start_event(self, event_id: str) -> Outcome[Event]:
        return self._transition_event(event_id, EventStatus.IN_PROGRESS)

    def complete_event(self, event_id: str) -> Outcome[Event]:
        """Complete an event; its CONFIRMED bookings become COMPLETED."""
        return self._transition_event(event_id, EventStatus.COMPLETED)

    def mark_no_show(self, event_id: str) -> Outcome[Event]:
        return self._transition_event(event_id, EventStatus.NO_SHOW)

    def _transition_event(self, event_id: str, status: EventStatus) -> Outcome[Event]:
        def transition() -> Event:
            eid = _parse_id(EventId, event_id, "event")
            with self._uow_factory() as uow:
                event = uow.store.lock_event(eid)
                if event is None:
                    raise EventNotFoundError(str(eid))
                if not event.can_transition_to(status):
                    raise InvalidTransitionError("event", event.status.value, status.value)
                event = event.with_status(status)
                uow.store.save_event_status(event)
                if status is EventStatus.COMPLETED:
                    confirmed = uow.store.find_bookings(
                        BookingQuery(
                            event_id=eid, statuses=frozenset({BookingStatus.CONFIRMED})
                        )
                    )
                    for booking in confirmed:
                        uow.store.save_booking(replace(booking, status=BookingStatus.COMPLETED))
                return event

        return self._run("Move event %s to %s" % (event_id, status.value), transition)


def default_scheduler() -> SchedulerFacade:
    """Facade wired to the Django store, signal notifications and settings."""
    from scheduling.stores.django_store import DjangoUnitOfWork

    return SchedulerFacade(DjangoUnitOfWork, SignalNotifier(), get_scheduling_settings())
