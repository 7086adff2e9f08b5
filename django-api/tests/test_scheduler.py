"""Tests for the scheduler facade: lifecycle operations, payments and retries."""

import logging
from datetime import date
from decimal import Decimal

import pytest

from conftest import at
from scheduling.domain import (
    BookingStatus,
    EventStatus,
    Money,
    OrderStatus,
    PaymentConfirmation,
)
from scheduling.domain.errors import ErrorCode, StorageConflictError
from scheduling.services.notifications import (
    Notification,
    NotificationType,
    SignalNotifier,
)
from scheduling.services.scheduler import SchedulerFacade
from scheduling.signals import scheduling_notification

CAMP_DAY = date(2026, 4, 7)


def _paid_camp_order(world, students=1):
    world.location()
    camp = world.product()
    return world.order([(camp, at(CAMP_DAY, 10 + n)) for n in range(students)])


class TestCancelBooking:
    def test_cancel_releases_seat_and_keeps_event(self, scheduler, world, notifier):
        order = _paid_camp_order(world)
        scheduler.reconcile_order(str(order.id))
        [booking] = world.bookings()

        outcome = scheduler.cancel_booking(str(booking.id))

        assert outcome.ok
        assert outcome.value.released
        assert outcome.value.event_count == 0
        assert world.get_booking(booking.id).status is BookingStatus.CANCELLED
        event = world.get_event(booking.event_id)
        assert event.current_count == 0
        assert event.status is EventStatus.SCHEDULED
        assert notifier.of_type(NotificationType.BOOKING_CANCELLED)

    def test_cancel_twice_is_a_no_op(self, scheduler, world):
        order = _paid_camp_order(world, students=2)
        scheduler.reconcile_order(str(order.id))
        booking = world.bookings()[0]
        scheduler.cancel_booking(str(booking.id))

        outcome = scheduler.cancel_booking(str(booking.id))

        assert outcome.ok
        assert outcome.value.already_cancelled
        assert world.get_event(booking.event_id).current_count == 1

    def test_completed_booking_cannot_be_cancelled(self, scheduler, world):
        order = _paid_camp_order(world)
        scheduler.reconcile_order(str(order.id))
        [booking] = world.bookings()
        scheduler.complete_booking(str(booking.id))

        outcome = scheduler.cancel_booking(str(booking.id))

        assert outcome.error.code is ErrorCode.INVALID_TRANSITION
        assert world.get_event(booking.event_id).current_count == 1

    def test_cancelled_seat_can_be_rebooked(self, scheduler, world):
        location = world.location()
        camp = world.product(capacity=1)
        first = world.order([(camp, at(CAMP_DAY, 10))])
        second = world.order([(camp, at(CAMP_DAY, 10))])
        scheduler.reconcile_order(str(first.id))
        [booking] = world.bookings()

        scheduler.cancel_booking(str(booking.id))
        outcome = scheduler.reconcile_order(str(second.id))

        assert outcome.ok
        [event] = world.events()
        assert event.location_id == location.id
        assert event.current_count == 1

    def test_unknown_booking(self, scheduler):
        outcome = scheduler.cancel_booking("0f0e6c52-8d0b-4d0e-8f4e-0c9a3b1b7d21")

        assert outcome.error.code is ErrorCode.BOOKING_NOT_FOUND


class TestPayments:
    def _confirmation(self, amount="85.00"):
        return PaymentConfirmation(id="pi_123", amount=Money(Decimal(amount)))

    def test_confirm_payment_marks_paid_and_reconciles(self, scheduler, world):
        world.location()
        order = world.order([(world.product(), at(CAMP_DAY, 10))], status=OrderStatus.PENDING)

        outcome = scheduler.confirm_payment(str(order.id), self._confirmation())

        assert outcome.ok
        assert outcome.value.bookings_created == 1
        paid = world.get_order(order.id)
        assert paid.status is OrderStatus.PAID
        assert paid.payment_ref == "pi_123"

    def test_replayed_confirmation_is_idempotent(self, scheduler, world):
        world.location()
        order = world.order([(world.product(), at(CAMP_DAY, 10))], status=OrderStatus.PENDING)
        scheduler.confirm_payment(str(order.id), self._confirmation())

        replay = scheduler.confirm_payment(str(order.id), self._confirmation())

        assert replay.ok
        assert replay.value.bookings_created == 0
        assert len(world.bookings()) == 1
        assert world.events()[0].current_count == 1

    def test_amount_mismatch_is_rejected(self, scheduler, world):
        world.location()
        order = world.order([(world.product(), at(CAMP_DAY, 10))], status=OrderStatus.PENDING)

        outcome = scheduler.confirm_payment(str(order.id), self._confirmation("50.00"))

        assert outcome.error.code is ErrorCode.PAYMENT_MISMATCH
        assert world.get_order(order.id).status is OrderStatus.PENDING
        assert world.bookings() == []

    def test_cancelled_order_cannot_be_paid(self, scheduler, world):
        world.location()
        order = world.order([(world.product(), at(CAMP_DAY, 10))], status=OrderStatus.CANCELLED)

        outcome = scheduler.confirm_payment(str(order.id), self._confirmation())

        assert outcome.error.code is ErrorCode.INVALID_TRANSITION

    def test_failed_payment_cancels_pending_order(self, scheduler, world):
        world.location()
        order = world.order([(world.product(), at(CAMP_DAY, 10))], status=OrderStatus.PENDING)

        outcome = scheduler.fail_payment(str(order.id))

        assert outcome.value.status is OrderStatus.CANCELLED
        assert world.get_order(order.id).status is OrderStatus.CANCELLED

    def test_failed_payment_leaves_paid_order(self, scheduler, world):
        order = _paid_camp_order(world)

        outcome = scheduler.fail_payment(str(order.id))

        assert outcome.ok
        assert world.get_order(order.id).status is OrderStatus.PAID

    def test_unpaid_order_reconcile_is_a_failed_outcome(self, scheduler, world):
        world.location()
        order = world.order([(world.product(), at(CAMP_DAY, 10))], status=OrderStatus.PENDING)

        outcome = scheduler.reconcile_order(str(order.id))

        assert outcome.error.code is ErrorCode.ORDER_NOT_PAID


class TestEventLifecycle:
    def test_cancel_event_cascades_to_bookings(self, scheduler, world, notifier):
        order = _paid_camp_order(world, students=2)
        scheduler.reconcile_order(str(order.id))
        [event] = world.events()

        outcome = scheduler.cancel_event(str(event.id))

        assert outcome.ok
        assert len(outcome.value.bookings_cancelled) == 2
        cancelled = world.get_event(event.id)
        assert cancelled.status is EventStatus.CANCELLED
        assert cancelled.current_count == 0
        assert all(b.status is BookingStatus.CANCELLED for b in world.bookings())
        [announced] = notifier.of_type(NotificationType.EVENT_CANCELLED)
        assert len(announced.context["bookings_cancelled"]) == 2

    def test_cancelling_booking_of_cancelled_event_is_a_no_op(self, scheduler, world):
        order = _paid_camp_order(world)
        scheduler.reconcile_order(str(order.id))
        [event] = world.events()
        [booking] = world.bookings()
        scheduler.cancel_event(str(event.id))

        outcome = scheduler.cancel_booking(str(booking.id))

        assert outcome.value.already_cancelled
        assert world.get_event(event.id).current_count == 0

    def test_completing_event_completes_confirmed_bookings(self, scheduler, world):
        order = _paid_camp_order(world, students=2)
        scheduler.reconcile_order(str(order.id))
        [event] = world.events()
        scheduler.cancel_booking(str(world.bookings()[0].id))

        scheduler.start_event(str(event.id))
        outcome = scheduler.complete_event(str(event.id))

        assert outcome.value.status is EventStatus.COMPLETED
        statuses = sorted(b.status.value for b in world.bookings())
        assert statuses == ["CANCELLED", "COMPLETED"]

    def test_transitions_are_forward_only(self, scheduler, world):
        event = world.event(world.location(), at(CAMP_DAY, 9), at(CAMP_DAY, 15))

        skipped = scheduler.complete_event(str(event.id))
        no_show = scheduler.mark_no_show(str(event.id))
        restart = scheduler.start_event(str(event.id))

        assert skipped.error.code is ErrorCode.INVALID_TRANSITION
        assert no_show.value.status is EventStatus.NO_SHOW
        assert restart.error.code is ErrorCode.INVALID_TRANSITION

    def test_completed_event_cannot_be_cancelled(self, scheduler, world):
        event = world.event(world.location(), at(CAMP_DAY, 9), at(CAMP_DAY, 15))
        scheduler.start_event(str(event.id))
        scheduler.complete_event(str(event.id))

        outcome = scheduler.cancel_event(str(event.id))

        assert outcome.error.code is ErrorCode.INVALID_TRANSITION


class TestConflictRetry:
    def _flaky(self, memory_db, failures):
        calls = []

        def factory():
            calls.append(1)
            if len(calls) <= failures:
                raise StorageConflictError()
            return memory_db.unit_of_work()

        return factory, calls

    def test_transient_conflict_is_retried(self, memory_db, world, notifier, scheduling_config):
        order = _paid_camp_order(world)
        factory, calls = self._flaky(memory_db, failures=2)
        scheduler = SchedulerFacade(factory, notifier, scheduling_config)

        outcome = scheduler.reconcile_order(str(order.id))

        assert outcome.ok
        assert outcome.value.bookings_created == 1
        assert len(calls) > 2

    def test_persistent_conflict_raises(self, memory_db, world, notifier, scheduling_config):
        order = _paid_camp_order(world)
        factory, calls = self._flaky(memory_db, failures=100)
        scheduler = SchedulerFacade(factory, notifier, scheduling_config)

        with pytest.raises(StorageConflictError):
            scheduler.reconcile_order(str(order.id))
        assert len(calls) == scheduling_config.conflict_retry_attempts


class TestSignalNotifier:
    def test_failing_receiver_does_not_raise(self):
        received = []

        def broken(sender, notification, **kwargs):
            raise RuntimeError("mail server down")

        def recording(sender, notification, **kwargs):
            received.append(notification)

        scheduling_notification.connect(broken, weak=False)
        scheduling_notification.connect(recording, weak=False)
        try:
            SignalNotifier().notify(Notification(NotificationType.BOOKING_CONFIRMED, {"id": "1"}))
        finally:
            scheduling_notification.disconnect(broken)
            scheduling_notification.disconnect(recording)

        assert len(received) == 1


class TestOutcomeLogging:
    def test_partially_rejected_reconcile_is_not_logged_as_success(
        self, scheduler, world, caplog, monkeypatch
    ):
        monkeypatch.setattr(logging.getLogger("scheduling"), "propagate", True)
        caplog.set_level(logging.INFO, logger="scheduling")
        location = world.location()
        camp = world.product()
        world.event(location, at(CAMP_DAY, 9), at(CAMP_DAY, 15), capacity=1, count=1)
        order = world.order([(camp, at(CAMP_DAY, 10))])

        scheduler.reconcile_order(str(order.id))

        messages = [
            record.getMessage()
            for record in caplog.records
            if record.name == "scheduling.services.scheduler"
        ]
        assert not any("succeeded" in message for message in messages)
        assert f"Reconcile order {order.id} rejected: EVENT_FULL: Event is at capacity" in messages
