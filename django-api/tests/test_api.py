"""API tests for the scheduling endpoints.

Run with: pytest tests/test_api.py -v
"""

from datetime import date
from io import StringIO

import pytest
from django.core.management import call_command

from conftest import at
from scheduling import models

CAMP_DAY = date(2026, 4, 7)
MISSING_ID = "5d3c2b1a-0f9e-4d8c-8b7a-6f5e4d3c2b1a"


@pytest.mark.django_db
class TestReconcileEndpoint:
    def test_reconcile_returns_counts(self, api_client, orm):
        orm.location()
        order = orm.order(orm.product(), [at(CAMP_DAY, 10)])

        response = api_client.post(f"/api/orders/{order.id}/reconcile")

        assert response.status_code == 200
        assert response.json()["bookingsCreated"] == 1
        assert response.json()["eventsCreated"] == 1
        assert response.json()["eventsLinked"] == 0

    def test_unknown_order_is_404(self, api_client, orm):
        response = api_client.post(f"/api/orders/{MISSING_ID}/reconcile")

        assert response.status_code == 404
        assert response.json() == {"code": "ORDER_NOT_FOUND", "message": "Order not found"}

    def test_malformed_id_is_400(self, api_client, orm):
        response = api_client.post("/api/orders/not-a-uuid/reconcile")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ID"

    def test_unpaid_order_is_409(self, api_client, orm):
        orm.location()
        order = orm.order(orm.product(), [at(CAMP_DAY, 10)], status="PENDING")

        response = api_client.post(f"/api/orders/{order.id}/reconcile")

        assert response.status_code == 409
        assert response.json()["code"] == "ORDER_NOT_PAID"

    def test_full_event_is_409_with_event(self, api_client, orm):
        location = orm.location()
        full = orm.event(location, at(CAMP_DAY, 9), at(CAMP_DAY, 15), capacity=1, current_count=1)
        order = orm.order(orm.product(), [at(CAMP_DAY, 10)])

        response = api_client.post(f"/api/orders/{order.id}/reconcile")

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "EVENT_FULL"
        assert body["eventId"] == str(full.id)
        assert body["capacity"] == 1
        assert body["result"]["bookingsCreated"] == 0

    def test_missing_location_is_400(self, api_client, orm):
        order = orm.order(orm.product(), [at(CAMP_DAY, 10)])

        response = api_client.post(f"/api/orders/{order.id}/reconcile")

        assert response.status_code == 400
        assert response.json()["code"] == "CONFIG_INVALID"


@pytest.mark.django_db
class TestPaymentEndpoints:
    def test_confirm_payment(self, api_client, orm):
        orm.location()
        order = orm.order(orm.product(), [at(CAMP_DAY, 10)], status="PENDING")

        response = api_client.post(
            f"/api/orders/{order.id}/confirm-payment",
            {"id": "pi_123", "amount": "85.00", "customerRef": "cus_9"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["bookingsCreated"] == 1
        order.refresh_from_db()
        assert order.status == "PAID"

    def test_confirm_payment_amount_mismatch(self, api_client, orm):
        orm.location()
        order = orm.order(orm.product(), [at(CAMP_DAY, 10)], status="PENDING")

        response = api_client.post(
            f"/api/orders/{order.id}/confirm-payment",
            {"id": "pi_123", "amount": "10.00"},
            format="json",
        )

        assert response.status_code == 409
        assert response.json()["code"] == "PAYMENT_MISMATCH"

    def test_confirm_payment_validates_body(self, api_client, orm):
        order = orm.order(orm.product(), [at(CAMP_DAY, 10)], status="PENDING")

        response = api_client.post(
            f"/api/orders/{order.id}/confirm-payment", {"amount": "-1"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_payment_failed_cancels_order(self, api_client, orm):
        order = orm.order(orm.product(), [at(CAMP_DAY, 10)], status="PENDING")

        response = api_client.post(f"/api/orders/{order.id}/payment-failed")

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"


@pytest.mark.django_db
class TestTemplateEndpoints:
    def test_expand_template(self, api_client, orm):
        template = orm.template(orm.location())
        term = orm.term()

        response = api_client.post(
            f"/api/templates/{template.id}/expand", {"termId": str(term.id)}, format="json"
        )

        assert response.status_code == 200
        body = response.json()
        assert body["created"] == 9
        assert body["alreadyExisting"] == 0
        assert body["skipped"] == []
        assert len(body["events"]) == 9

    def test_expand_with_inactive_location_is_400(self, api_client, orm):
        template = orm.template(orm.location(is_active=False))
        term = orm.term()

        response = api_client.post(
            f"/api/templates/{template.id}/expand", {"termId": str(term.id)}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["code"] == "CONFIG_INVALID"
        assert models.Event.objects.count() == 0

    def test_expand_unknown_term_is_404(self, api_client, orm):
        template = orm.template(orm.location())

        response = api_client.post(
            f"/api/templates/{template.id}/expand", {"termId": MISSING_ID}, format="json"
        )

        assert response.status_code == 404
        assert response.json()["code"] == "TERM_NOT_FOUND"

    def test_expand_requires_term(self, api_client, orm):
        template = orm.template(orm.location())

        response = api_client.post(f"/api/templates/{template.id}/expand", {}, format="json")

        assert response.status_code == 400


@pytest.mark.django_db
class TestBookingAndEventEndpoints:
    def _reconciled(self, orm, api_client, dates):
        orm.location()
        order = orm.order(orm.product(), dates)
        api_client.post(f"/api/orders/{order.id}/reconcile")
        return order

    def test_cancel_booking(self, api_client, orm):
        self._reconciled(orm, api_client, [at(CAMP_DAY, 10)])
        booking = models.Booking.objects.get()

        response = api_client.post(f"/api/bookings/{booking.id}/cancel")

        assert response.status_code == 200
        body = response.json()
        assert body["booking"]["status"] == "CANCELLED"
        assert body["released"] is True
        assert body["eventCount"] == 0

    def test_complete_then_cancel_is_409(self, api_client, orm):
        self._reconciled(orm, api_client, [at(CAMP_DAY, 10)])
        booking = models.Booking.objects.get()

        api_client.post(f"/api/bookings/{booking.id}/complete")
        response = api_client.post(f"/api/bookings/{booking.id}/cancel")

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_TRANSITION"

    def test_event_lifecycle(self, api_client, orm):
        self._reconciled(orm, api_client, [at(CAMP_DAY, 10)])
        event = models.Event.objects.get()

        started = api_client.post(f"/api/events/{event.id}/start")
        completed = api_client.post(f"/api/events/{event.id}/complete")
        no_show = api_client.post(f"/api/events/{event.id}/no-show")

        assert started.json()["status"] == "IN_PROGRESS"
        assert completed.json()["status"] == "COMPLETED"
        assert no_show.status_code == 409
        assert models.Booking.objects.get().status == "COMPLETED"

    def test_cancel_event(self, api_client, orm):
        self._reconciled(orm, api_client, [at(CAMP_DAY, 10), at(CAMP_DAY, 11)])
        event = models.Event.objects.get()

        response = api_client.post(f"/api/events/{event.id}/cancel")

        assert response.status_code == 200
        body = response.json()
        assert body["event"]["status"] == "CANCELLED"
        assert body["event"]["currentCount"] == 0
        assert len(body["bookingsCancelled"]) == 2

    def test_unknown_event_is_404(self, api_client, orm):
        response = api_client.post(f"/api/events/{MISSING_ID}/start")

        assert response.status_code == 404
        assert response.json()["code"] == "EVENT_NOT_FOUND"


@pytest.mark.django_db
class TestRepair:
    def test_repair_endpoint(self, api_client, orm):
        orm.location()
        product = orm.product()
        orm.order(product, [at(CAMP_DAY, 10)])
        orm.order(product, [at(date(2026, 4, 8), 10)])

        response = api_client.post("/api/admin/repair-paid-orders")

        assert response.status_code == 200
        assert response.json() == {
            "processed": 2,
            "bookingsCreated": 2,
            "eventsCreated": 2,
            "eventsLinked": 0,
            "errors": [],
        }

    def test_repair_command(self, orm):
        orm.location()
        orm.order(orm.product(), [at(CAMP_DAY, 10)])
        out = StringIO()

        call_command("repair_paid_orders", stdout=out)

        assert "Processed 1 orders: 1 bookings created" in out.getvalue()
        assert models.Booking.objects.count() == 1

    def test_verify_endpoint_reports_missing_booking(self, api_client, orm):
        orm.location()
        order = orm.order(orm.product(), [at(CAMP_DAY, 10)])
        item = order.items.get()

        response = api_client.get("/api/admin/verify-paid-orders")

        assert response.status_code == 200
        assert response.json() == {
            "ordersChecked": 1,
            "findings": [
                {
                    "orderId": str(order.id),
                    "orderItemId": str(item.id),
                    "issue": "MISSING_BOOKING",
                    "bookingId": None,
                }
            ],
        }

    def test_verify_command_changes_nothing(self, orm):
        orm.location()
        orm.order(orm.product(), [at(CAMP_DAY, 10)])
        out = StringIO()

        call_command("repair_paid_orders", "--verify", stdout=out)

        assert "MISSING_BOOKING" in out.getvalue()
        assert "Checked 1 paid orders: 1 issues" in out.getvalue()
        assert models.Booking.objects.count() == 0
        assert models.Event.objects.count() == 0

    def test_reconcile_command(self, orm):
        orm.location()
        order = orm.order(orm.product(), [at(CAMP_DAY, 10)])
        out = StringIO()

        call_command("reconcile_order", str(order.id), stdout=out)

        assert "1 bookings created" in out.getvalue()

    def test_expand_command(self, orm):
        template = orm.template(orm.location())
        term = orm.term()
        out = StringIO()

        call_command("expand_template", str(template.id), term=str(term.id), stdout=out)

        assert "Created 9 events" in out.getvalue()
