"""Serializers for transforming domain models to API responses.

Output serializers read frozen domain dataclasses and emit camelCase keys.
Input serializers validate request bodies before the facade sees them.
"""

from decimal import Decimal

from rest_framework import serializers

from scheduling.domain import Money, PaymentConfirmation


class EventSerializer(serializers.Serializer):
    """Serializer for Event domain model."""

    id = serializers.CharField()
    title = serializers.CharField()
    type = serializers.CharField(source="type.value")
    status = serializers.CharField(source="status.value")
    startAt = serializers.DateTimeField(source="starts_at")
    endAt = serializers.DateTimeField(source="ends_at")
    locationId = serializers.CharField(source="location_id")
    capacity = serializers.IntegerField(source="capacity.value")
    currentCount = serializers.IntegerField(source="current_count")
    recurringTemplateId = serializers.CharField(source="recurring_template_id", allow_null=True)


class BookingSerializer(serializers.Serializer):
    """Serializer for Booking domain model."""

    id = serializers.CharField()
    studentId = serializers.CharField(source="student_id")
    productId = serializers.CharField(source="product_id")
    locationId = serializers.CharField(source="location_id")
    startAt = serializers.DateTimeField(source="starts_at")
    endAt = serializers.DateTimeField(source="ends_at")
    status = serializers.CharField(source="status.value")
    eventId = serializers.CharField(source="event_id", allow_null=True)
    totalPrice = serializers.CharField(source="total_price")


class OrderSerializer(serializers.Serializer):
    id = serializers.CharField()
    status = serializers.CharField(source="status.value")
    totalAmount = serializers.CharField(source="total_amount")
    paymentRef = serializers.CharField(source="payment_ref", allow_null=True)


class TemplateSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    active = serializers.BooleanField()


class RejectedItemSerializer(serializers.Serializer):
    orderItemId = serializers.CharField(source="order_item_id")
    eventId = serializers.CharField(source="event_id")
    reason = serializers.CharField()


class ReconciliationSerializer(serializers.Serializer):
    """Counts of what one reconciliation run changed."""

    bookingsCreated = serializers.IntegerField(source="bookings_created")
    eventsCreated = serializers.IntegerField(source="events_created")
    eventsLinked = serializers.IntegerField(source="events_linked")
    rejected = RejectedItemSerializer(many=True)


class ExpansionSerializer(serializers.Serializer):
    created = serializers.SerializerMethodField()
    alreadyExisting = serializers.SerializerMethodField()
    skipped = serializers.ListField(child=serializers.DateField())
    events = EventSerializer(source="created", many=True)

    def get_created(self, result) -> int:
        return len(result.created)

    def get_alreadyExisting(self, result) -> int:
        return len(result.already_existing)


class RepairErrorSerializer(serializers.Serializer):
    orderId = serializers.CharField(source="order_id")
    reason = serializers.CharField()


class RepairSummarySerializer(serializers.Serializer):
    processed = serializers.IntegerField()
    bookingsCreated = serializers.IntegerField(source="bookings_created")
    eventsCreated = serializers.IntegerField(source="events_created")
    eventsLinked = serializers.IntegerField(source="events_linked")
    errors = RepairErrorSerializer(many=True)


class AuditFindingSerializer(serializers.Serializer):
    orderId = serializers.CharField(source="order_id")
    orderItemId = serializers.CharField(source="order_item_id")
    issue = serializers.CharField(source="issue.value")
    bookingId = serializers.CharField(source="booking_id", allow_null=True)


class AuditReportSerializer(serializers.Serializer):
    ordersChecked = serializers.IntegerField(source="orders_checked")
    findings = AuditFindingSerializer(many=True)


class CancellationSerializer(serializers.Serializer):
    booking = BookingSerializer()
    released = serializers.BooleanField()
    alreadyCancelled = serializers.BooleanField(source="already_cancelled")
    eventCount = serializers.IntegerField(source="event_count", allow_null=True)


class EventCancellationSerializer(serializers.Serializer):
    event = EventSerializer()
    bookingsCancelled = serializers.ListField(
        source="bookings_cancelled", child=serializers.CharField()
    )


class PaymentConfirmationSerializer(serializers.Serializer):
    """Body of POST /api/orders/{order_id}/confirm-payment."""

    id = serializers.CharField(max_length=255)
    amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0")
    )
    customerRef = serializers.CharField(required=False, allow_blank=True, default="")

    def to_confirmation(self) -> PaymentConfirmation:
        data = self.validated_data
        return PaymentConfirmation(
            id=data["id"],
            amount=Money(data["amount"]),
            customer_ref=data["customerRef"],
        )


class ExpandTemplateSerializer(serializers.Serializer):
    """Body of POST /api/templates/{template_id}/expand."""

    termId = serializers.UUIDField()
