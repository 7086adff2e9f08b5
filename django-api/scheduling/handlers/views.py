"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call the scheduler facade for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import logging

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from scheduling.domain.errors import DomainError, ErrorCode, EventFullError
from scheduling.domain.results import Outcome
from scheduling.handlers.serializers import (
    AuditReportSerializer,
    BookingSerializer,
    CancellationSerializer,
    EventCancellationSerializer,
    EventSerializer,
    ExpandTemplateSerializer,
    ExpansionSerializer,
    OrderSerializer,
    PaymentConfirmationSerializer,
    ReconciliationSerializer,
    RepairSummarySerializer,
)
from scheduling.services.scheduler import default_scheduler

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorCode.CONFIG_INVALID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.BOOKING_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TEMPLATE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TERM_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.EVENT_FULL: status.HTTP_409_CONFLICT,
    ErrorCode.ORDER_NOT_PAID: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.PAYMENT_MISMATCH: status.HTTP_409_CONFLICT,
    ErrorCode.STORAGE_CONFLICT: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.INFRASTRUCTURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(error: DomainError, **extra) -> Response:
    body = {"code": error.code.value, "message": error.message}
    if isinstance(error, EventFullError):
        body["eventId"] = str(error.event_id)
        body["capacity"] = error.capacity
    body.update(extra)
    return Response(
        body, status=ERROR_STATUS.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    )


class SchedulerView(APIView):
    """Base view: runs a facade call and renders its Outcome."""

    scheduler_factory = staticmethod(default_scheduler)
    serializer_class = None

    def get_scheduler(self):
        return self.scheduler_factory()

    def respond(self, call) -> Response:
        try:
            outcome: Outcome = call(self.get_scheduler())
        except DomainError as exc:
            logger.error("%s %s failed: %s", self.request.method, self.request.path, exc)
            return error_response(exc)
        if not outcome.ok:
            if outcome.value is not None:
                return error_response(
                    outcome.error, result=self.serializer_class(outcome.value).data
                )
            return error_response(outcome.error)
        return Response(self.serializer_class(outcome.value).data)


class ReconcileOrderView(SchedulerView):
    """Handler for POST /api/orders/{order_id}/reconcile"""

    serializer_class = ReconciliationSerializer

    def post(self, request: Request, order_id: str) -> Response:
        return self.respond(lambda scheduler: scheduler.reconcile_order(order_id))


class ConfirmPaymentView(SchedulerView):
    """Handler for POST /api/orders/{order_id}/confirm-payment"""

    serializer_class = ReconciliationSerializer

    def post(self, request: Request, order_id: str) -> Response:
        body = PaymentConfirmationSerializer(data=request.data)
        if not body.is_valid():
            return Response(
                {"code": "VALIDATION_ERROR", "message": "Invalid payment confirmation"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        confirmation = body.to_confirmation()
        return self.respond(
            lambda scheduler: scheduler.confirm_payment(order_id, confirmation)
        )


class PaymentFailedView(SchedulerView):
    """Handler for POST /api/orders/{order_id}/payment-failed"""

    serializer_class = OrderSerializer

    def post(self, request: Request, order_id: str) -> Response:
        return self.respond(lambda scheduler: scheduler.fail_payment(order_id))


class ExpandTemplateView(SchedulerView):
    """Handler for POST /api/templates/{template_id}/expand"""

    serializer_class = ExpansionSerializer

    def post(self, request: Request, template_id: str) -> Response:
        body = ExpandTemplateSerializer(data=request.data)
        if not body.is_valid():
            return Response(
                {"code": "VALIDATION_ERROR", "message": "termId must be a valid UUID"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        term_id = str(body.validated_data["termId"])
        return self.respond(lambda scheduler: scheduler.expand_template(template_id, term_id))


class RepairPaidOrdersView(SchedulerView):
    """Handler for POST /api/admin/repair-paid-orders"""

    def post(self, request: Request) -> Response:
        try:
            summary = self.get_scheduler().repair_all_paid_orders()
        except DomainError as exc:
            logger.error("Repair run failed: %s", exc)
            return error_response(exc)
        return Response(RepairSummarySerializer(summary).data)


class VerifyPaidOrdersView(SchedulerView):
    """Handler for GET /api/admin/verify-paid-orders"""

    def get(self, request: Request) -> Response:
        try:
            report = self.get_scheduler().verify_paid_orders()
        except DomainError as exc:
            logger.error("Verify run failed: %s", exc)
            return error_response(exc)
        return Response(AuditReportSerializer(report).data)


class CancelBookingView(SchedulerView):
    """Handler for POST /api/bookings/{booking_id}/cancel"""

    serializer_class = CancellationSerializer

    def post(self, request: Request, booking_id: str) -> Response:
        return self.respond(lambda scheduler: scheduler.cancel_booking(booking_id))


class CompleteBookingView(SchedulerView):
    """Handler for POST /api/bookings/{booking_id}/complete"""

    serializer_class = BookingSerializer

    def post(self, request: Request, booking_id: str) -> Response:
        return self.respond(lambda scheduler: scheduler.complete_booking(booking_id))


class CancelEventView(SchedulerView):
    """Handler for POST /api/events/{event_id}/cancel"""

    serializer_class = EventCancellationSerializer

    def post(self, request: Request, event_id: str) -> Response:
        return self.respond(lambda scheduler: scheduler.cancel_event(event_id))


class EventTransitionView(SchedulerView):
    """Handler for POST /api/events/{event_id}/start|complete|no-show"""

    serializer_class = EventSerializer
    transition = None

    def post(self, request: Request, event_id: str) -> Response:
        return self.respond(lambda scheduler: getattr(scheduler, self.transition)(event_id))
