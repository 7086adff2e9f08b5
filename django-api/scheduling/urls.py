from django.urls import path

from scheduling.handlers import (
    CancelBookingView,
    CancelEventView,
    CompleteBookingView,
    ConfirmPaymentView,
    EventTransitionView,
    ExpandTemplateView,
    PaymentFailedView,
    ReconcileOrderView,
    RepairPaidOrdersView,
    VerifyPaidOrdersView,
)

urlpatterns = [
    path(
        "orders/<str:order_id>/reconcile",
        ReconcileOrderView.as_view(),
        name="order-reconcile",
    ),
    path(
        "orders/<str:order_id>/confirm-payment",
        ConfirmPaymentView.as_view(),
        name="order-confirm-payment",
    ),
    path(
        "orders/<str:order_id>/payment-failed",
        PaymentFailedView.as_view(),
        name="order-payment-failed",
    ),
    path(
        "templates/<str:template_id>/expand",
        ExpandTemplateView.as_view(),
        name="template-expand",
    ),
    path(
        "admin/repair-paid-orders",
        RepairPaidOrdersView.as_view(),
        name="repair-paid-orders",
    ),
    path(
        "admin/verify-paid-orders",
        VerifyPaidOrdersView.as_view(),
        name="verify-paid-orders",
    ),
    path(
        "bookings/<str:booking_id>/cancel",
        CancelBookingView.as_view(),
        name="booking-cancel",
    ),
    path(
        "bookings/<str:booking_id>/complete",
        CompleteBookingView.as_view(),
        name="booking-complete",
    ),
    path("events/<str:event_id>/cancel", CancelEventView.as_view(), name="event-cancel"),
    path(
        "events/<str:event_id>/start",
        EventTransitionView.as_view(transition="start_event"),
        name="event-start",
    ),
    path(
        "events/<str:event_id>/complete",
        EventTransitionView.as_view(transition="complete_event"),
        name="event-complete",
    ),
    path(
        "events/<str:event_id>/no-show",
        EventTransitionView.as_view(transition="mark_no_show"),
        name="event-no-show",
    ),
]
