from scheduling.handlers.views import (
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

__all__ = [
    "CancelBookingView",
    "CancelEventView",
    "CompleteBookingView",
    "ConfirmPaymentView",
    "EventTransitionView",
    "ExpandTemplateView",
    "PaymentFailedView",
    "ReconcileOrderView",
    "RepairPaidOrdersView",
    "VerifyPaidOrdersView",
]
