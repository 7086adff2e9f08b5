from scheduling.domain.models import (
    Booking,
    ClosureDate,
    Event,
    Location,
    Order,
    OrderItem,
    PaymentConfirmation,
    Product,
    RecurringTemplate,
    Student,
    Term,
)
from scheduling.domain.value_objects import (
    BookingId,
    BookingStatus,
    Capacity,
    EventId,
    EventStatus,
    EventType,
    GroupingPolicy,
    LocationId,
    Money,
    OrderId,
    OrderItemId,
    OrderStatus,
    ProductId,
    ProductType,
    SessionWindowPolicy,
    StudentId,
    TemplateId,
    TermId,
    TimeWindow,
)

__all__ = [
    "Booking",
    "ClosureDate",
    "Event",
    "Location",
    "Order",
    "OrderItem",
    "PaymentConfirmation",
    "Product",
    "RecurringTemplate",
    "Student",
    "Term",
    "BookingId",
    "EventId",
    "LocationId",
    "OrderId",
    "OrderItemId",
    "ProductId",
    "StudentId",
    "TemplateId",
    "TermId",
    "BookingStatus",
    "EventStatus",
    "EventType",
    "GroupingPolicy",
    "OrderStatus",
    "ProductType",
    "SessionWindowPolicy",
    "Capacity",
    "Money",
    "TimeWindow",
]
