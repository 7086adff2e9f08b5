"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models
from django.db.models import F, Q

from scheduling.domain.value_objects import (
    BookingStatus,
    EventStatus,
    EventType,
    OrderStatus,
    ProductType,
    SessionWindowPolicy,
)


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.name.replace("_", " ").title()) for member in enum_cls]


class Location(models.Model):
    """Persistence model for venues."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=500, blank=True)
    capacity = models.PositiveIntegerField(default=20)
    timezone = models.CharField(max_length=64, default="Australia/Sydney")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Product(models.Model):
    """Persistence model for bookable products."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=32, choices=_choices(ProductType))
    session_window_policy = models.CharField(
        max_length=32,
        choices=_choices(SessionWindowPolicy),
        default=SessionWindowPolicy.STANDARD_DAY.value,
    )
    duration_minutes = models.PositiveIntegerField(default=360)
    event_capacity = models.PositiveIntegerField(null=True, blank=True)
    default_location = models.ForeignKey(
        Location, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Student(models.Model):
    """Persistence model for students."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    birthdate = models.DateField(null=True, blank=True)
    allergies = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Term(models.Model):
    """Persistence model for school terms."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    start_date = models.DateField()
    end_date = models.DateField()

    class Meta:
        ordering = ["start_date"]
        constraints = [
            models.CheckConstraint(
                condition=Q(start_date__lt=F("end_date")),
                name="term_starts_before_end",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class ClosureDate(models.Model):
    """Persistence model for days the business is closed."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.CharField(max_length=500, blank=True)
    recurring = models.BooleanField(default=False)
    month = models.PositiveSmallIntegerField(null=True, blank=True)
    day = models.PositiveSmallIntegerField(null=True, blank=True)
    date = models.DateField(null=True, blank=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(recurring=True, month__isnull=False, day__isnull=False)
                    | Q(recurring=False, date__isnull=False)
                ),
                name="closure_date_is_complete",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class RecurringTemplate(models.Model):
    """Persistence model for recurring session templates."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    days_of_week = models.JSONField(default=list)
    start_time = models.TimeField()
    end_time = models.TimeField()
    capacity = models.PositiveIntegerField()
    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, related_name="recurring_templates"
    )
    product = models.ForeignKey(
        Product, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    valid_from = models.DateField()
    valid_to = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(start_time__lt=F("end_time")),
                name="template_starts_before_end",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class Event(models.Model):
    """Persistence model for dated, bookable occurrences."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    type = models.CharField(max_length=32, choices=_choices(EventType))
    status = models.CharField(
        max_length=32, choices=_choices(EventStatus), default=EventStatus.SCHEDULED.value
    )
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name="events")
    capacity = models.PositiveIntegerField()
    current_count = models.PositiveIntegerField(default=0)
    recurring_template = models.ForeignKey(
        RecurringTemplate,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="events",
    )
    product = models.ForeignKey(
        Product, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["starts_at", "created_at"]
        indexes = [
            models.Index(fields=["location", "starts_at"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(current_count__lte=F("capacity")),
                name="event_count_within_capacity",
            ),
            models.CheckConstraint(
                condition=Q(ends_at__gt=F("starts_at")),
                name="event_ends_after_start",
            ),
            models.UniqueConstraint(
                fields=["recurring_template", "starts_at"],
                condition=Q(recurring_template__isnull=False),
                name="one_event_per_template_slot",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.title} - {self.starts_at}"


class Order(models.Model):
    """Persistence model for customer orders."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer_email = models.EmailField()
    customer_name = models.CharField(max_length=255)
    status = models.CharField(
        max_length=32, choices=_choices(OrderStatus), default=OrderStatus.PENDING.value
    )
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    payment_ref = models.CharField(max_length=255, null=True, blank=True)
    location = models.ForeignKey(
        Location, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.customer_name} - {self.total_amount}"


class OrderItem(models.Model):
    """Persistence model for order lines."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="+")
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name="order_items")
    booking_date = models.DateTimeField()
    price = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["booking_date", "created_at"]

    def __str__(self) -> str:
        return f"{self.student} - {self.booking_date:%Y-%m-%d}"


class Booking(models.Model):
    """Persistence model for bookings."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name="bookings")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="+")
    location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name="+")
    event = models.ForeignKey(
        Event, on_delete=models.SET_NULL, null=True, blank=True, related_name="bookings"
    )
    order_item = models.ForeignKey(
        OrderItem, on_delete=models.SET_NULL, null=True, blank=True, related_name="bookings"
    )
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    service_date = models.DateField()
    status = models.CharField(
        max_length=32, choices=_choices(BookingStatus), default=BookingStatus.PENDING.value
    )
    total_price = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["starts_at", "created_at"]
        indexes = [
            models.Index(fields=["student", "service_date"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["student", "product", "service_date"],
                condition=~Q(status=BookingStatus.CANCELLED.value),
                name="one_active_booking_per_student_product_day",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.student} - {self.service_date}"
