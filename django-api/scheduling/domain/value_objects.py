"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Self
from uuid import UUID, uuid4


@dataclass(frozen=True)
class EntityId:
    """Base for UUID-backed identifiers."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    @classmethod
    def new(cls) -> Self:
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


class LocationId(EntityId):
    """Unique identifier for a Location."""


class ProductId(EntityId):
    """Unique identifier for a Product."""


class StudentId(EntityId):
    """Unique identifier for a Student."""


class TermId(EntityId):
    """Unique identifier for a Term."""


class TemplateId(EntityId):
    """Unique identifier for a RecurringTemplate."""


class EventId(EntityId):
    """Unique identifier for an Event."""


class OrderId(EntityId):
    """Unique identifier for an Order."""


class OrderItemId(EntityId):
    """Unique identifier for an OrderItem."""


class BookingId(EntityId):
    """Unique identifier for a Booking."""


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval of timezone-aware datetimes."""

    starts_at: datetime
    ends_at: datetime

    def __post_init__(self) -> None:
        if self.starts_at.tzinfo is None or self.ends_at.tzinfo is None:
            raise ValueError("Time window bounds must be timezone-aware")
        if self.ends_at <= self.starts_at:
            raise ValueError("Time window must end after it starts")


class EventStatus(Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class EventType(Enum):
    CAMP = "CAMP"
    BIRTHDAY = "BIRTHDAY"
    RECURRING_SESSION = "RECURRING_SESSION"


class BookingStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class OrderStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class ProductType(Enum):
    CAMP = "CAMP"
    BIRTHDAY = "BIRTHDAY"
    SUBSCRIPTION = "SUBSCRIPTION"


class SessionWindowPolicy(Enum):
    """How a booking's start and end are derived from its booking date."""

    STANDARD_DAY = "STANDARD_DAY"
    FULL_DAY = "FULL_DAY"
    FIXED_DURATION = "FIXED_DURATION"


class GroupingPolicy(Enum):
    """Versioned rule deciding which bookings share one Event row."""

    DAY_LOCATION_TYPE_V1 = "day-location-type/v1"
    EXACT_WINDOW_V1 = "exact-window/v1"
