"""Business policy tables: session windows, event capacity, grouping."""

from collections.abc import Mapping, Sequence
from datetime import time, timedelta
from zoneinfo import ZoneInfo

from scheduling.domain.calendar import combine_window, local_date, local_day_bounds
from scheduling.domain.models import Event, OrderItem, Product
from scheduling.domain.queries import EventQuery
from scheduling.domain.value_objects import (
    EventStatus,
    EventType,
    GroupingPolicy,
    LocationId,
    ProductType,
    SessionWindowPolicy,
    TimeWindow,
)

DEFAULT_SESSION_WINDOWS: Mapping[SessionWindowPolicy, tuple[time, time]] = {
    SessionWindowPolicy.STANDARD_DAY: (time(9, 0), time(15, 0)),
    SessionWindowPolicy.FULL_DAY: (time(9, 0), time(17, 0)),
}

DEFAULT_EVENT_CAPACITY: Mapping[ProductType, int] = {
    ProductType.CAMP: 15,
    ProductType.BIRTHDAY: 12,
    ProductType.SUBSCRIPTION: 20,
}

EVENT_TYPE_FOR_PRODUCT: Mapping[ProductType, EventType] = {
    ProductType.CAMP: EventType.CAMP,
    ProductType.BIRTHDAY: EventType.BIRTHDAY,
    ProductType.SUBSCRIPTION: EventType.RECURRING_SESSION,
}

# Events in these states never take new bookings.
CLOSED_EVENT_STATUSES = frozenset({EventStatus.CANCELLED, EventStatus.NO_SHOW})


def session_window(
    product: Product,
    item: OrderItem,
    tz: ZoneInfo,
    windows: Mapping[SessionWindowPolicy, tuple[time, time]] = DEFAULT_SESSION_WINDOWS,
) -> TimeWindow:
    """Derive a booking's start and end from its order item.

    Fixed-window policies pin the business-local day to the configured
    hours. FIXED_DURATION starts at the item's booking time.
    """
    if product.session_window_policy is SessionWindowPolicy.FIXED_DURATION:
        if product.duration_minutes <= 0:
            raise ValueError(f"Product {product.name} has no duration")
        starts_at = item.booking_date.astimezone(tz)
        return TimeWindow(
            starts_at=starts_at,
            ends_at=starts_at + timedelta(minutes=product.duration_minutes),
        )
    start, end = windows[product.session_window_policy]
    return combine_window(local_date(item.booking_date, tz), start, end, tz)


def event_capacity_for(
    product: Product,
    defaults: Mapping[ProductType, int] = DEFAULT_EVENT_CAPACITY,
    fallback: int = 10,
) -> int:
    if product.event_capacity is not None:
        return product.event_capacity.value
    return defaults.get(product.type, fallback)


def grouping_query(
    policy: GroupingPolicy,
    location_id: LocationId,
    event_type: EventType,
    window: TimeWindow,
    tz: ZoneInfo,
) -> EventQuery:
    """Build the query that finds the Event a booking should share."""
    if policy is GroupingPolicy.EXACT_WINDOW_V1:
        return EventQuery(
            location_id=location_id,
            starts_at=window.starts_at,
            ends_at=window.ends_at,
            exclude_statuses=CLOSED_EVENT_STATUSES,
        )
    day_start, day_end = local_day_bounds(local_date(window.starts_at, tz), tz)
    return EventQuery(
        location_id=location_id,
        event_type=event_type,
        starts_from=day_start,
        starts_before=day_end,
        exclude_statuses=CLOSED_EVENT_STATUSES,
    )


def pick_event(candidates: Sequence[Event], window: TimeWindow) -> Event | None:
    """Choose the grouped Event for a booking window.

    An exact window match wins, then the earliest event running at the
    booking's start, then the earliest candidate.
    """
    for event in candidates:
        if event.window == window:
            return event
    for event in candidates:
        if event.starts_at <= window.starts_at < event.ends_at:
            return event
    return candidates[0] if candidates else None
