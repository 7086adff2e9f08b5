"""Engine settings, read from the ``SCHEDULING`` dict in Django settings."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import time
from zoneinfo import ZoneInfo

from scheduling.domain.policies import DEFAULT_EVENT_CAPACITY, DEFAULT_SESSION_WINDOWS
from scheduling.domain.value_objects import GroupingPolicy, ProductType, SessionWindowPolicy


@dataclass(frozen=True)
class SchedulingSettings:
    timezone: ZoneInfo = ZoneInfo("Australia/Sydney")
    session_windows: Mapping[SessionWindowPolicy, tuple[time, time]] = field(
        default_factory=lambda: dict(DEFAULT_SESSION_WINDOWS)
    )
    event_capacity: Mapping[ProductType, int] = field(
        default_factory=lambda: dict(DEFAULT_EVENT_CAPACITY)
    )
    fallback_event_capacity: int = 10
    grouping_policy: GroupingPolicy = GroupingPolicy.DAY_LOCATION_TYPE_V1
    conflict_retry_attempts: int = 3
    conflict_retry_backoff: float = 0.5


def _parse_time(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def get_scheduling_settings() -> SchedulingSettings:
    from django.conf import settings

    raw = getattr(settings, "SCHEDULING", {})
    defaults = SchedulingSettings()

    windows = dict(defaults.session_windows)
    for policy, (start, end) in raw.get("SESSION_WINDOWS", {}).items():
        windows[SessionWindowPolicy(policy)] = (_parse_time(start), _parse_time(end))

    capacities = dict(defaults.event_capacity)
    for product_type, capacity in raw.get("EVENT_CAPACITY", {}).items():
        capacities[ProductType(product_type)] = int(capacity)

    return SchedulingSettings(
        timezone=ZoneInfo(raw.get("TIMEZONE", settings.TIME_ZONE)),
        session_windows=windows,
        event_capacity=capacities,
        fallback_event_capacity=int(
            raw.get("FALLBACK_EVENT_CAPACITY", defaults.fallback_event_capacity)
        ),
        grouping_policy=GroupingPolicy(
            raw.get("GROUPING_POLICY", defaults.grouping_policy.value)
        ),
        conflict_retry_attempts=int(
            raw.get("CONFLICT_RETRY_ATTEMPTS", defaults.conflict_retry_attempts)
        ),
        conflict_retry_backoff=float(
            raw.get("CONFLICT_RETRY_BACKOFF", defaults.conflict_retry_backoff)
        ),
    )
