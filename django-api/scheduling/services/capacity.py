"""Capacity ledger - the only writer of ``Event.current_count``."""

import logging

from scheduling.domain import EventId, EventStatus
from scheduling.domain.errors import EventNotFoundError, InvalidTransitionError
from scheduling.domain.results import Admission
from scheduling.stores.interfaces import UnitOfWork

logger = logging.getLogger(__name__)

_ADMITTING_STATUSES = frozenset(
    {EventStatus.SCHEDULED, EventStatus.IN_PROGRESS, EventStatus.COMPLETED}
)


class CapacityLedger:
    """Admission decisions for events.

    Every method locks the event row through ``uow`` first, so two
    admissions racing for the last seat are serialized by storage.
    """

    def try_admit(self, uow: UnitOfWork, event_id: EventId) -> Admission:
        event = uow.store.lock_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        if event.status not in _ADMITTING_STATUSES:
            raise InvalidTransitionError("event", event.status.value, "admission")
        if not event.has_room:
            logger.info(
                "Event %s full (%d/%d)", event_id, event.current_count, event.capacity.value
            )
            return Admission.CAPACITY_EXCEEDED
        uow.store.adjust_event_count(event_id, 1)
        logger.debug(
            "Admitted to event %s (%d/%d)",
            event_id,
            event.current_count + 1,
            event.capacity.value,
        )
        return Admission.ADMITTED

    def release(self, uow: UnitOfWork, event_id: EventId) -> int:
        """Give back one seat. Returns the new count, never below zero."""
        event = uow.store.lock_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        if event.current_count == 0:
            logger.warning("Release on empty event %s ignored", event_id)
            return 0
        uow.store.adjust_event_count(event_id, -1)
        return event.current_count - 1

    def reset(self, uow: UnitOfWork, event_id: EventId) -> None:
        """Zero the count of a cancelled event."""
        event = uow.store.lock_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        if event.current_count:
            uow.store.adjust_event_count(event_id, -event.current_count)
