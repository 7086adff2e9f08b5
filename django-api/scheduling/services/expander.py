"""Recurring template expansion."""

import logging

from scheduling.conf import SchedulingSettings
from scheduling.domain import (
    Event,
    EventId,
    EventStatus,
    EventType,
    RecurringTemplate,
    Term,
)
from scheduling.domain.calendar import TermCalendar, combine_window
from scheduling.domain.errors import ConfigInvalidError
from scheduling.domain.queries import EventQuery
from scheduling.domain.results import ExpansionResult
from scheduling.stores.interfaces import UnitOfWork

logger = logging.getLogger(__name__)


class EventExpander:
    """Turns a template and a term into concrete events.

    Expansion is idempotent: an occurrence whose (template, start) slot is
    already persisted is reported as existing, never created twice.
    """

    def __init__(self, config: SchedulingSettings) -> None:
        self._config = config

    def expand(
        self,
        uow: UnitOfWork,
        template: RecurringTemplate,
        term: Term,
        calendar: TermCalendar,
    ) -> ExpansionResult:
        self._validate(uow, template)

        candidates = sorted(
            day
            for dow in template.days_of_week
            for day in calendar.occurrences_of(term, dow)
            if template.is_valid_on(day)
        )

        created, existing, skipped = [], [], []
        for day in candidates:
            if calendar.is_closed(day):
                skipped.append(day)
                continue
            window = combine_window(
                day, template.start_time, template.end_time, self._config.timezone
            )
            found = uow.store.find_events(
                EventQuery(recurring_template_id=template.id, starts_at=window.starts_at)
            )
            if found:
                existing.append(found[0])
                continue
            event = Event(
                id=EventId.new(),
                title=template.name,
                type=EventType.RECURRING_SESSION,
                status=EventStatus.SCHEDULED,
                window=window,
                location_id=template.location_id,
                capacity=template.capacity,
                current_count=0,
                recurring_template_id=template.id,
                product_id=template.product_id,
            )
            uow.store.add_event(event)
            created.append(event)

        logger.info(
            "Expanded template %s over %s: %d created, %d existing, %d skipped",
            template.id,
            term.name,
            len(created),
            len(existing),
            len(skipped),
        )
        return ExpansionResult(
            created=tuple(created),
            already_existing=tuple(existing),
            skipped=tuple(skipped),
        )

    def _validate(self, uow: UnitOfWork, template: RecurringTemplate) -> None:
        if not template.active:
            raise ConfigInvalidError("Recurring template is inactive")
        if template.start_time >= template.end_time:
            raise ConfigInvalidError("Recurring template must end after it starts")
        location = uow.store.get_location(template.location_id)
        if location is None or not location.active:
            raise ConfigInvalidError("Template location is inactive")
