"""Term and closure-date arithmetic.

Everything here is a pure function of its inputs. Days of week use
0 for Sunday through 6 for Saturday, the numbering admins enter on
recurring templates.
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from scheduling.domain.models import ClosureDate, Term
from scheduling.domain.value_objects import TimeWindow

DAY_NAME_TO_NUMBER = {
    "sunday": 0,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
}


def day_of_week(day: date) -> int:
    """Return the Sunday-based weekday number of ``day``."""
    return (day.weekday() + 1) % 7


def occurrences_of(term: Term, dow: int) -> list[date]:
    """All dates inside ``term`` falling on ``dow``, ascending."""
    if dow not in range(7):
        raise ValueError("Day of week must be between 0 and 6")
    current = term.start_date + timedelta(days=(dow - day_of_week(term.start_date)) % 7)
    dates = []
    while current <= term.end_date:
        dates.append(current)
        current += timedelta(days=7)
    return dates


def local_date(moment: datetime, tz: ZoneInfo) -> date:
    """Business-local calendar day of an aware datetime."""
    return moment.astimezone(tz).date()


def local_day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Start of ``day`` and start of the following day, in ``tz``."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def combine_window(day: date, start: time, end: time, tz: ZoneInfo) -> TimeWindow:
    return TimeWindow(
        starts_at=datetime.combine(day, start, tzinfo=tz),
        ends_at=datetime.combine(day, end, tzinfo=tz),
    )


class TermCalendar:
    """Lookup over the configured terms and closure dates."""

    def __init__(self, terms: Iterable[Term], closures: Iterable[ClosureDate] = ()) -> None:
        self._terms: Sequence[Term] = tuple(sorted(terms, key=lambda t: t.start_date))
        self._closures: Sequence[ClosureDate] = tuple(closures)
        for previous, following in zip(self._terms, self._terms[1:]):
            if following.start_date <= previous.end_date:
                raise ValueError(f"Terms {previous.name} and {following.name} overlap")

    @property
    def terms(self) -> Sequence[Term]:
        return self._terms

    def term_for(self, day: date) -> Term | None:
        for term in self._terms:
            if term.contains(day):
                return term
        return None

    def next_term_after(self, day: date) -> Term | None:
        for term in self._terms:
            if term.start_date > day:
                return term
        return None

    def subscription_start_term(self, day: date) -> Term | None:
        """Current term, or the next one when ``day`` falls in a break."""
        return self.term_for(day) or self.next_term_after(day)

    def occurrences_of(self, term: Term, dow: int) -> list[date]:
        return occurrences_of(term, dow)

    def closure_for(self, day: date) -> ClosureDate | None:
        # Recurring closures take precedence over one-off ones.
        for closure in sorted(self._closures, key=lambda c: not c.recurring):
            if closure.matches(day):
                return closure
        return None

    def is_closed(self, day: date) -> bool:
        return self.closure_for(day) is not None

    def closures_in_range(self, start: date, end: date) -> list[date]:
        dates = []
        current = start
        while current <= end:
            if self.is_closed(current):
                dates.append(current)
            current += timedelta(days=1)
        return dates
