"""Combiner that merges two parsed calendars into one sorted calendar."""
import logging
from typing import List, Optional, Union

from icalendar import Calendar, Event

from processor.models import CalendarSummary

logger = logging.getLogger(__name__)

PRODID = '-//holiday-feeds//Combined Holidays//EN'


class CalendarParseError(ValueError):
    """Raised when text cannot be parsed as a VCALENDAR."""


def parse_calendar(data: Union[str, bytes]) -> Calendar:
    """
    Parse ICS text into a calendar.

    Args:
        data: Raw feed content

    Returns:
        Parsed icalendar.Calendar

    Raises:
        CalendarParseError: If the content is not a single VCALENDAR
    """
    try:
        calendar = Calendar.from_ical(data)
    except (ValueError, IndexError) as e:
        raise CalendarParseError(f"Invalid calendar data: {e}") from e

    if calendar.name != 'VCALENDAR':
        raise CalendarParseError(
            f"Expected a VCALENDAR component, found {calendar.name}"
        )
    return calendar


def start_key(event: Event) -> str:
    """Return the raw DTSTART value, or an empty string if it is missing."""
    dtstart = event.get('DTSTART')
    if dtstart is None:
        return ''
    raw = dtstart.to_ical()
    return raw.decode('utf-8') if isinstance(raw, bytes) else str(raw)


def combine_calendars(first: Calendar, second: Calendar) -> Calendar:
    """
    Combine the events of two calendars into a new calendar.

    Events are ordered by a stable string comparison of their raw DTSTART
    values, so ties keep the first calendar's events ahead of the second's.
    This is only chronological when every feed encodes DTSTART the same
    sortable way (e.g. YYYYMMDD). Neither input is modified.

    Args:
        first: First calendar
        second: Second calendar

    Returns:
        New calendar holding all events of both inputs
    """
    events = list(first.walk('VEVENT')) + list(second.walk('VEVENT'))
    events.sort(key=start_key)

    combined = Calendar()
    combined.add('prodid', PRODID)
    combined.add('version', '2.0')
    for event in events:
        combined.add_component(event)

    logger.info(f"Combined calendar has {len(events)} events")
    return combined


def combine_feeds(first_text: Union[str, bytes], second_text: Union[str, bytes]) -> str:
    """Parse two feeds, combine them, and serialize the result."""
    combined = combine_calendars(parse_calendar(first_text), parse_calendar(second_text))
    return combined.to_ical().decode('utf-8')


def _summary(event: Event) -> Optional[str]:
    summary = event.get('SUMMARY')
    return str(summary) if summary is not None else None


def summarize_calendar(calendar: Calendar) -> CalendarSummary:
    """Describe a calendar by its event count and first, middle and last events."""
    events: List[Event] = list(calendar.walk('VEVENT'))
    total = len(events)

    if total == 0:
        return CalendarSummary(total_events=0, first=None, middle=None, last=None)

    return CalendarSummary(
        total_events=total,
        first=_summary(events[0]),
        middle=_summary(events[total // 2]) if total > 2 else None,
        last=_summary(events[-1]) if total >= 2 else None
    )
