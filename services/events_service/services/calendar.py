"""iCalendar export of published events."""

from typing import Iterable

from ics import Calendar
from ics import Event as ICSEvent
from libs.common.config import get_settings
from libs.common.datetime_utils import ensure_utc
from services.events_service.models import Event


def build_calendar(events: Iterable[Event]) -> str:
    """Serialize ``events`` as a single VCALENDAR document."""
    club_name = get_settings().CLUB_NAME
    calendar = Calendar(creator=f"-//{club_name}//Events//EN")

    for event in events:
        entry = ICSEvent()
        entry.uid = f"{event.id}@events.{club_name.lower().replace(' ', '-')}"
        entry.name = event.title
        entry.begin = ensure_utc(event.start_time)
        entry.end = ensure_utc(event.end_time)
        entry.location = event.location or club_name
        if event.description:
            entry.description = event.description
        calendar.events.add(entry)

    return calendar.serialize()
