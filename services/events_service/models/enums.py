"""Enum definitions for events service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class EventCategory(str, enum.Enum):
    MATCH = "match"
    MEETING = "meeting"
    EDUCATION = "education"
    CLUB_EVENT = "club_event"
    WORK_DAY = "work_day"
    YOUTH_EVENT = "youth_event"
    PRACTICE = "practice"
    CLASS = "class"
    RANGE_UNAVAILABLE = "range_unavailable"


# Categories a prospect may see (orientation / education)
PROSPECT_VISIBLE_CATEGORIES = frozenset(
    {EventCategory.EDUCATION, EventCategory.CLUB_EVENT}
)


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"


class RegistrationStatus(str, enum.Enum):
    """Persisted registration states. ``unregistered`` is never stored."""

    REGISTERED = "registered"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"


ACTIVE_REGISTRATION_STATUSES = (
    RegistrationStatus.REGISTERED,
    RegistrationStatus.WAITLISTED,
)
