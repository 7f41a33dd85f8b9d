"""Events Service models package."""

from services.events_service.models.core import (
    Event,
    EventCapacityLedger,
    EventRegistration,
)
from services.events_service.models.enums import (
    ACTIVE_REGISTRATION_STATUSES,
    PROSPECT_VISIBLE_CATEGORIES,
    EventCategory,
    EventStatus,
    RegistrationStatus,
)

__all__ = [
    "ACTIVE_REGISTRATION_STATUSES",
    "PROSPECT_VISIBLE_CATEGORIES",
    "Event",
    "EventCapacityLedger",
    "EventCategory",
    "EventRegistration",
    "EventStatus",
    "RegistrationStatus",
]
