"""Enums for the event registration and access-control engine."""

import enum


class RegistrationReason(str, enum.Enum):
    """Why a registration or cancellation request did not go through."""

    NO_ACCESS = "NO_ACCESS"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    NO_MEMBER_PROFILE = "NO_MEMBER_PROFILE"
    SUSPENDED = "SUSPENDED"
    TERMINATED = "TERMINATED"
    DUES_LAPSED = "DUES_LAPSED"
    PROSPECT_ONLY_RESTRICTED = "PROSPECT_ONLY_RESTRICTED"
    MEMBERSHIP_NOT_ACTIVE = "MEMBERSHIP_NOT_ACTIVE"
    MISSING_CERTIFICATIONS = "MISSING_CERTIFICATIONS"
    EVENT_NOT_OPEN = "EVENT_NOT_OPEN"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    NOT_REGISTERED = "NOT_REGISTERED"

    @property
    def message(self) -> str:
        return REASON_MESSAGES[self]

    @property
    def http_status(self) -> int:
        return REASON_HTTP_STATUS[self]


REASON_MESSAGES: dict[RegistrationReason, str] = {
    RegistrationReason.NO_ACCESS: "You do not have access to this event.",
    RegistrationReason.AUTH_REQUIRED: "Please log in to register for events.",
    RegistrationReason.NO_MEMBER_PROFILE: "You need a member profile to register for events.",
    RegistrationReason.SUSPENDED: "Your membership is currently suspended.",
    RegistrationReason.TERMINATED: "Your membership has been terminated.",
    RegistrationReason.DUES_LAPSED: "Your membership is inactive. Please renew your dues.",
    RegistrationReason.PROSPECT_ONLY_RESTRICTED: "This event is for approved members only.",
    RegistrationReason.MEMBERSHIP_NOT_ACTIVE: "This event requires an active membership.",
    RegistrationReason.MISSING_CERTIFICATIONS: "You are missing required certifications for this event.",
    RegistrationReason.EVENT_NOT_OPEN: "Event not open for registration.",
    RegistrationReason.REGISTRATION_CLOSED: "Registration deadline has passed.",
    RegistrationReason.ALREADY_REGISTERED: "You are already registered for this event.",
    RegistrationReason.NOT_REGISTERED: "Not registered for this event.",
}

REASON_HTTP_STATUS: dict[RegistrationReason, int] = {
    RegistrationReason.NO_ACCESS: 403,
    RegistrationReason.AUTH_REQUIRED: 401,
    RegistrationReason.NO_MEMBER_PROFILE: 403,
    RegistrationReason.SUSPENDED: 403,
    RegistrationReason.TERMINATED: 403,
    RegistrationReason.DUES_LAPSED: 403,
    RegistrationReason.PROSPECT_ONLY_RESTRICTED: 403,
    RegistrationReason.MEMBERSHIP_NOT_ACTIVE: 403,
    RegistrationReason.MISSING_CERTIFICATIONS: 403,
    RegistrationReason.EVENT_NOT_OPEN: 400,
    RegistrationReason.REGISTRATION_CLOSED: 400,
    RegistrationReason.ALREADY_REGISTERED: 409,
    RegistrationReason.NOT_REGISTERED: 404,
}


class RegistrationState(str, enum.Enum):
    """Logical registration states, including the implicit ``unregistered``."""

    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"


class RegistrationAction(str, enum.Enum):
    REGISTER = "register"
    WAITLIST = "waitlist"
    PROMOTE = "promote"
    CANCEL = "cancel"


class NotificationKind(str, enum.Enum):
    """What happened to a registrant. Maps 1:1 to an email template."""

    REGISTERED = "event_registration_confirmed"
    WAITLISTED = "event_waitlisted"
    CANCELLED = "event_registration_cancelled"
    PROMOTED = "event_waitlist_promotion"
    EVENT_CANCELLED = "event_cancelled"
