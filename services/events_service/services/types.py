"""Value types passed into and returned from the registration engine."""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict

from services.events_service.models import EventRegistration
from services.events_service.services.enums import NotificationKind, RegistrationReason
from services.members_service.models import MemberStatus


class AccessUser(BaseModel):
    """The authenticated identity behind a request."""

    model_config = ConfigDict(frozen=True)

    id: str


class MemberSnapshot(BaseModel):
    """The parts of a member profile that access decisions read."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    user_id: str
    status: MemberStatus


class AccessContext(BaseModel):
    """Request-scoped snapshot of who is asking.

    Built once per request by ``build_access_context`` and passed explicitly
    into every decision function. Never persisted.
    """

    model_config = ConfigDict(frozen=True)

    user: Optional[AccessUser] = None
    member: Optional[MemberSnapshot] = None
    valid_certification_ids: frozenset[str] = frozenset()
    is_board_member: bool = False

    @classmethod
    def anonymous(cls) -> "AccessContext":
        return cls()


class RegistrationEligibility(BaseModel):
    """Outcome of ``can_register``."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[RegistrationReason] = None
    missing_certifications: tuple[str, ...] = ()

    @classmethod
    def allow(cls) -> "RegistrationEligibility":
        return cls(allowed=True)

    @classmethod
    def deny(
        cls, reason: RegistrationReason, missing: tuple[str, ...] = ()
    ) -> "RegistrationEligibility":
        return cls(allowed=False, reason=reason, missing_certifications=missing)


class RegistrationNotification(BaseModel):
    """Something a registrant should be told about.

    The engine only describes what happened; delivery belongs to the
    notification dispatcher.
    """

    model_config = ConfigDict(frozen=True)

    kind: NotificationKind
    event_id: uuid.UUID
    member_id: uuid.UUID
    waitlist_position: Optional[int] = None
    refund_percent: Optional[int] = None
    reason: Optional[str] = None


class RegistrationResult(BaseModel):
    """Outcome of a register call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    reason: Optional[RegistrationReason] = None
    missing_certifications: tuple[str, ...] = ()
    registration: Optional[EventRegistration] = None
    waitlisted: bool = False
    waitlist_position: Optional[int] = None
    notifications: list[RegistrationNotification] = []

    @classmethod
    def rejected(
        cls, reason: RegistrationReason, missing: tuple[str, ...] = ()
    ) -> "RegistrationResult":
        return cls(ok=False, reason=reason, missing_certifications=missing)


class CancellationResult(BaseModel):
    """Outcome of a cancel call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    reason: Optional[RegistrationReason] = None
    registration: Optional[EventRegistration] = None
    refund_percent: Optional[int] = None
    promoted_member_id: Optional[uuid.UUID] = None
    notifications: list[RegistrationNotification] = []

    @classmethod
    def rejected(cls, reason: RegistrationReason) -> "CancellationResult":
        return cls(ok=False, reason=reason)
