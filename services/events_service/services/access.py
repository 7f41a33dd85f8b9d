"""Event access control.

Decides who can see an event and who can register for it, based on:
- Authentication state
- Member status (prospect, probationary, active, ...)
- Board membership
- Certifications (NMO, NMSE, RSO, Instructor)

Everything here is pure: the caller assembles an ``AccessContext`` first and
these functions only read it. The same inputs always give the same answer.
"""

from typing import Iterable, Optional, Protocol, TypeVar

from services.events_service.models import PROSPECT_VISIBLE_CATEGORIES, EventCategory
from services.events_service.services.certifications import (
    missing_certifications,
    parse_required_certifications,
)
from services.events_service.services.enums import RegistrationReason
from services.events_service.services.types import AccessContext, RegistrationEligibility
from services.members_service.models import (
    ACTIVE_MEMBER_STATUSES,
    RESTRICTED_MEMBER_STATUSES,
    MemberStatus,
)


class EventLike(Protocol):
    event_type: EventCategory
    is_public: Optional[bool]
    members_only: Optional[bool]
    board_only: Optional[bool]
    requires_certification: Optional[str]


E = TypeVar("E", bound=EventLike)


def can_view(event: EventLike, ctx: AccessContext) -> bool:
    """Whether the requester may see ``event`` at all.

    Rules, first match wins:
    - Board-only events: only current board members
    - Public events: everyone
    - Otherwise an authenticated user with a member profile is required
    - Prospects only see education / club events
    - Inactive, suspended and terminated members see non-members-only events
    - Active and probationary members see everything else
    """
    if event.board_only:
        return ctx.is_board_member

    if event.is_public:
        return True

    if ctx.user is None:
        return False

    if ctx.member is None:
        return False

    status = ctx.member.status
    if status == MemberStatus.PROSPECT:
        return event.event_type in PROSPECT_VISIBLE_CATEGORIES
    if status in RESTRICTED_MEMBER_STATUSES:
        return not event.members_only
    if status in ACTIVE_MEMBER_STATUSES:
        return True

    raise ValueError(f"Unhandled member status: {status!r}")


def can_register(event: EventLike, ctx: AccessContext) -> RegistrationEligibility:
    """Whether the requester may register, and if not, why.

    Checks short-circuit in a fixed order so the reason returned is always the
    first one the user has to fix.
    """
    if not can_view(event, ctx):
        return RegistrationEligibility.deny(RegistrationReason.NO_ACCESS)

    if ctx.user is None:
        return RegistrationEligibility.deny(RegistrationReason.AUTH_REQUIRED)

    if ctx.member is None:
        return RegistrationEligibility.deny(RegistrationReason.NO_MEMBER_PROFILE)

    status = ctx.member.status
    if status == MemberStatus.SUSPENDED:
        return RegistrationEligibility.deny(RegistrationReason.SUSPENDED)
    if status == MemberStatus.TERMINATED:
        return RegistrationEligibility.deny(RegistrationReason.TERMINATED)
    if status == MemberStatus.INACTIVE:
        return RegistrationEligibility.deny(RegistrationReason.DUES_LAPSED)

    if event.members_only and status not in ACTIVE_MEMBER_STATUSES:
        if status == MemberStatus.PROSPECT:
            return RegistrationEligibility.deny(
                RegistrationReason.PROSPECT_ONLY_RESTRICTED
            )
        return RegistrationEligibility.deny(RegistrationReason.MEMBERSHIP_NOT_ACTIVE)

    required = parse_required_certifications(event.requires_certification)
    missing = missing_certifications(required, ctx.valid_certification_ids)
    if missing:
        return RegistrationEligibility.deny(
            RegistrationReason.MISSING_CERTIFICATIONS, tuple(missing)
        )

    return RegistrationEligibility.allow()


def filter_visible_events(events: Iterable[E], ctx: AccessContext) -> list[E]:
    """Keep only the events the requester can see."""
    return [event for event in events if can_view(event, ctx)]
