"""Unit tests for event visibility and registration eligibility.

Access decisions are pure functions of (event, AccessContext), so these
tests build contexts directly. No database involved.
"""

import json
import uuid

import pytest
from services.events_service.models import EventCategory
from services.events_service.services.access import (
    can_register,
    can_view,
    filter_visible_events,
)
from services.events_service.services.enums import RegistrationReason
from services.events_service.services.types import (
    AccessContext,
    AccessUser,
    MemberSnapshot,
)
from services.members_service.models import MemberStatus
from tests.factories import EventFactory


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ctx(status=None, certs=(), board=False, profile=True):
    """Context for a logged-in user; ``status=None`` without profile means no member."""
    user = AccessUser(id=f"user-{uuid.uuid4().hex[:8]}")
    if not profile:
        return AccessContext(user=user, is_board_member=board)
    return AccessContext(
        user=user,
        member=MemberSnapshot(
            id=uuid.uuid4(), user_id=user.id, status=status or MemberStatus.ACTIVE
        ),
        valid_certification_ids=frozenset(certs),
        is_board_member=board,
    )


ANONYMOUS = AccessContext.anonymous()

ALL_CONTEXTS = [
    ANONYMOUS,
    _ctx(profile=False),
    *[_ctx(status) for status in MemberStatus],
    _ctx(MemberStatus.ACTIVE, board=True),
    _ctx(MemberStatus.ACTIVE, certs={"cert-type-rso"}),
]

ALL_EVENTS = [
    EventFactory.create(
        event_type=category,
        is_public=is_public,
        members_only=members_only,
        board_only=board_only,
        certifications=certs,
    )
    for category in (EventCategory.MATCH, EventCategory.EDUCATION, EventCategory.CLUB_EVENT)
    for is_public in (True, False)
    for members_only in (True, False)
    for board_only in (True, False)
    for certs in (None, ["cert-type-rso"])
]


# ---------------------------------------------------------------------------
# can_view
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_board_only_visible_only_to_board_members():
    """Board-only wins over is_public: only current board members see it."""
    for event in (e for e in ALL_EVENTS if e.board_only):
        for ctx in ALL_CONTEXTS:
            assert can_view(event, ctx) == ctx.is_board_member


@pytest.mark.unit
def test_public_events_visible_to_everyone():
    for event in (e for e in ALL_EVENTS if e.is_public and not e.board_only):
        for ctx in ALL_CONTEXTS:
            assert can_view(event, ctx) is True


@pytest.mark.unit
def test_private_events_hidden_from_anonymous_and_profileless_users():
    event = EventFactory.create(is_public=False, members_only=False)

    assert can_view(event, ANONYMOUS) is False
    assert can_view(event, _ctx(profile=False)) is False


@pytest.mark.unit
@pytest.mark.parametrize("category", list(EventCategory))
def test_prospects_only_see_education_and_club_events(category):
    event = EventFactory.create(event_type=category, members_only=False)

    expected = category in (EventCategory.EDUCATION, EventCategory.CLUB_EVENT)
    assert can_view(event, _ctx(MemberStatus.PROSPECT)) is expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "status",
    [MemberStatus.INACTIVE, MemberStatus.SUSPENDED, MemberStatus.TERMINATED],
)
def test_restricted_members_see_only_non_members_only_events(status):
    ctx = _ctx(status)

    assert can_view(EventFactory.create(members_only=False), ctx) is True
    assert can_view(EventFactory.create(members_only=True), ctx) is False


@pytest.mark.unit
@pytest.mark.parametrize("status", [MemberStatus.ACTIVE, MemberStatus.PROBATIONARY])
def test_active_members_see_private_members_only_events(status):
    event = EventFactory.create(members_only=True, is_public=False)
    assert can_view(event, _ctx(status)) is True


@pytest.mark.unit
def test_filter_visible_events_keeps_order_and_drops_hidden():
    public = EventFactory.create(is_public=True, title="Open House")
    private = EventFactory.create(is_public=False, title="Members Match")
    board = EventFactory.create(board_only=True, title="Board Meeting")

    visible = filter_visible_events([public, private, board], ANONYMOUS)

    assert visible == [public]
    assert filter_visible_events([public, private, board], _ctx()) == [public, private]


# ---------------------------------------------------------------------------
# can_register
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_hidden_event_denied_with_no_access():
    result = can_register(EventFactory.create(board_only=True), _ctx())

    assert result.allowed is False
    assert result.reason == RegistrationReason.NO_ACCESS


@pytest.mark.unit
def test_anonymous_on_public_event_needs_auth():
    result = can_register(EventFactory.create(is_public=True), ANONYMOUS)
    assert result.reason == RegistrationReason.AUTH_REQUIRED


@pytest.mark.unit
def test_user_without_profile_denied():
    result = can_register(EventFactory.create(is_public=True), _ctx(profile=False))
    assert result.reason == RegistrationReason.NO_MEMBER_PROFILE


@pytest.mark.unit
@pytest.mark.parametrize(
    "status,reason",
    [
        (MemberStatus.SUSPENDED, RegistrationReason.SUSPENDED),
        (MemberStatus.TERMINATED, RegistrationReason.TERMINATED),
        (MemberStatus.INACTIVE, RegistrationReason.DUES_LAPSED),
    ],
)
def test_restricted_status_reasons(status, reason):
    """Restricted members are turned away even from events they can see."""
    event = EventFactory.create(is_public=True, members_only=False)

    result = can_register(event, _ctx(status))

    assert result.allowed is False
    assert result.reason == reason


@pytest.mark.unit
def test_prospect_blocked_from_members_only_education():
    event = EventFactory.create(event_type=EventCategory.EDUCATION, members_only=True)

    result = can_register(event, _ctx(MemberStatus.PROSPECT))

    assert result.reason == RegistrationReason.PROSPECT_ONLY_RESTRICTED


@pytest.mark.unit
def test_prospect_can_register_for_open_orientation():
    event = EventFactory.create(event_type=EventCategory.EDUCATION, members_only=False)
    assert can_register(event, _ctx(MemberStatus.PROSPECT)).allowed is True


@pytest.mark.unit
def test_missing_certifications_reported_in_requirement_order():
    event = EventFactory.create(
        certifications=["cert-type-rso", "cert-type-nmo", "cert-type-instructor"]
    )

    result = can_register(event, _ctx(certs={"cert-type-nmo"}))

    assert result.allowed is False
    assert result.reason == RegistrationReason.MISSING_CERTIFICATIONS
    assert result.missing_certifications == ("cert-type-rso", "cert-type-instructor")


@pytest.mark.unit
def test_certification_check_runs_after_status_checks():
    event = EventFactory.create(
        is_public=True, members_only=False, certifications=["cert-type-rso"]
    )
    result = can_register(event, _ctx(MemberStatus.SUSPENDED))
    assert result.reason == RegistrationReason.SUSPENDED


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw",
    ["not-json-list", '{"cert": "rso"}', '"cert-type-rso"', "42", ""],
)
def test_malformed_requirement_means_no_requirement(raw):
    event = EventFactory.create(requires_certification=raw)

    result = can_register(event, _ctx())

    assert result.allowed is True
    assert result.reason is None


@pytest.mark.unit
def test_all_certifications_held_allows_registration():
    event = EventFactory.create(requires_certification=json.dumps(["cert-type-rso"]))
    assert can_register(event, _ctx(certs={"cert-type-rso", "cert-type-nmo"})).allowed


@pytest.mark.unit
def test_same_inputs_same_answer():
    event = EventFactory.create(certifications=["cert-type-rso"])
    ctx = _ctx(MemberStatus.PROBATIONARY)

    assert can_register(event, ctx) == can_register(event, ctx)


# ---------------------------------------------------------------------------
# Properties over every event/context combination
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_registration_implies_visibility():
    for event in ALL_EVENTS:
        for ctx in ALL_CONTEXTS:
            if can_register(event, ctx).allowed:
                assert can_view(event, ctx)


@pytest.mark.unit
def test_adding_a_certification_never_revokes_eligibility():
    for event in ALL_EVENTS:
        for ctx in ALL_CONTEXTS:
            if ctx.member is None:
                continue
            before = can_register(event, ctx)
            richer = ctx.model_copy(
                update={
                    "valid_certification_ids": ctx.valid_certification_ids
                    | {"cert-type-rso"}
                }
            )
            after = can_register(event, richer)

            if before.allowed:
                assert after.allowed
            if before.reason == RegistrationReason.MISSING_CERTIFICATIONS:
                assert after.allowed or after.reason == before.reason
