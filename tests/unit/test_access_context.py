"""Tests for building the per-request AccessContext from member records."""

from datetime import timedelta

import pytest
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from services.events_service.services.context import build_access_context
from services.events_service.services.errors import RegistrationStorageError
from services.members_service.models import MemberStatus
from sqlalchemy.exc import OperationalError
from tests.factories import (
    BoardMembershipFactory,
    MemberCertificationFactory,
    MemberFactory,
)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_anonymous_context(db_session):
    ctx = await build_access_context(db_session, None)

    assert ctx.user is None
    assert ctx.member is None
    assert ctx.valid_certification_ids == frozenset()
    assert ctx.is_board_member is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_user_without_member_profile(db_session):
    ctx = await build_access_context(db_session, AuthUser(user_id="no-profile"))

    assert ctx.user.id == "no-profile"
    assert ctx.member is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_member_context_includes_valid_certs_and_board_seat(db_session):
    member = MemberFactory.create(status=MemberStatus.PROBATIONARY)
    db_session.add(member)
    await db_session.commit()
    db_session.add_all(
        [
            MemberCertificationFactory.create(
                member_id=member.id, certification_type_id="cert-type-nmo"
            ),
            MemberCertificationFactory.create(
                member_id=member.id,
                certification_type_id="cert-type-rso",
                expires_at=utc_now() - timedelta(days=2),
            ),
            BoardMembershipFactory.create(member_id=member.id),
        ]
    )
    await db_session.commit()

    ctx = await build_access_context(db_session, AuthUser(user_id=member.auth_id))

    assert ctx.member.id == member.id
    assert ctx.member.status == MemberStatus.PROBATIONARY
    assert ctx.valid_certification_ids == frozenset({"cert-type-nmo"})
    assert ctx.is_board_member is True


@pytest.mark.asyncio
@pytest.mark.unit
async def test_past_board_seat_does_not_count(db_session):
    member = MemberFactory.create()
    db_session.add(member)
    await db_session.commit()
    db_session.add(
        BoardMembershipFactory.create(
            member_id=member.id, is_current=False, term_end=utc_now() - timedelta(days=30)
        )
    )
    await db_session.commit()

    ctx = await build_access_context(db_session, AuthUser(user_id=member.auth_id))

    assert ctx.is_board_member is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_storage_failure_raises(db_session, monkeypatch):
    async def broken_execute(*args, **kwargs):
        raise OperationalError("SELECT members", {}, Exception("connection refused"))

    monkeypatch.setattr(db_session, "execute", broken_execute)

    with pytest.raises(RegistrationStorageError):
        await build_access_context(db_session, AuthUser(user_id="someone"))
