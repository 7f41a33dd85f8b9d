"""Assemble the per-request AccessContext from member data.

This is the only part of the access/registration path that reads member,
certification and board records. It runs before the per-event critical
section so no lookup ever happens while a lock is held.
"""

from datetime import datetime
from typing import Optional

from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.events_service.services.certifications import valid_ids
from services.events_service.services.errors import RegistrationStorageError
from services.events_service.services.types import (
    AccessContext,
    AccessUser,
    MemberSnapshot,
)
from services.members_service.models import (
    BoardMembership,
    Member,
    MemberCertification,
)
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def build_access_context(
    db: AsyncSession,
    user: Optional[AuthUser],
    *,
    now: Optional[datetime] = None,
) -> AccessContext:
    """Load everything access decisions need for ``user``.

    Anonymous requests get an empty context. An authenticated user without a
    member profile gets a context with ``member=None``.
    """
    if user is None:
        return AccessContext.anonymous()

    now = now or utc_now()
    access_user = AccessUser(id=user.user_id)

    try:
        result = await db.execute(select(Member).where(Member.auth_id == user.user_id))
        member = result.scalar_one_or_none()
        if member is None:
            return AccessContext(user=access_user)

        cert_result = await db.execute(
            select(MemberCertification).where(MemberCertification.member_id == member.id)
        )
        certifications = cert_result.scalars().all()

        board_result = await db.execute(
            select(BoardMembership.id)
            .where(
                BoardMembership.member_id == member.id,
                BoardMembership.is_current.is_(True),
            )
            .limit(1)
        )
        is_board_member = board_result.scalar_one_or_none() is not None
    except SQLAlchemyError as exc:
        logger.error("Failed to build access context for user %s: %s", user.user_id, exc)
        raise RegistrationStorageError(
            "Member records are unavailable", details={"user_id": user.user_id}
        ) from exc

    return AccessContext(
        user=access_user,
        member=MemberSnapshot(
            id=member.id,
            user_id=member.auth_id,
            status=member.status,
        ),
        valid_certification_ids=valid_ids(certifications, now),
        is_board_member=is_board_member,
    )
