"""Certification grants held by members (RSO, instructor, orientation...)."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column


class CertificationType(Base):
    """A kind of certification, e.g. ``cert-type-rso``."""

    __tablename__ = "certification_types"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    validity_months: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )  # null = permanent

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<CertificationType {self.id}>"


class MemberCertification(Base):
    """An earned credential. Valid until ``expires_at`` (null = never expires)."""

    __tablename__ = "member_certifications"
    __table_args__ = (
        Index(
            "member_certifications_member_type_idx",
            "member_id",
            "certification_type_id",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    certification_type_id: Mapped[str] = mapped_column(String, nullable=False)

    earned_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    verified_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return (
            f"<MemberCertification member={self.member_id} "
            f"type={self.certification_type_id} expires={self.expires_at}>"
        )
