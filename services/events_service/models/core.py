"""Events Service models: events, registrations and the capacity ledger."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.events_service.models.enums import (
    EventCategory,
    EventStatus,
    RegistrationStatus,
    enum_values,
)
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column


class Event(Base):
    """Club events: matches, classes, work days, meetings, closures."""

    __tablename__ = "events"
    __table_args__ = (
        Index("events_start_time_idx", "start_time"),
        Index("events_status_idx", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    event_type: Mapped[EventCategory] = mapped_column(
        SAEnum(
            EventCategory,
            name="event_category_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )

    # Timing
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(
        String, nullable=True
    )  # "Range A", "Education Building"

    # Registration
    max_capacity: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )  # null = unlimited
    registration_deadline: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cost: Mapped[int] = mapped_column(Integer, default=0)  # cents, 0 = free

    # Requirements: serialized JSON list of certification type ids
    requires_certification: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Visibility
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    members_only: Mapped[bool] = mapped_column(Boolean, default=True)
    board_only: Mapped[bool] = mapped_column(Boolean, default=False)

    # Lifecycle
    status: Mapped[EventStatus] = mapped_column(
        SAEnum(
            EventStatus,
            name="event_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=EventStatus.DRAFT,
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<Event {self.title}>"


class EventRegistration(Base):
    """A member's place at an event. Cancelled rows are kept for history."""

    __tablename__ = "event_registrations"
    __table_args__ = (
        # At most one active registration per (event, member)
        Index(
            "event_registrations_active_member_idx",
            "event_id",
            "member_id",
            unique=True,
            postgresql_where=text("status IN ('registered', 'waitlisted')"),
            sqlite_where=text("status IN ('registered', 'waitlisted')"),
        ),
        Index("event_registrations_event_status_idx", "event_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[RegistrationStatus] = mapped_column(
        SAEnum(
            RegistrationStatus,
            name="registration_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )

    # Waitlist: seq drives promotion order, position is the advisory display value
    waitlist_seq: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    waitlist_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    promoted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Cancellation
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    refund_percent: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Match entry details supplied at sign-up
    division: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    classification: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Attendance
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    checked_in_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<EventRegistration event={self.event_id} member={self.member_id} status={self.status.value}>"


class EventCapacityLedger(Base):
    """Per-event counters, locked FOR UPDATE by every registration write.

    ``confirmed_count`` tracks registered (slot-holding) registrations for
    events with a finite capacity. ``next_waitlist_seq`` hands out enqueue
    order numbers so the waitlist stays FIFO under concurrent requests.
    """

    __tablename__ = "event_capacity_ledgers"

    event_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        primary_key=True,
    )
    confirmed_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    next_waitlist_seq: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<EventCapacityLedger event={self.event_id} confirmed={self.confirmed_count}>"
