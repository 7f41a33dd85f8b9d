"""Pydantic schemas for Events Service."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from services.events_service.models import EventCategory, EventStatus, RegistrationStatus
from services.events_service.services.certifications import parse_required_certifications
from services.events_service.services.enums import RegistrationReason


class EventBase(BaseModel):
    """Base event schema."""

    title: str
    description: Optional[str] = None
    event_type: EventCategory
    location: Optional[str] = None
    start_time: datetime
    end_time: datetime
    max_capacity: Optional[int] = Field(None, gt=0)  # null = unlimited
    registration_deadline: Optional[datetime] = None
    cost: int = Field(0, ge=0)  # cents
    requires_certification: Optional[list[str]] = None
    is_public: bool = False
    members_only: bool = True
    board_only: bool = False


class EventCreate(EventBase):
    """Schema for creating an event."""

    status: EventStatus = EventStatus.DRAFT

    @model_validator(mode="after")
    def check_times(self) -> "EventCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class EventUpdate(BaseModel):
    """Schema for updating an event."""

    title: Optional[str] = None
    description: Optional[str] = None
    event_type: Optional[EventCategory] = None
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    max_capacity: Optional[int] = Field(None, gt=0)
    registration_deadline: Optional[datetime] = None
    cost: Optional[int] = Field(None, ge=0)
    requires_certification: Optional[list[str]] = None
    is_public: Optional[bool] = None
    members_only: Optional[bool] = None
    board_only: Optional[bool] = None
    status: Optional[EventStatus] = None


class EventCancel(BaseModel):
    reason: Optional[str] = None


class EventResponse(BaseModel):
    """Event as shown to a member, with live registration counts."""

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    event_type: EventCategory
    location: Optional[str] = None
    start_time: datetime
    end_time: datetime
    max_capacity: Optional[int] = None
    registration_deadline: Optional[datetime] = None
    cost: int = 0
    requires_certification: list[str] = []
    is_public: bool
    members_only: bool
    board_only: bool
    status: EventStatus
    registration_count: int = 0
    spots_remaining: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("requires_certification", mode="before")
    @classmethod
    def decode_certifications(cls, v):
        return list(parse_required_certifications(v))


class EventDetailResponse(EventResponse):
    """Single event, plus whether the caller can register and why not."""

    can_register: bool
    reason: Optional[RegistrationReason] = None
    reason_message: Optional[str] = None
    missing_certifications: list[str] = []
    missing_certification_names: list[str] = []
    my_registration_status: Optional[RegistrationStatus] = None
    my_waitlist_position: Optional[int] = None


class RegisterRequest(BaseModel):
    """Optional match entry details."""

    division: Optional[str] = Field(None, max_length=50)
    classification: Optional[str] = Field(None, max_length=50)


class RegistrationResponse(BaseModel):
    """Registration response schema."""

    id: uuid.UUID
    event_id: uuid.UUID
    member_id: uuid.UUID
    status: RegistrationStatus
    waitlist_position: Optional[int] = None
    promoted_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    refund_percent: Optional[int] = None
    division: Optional[str] = None
    classification: Optional[str] = None
    checked_in_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RegisterResponse(BaseModel):
    registration: RegistrationResponse
    waitlisted: bool
    waitlist_position: Optional[int] = None
    message: str


class CancelResponse(BaseModel):
    message: str
    refund_percent: int
    promoted_member_id: Optional[uuid.UUID] = None


class MyRegistrationResponse(RegistrationResponse):
    event: Optional[EventResponse] = None


class EventCancelResponse(BaseModel):
    event: EventResponse
    cancelled_registrations: int
