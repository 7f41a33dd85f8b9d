"""Events Service schemas package."""

from services.events_service.schemas.main import (
    CancelResponse,
    EventBase,
    EventCancel,
    EventCancelResponse,
    EventCreate,
    EventDetailResponse,
    EventResponse,
    EventUpdate,
    MyRegistrationResponse,
    RegisterRequest,
    RegisterResponse,
    RegistrationResponse,
)

__all__ = [
    "CancelResponse",
    "EventBase",
    "EventCancel",
    "EventCancelResponse",
    "EventCreate",
    "EventDetailResponse",
    "EventResponse",
    "EventUpdate",
    "MyRegistrationResponse",
    "RegisterRequest",
    "RegisterResponse",
    "RegistrationResponse",
]
