"""
Client Records Backend — Pydantic Request/Response Schemas
============================================================

What:  Pydantic models defining the API contract between frontend and backend.
How:   Fields are snake_case in Python and camelCase on the wire
       (firstName, phoneNumber.primary, profileImg, clientEvents, ...), the
       names the frontend has always used. Both spellings are accepted on input.

Schemas are separate from the SQLAlchemy models: phone numbers and address
are flat columns in the database and nested objects in the API.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every API schema: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Nested Value Objects
# ══════════════════════════════════════════════════════════════════════════


class PhoneNumber(CamelModel):
    primary: str = Field(min_length=1, max_length=32, description="Main contact number")
    secondary: Optional[str] = Field(default=None, max_length=32)


class PhoneNumberUpdate(CamelModel):
    primary: Optional[str] = Field(default=None, min_length=1, max_length=32)
    secondary: Optional[str] = Field(default=None, max_length=32)


class Address(CamelModel):
    line1: Optional[str] = Field(default=None, max_length=255)
    line2: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    county: Optional[str] = Field(default=None, max_length=100)
    zip: Optional[str] = Field(default=None, max_length=16)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ClientCreate(CamelModel):
    """
    Payload for POST /api/clients.

    `orgs` is accepted for compatibility but always replaced by the caller's
    organization.
    """

    first_name: str = Field(min_length=1, max_length=100)
    middle_name: Optional[str] = Field(default=None, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    phone_number: PhoneNumber
    address: Optional[Address] = None
    orgs: Optional[List[str]] = None


class ClientUpdate(CamelModel):
    """
    Payload for PUT /api/clients/update/{id}. Only fields present in the
    request body are written; nested objects merge field by field.
    """

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    middle_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    phone_number: Optional[PhoneNumberUpdate] = None
    address: Optional[Address] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ClientResponse(CamelModel):
    """Full client record as returned by every client endpoint."""

    id: uuid.UUID
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    email: Optional[str] = None
    phone_number: PhoneNumber
    address: Address
    orgs: List[str]
    profile_img: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EventResponse(CamelModel):
    """Read-only view of an event, including its attendee ids."""

    id: uuid.UUID
    org: str
    event_name: str
    description: Optional[str] = None
    event_date: Optional[date] = None
    attendees: List[uuid.UUID] = Field(default_factory=list)


class ClientDetailsResponse(CamelModel):
    """
    Client plus the organization's events split by registration.

    client_events and events_filtered partition the organization's events.
    """

    client: ClientResponse
    client_events: List[EventResponse] = Field(description="Events the client is registered for")
    events_filtered: List[EventResponse] = Field(description="Events the client could register for")


class ClientCreatedResponse(CamelModel):
    id: uuid.UUID
    message: str = "New client created successfully"


class MessageResponse(CamelModel):
    message: str


class ZipCount(CamelModel):
    zip: str
    count: int


class UploadResponse(CamelModel):
    """
    Result of a photo upload. `user` is null when the client id did not
    resolve; the upload is then reported in `message` rather than as an error.
    """

    message: str
    user: Optional[ClientResponse] = None


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "conflict",
            "message": "Client is signed up for events and can't be deleted.",
            "details": null,
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uploads: str = Field(description="Uploads directory: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
