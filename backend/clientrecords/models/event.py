"""
Client Records Backend — Event SQLAlchemy Models
==================================================

What:  ORM models for `events` and `event_attendees`.
Who:   Read by ClientService (details, delete guard). Events are created and
       attendees registered by the events service, never by this backend.

An attendee row (event_id, client_id) means the client is registered for
the event. Deleting a client cascades to its attendee rows; ClientService
refuses the delete while any of those rows belong to an event of the
requesting organization.
"""

import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clientrecords.database import Base


class Event(Base):
    """An event run by an organization."""

    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    org: Mapped[str] = mapped_column(String(64), nullable=False)
    event_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    event_date: Mapped[Optional[date]] = mapped_column("date", Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    attendee_links: Mapped[List["EventAttendee"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_events_org_date", "org", "date"),
    )

    @property
    def attendees(self) -> List[uuid.UUID]:
        """Client ids registered for this event."""
        return [link.client_id for link in self.attendee_links]

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, org='{self.org}', name='{self.event_name}')>"


class EventAttendee(Base):
    """Registration of a client for an event."""

    __tablename__ = "event_attendees"

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("events.id", ondelete="CASCADE"),
        primary_key=True,
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        primary_key=True,
    )

    event: Mapped[Event] = relationship(back_populates="attendee_links")

    __table_args__ = (
        Index("idx_event_attendees_client_id", "client_id"),
    )
