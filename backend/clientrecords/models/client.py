"""
Client Records Backend — Client SQLAlchemy Models
===================================================

What:  ORM models for the `clients` and `client_orgs` tables.
Who:   Used by ClientService / PhotoService and by Alembic.

Table Design:
    - clients: one row per person. Phone numbers and address are flattened
      into columns; the API nests them again (phoneNumber / address).
    - client_orgs: organization memberships, one row per (client, org).
      Org-scoped lookups join through this table, so a client is visible to
      an organization exactly when a membership row exists.
    - profile_img: bare filename under UPLOADS_DIR, or NULL. Nothing
      guarantees the file still exists.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clientrecords.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Client(Base):
    """
    A client profile.

    Lifecycle:
        1. Created with exactly one membership: the creating organization
        2. Updated field by field (memberships and profile_img excluded)
        3. profile_img set / cleared by the photo endpoints
        4. Hard-deleted only when no event of the organization lists it
    """

    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Name ──────────────────────────────────────────────────────────────
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ── Phone Numbers ─────────────────────────────────────────────────────
    # phone_primary is what the "number" search matches against
    phone_primary: Mapped[str] = mapped_column(String(32), nullable=False)
    phone_secondary: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # ── Address ───────────────────────────────────────────────────────────
    address_line1: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address_line2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address_city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address_county: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address_zip: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # ── Profile Photo ─────────────────────────────────────────────────────
    profile_img: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, default=None)

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # ── Memberships ───────────────────────────────────────────────────────
    # lazy="selectin": loaded with the client in the same await, since async
    # sessions cannot lazy-load on attribute access
    org_memberships: Mapped[List["ClientOrg"]] = relationship(
        back_populates="client",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_clients_address_zip", "address_zip"),
        Index("idx_clients_last_first", "last_name", "first_name"),
    )

    @property
    def orgs(self) -> List[str]:
        """Organization ids this client belongs to."""
        return [membership.org_id for membership in self.org_memberships]

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name='{self.first_name} {self.last_name}')>"


class ClientOrg(Base):
    """Membership of a client in an organization."""

    __tablename__ = "client_orgs"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        primary_key=True,
    )
    org_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    client: Mapped[Client] = relationship(back_populates="org_memberships")

    __table_args__ = (
        Index("idx_client_orgs_org_id", "org_id"),
    )

    def __repr__(self) -> str:
        return f"<ClientOrg(client_id={self.client_id}, org_id='{self.org_id}')>"
