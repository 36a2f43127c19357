"""Create client and event tables

Revision ID: 001
Revises: None
Create Date: 2024-06-10 00:00:00.000000+00:00

What:  clients, client_orgs, events, event_attendees.

Foreign keys from the association tables cascade on delete: removing a
client drops its memberships and its attendee rows on any event. The
application refuses the delete while an attendee row exists on an event of
the requesting organization.

Rollback: downgrade() drops all four tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("middle_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone_primary", sa.String(32), nullable=False),
        sa.Column("phone_secondary", sa.String(32), nullable=True),
        sa.Column("address_line1", sa.String(255), nullable=True),
        sa.Column("address_line2", sa.String(255), nullable=True),
        sa.Column("address_city", sa.String(100), nullable=True),
        sa.Column("address_county", sa.String(100), nullable=True),
        sa.Column("address_zip", sa.String(16), nullable=True),
        sa.Column("profile_img", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_clients_address_zip", "clients", ["address_zip"])
    op.create_index("idx_clients_last_first", "clients", ["last_name", "first_name"])

    op.create_table(
        "client_orgs",
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("client_id", "org_id"),
    )
    op.create_index("idx_client_orgs_org_id", "client_orgs", ["org_id"])

    op.create_table(
        "events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("org", sa.String(64), nullable=False),
        sa.Column("event_name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_events_org_date", "events", ["org", "date"])

    op.create_table(
        "event_attendees",
        sa.Column("event_id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("event_id", "client_id"),
    )
    op.create_index("idx_event_attendees_client_id", "event_attendees", ["client_id"])


def downgrade() -> None:
    op.drop_index("idx_event_attendees_client_id", table_name="event_attendees")
    op.drop_table("event_attendees")
    op.drop_index("idx_events_org_date", table_name="events")
    op.drop_table("events")
    op.drop_index("idx_client_orgs_org_id", table_name="client_orgs")
    op.drop_table("client_orgs")
    op.drop_index("idx_clients_last_first", table_name="clients")
    op.drop_index("idx_clients_address_zip", table_name="clients")
    op.drop_table("clients")
