"""Initial schema with beacon readings, devices and last position

Revision ID: 001
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the reading store, device directory and position state."""

    op.create_table(
        "beacon",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("roomname", sa.String(length=100), nullable=False),
        sa.Column("rssi", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        comment="Latest batch of signal-strength readings per room",
    )
    op.create_index("idx_beacon_room", "beacon", ["roomname"])
    op.create_index("idx_beacon_created_at", "beacon", ["created_at"])

    op.create_table(
        "devices",
        sa.Column("macaddress", sa.String(length=64), nullable=False),
        sa.Column("roomname", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("macaddress"),
        comment="Beacon device to room assignments",
    )

    op.create_table(
        "last_position",
        sa.Column("roomname", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("roomname"),
        comment="Last known room of the cat (zero or one row)",
    )

    if op.get_bind().dialect.name == "postgresql":
        op.execute("COMMENT ON COLUMN beacon.rssi IS 'Signal strength; NULL when the room reported no signal'")


def downgrade() -> None:
    """Drop all tables and indexes created in upgrade."""
    op.drop_table("last_position")
    op.drop_table("devices")
    op.drop_index("idx_beacon_created_at", table_name="beacon")
    op.drop_index("idx_beacon_room", table_name="beacon")
    op.drop_table("beacon")
