"""create devices table

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "devices",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("brand", sa.String(length=50), nullable=False),
        sa.Column("state", sa.String(length=20), nullable=False, server_default="AVAILABLE"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_devices_brand", "devices", ["brand"])
    op.create_index("ix_devices_state", "devices", ["state"])
    op.create_index("ix_devices_created_at", "devices", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_devices_created_at", table_name="devices")
    op.drop_index("ix_devices_state", table_name="devices")
    op.drop_index("ix_devices_brand", table_name="devices")
    op.drop_table("devices")
