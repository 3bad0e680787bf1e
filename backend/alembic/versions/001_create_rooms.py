"""Create rooms and room_messages

Revision ID: 001_create_rooms
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_create_rooms"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "rooms",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("language_code", sa.String(10), nullable=False, index=True),
        sa.Column("host_id", sa.String(64), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "room_messages",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "room_id",
            sa.Integer(),
            sa.ForeignKey("rooms.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("sender_id", sa.String(64), nullable=False),
        sa.Column("content", sa.String(2000), nullable=False),
        sa.Column("message_type", sa.String(10), nullable=False, server_default="text"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("room_messages")
    op.drop_table("rooms")
