"""Add languages, profiles, follows, conversations and direct_messages

Revision ID: 002_profiles_conversations
Revises: 001_create_rooms
Create Date: 2026-10-16

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

from linguaroom.models.language import DEFAULT_LANGUAGES

revision: str = "002_profiles_conversations"
down_revision: Union[str, None] = "001_create_rooms"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    languages = op.create_table(
        "languages",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("code", sa.String(10), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("flag_emoji", sa.String(16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.bulk_insert(
        languages,
        [{"code": code, "name": name, "flag_emoji": flag} for code, name, flag in DEFAULT_LANGUAGES],
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("full_name", sa.String(100), nullable=True, index=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("birthday", sa.Date(), nullable=True),
        sa.Column("native_language_code", sa.String(10), nullable=True, index=True),
        sa.Column("learning_language_code", sa.String(10), nullable=True, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "follows",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "follower_id",
            sa.String(64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "following_id",
            sa.String(64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("follower_id", "following_id", name="unique_follow"),
    )

    op.create_table(
        "conversations",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("participant_1_id", sa.String(64), nullable=False, index=True),
        sa.Column("participant_2_id", sa.String(64), nullable=False, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("participant_1_id", "participant_2_id", name="unique_conversation_pair"),
    )

    op.create_table(
        "direct_messages",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "conversation_id",
            sa.Integer(),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("sender_id", sa.String(64), nullable=False),
        sa.Column("content", sa.String(2000), nullable=False),
        sa.Column("message_type", sa.String(10), nullable=False, server_default="text"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("direct_messages")
    op.drop_table("conversations")
    op.drop_table("follows")
    op.drop_table("profiles")
    op.drop_table("languages")
