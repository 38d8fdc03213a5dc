"""create inventory and likes

Revision ID: 0001_create_inventory
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# Alembic identifiers
revision = "0001_create_inventory"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "inventory_characters",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("guild_id", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.String(length=32), nullable=False),
        sa.Column("character_id", sa.String(length=128), nullable=False),
        sa.Column("media_id", sa.String(length=128), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("guaranteed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index(
        "ux_inventory_guild_user_character",
        "inventory_characters",
        ["guild_id", "user_id", "character_id"],
        unique=True,
    )
    op.create_index("ix_inventory_characters_guild_id", "inventory_characters", ["guild_id"], unique=False)
    op.create_index("ix_inventory_characters_user_id", "inventory_characters", ["user_id"], unique=False)
    op.create_index("ix_inventory_characters_media_id", "inventory_characters", ["media_id"], unique=False)

    op.create_table(
        "user_likes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=32), nullable=False),
        sa.Column("character_id", sa.String(length=128), nullable=True),
        sa.Column("media_id", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index(
        "ux_user_likes_user_character_media",
        "user_likes",
        ["user_id", "character_id", "media_id"],
        unique=True,
    )
    op.create_index("ix_user_likes_user_id", "user_likes", ["user_id"], unique=False)
    op.create_index("ix_user_likes_character_id", "user_likes", ["character_id"], unique=False)
    op.create_index("ix_user_likes_media_id", "user_likes", ["media_id"], unique=False)


def downgrade() -> None:
    op.drop_table("user_likes")
    op.drop_table("inventory_characters")
