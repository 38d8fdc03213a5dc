from __future__ import annotations

"""SQLAlchemy models for durable gacha state (inventories, likes)."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class InventoryCharacter(Base):
    """One pulled character. A character can be owned once per (guild, user)."""

    __tablename__ = "inventory_characters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[str] = mapped_column(String(32), index=True)
    user_id: Mapped[str] = mapped_column(String(32), index=True)
    character_id: Mapped[str] = mapped_column(String(128))
    media_id: Mapped[str] = mapped_column(String(128), index=True)
    rating: Mapped[int] = mapped_column(Integer, default=1)
    guaranteed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now_utc)

    __table_args__ = (
        Index("ux_inventory_guild_user_character", "guild_id", "user_id", "character_id", unique=True),
    )


class UserLike(Base):
    """A user following a character or a whole media (exactly one of the two is set)."""

    __tablename__ = "user_likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(32), index=True)
    character_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    media_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now_utc)

    __table_args__ = (
        Index("ux_user_likes_user_character_media", "user_id", "character_id", "media_id", unique=True),
    )
