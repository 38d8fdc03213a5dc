from __future__ import annotations

"""Inventory persistence (Postgres / SQLite via SQLAlchemy async).

``add_character`` is the only write on the pull path. Its two retryable
outcomes (the character is already owned, or the write lost a race) are
returned as an AddOutcome; every other failure propagates.
"""

import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from utils.db import get_sessionmaker
from utils.errors import NonFatalError
from utils.models import InventoryCharacter, UserLike

logger = logging.getLogger("bot.inventory")

# serialization_failure, deadlock_detected
_CONFLICT_SQLSTATES = {"40001", "40P01"}


class AddOutcome(str, Enum):
    ADDED = "added"
    DUPLICATE = "duplicate"
    CONFLICT = "conflict"

    @property
    def retryable(self) -> bool:
        return self is not AddOutcome.ADDED


@asynccontextmanager
async def _session_scope(session: AsyncSession | None) -> AsyncIterator[AsyncSession]:
    if session is not None:
        yield session
        return
    Session = get_sessionmaker()
    async with Session() as s:
        yield s


def _is_write_conflict(e: DBAPIError) -> bool:
    orig = getattr(e, "orig", None)
    state = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if state in _CONFLICT_SQLSTATES:
        return True
    # sqlite
    return "database is locked" in str(orig or e).lower()


async def add_character(
    *,
    guild_id: str,
    user_id: str,
    character_id: str,
    media_id: str,
    guaranteed: bool,
    star_rating: int,
    sacrifices: list[str] | None = None,
    session: AsyncSession | None = None,
) -> AddOutcome:
    """Insert one inventory row, consuming ``sacrifices`` (character ids) in the same transaction."""
    async with _session_scope(session) as s:
        try:
            if sacrifices:
                res = await s.execute(
                    delete(InventoryCharacter)
                    .where(InventoryCharacter.guild_id == str(guild_id))
                    .where(InventoryCharacter.user_id == str(user_id))
                    .where(InventoryCharacter.character_id.in_(list(sacrifices)))
                )
                if (res.rowcount or 0) != len(set(sacrifices)):
                    await s.rollback()
                    raise NonFatalError("Some of the characters you tried to sacrifice are no longer yours.")

            s.add(
                InventoryCharacter(
                    guild_id=str(guild_id),
                    user_id=str(user_id),
                    character_id=str(character_id),
                    media_id=str(media_id),
                    rating=int(star_rating),
                    guaranteed=bool(guaranteed),
                )
            )
            await s.commit()
        except IntegrityError:
            await s.rollback()
            logger.debug("Duplicate %s for user %s in guild %s", character_id, user_id, guild_id)
            return AddOutcome.DUPLICATE
        except DBAPIError as e:
            if not _is_write_conflict(e):
                raise
            await s.rollback()
            logger.info("Write conflict adding %s for user %s in guild %s", character_id, user_id, guild_id)
            return AddOutcome.CONFLICT

    return AddOutcome.ADDED


# ----------------------------
# Likes
# ----------------------------

async def like(
    *,
    user_id: str,
    character_id: str | None = None,
    media_id: str | None = None,
    session: AsyncSession | None = None,
) -> bool:
    """Returns False if the like already existed."""
    if bool(character_id) == bool(media_id):
        raise ValueError("like() needs exactly one of character_id / media_id")

    async with _session_scope(session) as s:
        # NULLs never collide in the unique index
        existing = await s.execute(
            select(UserLike.id)
            .where(UserLike.user_id == str(user_id))
            .where(UserLike.character_id == character_id if character_id else UserLike.character_id.is_(None))
            .where(UserLike.media_id == media_id if media_id else UserLike.media_id.is_(None))
            .limit(1)
        )
        if existing.scalar_one_or_none() is not None:
            return False

        s.add(UserLike(user_id=str(user_id), character_id=character_id, media_id=media_id))
        try:
            await s.commit()
        except IntegrityError:
            await s.rollback()
            return False
    return True


async def unlike(
    *,
    user_id: str,
    character_id: str | None = None,
    media_id: str | None = None,
    session: AsyncSession | None = None,
) -> None:
    async with _session_scope(session) as s:
        stmt = delete(UserLike).where(UserLike.user_id == str(user_id))
        if character_id:
            stmt = stmt.where(UserLike.character_id == character_id)
        if media_id:
            stmt = stmt.where(UserLike.media_id == media_id)
        await s.execute(stmt)
        await s.commit()


async def get_active_users_if_liked(
    *,
    guild_id: str,
    character_id: str,
    media_ids: list[str],
    session: AsyncSession | None = None,
) -> list[str]:
    """Users with an inventory in this guild who liked the character or any of the media."""
    conds = [UserLike.character_id == character_id]
    if media_ids:
        conds.append(UserLike.media_id.in_(list(media_ids)))

    active = select(InventoryCharacter.user_id).where(InventoryCharacter.guild_id == str(guild_id))

    async with _session_scope(session) as s:
        res = await s.execute(
            select(UserLike.user_id)
            .where(or_(*conds))
            .where(UserLike.user_id.in_(active))
            .distinct()
            .order_by(UserLike.user_id)
        )
        return [str(u) for u in res.scalars().all()]
