"""Audience resolution — who a fan-out notification goes to."""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ukmband.models.event_personnel import EventPersonnel, PersonnelStatus
from ukmband.models.fcm_subscription import FCMSubscription
from ukmband.models.user import TEAM_LEVELS, OrganizationLevel, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Audience:
    """Either an explicit id list or a canned membership query."""

    user_ids: Optional[Sequence[int]] = None
    levels: Optional[Sequence[OrganizationLevel]] = None
    require_active_subscription: bool = True
    label: str = "explicit"

    @classmethod
    def explicit(cls, user_ids: Iterable[int]) -> "Audience":
        return cls(user_ids=tuple(user_ids), label="explicit")

    @classmethod
    def all_members(cls) -> "Audience":
        return cls(label="all members")

    @classmethod
    def team_only(cls, require_active_subscription: bool = True) -> "Audience":
        return cls(
            levels=TEAM_LEVELS,
            require_active_subscription=require_active_subscription,
            label="team only",
        )


def unique_ids(user_ids: Iterable[Optional[int]]) -> List[int]:
    """Drop ``None`` and duplicates, keeping first-seen order."""
    seen = set()
    out = []
    for uid in user_ids:
        if uid is None or uid in seen:
            continue
        seen.add(uid)
        out.append(uid)
    return out


async def select_recipient_ids(
    db: AsyncSession,
    levels: Optional[Sequence[OrganizationLevel]] = None,
    require_active_subscription: bool = True,
) -> List[int]:
    """Users, optionally filtered by organization level, that can receive pushes."""
    stmt = select(User.id).distinct()
    if require_active_subscription:
        stmt = stmt.join(FCMSubscription, FCMSubscription.user_id == User.id).where(
            FCMSubscription.is_active == True  # noqa: E712
        )
    if levels:
        stmt = stmt.where(User.organization_lvl.in_(list(levels)))
    result = await db.execute(stmt.order_by(User.id))
    return list(result.scalars().all())


async def existing_user_ids(db: AsyncSession, user_ids: Iterable[Optional[int]]) -> List[int]:
    """The subset of ``user_ids`` that belong to real users, in the given order."""
    wanted = unique_ids(user_ids)
    if not wanted:
        return []
    result = await db.execute(select(User.id).where(User.id.in_(wanted)))
    known = set(result.scalars().all())
    missing = [uid for uid in wanted if uid not in known]
    if missing:
        logger.warning(f"Ignoring unknown user ids {missing}")
    return [uid for uid in wanted if uid in known]


async def resolve_audience(db: AsyncSession, audience: Audience) -> List[int]:
    if audience.user_ids is not None:
        return await existing_user_ids(db, audience.user_ids)
    user_ids = await select_recipient_ids(
        db,
        levels=audience.levels,
        require_active_subscription=audience.require_active_subscription,
    )
    logger.info(f"Resolved {len(user_ids)} recipients for audience '{audience.label}'")
    return user_ids


async def approved_user_ids(
    db: AsyncSession, event_id: int, exclude: Iterable[Optional[int]] = ()
) -> List[int]:
    """Users holding an APPROVED slot in the event."""
    excluded = {uid for uid in exclude if uid is not None}
    result = await db.execute(
        select(EventPersonnel.user_id)
        .where(
            EventPersonnel.event_id == event_id,
            EventPersonnel.status == PersonnelStatus.APPROVED,
            EventPersonnel.user_id.is_not(None),
        )
        .order_by(EventPersonnel.id)
    )
    return [uid for uid in unique_ids(result.scalars().all()) if uid not in excluded]
