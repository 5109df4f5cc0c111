"""
Event lifecycle, lineup slots and setlists.

Slot states: EMPTY (user_id NULL) → PENDING (member registered) →
APPROVED / REJECTED (manager decision). Releasing a slot empties it again.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ukmband.config import settings
from ukmband.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from ukmband.models.event import Event, EventStatus
from ukmband.models.event_personnel import EventPersonnel, PersonnelStatus
from ukmband.models.event_song import EventSong
from ukmband.models.user import User
from ukmband.utils.cache import TTLCache
from ukmband.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

dashboard_cache = TTLCache(settings.DASHBOARD_CACHE_TTL_SECONDS)

MAX_DASHBOARD_LIMIT = 200

ALLOWED_TRANSITIONS = {
    EventStatus.DRAFT: {EventStatus.SUBMITTED},
    EventStatus.SUBMITTED: {EventStatus.PUBLISHED, EventStatus.REJECTED},
    EventStatus.PUBLISHED: {EventStatus.FINISHED},
    EventStatus.REJECTED: {EventStatus.SUBMITTED},
    EventStatus.FINISHED: set(),
}

_GUITAR = ["guitar", "gitar", "guitarist", "electric guitar", "acoustic guitar", "gitaris"]
_VOCAL = ["vocal", "vocals", "singer", "vocalist", "nyanyi", "menyanyi", "vokal", "vokalis"]

ROLE_INSTRUMENTS = {
    "Vocal": _VOCAL,
    "Vokal": _VOCAL,
    "Guitar 1": _GUITAR,
    "Guitar 2": _GUITAR,
    "Gitar 1": _GUITAR,
    "Gitar 2": _GUITAR,
    "Keyboard": ["keyboard", "piano", "keys", "synthesizer", "pianist", "pianis"],
    "Bass": ["bass", "bass guitar", "bassist", "bas"],
    "Drum": ["drum", "drums", "drummer", "percussion", "drumer"],
}

# English/Indonesian spellings that should be treated as the same instrument
_ALIASES = [("guitar", "gitar"), ("vocal", "vokal"), ("bass", "bas")]


def instrument_matches_role(role: str, instruments: Iterable[str]) -> bool:
    """True if the member plays something the role needs. Unknown roles accept anyone."""
    wanted = ROLE_INSTRUMENTS.get(role, [])
    if not wanted:
        return True
    played = [i.lower().strip() for i in instruments if i and i.strip()]
    for need in wanted:
        for have in played:
            if have == need or have in need or need in have:
                return True
            for a, b in _ALIASES:
                if (a in have and b in need) or (b in have and a in need):
                    return True
    return False


def invalidate_dashboard() -> None:
    dashboard_cache.clear()


# ═══════════════════════════════════════════════════════════════
#  Events
# ═══════════════════════════════════════════════════════════════

async def get_event(db: AsyncSession, event_id: int) -> Event:
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()
    if not event:
        raise NotFoundError("Event not found")
    return event


async def change_status(db: AsyncSession, event_id: int, new_status: EventStatus) -> Event:
    event = await get_event(db, event_id)
    if new_status not in ALLOWED_TRANSITIONS[event.status]:
        raise ValidationError(
            f"Cannot move event from {event.status.value} to {new_status.value}"
        )
    event.status = new_status
    await db.commit()
    invalidate_dashboard()
    logger.info(f"Event {event_id} moved to {new_status.value}")
    return event


def _serialize_event(event: Event) -> Dict[str, Any]:
    return {
        "id": event.id,
        "title": event.title,
        "date": as_utc(event.date).isoformat(),
        "location": event.location,
        "description": event.description,
        "status": event.status.value,
        "personnel": [
            {
                "id": p.id,
                "userId": p.user_id,
                "role": p.role,
                "status": p.status.value,
                "user": (
                    {"id": p.user.id, "name": p.user.name, "email": p.user.email}
                    if p.user
                    else None
                ),
            }
            for p in event.personnel
        ],
    }


async def dashboard_events(db: AsyncSession, page: int = 1, limit: int = 100) -> Dict[str, Any]:
    """Published events for the member dashboard. Page 1 is served from cache."""
    page = max(page, 1)
    limit = max(1, min(limit, MAX_DASHBOARD_LIMIT))
    cache_key = f"events_dashboard_page_{page}_limit_{limit}"
    if page == 1:
        cached = dashboard_cache.get(cache_key)
        if cached is not None:
            logger.debug("Serving dashboard events from cache")
            return cached

    total = (
        await db.execute(
            select(func.count(Event.id)).where(Event.status == EventStatus.PUBLISHED)
        )
    ).scalar() or 0
    rows = await db.execute(
        select(Event)
        .options(selectinload(Event.personnel).selectinload(EventPersonnel.user))
        .where(Event.status == EventStatus.PUBLISHED)
        .order_by(Event.date.desc(), Event.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    data = {
        "events": [_serialize_event(e) for e in rows.scalars().all()],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }
    if page == 1:
        dashboard_cache.set(cache_key, data)
    return data


# ═══════════════════════════════════════════════════════════════
#  Lineup slots
# ═══════════════════════════════════════════════════════════════

async def _get_slot(db: AsyncSession, personnel_id: int) -> EventPersonnel:
    result = await db.execute(
        select(EventPersonnel)
        .options(selectinload(EventPersonnel.event))
        .where(EventPersonnel.id == personnel_id)
    )
    slot = result.scalar_one_or_none()
    if not slot:
        raise NotFoundError("Personnel slot not found")
    return slot


async def register_slot(
    db: AsyncSession, event_id: int, personnel_id: int, user: User
) -> EventPersonnel:
    """Fill an empty slot; the registration waits for a manager's approval."""
    event = await get_event(db, event_id)
    if event.status != EventStatus.PUBLISHED:
        raise ValidationError("Event not found or not available for registration")

    slot = await _get_slot(db, personnel_id)
    if slot.event_id != event_id:
        raise NotFoundError("Personnel slot not found")
    if slot.user_id is not None:
        raise ConflictError("This slot is already taken")

    existing = await db.execute(
        select(EventPersonnel.id).where(
            EventPersonnel.event_id == event_id,
            EventPersonnel.user_id == user.id,
        )
    )
    if existing.first() is not None:
        raise ConflictError("You are already registered for this event")

    if not instrument_matches_role(slot.role, user.instruments):
        raise ValidationError(
            f"Your instruments ({', '.join(user.instruments) or '-'}) "
            f"do not match the {slot.role} role"
        )

    slot.user_id = user.id
    slot.status = PersonnelStatus.PENDING
    slot.approved_at = None
    await db.commit()
    invalidate_dashboard()
    logger.info(f"User {user.id} registered for slot {slot.id} ({slot.role}) in event {event_id}")
    return slot


async def moderate_slot(
    db: AsyncSession,
    personnel_id: int,
    status: PersonnelStatus,
    now: Optional[datetime] = None,
) -> EventPersonnel:
    if status not in (PersonnelStatus.APPROVED, PersonnelStatus.REJECTED):
        raise ValidationError("status must be APPROVED or REJECTED")
    slot = await _get_slot(db, personnel_id)
    if slot.user_id is None:
        raise ValidationError("Cannot moderate an empty slot")

    slot.status = status
    slot.approved_at = as_utc(now or utcnow()) if status == PersonnelStatus.APPROVED else None
    await db.commit()
    invalidate_dashboard()
    return slot


async def release_slot(
    db: AsyncSession, personnel_id: int, user: User, now: Optional[datetime] = None
) -> EventPersonnel:
    """Cancel the user's own registration for a future event."""
    slot = await _get_slot(db, personnel_id)
    if slot.user_id != user.id:
        raise NotFoundError("Registration not found or does not belong to you")
    if as_utc(slot.event.date) <= as_utc(now or utcnow()):
        raise ValidationError("Cannot cancel registration for past events")

    slot.user_id = None
    slot.status = PersonnelStatus.PENDING
    slot.approved_at = None
    await db.commit()
    invalidate_dashboard()
    return slot


# ═══════════════════════════════════════════════════════════════
#  Setlist
# ═══════════════════════════════════════════════════════════════

async def ensure_setlist_access(db: AsyncSession, event_id: int, user: User) -> None:
    if user.is_manager:
        return
    result = await db.execute(
        select(EventPersonnel.id).where(
            EventPersonnel.event_id == event_id,
            EventPersonnel.user_id == user.id,
            EventPersonnel.status == PersonnelStatus.APPROVED,
        )
    )
    if result.first() is None:
        raise PermissionDeniedError("You are not registered for this event")


async def list_songs(db: AsyncSession, event_id: int) -> List[EventSong]:
    result = await db.execute(
        select(EventSong).where(EventSong.event_id == event_id).order_by(EventSong.order)
    )
    return list(result.scalars().all())


async def add_song(
    db: AsyncSession,
    event_id: int,
    user: User,
    title: str,
    artist: Optional[str] = None,
    key: Optional[str] = None,
    notes: Optional[str] = None,
    order: Optional[int] = None,
) -> EventSong:
    if not title or not title.strip():
        raise ValidationError("Song title is required")
    await get_event(db, event_id)

    if order is None:
        current = (
            await db.execute(
                select(func.max(EventSong.order)).where(EventSong.event_id == event_id)
            )
        ).scalar()
        order = (current or 0) + 1

    song = EventSong(
        event_id=event_id,
        title=title.strip(),
        artist=artist.strip() if artist else None,
        key=key,
        notes=notes,
        order=order,
        added_by_id=user.id,
        created_at=utcnow(),
    )
    db.add(song)
    await db.commit()
    await db.refresh(song)
    return song


async def reorder_songs(db: AsyncSession, event_id: int, song_ids: List[int]) -> List[EventSong]:
    songs = await list_songs(db, event_id)
    by_id = {s.id: s for s in songs}
    if sorted(song_ids) != sorted(by_id):
        raise ValidationError("songIds must list every song of the event exactly once")
    for position, song_id in enumerate(song_ids, start=1):
        by_id[song_id].order = position
    await db.commit()
    return await list_songs(db, event_id)
