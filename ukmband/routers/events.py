"""Events router — dashboard listing, status changes, lineup slots and setlists."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ukmband.database import get_db
from ukmband.models.user import User
from ukmband.routers.auth import require_manager, require_user
from ukmband.schemas.event import (
    EventStatusUpdate,
    PersonnelOut,
    SlotModeration,
    SlotRegistration,
    SongCreate,
    SongOut,
    SongReorder,
)
from ukmband.services import events as event_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


# ═══════════════════════════════════════════════════════════════
#  Events
# ═══════════════════════════════════════════════════════════════

@router.get("/dashboard")
async def dashboard(
    page: int = 1,
    limit: int = 100,
    _: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.dashboard_events(db, page=page, limit=limit)


@router.patch("/{event_id}/status")
async def update_status(
    event_id: int,
    body: EventStatusUpdate,
    _: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.change_status(db, event_id, body.status)
    return {"id": event.id, "status": event.status.value}


# ═══════════════════════════════════════════════════════════════
#  Lineup slots
# ═══════════════════════════════════════════════════════════════

@router.post("/{event_id}/register", response_model=PersonnelOut)
async def register(
    event_id: int,
    body: SlotRegistration,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.register_slot(db, event_id, body.personnel_id, current_user)


@router.patch("/personnel/{personnel_id}", response_model=PersonnelOut)
async def moderate(
    personnel_id: int,
    body: SlotModeration,
    _: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.moderate_slot(db, personnel_id, body.status)


@router.delete("/personnel/{personnel_id}", response_model=PersonnelOut)
async def release(
    personnel_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.release_slot(db, personnel_id, current_user)


# ═══════════════════════════════════════════════════════════════
#  Setlist
# ═══════════════════════════════════════════════════════════════

@router.get("/{event_id}/songs", response_model=List[SongOut])
async def list_songs(
    event_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await event_service.ensure_setlist_access(db, event_id, current_user)
    return await event_service.list_songs(db, event_id)


@router.post("/{event_id}/songs", response_model=SongOut, status_code=201)
async def add_song(
    event_id: int,
    body: SongCreate,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await event_service.ensure_setlist_access(db, event_id, current_user)
    song = await event_service.add_song(
        db,
        event_id,
        current_user,
        title=body.title,
        artist=body.artist,
        key=body.key,
        notes=body.notes,
        order=body.order,
    )
    logger.info(f"Song '{song.title}' added to event {event_id} by user {current_user.id}")
    return song


@router.put("/{event_id}/songs/reorder", response_model=List[SongOut])
async def reorder_songs(
    event_id: int,
    body: SongReorder,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    await event_service.ensure_setlist_access(db, event_id, current_user)
    return await event_service.reorder_songs(db, event_id, body.song_ids)
