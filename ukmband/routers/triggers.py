"""
Manual notification triggers for managers.

Endpoints (all POST, prefix /api/notifications/ukmband):
    /event-creation        → new event announcement
    /practice-reminder     → practice in three days
    /performance-reminder  → H-1 or two hours before a gig
    /song-addition         → new song in the repertoire
    /team-member           → new club member
    /member-join-event     → someone joined an event's lineup

Each body takes ``userIds`` or ``sendToAll``; with neither the trigger falls
back to its default audience.
"""

import dataclasses
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ukmband.database import get_db
from ukmband.models.event import Event
from ukmband.routers.auth import require_manager
from ukmband.routers.reminders import get_dispatcher
from ukmband.schemas.notification import (
    BroadcastTarget,
    EventCreationRequest,
    MemberJoinEventRequest,
    PerformanceReminderRequest,
    PracticeReminderRequest,
    SongAdditionRequest,
    TeamMemberRequest,
)
from ukmband.services import composer
from ukmband.services.audience import Audience, approved_user_ids, resolve_audience
from ukmband.services.composer import ComposedNotification
from ukmband.services.dispatcher import DispatchReport, NotificationDispatcher
from ukmband.services.events import get_event

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/notifications/ukmband",
    tags=["ukmband"],
    dependencies=[Depends(require_manager)],
)


def _audience(body: BroadcastTarget, fallback: Audience) -> Audience:
    if body.user_ids:
        return Audience.explicit(body.user_ids)
    if body.send_to_all:
        return Audience.all_members()
    return fallback


async def _broadcast(
    db: AsyncSession,
    dispatcher: NotificationDispatcher,
    composed: ComposedNotification,
    audience: Audience,
) -> DispatchReport:
    user_ids = await resolve_audience(db, audience)
    if not user_ids:
        raise HTTPException(status_code=400, detail="No target users found")
    return await dispatcher.dispatch_to(composed, user_ids)


def _response(message: str, report: DispatchReport, **extra: Any) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "targetUsers": report.total,
        "results": report.results(),
        **extra,
    }


# ═══════════════════════════════════════════════════════════════
#  Triggers
# ═══════════════════════════════════════════════════════════════

@router.post("/event-creation")
async def event_creation(
    body: EventCreationRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    composed = composer.event_creation(
        body.event_id, body.event_title, body.event_date, body.event_location
    )
    if await db.get(Event, body.event_id) is None:
        # Unknown events stay in the URL only.
        composed = dataclasses.replace(composed, event_id=None)
    report = await _broadcast(db, dispatcher, composed, _audience(body, Audience.all_members()))
    return _response(
        f"Event creation notifications sent to {report.total} users",
        report,
        eventId=body.event_id,
    )


@router.post("/practice-reminder")
async def practice_reminder(
    body: PracticeReminderRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    composed = composer.practice_reminder_3_days(body.practice_date, body.practice_type)
    report = await _broadcast(db, dispatcher, composed, _audience(body, Audience.team_only()))
    return _response(f"Practice reminders sent to {report.total} users", report)


@router.post("/performance-reminder")
async def performance_reminder(
    body: PerformanceReminderRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    if body.reminder_type == "H1":
        composed = composer.performance_reminder_h1(
            body.performance_title, body.performance_date, body.performance_location
        )
        label = "H-1 performance reminders"
    elif body.reminder_type == "2_HOURS":
        composed = composer.performance_reminder_2_hours(
            body.performance_title, body.performance_location, body.performance_date
        )
        label = "2-hour performance reminders"
    else:
        raise HTTPException(
            status_code=400,
            detail='Invalid reminderType. Must be "H1" or "2_HOURS"',
        )

    report = await _broadcast(db, dispatcher, composed, _audience(body, Audience.team_only()))
    return _response(
        f"{label} sent to {report.total} users",
        report,
        reminderType=body.reminder_type,
    )


@router.post("/song-addition")
async def song_addition(
    body: SongAdditionRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    composed = composer.song_addition(body.song_title, body.artist, body.added_by, body.difficulty)
    report = await _broadcast(db, dispatcher, composed, _audience(body, Audience.team_only()))
    return _response(f"Song addition notifications sent to {report.total} users", report)


@router.post("/team-member")
async def team_member(
    body: TeamMemberRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    composed = composer.team_member_join(body.new_member_name, body.role, body.team_name)
    report = await _broadcast(db, dispatcher, composed, _audience(body, Audience.all_members()))
    return _response(f"Team member notifications sent to {report.total} users", report)


@router.post("/member-join-event")
async def member_join_event(
    body: MemberJoinEventRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    event = await get_event(db, body.event_id)
    fallback = Audience.explicit(await approved_user_ids(db, event.id))
    composed = composer.member_join_event(event, body.new_member_name, body.member_role)
    report = await _broadcast(db, dispatcher, composed, _audience(body, fallback))
    return _response(
        "Member join event notifications sent to existing members",
        report,
        eventId=event.id,
    )
