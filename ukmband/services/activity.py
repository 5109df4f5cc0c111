"""
Activity scanner — one-shot notifications for things that happened in the last hour.

Runs at the start of every reminder scan:

- newly published events      → all team members (TALENT/SPECTA)
- songs added to a setlist    → the event's approved lineup, minus whoever added it
- approved slot registrations → the rest of the event's approved lineup
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload

from ukmband.models.event import Event, EventStatus
from ukmband.models.event_personnel import EventPersonnel, PersonnelStatus
from ukmband.models.event_song import EventSong
from ukmband.services import composer
from ukmband.services.audience import Audience, approved_user_ids
from ukmband.services.dispatcher import DispatchReport, NotificationDispatcher
from ukmband.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

LOOKBACK = timedelta(hours=1)


@dataclass
class ActivityResult:
    events_published: int = 0
    songs_added: int = 0
    members_joined: int = 0
    reports: List[DispatchReport] = field(default_factory=list)


class ActivityScanner:
    def __init__(self, session_factory: async_sessionmaker, dispatcher: NotificationDispatcher):
        self.session_factory = session_factory
        self.dispatcher = dispatcher

    async def scan(self, now: Optional[datetime] = None) -> ActivityResult:
        now = as_utc(now or utcnow())
        since = now - LOOKBACK
        result = ActivityResult()

        async with self.session_factory() as db:
            # 1. Newly published events
            events = (
                await db.execute(
                    select(Event).where(
                        Event.status == EventStatus.PUBLISHED,
                        Event.created_at >= since,
                    )
                )
            ).scalars().all()
            for event in events:
                report = await self.dispatcher.dispatch(
                    composer.event_published(event),
                    Audience.team_only(require_active_subscription=False),
                )
                if report.total:
                    result.events_published += 1
                    result.reports.append(report)

            # 2. Setlist additions
            songs = (
                await db.execute(
                    select(EventSong)
                    .options(selectinload(EventSong.event))
                    .where(EventSong.created_at >= since)
                )
            ).scalars().all()
            for song in songs:
                targets = await approved_user_ids(db, song.event_id, exclude=[song.added_by_id])
                if not targets:
                    continue
                report = await self.dispatcher.dispatch_to(
                    composer.song_added(song.event, song), targets
                )
                result.songs_added += 1
                result.reports.append(report)

            # 3. Approved registrations
            registrations = (
                await db.execute(
                    select(EventPersonnel)
                    .options(
                        selectinload(EventPersonnel.event),
                        selectinload(EventPersonnel.user),
                    )
                    .where(
                        EventPersonnel.status == PersonnelStatus.APPROVED,
                        EventPersonnel.user_id.is_not(None),
                        EventPersonnel.approved_at >= since,
                    )
                )
            ).scalars().all()
            for registration in registrations:
                targets = await approved_user_ids(
                    db, registration.event_id, exclude=[registration.user_id]
                )
                if not targets:
                    continue
                report = await self.dispatcher.dispatch_to(
                    composer.user_joined_event(
                        registration.event, registration.user.name, registration.role
                    ),
                    targets,
                )
                result.members_joined += 1
                result.reports.append(report)

        logger.info(
            f"Activity scan: {result.events_published} new events, "
            f"{result.songs_added} new songs, {result.members_joined} new registrations"
        )
        return result
