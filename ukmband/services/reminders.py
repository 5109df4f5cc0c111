"""
Reminder scanner.

Invoked by an external cron through ``POST /api/notifications/schedule-reminders``.
Each run looks at PUBLISHED events dated within the next three days and,
per event, checks three reminder windows:

- practice:  the lineup's most recent past event is at least 3 days old
- one-day:   ``|days_until - 1| < 0.1``   (about 2.4 hours either side)
- two-hour:  ``|hours_until - 2| < 0.5``  (30 minutes either side)

The windows are deliberately coarse and the scan keeps no state between runs,
so a cron that fires twice inside a window sends twice. Setting
``REMINDER_DEDUP_ENABLED`` records each send in ``reminder_logs`` keyed by
(event, reminder type, window) and skips repeats.
"""

import enum
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from ukmband.config import settings
from ukmband.models.event import Event, EventStatus
from ukmband.models.event_personnel import EventPersonnel, PersonnelStatus
from ukmband.models.reminder_log import ReminderLog
from ukmband.services import composer
from ukmband.services.activity import ActivityScanner
from ukmband.services.audience import unique_ids
from ukmband.services.dispatcher import DispatchReport, NotificationDispatcher
from ukmband.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

LOOKAHEAD = timedelta(days=3)
ONE_DAY_TOLERANCE_DAYS = 0.1
TWO_HOUR_TOLERANCE_HOURS = 0.5
PRACTICE_INTERVAL_DAYS = 3
NO_PRIOR_PRACTICE_DAYS = 999


class ReminderType(str, enum.Enum):
    PRACTICE = "PRACTICE_THREE_DAYS"
    ONE_DAY = "ONE_DAY_BEFORE"
    TWO_HOURS = "TWO_HOURS_BEFORE"


# ── Window rules ──

def days_until(event_date: datetime, now: datetime) -> float:
    return (as_utc(event_date) - as_utc(now)).total_seconds() / 86400


def hours_until(event_date: datetime, now: datetime) -> float:
    return (as_utc(event_date) - as_utc(now)).total_seconds() / 3600


def is_one_day_due(days: float) -> bool:
    return abs(days - 1) < ONE_DAY_TOLERANCE_DAYS


def is_two_hour_due(hours: float) -> bool:
    return abs(hours - 2) < TWO_HOUR_TOLERANCE_HOURS


def is_practice_due(days_since_practice: int) -> bool:
    return days_since_practice >= PRACTICE_INTERVAL_DAYS


def window_key(reminder_type: ReminderType, event: Event, now: datetime) -> str:
    if reminder_type is ReminderType.PRACTICE:
        return as_utc(now).date().isoformat()
    return as_utc(event.date).isoformat()


async def days_since_last_practice(
    db: AsyncSession, user_ids: List[int], now: datetime
) -> int:
    """Whole days since the latest past event any of ``user_ids`` played in."""
    if not user_ids:
        return NO_PRIOR_PRACTICE_DAYS
    now = as_utc(now)
    result = await db.execute(
        select(Event.date)
        .where(
            Event.date < now,
            Event.personnel.any(
                and_(
                    EventPersonnel.user_id.in_(user_ids),
                    EventPersonnel.status == PersonnelStatus.APPROVED,
                )
            ),
        )
        .order_by(Event.date.desc())
        .limit(1)
    )
    last_date = result.scalar_one_or_none()
    if last_date is None:
        return NO_PRIOR_PRACTICE_DAYS
    return math.floor((now - as_utc(last_date)).total_seconds() / 86400)


@dataclass
class ScanResult:
    timestamp: datetime
    events_processed: int = 0
    notifications_created: List[str] = field(default_factory=list)
    reports: List[DispatchReport] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "success": True,
            "notificationsCreated": self.notifications_created,
            "eventsProcessed": self.events_processed,
            "timestamp": self.timestamp.isoformat(),
        }


class ReminderScanner:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        dispatcher: NotificationDispatcher,
        activity_scanner: Optional[ActivityScanner] = None,
        dedup_enabled: Optional[bool] = None,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.activity_scanner = activity_scanner
        self.dedup_enabled = (
            settings.REMINDER_DEDUP_ENABLED if dedup_enabled is None else dedup_enabled
        )

    async def scan(self, now: Optional[datetime] = None) -> ScanResult:
        now = as_utc(now or utcnow())
        logger.info(f"Running reminder check at {now.isoformat()}")
        result = ScanResult(timestamp=now)

        if self.activity_scanner is not None:
            try:
                await self.activity_scanner.scan(now)
            except SQLAlchemyError:
                logger.exception("Activity scan failed; continuing with reminders")

        async with self.session_factory() as db:
            events = await self._load_candidates(db, now)
            result.events_processed = len(events)
            logger.info(f"Found {len(events)} events to check for reminders")

            for event in events:
                user_ids = unique_ids(
                    p.user_id
                    for p in event.personnel
                    if p.status == PersonnelStatus.APPROVED and p.user_id is not None
                )
                days = days_until(event.date, now)
                hours = hours_until(event.date, now)
                logger.info(
                    f'Event "{event.title}" is in {days:.1f} days ({hours:.1f} hours)'
                )
                if not user_ids:
                    continue

                since_practice = await self._practice_gap(user_ids, now)
                if is_practice_due(since_practice):
                    await self._fire(
                        result, ReminderType.PRACTICE, event, now, user_ids,
                        composer.practice_reminder(event),
                        f"Practice reminder (3 days) for {event.title}",
                    )

                if is_one_day_due(days):
                    await self._fire(
                        result, ReminderType.ONE_DAY, event, now, user_ids,
                        composer.one_day_reminder(event),
                        f"1-day reminder for {event.title}",
                    )

                if is_two_hour_due(hours):
                    await self._fire(
                        result, ReminderType.TWO_HOURS, event, now, user_ids,
                        composer.two_hour_reminder(event),
                        f"2-hour reminder for {event.title}",
                    )

        return result

    async def _practice_gap(self, user_ids: List[int], now: datetime) -> int:
        """Own session, so a failed lookup cannot poison the candidate scan."""
        try:
            async with self.session_factory() as db:
                return await days_since_last_practice(db, user_ids, now)
        except SQLAlchemyError:
            logger.exception(f"Practice lookup failed for users {user_ids}; assuming no prior practice")
            return NO_PRIOR_PRACTICE_DAYS

    async def _load_candidates(self, db: AsyncSession, now: datetime) -> List[Event]:
        rows = await db.execute(
            select(Event)
            .options(selectinload(Event.personnel))
            .where(
                Event.status == EventStatus.PUBLISHED,
                Event.date >= now,
                Event.date <= now + LOOKAHEAD,
            )
            .order_by(Event.date)
        )
        return list(rows.scalars().all())

    async def _fire(
        self,
        result: ScanResult,
        reminder_type: ReminderType,
        event: Event,
        now: datetime,
        user_ids: List[int],
        composed: composer.ComposedNotification,
        label: str,
    ) -> None:
        if self.dedup_enabled and not await self._claim(reminder_type, event, now):
            logger.info(f"{reminder_type.value} for event {event.id} already sent in this window")
            return
        report = await self.dispatcher.dispatch_to(composed, user_ids)
        result.reports.append(report)
        result.notifications_created.append(label)
        logger.info(f"Sent {label} to {report.delivered} of {len(user_ids)} users")

    async def _claim(self, reminder_type: ReminderType, event: Event, now: datetime) -> bool:
        """Insert the dedup row; False if this window was already claimed."""
        async with self.session_factory() as db:
            db.add(
                ReminderLog(
                    event_id=event.id,
                    reminder_type=reminder_type.value,
                    window_key=window_key(reminder_type, event, now),
                )
            )
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                return False
        return True
