"""
Fan-out dispatcher — one notification, many users, independent channels.

For every target user the dispatcher

1. inserts and commits a ``Notification`` row (``is_read=False``), then
2. attempts FCM delivery to the user's active tokens.

A push failure never undoes step 1. Each user runs in its own session and
the per-user coroutines are awaited together; every attempt ends in an
explicit ``DispatchOutcome`` instead of an exception, so one bad token or one
failed insert cannot abort the batch.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ukmband.config import settings
from ukmband.models.notification import Notification
from ukmband.services.audience import Audience, resolve_audience
from ukmband.services.composer import ComposedNotification
from ukmband.services.push import PushPayload, PushResult, PushSender, send_fcm_notification

logger = logging.getLogger(__name__)


@dataclass
class DispatchOutcome:
    user_id: int
    notification_id: Optional[int] = None
    push: Optional[PushResult] = None
    error: Optional[str] = None
    push_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.notification_id is not None and self.error is None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "status": "fulfilled" if self.ok else "rejected",
            "notificationId": self.notification_id,
            "push": (
                {"sent": self.push.sent, "failed": self.push.failed, "total": self.push.total}
                if self.push
                else None
            ),
            "error": self.error or self.push_error,
        }


@dataclass
class DispatchReport:
    notification_type: str
    outcomes: List[DispatchOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def delivered(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return self.total - self.delivered

    @property
    def push_sent(self) -> int:
        return sum(o.push.sent for o in self.outcomes if o.push)

    @property
    def push_failed(self) -> int:
        return sum(o.push.failed for o in self.outcomes if o.push)

    @property
    def user_ids(self) -> List[int]:
        return [o.user_id for o in self.outcomes]

    def results(self) -> List[Dict[str, Any]]:
        return [o.as_dict() for o in self.outcomes]


class NotificationDispatcher:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        push_sender: PushSender,
        max_concurrency: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.push_sender = push_sender
        self.max_concurrency = max_concurrency or settings.DISPATCH_CONCURRENCY

    async def dispatch(
        self, composed: ComposedNotification, audience: Audience
    ) -> DispatchReport:
        async with self.session_factory() as db:
            user_ids = await resolve_audience(db, audience)
        return await self.dispatch_to(composed, user_ids)

    async def dispatch_to(
        self, composed: ComposedNotification, user_ids: List[int]
    ) -> DispatchReport:
        kind = getattr(composed.type, "value", composed.type)
        report = DispatchReport(notification_type=kind)
        if not user_ids:
            logger.info(f"No recipients for {kind} notification, skipping")
            return report

        payload = PushPayload.from_composed(composed)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(user_id: int) -> DispatchOutcome:
            async with semaphore:
                return await self._dispatch_one(user_id, composed, payload)

        report.outcomes = list(await asyncio.gather(*(bounded(uid) for uid in user_ids)))
        logger.info(
            f"{kind} dispatched: {report.delivered}/{report.total} stored, "
            f"push {report.push_sent} sent / {report.push_failed} failed"
        )
        return report

    async def _dispatch_one(
        self, user_id: int, composed: ComposedNotification, payload: PushPayload
    ) -> DispatchOutcome:
        outcome = DispatchOutcome(user_id=user_id)
        async with self.session_factory() as db:
            try:
                outcome.notification_id = await self._store(db, user_id, composed)
            except Exception as e:
                await db.rollback()
                outcome.error = f"database: {e}"
                logger.error(f"Failed to create notification for user {user_id}: {e}")

            try:
                outcome.push = await send_fcm_notification(db, user_id, payload, self.push_sender)
            except Exception as e:
                await db.rollback()
                outcome.push_error = f"push: {e}"
                logger.error(f"Push delivery failed for user {user_id}: {e}")
        return outcome

    @staticmethod
    async def _store(db: AsyncSession, user_id: int, composed: ComposedNotification) -> int:
        notification = Notification(
            user_id=user_id,
            title=composed.title,
            message=composed.message,
            type=composed.type,
            event_id=composed.event_id,
            action_url=composed.action_url,
            is_read=False,
        )
        db.add(notification)
        await db.commit()
        return notification.id
