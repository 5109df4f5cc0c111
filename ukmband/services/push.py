"""
FCM push channel.

Delivery is best-effort: one send per active token, no retry within an
invocation, no timeout. Outcomes are tallied into ``PushResult`` and recorded
on the subscription row (``failure_count``); deactivating tokens that keep
failing is left to the cleanup routine in ``subscriptions.py``.

When no Firebase service account is configured the channel falls back to a
simulated sender that only logs, so local development works without
credentials.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, messaging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ukmband.config import settings
from ukmband.models.fcm_subscription import FCMSubscription
from ukmband.services.composer import ComposedNotification, absolute_url

logger = logging.getLogger(__name__)

DEFAULT_ICON = "/icons/favicon.png"


@dataclass
class PushPayload:
    title: str
    body: str
    action_url: str
    type: str
    event_id: Optional[int] = None
    icon: str = DEFAULT_ICON
    badge: str = DEFAULT_ICON
    tag: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_composed(cls, composed: ComposedNotification, base_url: Optional[str] = None) -> "PushPayload":
        kind = getattr(composed.type, "value", composed.type)
        return cls(
            title=composed.title,
            body=composed.message,
            action_url=absolute_url(composed.action_url, base_url),
            type=kind,
            event_id=composed.event_id,
            tag=f"ukmband-{kind}",
            data=dict(composed.data),
        )


@dataclass
class PushResult:
    sent: int = 0
    failed: int = 0
    total: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.sent > 0


def build_fcm_message(token: str, payload: PushPayload, user_id: int) -> Dict[str, Any]:
    """FCM message body. The service worker reads from ``data``, so every value is a string."""
    data = {
        "type": payload.type,
        "title": payload.title,
        "body": payload.body,
        "icon": payload.icon,
        "badge": payload.badge,
        "userId": str(user_id),
        "actionUrl": payload.action_url,
        "eventId": str(payload.event_id) if payload.event_id is not None else "",
        "tag": payload.tag or f"notification-{payload.type}",
        "source": "ukmband-system",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    for key, value in payload.data.items():
        data[key] = value if isinstance(value, str) else str(value)

    return {
        "token": token,
        "notification": {"title": payload.title, "body": payload.body},
        "data": data,
        "webpush": {
            "fcm_options": {"link": payload.action_url},
            "notification": {
                "title": payload.title,
                "body": payload.body,
                "icon": payload.icon,
                "badge": payload.badge,
                "tag": data["tag"],
                "requireInteraction": False,
                "silent": False,
            },
        },
    }


# ═══════════════════════════════════════════════════════════════
#  Senders
# ═══════════════════════════════════════════════════════════════

class PushSender:
    """Sends one message to one device token; raises on failure."""

    async def send(self, message: Dict[str, Any]) -> str:
        raise NotImplementedError


class SimulatedPushSender(PushSender):
    """Fallback used when Firebase credentials are missing."""

    async def send(self, message: Dict[str, Any]) -> str:
        token = message["token"]
        logger.info(
            f"Simulated push to {token[:20]}...: "
            f"{message['notification']['title']} | {message['notification']['body']}"
        )
        return f"simulated-{token[:8]}"


class FCMPushSender(PushSender):
    """firebase-admin messaging. The SDK is blocking, so sends run in a worker thread."""

    def __init__(self, credentials_file: str, project_id: str = ""):
        try:
            self._app = firebase_admin.get_app()
        except ValueError:
            options = {"projectId": project_id} if project_id else None
            self._app = firebase_admin.initialize_app(
                credentials.Certificate(credentials_file), options
            )
        logger.info("Firebase Admin initialized")

    def _send_sync(self, message: Dict[str, Any]) -> str:
        webpush = message["webpush"]
        fcm_message = messaging.Message(
            token=message["token"],
            notification=messaging.Notification(**message["notification"]),
            data=message["data"],
            webpush=messaging.WebpushConfig(
                notification=messaging.WebpushNotification(
                    title=webpush["notification"]["title"],
                    body=webpush["notification"]["body"],
                    icon=webpush["notification"]["icon"],
                    badge=webpush["notification"]["badge"],
                    tag=webpush["notification"]["tag"],
                    require_interaction=webpush["notification"]["requireInteraction"],
                    silent=webpush["notification"]["silent"],
                ),
                fcm_options=messaging.WebpushFCMOptions(link=webpush["fcm_options"]["link"]),
            ),
        )
        return messaging.send(fcm_message, app=self._app)

    async def send(self, message: Dict[str, Any]) -> str:
        return await asyncio.to_thread(self._send_sync, message)


@lru_cache
def get_push_sender() -> PushSender:
    """Process-wide sender chosen from settings."""
    if settings.FIREBASE_CREDENTIALS_FILE:
        return FCMPushSender(settings.FIREBASE_CREDENTIALS_FILE, settings.FIREBASE_PROJECT_ID)
    logger.warning("FIREBASE_CREDENTIALS_FILE not set; push delivery will be simulated")
    return SimulatedPushSender()


# ═══════════════════════════════════════════════════════════════
#  Channel entry point
# ═══════════════════════════════════════════════════════════════

async def send_fcm_notification(
    db: AsyncSession,
    user_id: int,
    payload: PushPayload,
    sender: PushSender,
) -> PushResult:
    """Send ``payload`` to every active token of ``user_id``."""
    result = await db.execute(
        select(FCMSubscription).where(
            FCMSubscription.user_id == user_id,
            FCMSubscription.is_active == True,  # noqa: E712
        )
    )
    subscriptions = result.scalars().all()
    outcome = PushResult(total=len(subscriptions))
    if not subscriptions:
        return outcome

    for sub in subscriptions:
        try:
            await sender.send(build_fcm_message(sub.token, payload, user_id))
        except Exception as e:
            outcome.failed += 1
            outcome.errors.append(f"{sub.token_preview}: {e}")
            sub.failure_count = (sub.failure_count or 0) + 1
            sub.last_failure_at = datetime.now(timezone.utc)
            logger.error(f"FCM send failed for user {user_id} subscription {sub.id}: {e}")
        else:
            outcome.sent += 1
            sub.failure_count = 0

    await db.commit()
    logger.info(
        f"FCM notification for user {user_id}: {outcome.sent} of {outcome.total} device(s)"
    )
    return outcome
