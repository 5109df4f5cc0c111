"""FCM subscription registry and maintenance (token cleanup)."""

import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ukmband.exceptions import ValidationError
from ukmband.models.fcm_subscription import FCMSubscription

logger = logging.getLogger(__name__)

# FCM registration tokens are well over this length; anything shorter is junk.
MIN_TOKEN_LENGTH = 100
# Consecutive failed sends after which ``cleanup-failing`` deactivates a token.
MAX_CONSECUTIVE_FAILURES = 3

CLEANUP_ACTIONS = ("cleanup-all", "cleanup-invalid", "cleanup-failing", "reactivate-all")


def _expire_loaded(db: AsyncSession) -> None:
    """Bulk UPDATEs bypass the session; make loaded subscriptions reload on next query."""
    for obj in list(db.identity_map.values()):
        if isinstance(obj, FCMSubscription):
            db.expire(obj)


async def subscribe(
    db: AsyncSession,
    user_id: int,
    token: str,
    device_info: Optional[Dict[str, Any]] = None,
) -> FCMSubscription:
    """Register a device token, or refresh and reactivate it if already known."""
    if not token:
        raise ValidationError("fcmToken is required")

    result = await db.execute(
        select(FCMSubscription).where(
            FCMSubscription.user_id == user_id,
            FCMSubscription.token == token,
        )
    )
    sub = result.scalar_one_or_none()
    if sub is None:
        sub = FCMSubscription(user_id=user_id, token=token)
        db.add(sub)
    sub.is_active = True
    sub.failure_count = 0
    sub.device_info_json = json.dumps(device_info or {})
    await db.commit()
    await db.refresh(sub)
    return sub


async def unsubscribe(db: AsyncSession, user_id: int, token: str) -> int:
    result = await db.execute(
        update(FCMSubscription)
        .where(FCMSubscription.user_id == user_id, FCMSubscription.token == token)
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    _expire_loaded(db)
    return result.rowcount or 0


async def cleanup(db: AsyncSession, user_id: int, action: str) -> int:
    """Run a maintenance action for one user's tokens; returns rows changed."""
    stmt = update(FCMSubscription).where(FCMSubscription.user_id == user_id)

    if action == "cleanup-all":
        stmt = stmt.values(is_active=False)
    elif action == "cleanup-invalid":
        stmt = stmt.where(
            FCMSubscription.is_active == True,  # noqa: E712
            func.length(FCMSubscription.token) < MIN_TOKEN_LENGTH,
        ).values(is_active=False)
    elif action == "cleanup-failing":
        stmt = stmt.where(
            FCMSubscription.is_active == True,  # noqa: E712
            FCMSubscription.failure_count >= MAX_CONSECUTIVE_FAILURES,
        ).values(is_active=False)
    elif action == "reactivate-all":
        stmt = stmt.values(is_active=True, failure_count=0)
    else:
        raise ValidationError("Invalid action")

    result = await db.execute(stmt.execution_options(synchronize_session=False))
    await db.commit()
    _expire_loaded(db)
    changed = result.rowcount or 0
    logger.info(f"FCM {action} for user {user_id}: {changed} subscription(s) changed")
    return changed


async def analyze(db: AsyncSession, user_id: int) -> Dict[str, Any]:
    result = await db.execute(
        select(FCMSubscription)
        .where(FCMSubscription.user_id == user_id)
        .order_by(FCMSubscription.created_at.desc())
    )
    subs = result.scalars().all()
    return {
        "subscriptions": [
            {
                "id": s.id,
                "token": s.token_preview,
                "isActive": s.is_active,
                "failureCount": s.failure_count,
                "deviceInfo": s.device_info,
                "createdAt": s.created_at.isoformat() if s.created_at else None,
            }
            for s in subs
        ],
        "analysis": {
            "total": len(subs),
            "active": sum(1 for s in subs if s.is_active),
            "inactive": sum(1 for s in subs if not s.is_active),
            "tokensWithIssues": sum(
                1 for s in subs if not s.token or len(s.token) < MIN_TOKEN_LENGTH
            ),
        },
    }
