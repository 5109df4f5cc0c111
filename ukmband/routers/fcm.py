"""FCM router — device registration and token maintenance."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ukmband.database import get_db
from ukmband.models.user import User
from ukmband.routers.auth import require_manager, require_user
from ukmband.schemas.notification import FCMCleanupRequest, FCMSubscribeRequest
from ukmband.services import subscriptions

logger = logging.getLogger(__name__)

router = APIRouter(tags=["fcm"])


# ═══════════════════════════════════════════════════════════════
#  Current user's devices
# ═══════════════════════════════════════════════════════════════

@router.post("/api/fcm/subscribe")
async def subscribe(
    body: FCMSubscribeRequest,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    if not body.fcm_token:
        raise HTTPException(status_code=400, detail="fcmToken is required")
    sub = await subscriptions.subscribe(db, current_user.id, body.fcm_token, body.device_info)
    logger.info(f"FCM subscription {sub.id} saved for user {current_user.id}")
    return {"success": True, "message": "FCM subscription saved successfully"}


@router.post("/api/fcm/unsubscribe")
async def unsubscribe(
    body: FCMSubscribeRequest,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    if not body.fcm_token:
        raise HTTPException(status_code=400, detail="fcmToken is required")
    changed = await subscriptions.unsubscribe(db, current_user.id, body.fcm_token)
    return {"success": True, "deactivated": changed}


# ═══════════════════════════════════════════════════════════════
#  Maintenance (managers)
# ═══════════════════════════════════════════════════════════════

@router.post("/api/notifications/cleanup-fcm")
async def cleanup_fcm(
    body: FCMCleanupRequest,
    _: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    changed = await subscriptions.cleanup(db, body.user_id, body.action)
    return {
        "success": True,
        "action": body.action,
        "userId": body.user_id,
        "changed": changed,
    }


@router.get("/api/notifications/cleanup-fcm")
async def analyze_fcm(
    userId: int,
    _: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    report = await subscriptions.analyze(db, userId)
    return {"userId": userId, **report}
