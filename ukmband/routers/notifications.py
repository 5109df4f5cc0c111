"""Notifications router — fetch, read, and mark-all-read."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ukmband.database import get_db
from ukmband.models.notification import Notification
from ukmband.models.user import User
from ukmband.routers.auth import get_current_user
from ukmband.schemas.notification import NotificationOut
from ukmband.services.composer import SCHEDULE_URL

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
async def get_notifications(
    current_user: Optional[User] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Return last 20 notifications + unread count for the current user."""
    if not current_user:
        return JSONResponse({"notifications": [], "unreadCount": 0})

    count_result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == current_user.id,
            Notification.is_read == False,  # noqa: E712
        )
    )
    unread_count = count_result.scalar() or 0

    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == current_user.id)
        .order_by(desc(Notification.created_at), desc(Notification.id))
        .limit(20)
    )
    notifs = result.scalars().all()

    return {
        "unreadCount": unread_count,
        "notifications": [
            NotificationOut.model_validate(n).model_dump(mode="json") for n in notifs
        ],
    }


@router.post("/read/{notif_id}")
async def mark_read(
    notif_id: int,
    current_user: Optional[User] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark a single notification as read and redirect to its action URL."""
    if not current_user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    result = await db.execute(
        select(Notification).where(
            Notification.id == notif_id,
            Notification.user_id == current_user.id,
        )
    )
    notif = result.scalar_one_or_none()
    if not notif:
        raise HTTPException(status_code=404, detail="Notification not found")

    notif.is_read = True
    await db.commit()

    return RedirectResponse(url=notif.action_url or SCHEDULE_URL, status_code=status.HTTP_303_SEE_OTHER)


@router.post("/read-all")
async def mark_all_read(
    current_user: Optional[User] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark all notifications as read for the current user."""
    if not current_user:
        return JSONResponse({"ok": False})

    await db.execute(
        update(Notification)
        .where(
            Notification.user_id == current_user.id,
            Notification.is_read == False,  # noqa: E712
        )
        .values(is_read=True)
    )
    await db.commit()
    return JSONResponse({"ok": True})
