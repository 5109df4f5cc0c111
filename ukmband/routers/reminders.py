"""
Reminder router — cron entry point and the admin "run now" button.

Endpoints:
    POST /api/notifications/schedule-reminders → run one scan (cron, bearer secret)
    GET  /api/notifications/schedule-reminders → managers: trigger the POST above
"""

import logging
from typing import AsyncIterator, Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ukmband.config import settings
from ukmband.database import async_session
from ukmband.models.user import User
from ukmband.routers.auth import get_current_user
from ukmband.services.activity import ActivityScanner
from ukmband.services.dispatcher import NotificationDispatcher
from ukmband.services.push import get_push_sender
from ukmband.services.reminders import ReminderScanner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["reminders"])

SCHEDULE_PATH = "/api/notifications/schedule-reminders"


# ── Dependencies ──

def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(async_session, get_push_sender())


def get_reminder_scanner(
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> ReminderScanner:
    return ReminderScanner(
        async_session,
        dispatcher,
        activity_scanner=ActivityScanner(async_session, dispatcher),
    )


async def get_self_client() -> AsyncIterator[httpx.AsyncClient]:
    """HTTP client pointed at this deployment."""
    async with httpx.AsyncClient(base_url=settings.NEXTAUTH_URL, timeout=60.0) as client:
        yield client


def _authorized(request: Request) -> bool:
    if not settings.CRON_SECRET:
        return False
    return request.headers.get("authorization") == f"Bearer {settings.CRON_SECRET}"


# ═══════════════════════════════════════════════════════════════
#  Routes
# ═══════════════════════════════════════════════════════════════

@router.post("/schedule-reminders")
async def schedule_reminders(
    request: Request,
    scanner: ReminderScanner = Depends(get_reminder_scanner),
):
    """Scan upcoming events and send whatever reminders are due."""
    if not _authorized(request):
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    try:
        result = await scanner.scan()
    except Exception:
        logger.exception("Error scheduling reminders")
        return JSONResponse({"error": "Failed to schedule reminders"}, status_code=500)

    logger.info(
        f"Reminder scan done: {result.events_processed} events, "
        f"{len(result.notifications_created)} batches sent"
    )
    return result.to_dict()


@router.get("/schedule-reminders")
async def trigger_reminders(
    current_user: Optional[User] = Depends(get_current_user),
    client: httpx.AsyncClient = Depends(get_self_client),
):
    """Let a manager run the cron job by hand."""
    if not current_user:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)
    if not current_user.is_manager:
        return JSONResponse({"error": "Admin access required"}, status_code=403)

    try:
        response = await client.post(
            SCHEDULE_PATH,
            headers={"Authorization": f"Bearer {settings.CRON_SECRET}"},
        )
        data = response.json()
    except (httpx.HTTPError, ValueError):
        logger.exception("Error triggering reminders")
        return JSONResponse({"error": "Failed to trigger reminders"}, status_code=500)

    # Always 200; a rejection from the cron endpoint travels in the body.
    return data
