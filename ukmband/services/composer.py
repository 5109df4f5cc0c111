"""
Notification composer — builds title/body/payload for every notification type.

Everything here is pure: callers pass the event/song/user data in and get a
``ComposedNotification`` back. Used by the reminder scanner, the activity
scanner and the manual admin triggers alike.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import quote

from ukmband.config import settings
from ukmband.models.notification import NotificationType
from ukmband.utils.dates import (
    format_day_month,
    format_long_date,
    format_long_datetime,
    format_short_date,
    format_time,
)

PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"
PRIORITY_LOW = "low"

SCHEDULE_URL = "/dashboard/member/schedule"


@dataclass(frozen=True)
class ComposedNotification:
    title: str
    message: str
    type: NotificationType
    action_url: str
    priority: str = PRIORITY_MEDIUM
    event_id: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)


def schedule_modal_url(event_id: int) -> str:
    return f"{SCHEDULE_URL}?modal=open&eventId={event_id}"


def absolute_url(action_url: Optional[str], base: Optional[str] = None) -> str:
    """Prefix relative action URLs with the public origin used by the PWA."""
    base = (base if base is not None else settings.PUBLIC_BASE_URL).rstrip("/")
    if not action_url:
        return f"{base}/dashboard/member"
    if action_url.startswith("http"):
        return action_url
    return f"{base}{action_url}"


# ═══════════════════════════════════════════════════════════════
#  Scheduled reminders
# ═══════════════════════════════════════════════════════════════

def practice_reminder(event) -> ComposedNotification:
    return ComposedNotification(
        title="🎸 Waktunya Latihan!",
        message="Sudah 3 hari sejak latihan terakhir. Yuk latihan untuk persiapan event berikutnya!",
        type=NotificationType.PRACTICE_REMINDER,
        action_url=SCHEDULE_URL,
        priority=PRIORITY_MEDIUM,
        event_id=event.id,
        data={"reminderType": "PRACTICE_THREE_DAYS"},
    )


def one_day_reminder(event, tz: Optional[str] = None) -> ComposedNotification:
    when = format_long_datetime(event.date, tz or settings.TIMEZONE)
    return ComposedNotification(
        title="🗓️ Event Besok!",
        message=(
            f'Event "{event.title}" akan dimulai besok pada {when}. '
            "Jangan lupa siapkan peralatanmu!"
        ),
        type=NotificationType.EVENT_REMINDER,
        action_url=schedule_modal_url(event.id),
        priority=PRIORITY_HIGH,
        event_id=event.id,
        data={"reminderType": "ONE_DAY_BEFORE"},
    )


def two_hour_reminder(event) -> ComposedNotification:
    return ComposedNotification(
        title="🏃‍♂️ Segera Berkumpul!",
        message=(
            f'Event "{event.title}" akan dimulai 2 jam lagi! '
            f"Segera berkumpul di {event.location}"
        ),
        type=NotificationType.EVENT_REMINDER,
        action_url=schedule_modal_url(event.id),
        priority=PRIORITY_HIGH,
        event_id=event.id,
        data={"reminderType": "TWO_HOURS_BEFORE", "location": event.location or ""},
    )


# ═══════════════════════════════════════════════════════════════
#  Activity feed
# ═══════════════════════════════════════════════════════════════

def event_published(event) -> ComposedNotification:
    return ComposedNotification(
        title="🎉 Event Baru Tersedia!",
        message=f'Event "{event.title}" telah dipublish. Segera daftar untuk ikut serta!',
        type=NotificationType.EVENT_PUBLISHED,
        action_url="/dashboard/member/available-events",
        priority=PRIORITY_HIGH,
        event_id=event.id,
    )


def song_added(event, song) -> ComposedNotification:
    return ComposedNotification(
        title="🎵 Lagu Baru Ditambahkan!",
        message=f'Lagu "{song.title}" telah ditambahkan ke event "{event.title}"',
        type=NotificationType.SONG_ADDED,
        action_url=f"/dashboard/songs?eventId={event.id}",
        priority=PRIORITY_MEDIUM,
        event_id=event.id,
        data={"songTitle": song.title, "eventTitle": event.title},
    )


def user_joined_event(event, user_name: str, role: str) -> ComposedNotification:
    return ComposedNotification(
        title="👋 Anggota Baru Bergabung!",
        message=f'{user_name} telah bergabung dengan event "{event.title}" sebagai {role}',
        type=NotificationType.PERSONNEL_ASSIGNED,
        action_url=schedule_modal_url(event.id),
        priority=PRIORITY_MEDIUM,
        event_id=event.id,
        data={"userName": user_name, "userRole": role},
    )


# ═══════════════════════════════════════════════════════════════
#  Manual broadcasts
# ═══════════════════════════════════════════════════════════════

def event_creation(
    event_id: int,
    event_title: str,
    event_date: datetime,
    event_location: str,
    tz: Optional[str] = None,
) -> ComposedNotification:
    return ComposedNotification(
        title="🎵 Acara Baru UKM Band!",
        message=(
            f"{event_title} - {format_short_date(event_date, tz or settings.TIMEZONE)} "
            f"di {event_location}"
        ),
        type=NotificationType.EVENT_CREATION,
        action_url=f"/events/{event_id}",
        priority=PRIORITY_HIGH,
        event_id=event_id,
    )


def practice_reminder_3_days(
    practice_date: datetime,
    practice_type: str = "Latihan Rutin",
    tz: Optional[str] = None,
) -> ComposedNotification:
    return ComposedNotification(
        title="🎸 Reminder Latihan UKM Band",
        message=(
            f"{practice_type} dalam 3 hari - "
            f"{format_day_month(practice_date, tz or settings.TIMEZONE)}"
        ),
        type=NotificationType.PRACTICE_REMINDER_3_DAYS,
        action_url="/schedule/practice",
        priority=PRIORITY_MEDIUM,
        data={"practiceDate": practice_date.isoformat(), "practiceType": practice_type},
    )


def performance_reminder_h1(
    performance_title: str,
    performance_date: datetime,
    performance_location: str,
    tz: Optional[str] = None,
) -> ComposedNotification:
    return ComposedNotification(
        title="🎤 Besok Manggung!",
        message=(
            f"{performance_title} besok jam "
            f"{format_time(performance_date, tz or settings.TIMEZONE)} di {performance_location}"
        ),
        type=NotificationType.PERFORMANCE_REMINDER_H1,
        action_url=f"/performances/{quote(performance_title)}",
        priority=PRIORITY_HIGH,
        data={
            "performanceDate": performance_date.isoformat(),
            "performanceLocation": performance_location,
            "performanceTitle": performance_title,
        },
    )


def performance_reminder_2_hours(
    performance_title: str,
    performance_location: str,
    performance_time: datetime,
) -> ComposedNotification:
    return ComposedNotification(
        title="⏰ 2 Jam Lagi Manggung!",
        message=f"Persiapkan diri untuk {performance_title} di {performance_location}",
        type=NotificationType.PERFORMANCE_REMINDER_2_HOURS,
        action_url=f"/performances/{quote(performance_title)}",
        priority=PRIORITY_HIGH,
        data={
            "performanceTime": performance_time.isoformat(),
            "performanceLocation": performance_location,
            "performanceTitle": performance_title,
        },
    )


def team_member_join(
    new_member_name: str, role: str, team_name: str = "UKM Band"
) -> ComposedNotification:
    return ComposedNotification(
        title="👥 Anggota Baru UKM Band!",
        message=f"{new_member_name} bergabung sebagai {role}",
        type=NotificationType.TEAM_MEMBER_JOIN,
        action_url="/team/members",
        priority=PRIORITY_MEDIUM,
        data={"newMemberName": new_member_name, "role": role, "teamName": team_name},
    )


def song_addition(
    song_title: str, artist: str, added_by: str, difficulty: str = "Medium"
) -> ComposedNotification:
    return ComposedNotification(
        title="🎶 Lagu Baru Ditambahkan!",
        message=f"{song_title} - {artist} ({difficulty}) ditambahkan oleh {added_by}",
        type=NotificationType.SONG_ADDITION,
        action_url="/repertoire/songs",
        priority=PRIORITY_MEDIUM,
        data={
            "songTitle": song_title,
            "artist": artist,
            "addedBy": added_by,
            "difficulty": difficulty,
        },
    )


def member_join_event(
    event, new_member_name: str, member_role: str, tz: Optional[str] = None
) -> ComposedNotification:
    event_date = format_long_date(event.date, tz or settings.TIMEZONE)
    return ComposedNotification(
        title=f"👥 {member_role} Bergabung!",
        message=(
            f'{new_member_name} telah bergabung sebagai {member_role} '
            f'di "{event.title}" - {event_date}'
        ),
        type=NotificationType.MEMBER_JOIN_EVENT,
        action_url=f"/events/member?eventId={event.id}",
        priority=PRIORITY_MEDIUM,
        event_id=event.id,
        data={
            "newMemberName": new_member_name,
            "memberRole": member_role,
            "eventTitle": event.title,
            "eventDate": event_date,
            "eventLocation": event.location or "",
        },
    )
