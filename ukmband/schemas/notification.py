"""Notification Pydantic schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ukmband.config import settings
from ukmband.models.notification import NotificationType
from ukmband.utils.dates import assume_local


class NotificationOut(BaseModel):
    id: int
    title: str
    message: str
    type: NotificationType
    event_id: Optional[int] = None
    action_url: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ── Manual triggers ──

class BroadcastTarget(BaseModel):
    """Recipients of a manual trigger: explicit ids, everyone, or the default audience."""

    user_ids: Optional[List[int]] = Field(default=None, alias="userIds")
    send_to_all: bool = Field(default=False, alias="sendToAll")

    model_config = {"populate_by_name": True}


class EventCreationRequest(BroadcastTarget):
    event_id: int = Field(alias="eventId")
    event_title: str = Field(alias="eventTitle")
    event_date: datetime = Field(alias="eventDate")
    event_location: str = Field(alias="eventLocation")

    @field_validator("event_date")
    @classmethod
    def as_wall_clock(cls, v: datetime) -> datetime:
        return assume_local(v, settings.TIMEZONE)


class PracticeReminderRequest(BroadcastTarget):
    practice_date: datetime = Field(alias="practiceDate")
    practice_type: str = Field(default="Latihan Rutin", alias="practiceType")

    @field_validator("practice_date")
    @classmethod
    def as_wall_clock(cls, v: datetime) -> datetime:
        return assume_local(v, settings.TIMEZONE)


class PerformanceReminderRequest(BroadcastTarget):
    performance_title: str = Field(alias="performanceTitle")
    performance_date: datetime = Field(alias="performanceDate")
    performance_location: str = Field(alias="performanceLocation")
    reminder_type: str = Field(alias="reminderType")

    @field_validator("performance_date")
    @classmethod
    def as_wall_clock(cls, v: datetime) -> datetime:
        return assume_local(v, settings.TIMEZONE)


class SongAdditionRequest(BroadcastTarget):
    song_title: str = Field(alias="songTitle")
    artist: str
    added_by: str = Field(alias="addedBy")
    difficulty: str = "Medium"


class TeamMemberRequest(BroadcastTarget):
    new_member_name: str = Field(alias="newMemberName")
    role: str
    team_name: str = Field(default="UKM Band", alias="teamName")


class MemberJoinEventRequest(BroadcastTarget):
    event_id: int = Field(alias="eventId")
    new_member_name: str = Field(alias="newMemberName")
    member_role: str = Field(alias="memberRole")


# ── FCM ──

class FCMSubscribeRequest(BaseModel):
    fcm_token: Optional[str] = Field(default=None, alias="fcmToken")
    device_info: Optional[dict] = Field(default=None, alias="deviceInfo")

    model_config = {"populate_by_name": True}


class FCMCleanupRequest(BaseModel):
    user_id: int = Field(alias="userId")
    action: str

    model_config = {"populate_by_name": True}
