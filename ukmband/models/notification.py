"""Notification model — in-app notifications for the header bell."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ukmband.database import Base


class NotificationType(str, enum.Enum):
    # Scheduled reminders
    EVENT_REMINDER = "EVENT_REMINDER"
    PRACTICE_REMINDER = "PRACTICE_REMINDER"
    # Activity feed
    EVENT_PUBLISHED = "EVENT_PUBLISHED"
    SONG_ADDED = "SONG_ADDED"
    PERSONNEL_ASSIGNED = "PERSONNEL_ASSIGNED"
    # Manual broadcasts
    EVENT_CREATION = "EVENT_CREATION"
    PRACTICE_REMINDER_3_DAYS = "PRACTICE_REMINDER_3_DAYS"
    PERFORMANCE_REMINDER_H1 = "PERFORMANCE_REMINDER_H1"
    PERFORMANCE_REMINDER_2_HOURS = "PERFORMANCE_REMINDER_2_HOURS"
    TEAM_MEMBER_JOIN = "TEAM_MEMBER_JOIN"
    SONG_ADDITION = "SONG_ADDITION"
    MEMBER_JOIN_EVENT = "MEMBER_JOIN_EVENT"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(Enum(NotificationType), nullable=False)
    event_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("events.id", ondelete="SET NULL"), index=True
    )
    action_url: Mapped[Optional[str]] = mapped_column(String(500))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
