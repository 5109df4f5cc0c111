"""Event model — a gig or practice session with its lineup and setlist."""

import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ukmband.database import Base


class EventStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    PUBLISHED = "PUBLISHED"
    FINISHED = "FINISHED"
    REJECTED = "REJECTED"


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    location: Mapped[str] = mapped_column(String(300), default="")
    description: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[EventStatus] = mapped_column(
        Enum(EventStatus), default=EventStatus.DRAFT, index=True
    )
    created_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # ── Relationships ──
    personnel: Mapped[List["EventPersonnel"]] = relationship(  # noqa: F821
        "EventPersonnel", back_populates="event", cascade="all, delete-orphan"
    )
    songs: Mapped[List["EventSong"]] = relationship(  # noqa: F821
        "EventSong",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventSong.order",
    )
