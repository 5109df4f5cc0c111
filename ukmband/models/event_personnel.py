"""EventPersonnel model — one seat in an event's lineup."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ukmband.database import Base


class PersonnelStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class EventPersonnel(Base):
    __tablename__ = "event_personnel"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # NULL means the slot is still open
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    role: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[PersonnelStatus] = mapped_column(
        Enum(PersonnelStatus), default=PersonnelStatus.PENDING
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    event: Mapped["Event"] = relationship("Event", back_populates="personnel")  # noqa: F821
    user: Mapped[Optional["User"]] = relationship("User")  # noqa: F821
