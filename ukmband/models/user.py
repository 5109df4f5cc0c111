"""User model — club member profile and organization level."""

import enum
import json
from datetime import datetime
from typing import List

from sqlalchemy import DateTime, Enum, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ukmband.database import Base


class OrganizationLevel(str, enum.Enum):
    COMMISSIONER = "COMMISSIONER"
    PENGURUS = "PENGURUS"
    SPECTA = "SPECTA"
    TALENT = "TALENT"


MANAGER_LEVELS = (OrganizationLevel.COMMISSIONER, OrganizationLevel.PENGURUS)
TEAM_LEVELS = (OrganizationLevel.TALENT, OrganizationLevel.SPECTA)


class User(Base):
    __tablename__ = "users"

    # ── Identity ──
    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    organization_lvl: Mapped[OrganizationLevel] = mapped_column(
        Enum(OrganizationLevel), default=OrganizationLevel.TALENT, index=True
    )

    # ── Profile ──
    instruments_json: Mapped[str] = mapped_column(Text, default="[]")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # ── Relationships ──
    fcm_subscriptions: Mapped[List["FCMSubscription"]] = relationship(  # noqa: F821
        "FCMSubscription", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def instruments(self) -> List[str]:
        try:
            return json.loads(self.instruments_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []

    @instruments.setter
    def instruments(self, value: List[str]) -> None:
        self.instruments_json = json.dumps(list(value))

    @property
    def is_manager(self) -> bool:
        return self.organization_lvl in MANAGER_LEVELS

    @property
    def is_team_member(self) -> bool:
        return self.organization_lvl in TEAM_LEVELS
