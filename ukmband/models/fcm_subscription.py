"""FCMSubscription model — one row per device/browser push registration."""

import json
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ukmband.database import Base


class FCMSubscription(Base):
    __tablename__ = "fcm_subscriptions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    device_info_json: Mapped[str] = mapped_column(Text, default="{}")

    # ── Delivery health (read by the cleanup routine) ──
    failure_count: Mapped[int] = mapped_column(Integer, default=0)
    last_failure_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped["User"] = relationship("User", back_populates="fcm_subscriptions")  # noqa: F821

    @property
    def device_info(self) -> Dict[str, Any]:
        try:
            return json.loads(self.device_info_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    @property
    def token_preview(self) -> str:
        return self.token[:20] + "..."
