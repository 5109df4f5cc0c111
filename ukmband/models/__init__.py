"""
UKM Band – SQLAlchemy ORM models package.

Imports all model classes so the app and ``Base.metadata.create_all`` can
discover them through a single ``import ukmband.models``.
"""

from ukmband.models.user import User                          # noqa: F401
from ukmband.models.event import Event                        # noqa: F401
from ukmband.models.event_personnel import EventPersonnel     # noqa: F401
from ukmband.models.event_song import EventSong               # noqa: F401
from ukmband.models.notification import Notification         # noqa: F401
from ukmband.models.fcm_subscription import FCMSubscription   # noqa: F401
from ukmband.models.reminder_log import ReminderLog           # noqa: F401
