from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import update
from sqlalchemy.orm import Session

from taskdesk.auth.tokens import as_utc, now_utc
from taskdesk.config import settings
from taskdesk.models.user import User
from taskdesk.redis_client import redis_client

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY_WINDOW = timedelta(minutes=30)

def is_within_activity_window(
    last_activity: datetime | None,
    now: datetime,
    window: timedelta = DEFAULT_ACTIVITY_WINDOW,
) -> bool:
    if last_activity is None:
        return False
    return as_utc(now) - as_utc(last_activity) <= window

class SessionClock:
    """
    Sliding inactivity tracking.

    Any authenticated request calls touch(); writes are coalesced per user
    to one per touch interval with a redis SET NX EX marker.
    """

    def __init__(
        self,
        redis=redis_client,
        window: timedelta | None = None,
        touch_interval_seconds: int | None = None,
    ):
        self.redis = redis
        self.window = window or timedelta(minutes=settings.inactivity_window_minutes)
        self.touch_interval_seconds = touch_interval_seconds or settings.activity_touch_interval_seconds

    def is_active(self, last_activity: datetime | None, now: datetime | None = None) -> bool:
        return is_within_activity_window(last_activity, now or now_utc(), self.window)

    def _claim_write(self, user_id: uuid.UUID) -> bool:
        key = f"activity:{user_id}"
        try:
            return bool(self.redis.set(key, "1", nx=True, ex=self.touch_interval_seconds))
        except Exception:
            # fail-open: write through if redis is down
            return True

    def touch(self, db: Session, user_id: uuid.UUID, now: datetime | None = None) -> bool:
        if not self._claim_write(user_id):
            return False
        db.execute(
            update(User).where(User.id == user_id).values(last_activity_at=now or now_utc())
        )
        db.commit()
        return True

def get_session_clock() -> SessionClock:
    return SessionClock()
