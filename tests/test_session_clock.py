from datetime import timedelta

from sqlalchemy.orm import Session

from taskdesk.auth.session_clock import SessionClock, is_within_activity_window
from taskdesk.auth.tokens import as_utc, now_utc
from taskdesk.models.user import User

from .fakes import FakeRedis
from .helpers import make_user

def test_activity_window_boundaries():
    now = now_utc()
    window = timedelta(minutes=30)

    assert is_within_activity_window(now, now, window)
    assert is_within_activity_window(now - window, now, window)
    assert not is_within_activity_window(now - window - timedelta(seconds=1), now, window)
    assert not is_within_activity_window(None, now, window)

def test_activity_window_defaults_to_thirty_minutes():
    now = now_utc()
    assert is_within_activity_window(now - timedelta(minutes=29), now)
    assert not is_within_activity_window(now - timedelta(minutes=31), now)

def test_naive_timestamps_are_treated_as_utc():
    now = now_utc()
    naive = (now - timedelta(minutes=5)).replace(tzinfo=None)
    assert is_within_activity_window(naive, now)

def test_touch_is_coalesced_per_interval(db_session: Session):
    redis = FakeRedis()
    clock = SessionClock(redis=redis, touch_interval_seconds=5)
    user = make_user(db_session, "clock@example.com")

    first = now_utc() - timedelta(minutes=10)
    assert clock.touch(db_session, user.id, now=first) is True
    assert redis.ttls[f"activity:{user.id}"] == 5

    # inside the interval: no write
    assert clock.touch(db_session, user.id, now=now_utc()) is False
    db_session.expire_all()
    assert as_utc(db_session.get(User, user.id).last_activity_at) == first

    redis.expire_all()
    later = now_utc()
    assert clock.touch(db_session, user.id, now=later) is True
    db_session.expire_all()
    assert as_utc(db_session.get(User, user.id).last_activity_at) == later

def test_touch_writes_through_when_redis_is_down(db_session: Session):
    redis = FakeRedis()
    redis.down = True
    clock = SessionClock(redis=redis)
    user = make_user(db_session, "clock-down@example.com")

    assert clock.touch(db_session, user.id) is True
    assert clock.touch(db_session, user.id) is True

def test_is_active_uses_configured_window():
    clock = SessionClock(redis=FakeRedis(), window=timedelta(minutes=1))
    now = now_utc()
    assert clock.is_active(now - timedelta(seconds=59), now)
    assert not clock.is_active(now - timedelta(seconds=61), now)
