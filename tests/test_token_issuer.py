from datetime import timedelta

import jwt
import pytest
from sqlalchemy import update
from sqlalchemy.orm import Session

from taskdesk.auth.issuer import TokenIssuer
from taskdesk.auth.session_clock import SessionClock
from taskdesk.auth.tokens import as_utc, decode_access_token, hash_token, now_utc
from taskdesk.config import settings
from taskdesk.errors import InactivityTimeout, InvalidToken
from taskdesk.models.enums import Role
from taskdesk.models.user import User

from .fakes import FakeRedis
from .helpers import make_user

@pytest.fixture()
def issuer() -> TokenIssuer:
    return TokenIssuer(SessionClock(redis=FakeRedis()))

def _stored_hash(db: Session, user_id) -> str | None:
    db.expire_all()
    return db.get(User, user_id).refresh_token_hash

def test_issue_mints_pair_and_records_refresh_digest(db_session: Session, issuer: TokenIssuer):
    user = make_user(db_session, "issue@example.com", Role.admin, "eng")
    now = now_utc()

    pair = issuer.issue(db_session, user, now=now)

    assert pair.expires_in == 900
    assert as_utc(pair.refresh_expires_at) == now + timedelta(days=7)
    assert _stored_hash(db_session, user.id) == hash_token(pair.refresh_token)
    # the plaintext refresh token is never stored
    assert db_session.get(User, user.id).refresh_token_hash != pair.refresh_token

    claims = decode_access_token(pair.access_token)
    assert claims["sub"] == str(user.id)
    assert claims["role"] == "admin"
    assert claims["department"] == "eng"
    assert claims["exp"] - claims["iat"] == 900

def test_issue_replaces_previous_refresh_token(db_session: Session, issuer: TokenIssuer):
    user = make_user(db_session, "single-session@example.com")

    first = issuer.issue(db_session, user)
    second = issuer.issue(db_session, user)

    assert first.refresh_token != second.refresh_token
    with pytest.raises(InvalidToken):
        issuer.rotate(db_session, first.refresh_token)
    issuer.rotate(db_session, second.refresh_token)

def test_rotation_is_single_use(db_session: Session, issuer: TokenIssuer):
    user = make_user(db_session, "rotate@example.com")
    pair = issuer.issue(db_session, user)

    rotated = issuer.rotate(db_session, pair.refresh_token)
    assert rotated.refresh_token != pair.refresh_token
    assert _stored_hash(db_session, user.id) == hash_token(rotated.refresh_token)

    with pytest.raises(InvalidToken) as ei:
        issuer.rotate(db_session, pair.refresh_token)
    assert type(ei.value) is InvalidToken

    # the legitimate holder of the new token is unaffected
    issuer.rotate(db_session, rotated.refresh_token)

def test_rotation_resets_absolute_expiry(db_session: Session, issuer: TokenIssuer):
    user = make_user(db_session, "expiry-reset@example.com")
    t0 = now_utc()
    pair = issuer.issue(db_session, user, now=t0)

    t1 = t0 + timedelta(minutes=10)
    rotated = issuer.rotate(db_session, pair.refresh_token, now=t1)
    assert as_utc(rotated.refresh_expires_at) == t1 + timedelta(days=7)

def test_unknown_token_is_invalid(db_session: Session, issuer: TokenIssuer):
    with pytest.raises(InvalidToken):
        issuer.rotate(db_session, "not-a-real-token")

def test_expired_refresh_token_is_invalid_and_revoked(db_session: Session, issuer: TokenIssuer):
    user = make_user(db_session, "expired@example.com")
    t0 = now_utc()
    pair = issuer.issue(db_session, user, now=t0)

    with pytest.raises(InvalidToken) as ei:
        issuer.rotate(db_session, pair.refresh_token, now=t0 + timedelta(days=7, seconds=1))

    assert type(ei.value) is InvalidToken
    assert "expired" in ei.value.reason
    assert _stored_hash(db_session, user.id) is None

def test_idle_session_is_refused_with_inactivity_timeout(db_session: Session, issuer: TokenIssuer):
    user = make_user(db_session, "idle@example.com")
    t0 = now_utc()
    pair = issuer.issue(db_session, user, now=t0)

    # 31 minutes idle, days before the absolute expiry
    with pytest.raises(InactivityTimeout) as ei:
        issuer.rotate(db_session, pair.refresh_token, now=t0 + timedelta(minutes=31))

    assert ei.value.code == "session_inactive"
    assert _stored_hash(db_session, user.id) is None

def test_activity_keeps_the_session_refreshable(db_session: Session, issuer: TokenIssuer):
    user = make_user(db_session, "busy@example.com")
    t0 = now_utc()
    pair = issuer.issue(db_session, user, now=t0)

    issuer.clock.touch(db_session, user.id, now=t0 + timedelta(minutes=25))
    issuer.rotate(db_session, pair.refresh_token, now=t0 + timedelta(minutes=50))

def test_revoke_makes_refresh_fail(db_session: Session, issuer: TokenIssuer):
    user = make_user(db_session, "revoke@example.com")
    pair = issuer.issue(db_session, user)

    issuer.revoke(db_session, user.id)

    assert _stored_hash(db_session, user.id) is None
    with pytest.raises(InvalidToken):
        issuer.rotate(db_session, pair.refresh_token)

    # access tokens are not individually revocable; they run to their exp
    decode_access_token(pair.access_token)

def test_revoke_token_finds_the_owner(db_session: Session, issuer: TokenIssuer):
    user = make_user(db_session, "revoke-token@example.com")
    pair = issuer.issue(db_session, user)

    assert issuer.revoke_token(db_session, f" {pair.refresh_token} ") == user.id
    assert _stored_hash(db_session, user.id) is None
    with pytest.raises(InvalidToken):
        issuer.rotate(db_session, pair.refresh_token)

    # a second revoke with the same token matches nothing
    assert issuer.revoke_token(db_session, pair.refresh_token) is None

class _RacingClock(SessionClock):
    """Lets a competing rotation land between the lookup and the swap."""

    def __init__(self, db: Session, user_id):
        super().__init__(redis=FakeRedis())
        self.db = db
        self.user_id = user_id

    def is_active(self, last_activity, now=None) -> bool:
        self.db.execute(
            update(User)
            .where(User.id == self.user_id)
            .values(refresh_token_hash=hash_token("winner"))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return True

def test_rotation_is_compare_and_swap(db_session: Session, issuer: TokenIssuer):
    user = make_user(db_session, "race@example.com")
    pair = issuer.issue(db_session, user)

    racing = TokenIssuer(_RacingClock(db_session, user.id))
    with pytest.raises(InvalidToken):
        racing.rotate(db_session, pair.refresh_token)

    # the winner's token is left in place
    assert _stored_hash(db_session, user.id) == hash_token("winner")

def test_access_token_rejects_other_token_types():
    now = now_utc()
    forged = jwt.encode(
        {
            "sub": "x",
            "type": "refresh",
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=5)).timestamp()),
        },
        settings.jwt_secret,
        algorithm="HS256",
    )
    with pytest.raises(jwt.InvalidTokenError):
        decode_access_token(forged)
