"""
Token pair issuance, single-use refresh rotation and revocation.

The stored refresh-token digest on the user row is the only shared mutable
state here. Rotation swaps it with a conditional UPDATE that only matches
the presented digest, so of several concurrent rotations with the same
token exactly one wins.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from taskdesk.auth.session_clock import SessionClock, get_session_clock
from taskdesk.auth.tokens import (
    as_utc,
    hash_token,
    issue_access_token,
    new_opaque_token,
    now_utc,
    refresh_token_expiry,
)
from taskdesk.config import settings
from taskdesk.errors import InactivityTimeout, InvalidToken
from taskdesk.models.user import User

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime
    expires_in: int

class TokenIssuer:
    def __init__(self, clock: SessionClock):
        self.clock = clock

    def _mint(self, user: User, now: datetime) -> tuple[TokenPair, str]:
        refresh_token = new_opaque_token()
        pair = TokenPair(
            access_token=issue_access_token(user.id, user.role, user.department, now=now),
            refresh_token=refresh_token,
            refresh_expires_at=refresh_token_expiry(now),
            expires_in=settings.access_token_ttl_seconds,
        )
        return pair, hash_token(refresh_token)

    def issue(self, db: Session, user: User, now: datetime | None = None) -> TokenPair:
        """Mint a fresh pair at login; any earlier refresh token stops working."""
        now = now or now_utc()
        pair, digest = self._mint(user, now)

        user.refresh_token_hash = digest
        user.refresh_token_expires_at = pair.refresh_expires_at
        user.last_login_at = now
        user.last_activity_at = now
        db.add(user)
        db.commit()

        logger.info("issued token pair for user %s", user.id)
        return pair

    def rotate(self, db: Session, presented: str, now: datetime | None = None) -> TokenPair:
        now = now or now_utc()
        old_digest = hash_token(presented.strip())

        user = db.scalar(select(User).where(User.refresh_token_hash == old_digest))
        if user is None:
            # unknown, or already rotated: a replayed token lands here
            logger.warning("refresh with unknown or reused token")
            raise InvalidToken("invalid refresh token")

        if user.refresh_token_expires_at is None or as_utc(user.refresh_token_expires_at) <= now:
            self.revoke(db, user.id)
            raise InvalidToken("refresh token expired")

        last_activity = user.last_activity_at or user.last_login_at
        if not self.clock.is_active(last_activity, now):
            self.revoke(db, user.id)
            logger.info("refresh refused for idle session of user %s", user.id)
            raise InactivityTimeout()

        pair, new_digest = self._mint(user, now)

        # compare-and-swap on the stored digest
        swapped = db.scalar(
            update(User)
            .where(User.id == user.id)
            .where(User.refresh_token_hash == old_digest)
            .values(refresh_token_hash=new_digest, refresh_token_expires_at=pair.refresh_expires_at)
            .returning(User.id)
            .execution_options(synchronize_session=False)
        )
        if swapped is None:
            db.rollback()
            logger.warning("lost refresh rotation race for user %s", user.id)
            raise InvalidToken("invalid refresh token")

        db.commit()
        return pair

    def revoke(self, db: Session, user_id: uuid.UUID) -> None:
        # outstanding access tokens stay valid until their own exp
        db.execute(
            update(User)
            .where(User.id == user_id)
            .values(refresh_token_hash=None, refresh_token_expires_at=None)
            .execution_options(synchronize_session=False)
        )
        db.commit()

    def revoke_token(self, db: Session, presented: str) -> uuid.UUID | None:
        """Revoke by refresh token; returns the owner, or None if it matched nothing."""
        user_id = db.scalar(
            update(User)
            .where(User.refresh_token_hash == hash_token(presented.strip()))
            .values(refresh_token_hash=None, refresh_token_expires_at=None)
            .returning(User.id)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return user_id

def get_token_issuer(clock: SessionClock = Depends(get_session_clock)) -> TokenIssuer:
    return TokenIssuer(clock)
