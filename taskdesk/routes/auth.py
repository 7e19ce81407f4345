from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from taskdesk.auth.deps import bearer, get_current_user, user_from_bearer
from taskdesk.auth.issuer import TokenIssuer, TokenPair, get_token_issuer
from taskdesk.auth.tokens import as_utc, hash_token, magic_link_expiry, new_opaque_token, now_utc
from taskdesk.config import settings
from taskdesk.db import get_db
from taskdesk.models.auth_magic_link import AuthMagicLink
from taskdesk.models.user import User
from taskdesk.schemas.auth import (
    LogoutIn,
    MeOut,
    RedeemIn,
    RefreshIn,
    RequestLinkIn,
    RequestLinkOut,
    TokenPairOut,
)
from taskdesk.ratelimit import rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

def _pair_out(pair: TokenPair) -> TokenPairOut:
    return TokenPairOut(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.expires_in,
        refresh_expires_at=pair.refresh_expires_at,
    )

@router.post("/request-link", response_model=RequestLinkOut)
def request_link(
    payload: RequestLinkIn,
    db: Session = Depends(get_db),
    _: None = Depends(
        rate_limit(
            "auth:request_link",
            limit_per_window=settings.rate_limit_auth_request_link_per_min,
            window_seconds=60,
        )
    ),
) -> RequestLinkOut:
    email = payload.email.lower().strip()

    user = db.scalar(select(User).where(User.email == email))
    if user is None:
        user = User(email=email)
        db.add(user)
        db.flush()

    token = new_opaque_token()

    db.add(
        AuthMagicLink(
            token_hash=hash_token(token),
            user_id=user.id,
            expires_at=magic_link_expiry(),
            used_at=None,
        )
    )
    db.commit()

    if settings.app_env == "prod":
        return RequestLinkOut(token=None, link=f"{settings.base_url}/auth/redeem?token={token}")

    return RequestLinkOut(sent=True, token=token, link=None)

@router.post("/redeem", response_model=TokenPairOut)
def redeem(
    payload: RedeemIn,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
    _: None = Depends(
        rate_limit(
            "auth:redeem",
            limit_per_window=settings.rate_limit_auth_redeem_per_min,
            window_seconds=60,
        )
    ),
) -> TokenPairOut:
    token = payload.token.strip()
    now = now_utc()

    # atomic single-use + expiry gate
    stmt = (
        update(AuthMagicLink)
        .where(AuthMagicLink.token_hash == hash_token(token))
        .where(AuthMagicLink.used_at.is_(None))
        .where(AuthMagicLink.expires_at > now)
        .values(used_at=now)
        .returning(AuthMagicLink.user_id)
        .execution_options(synchronize_session=False)
    )

    user_id = db.scalar(stmt)
    if user_id is None:
        db.rollback()
        row = db.get(AuthMagicLink, hash_token(token))
        if row is None:
            raise HTTPException(status_code=400, detail="invalid token")
        if row.used_at is not None:
            raise HTTPException(status_code=400, detail="token already used")
        if as_utc(row.expires_at) <= now:
            raise HTTPException(status_code=400, detail="token expired")
        raise HTTPException(status_code=400, detail="invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=400, detail="invalid token")

    # issue() commits the used_at stamp together with the new pair
    return _pair_out(issuer.issue(db, user, now=now))

@router.post("/refresh", response_model=TokenPairOut)
def refresh(
    payload: RefreshIn,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
    _: None = Depends(
        rate_limit(
            "auth:refresh",
            limit_per_window=settings.rate_limit_auth_refresh_per_min,
            window_seconds=60,
        )
    ),
) -> TokenPairOut:
    # InvalidToken / InactivityTimeout become 401 in error_handlers
    return _pair_out(issuer.rotate(db, payload.refresh_token))

@router.post("/logout")
def logout(
    payload: LogoutIn | None = None,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
    _: None = Depends(
        rate_limit(
            "auth:logout",
            limit_per_window=settings.rate_limit_auth_refresh_per_min,
            window_seconds=60,
        )
    ),
) -> dict:
    # the refresh token alone is enough, the access token may have run out
    if payload is not None and payload.refresh_token:
        user_id = issuer.revoke_token(db, payload.refresh_token)
        if user_id is not None:
            logger.info("user %s logged out", user_id)
        return {"logged_out": True}

    user = user_from_bearer(creds, db)
    issuer.revoke(db, user.id)
    logger.info("user %s logged out", user.id)
    return {"logged_out": True}

@router.post("/activity")
def activity(user: User = Depends(get_current_user)) -> dict:
    # get_current_user already recorded the activity
    return {"ok": True}

@router.get("/me", response_model=MeOut)
def me(user: User = Depends(get_current_user)) -> MeOut:
    return MeOut(id=user.id, email=user.email, role=user.role, department=user.department)
