import hashlib
import hmac
import secrets
import uuid
import jwt
from datetime import datetime, timedelta, timezone
from taskdesk.config import settings
from taskdesk.models.enums import Role

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt

def new_opaque_token() -> str:
    # 32 bytes = 256 bits
    return secrets.token_urlsafe(32)

def hash_token(token: str) -> str:
    msg = token.encode("utf-8")
    key = settings.token_pepper.encode("utf-8")
    digest = hmac.new(key, msg, hashlib.sha256).hexdigest()
    return digest

def magic_link_expiry() -> datetime:
    return now_utc() + timedelta(minutes=settings.magic_link_expires_minutes)

def refresh_token_expiry(now: datetime | None = None) -> datetime:
    return (now or now_utc()) + timedelta(days=settings.refresh_token_ttl_days)

def issue_access_token(
    user_id: str | uuid.UUID,
    role: Role,
    department: str | None,
    now: datetime | None = None,
) -> str:
    iat = now or now_utc()
    exp = iat + timedelta(seconds=settings.access_token_ttl_seconds)
    payload = {
        "sub": str(user_id),
        "role": Role(role).value,
        "department": department,
        "type": "access",
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(iat.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")

def decode_access_token(token: str) -> dict:
    # exp is enforced with no leeway; access tokens are never renewed in place
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "sub"]},
    )
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("not an access token")
    return payload
