import uuid

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from taskdesk.auth.session_clock import SessionClock, get_session_clock
from taskdesk.auth.tokens import decode_access_token
from taskdesk.db import get_db
from taskdesk.models.user import User
from taskdesk.rbac.guards import Caller

bearer = HTTPBearer(auto_error=False)

def user_from_bearer(creds: HTTPAuthorizationCredentials | None, db: Session) -> User:
    if creds is None or creds.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="missing bearer token")

    try:
        payload = decode_access_token(creds.credentials)
        user_id = uuid.UUID(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="token expired")
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="user not found")
    return user

def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
    clock: SessionClock = Depends(get_session_clock),
) -> User:
    user = user_from_bearer(creds, db)
    # any authenticated request counts as activity
    clock.touch(db, user.id)
    return user

def get_caller(user: User = Depends(get_current_user)) -> Caller:
    # role and department come from the row, never from token claims
    return Caller(id=user.id, role=user.role, department=user.department)
