from datetime import datetime

import uuid
from pydantic import BaseModel, EmailStr

from taskdesk.models.enums import Role

class RequestLinkIn(BaseModel):
    email: EmailStr

class RequestLinkOut(BaseModel):
    sent: bool = True
    token: str | None = None
    link: str | None = None

class RedeemIn(BaseModel):
    token: str

class LogoutIn(BaseModel):
    refresh_token: str | None = None

class RefreshIn(BaseModel):
    refresh_token: str

class TokenPairOut(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    refresh_expires_at: datetime

class MeOut(BaseModel):
    id: uuid.UUID
    email: str
    role: Role
    department: str | None
