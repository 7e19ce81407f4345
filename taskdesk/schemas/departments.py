import uuid
from pydantic import BaseModel

from taskdesk.models.enums import Role

class MemberOut(BaseModel):
    id: uuid.UUID
    email: str
    role: Role
    assignable: bool

class DepartmentSummaryOut(BaseModel):
    department: str
    total: int
    by_status: dict[str, int]
