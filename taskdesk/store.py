from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from taskdesk.models.enums import Role, TaskCategory
from taskdesk.models.task import Task
from taskdesk.models.user import User

@dataclass(frozen=True)
class TaskSnapshot:
    id: uuid.UUID
    created_by: uuid.UUID
    assigned_to: uuid.UUID | None
    category: TaskCategory
    department: str | None

@dataclass(frozen=True)
class UserSnapshot:
    id: uuid.UUID
    role: Role
    department: str | None

class SqlResourceStore:
    """Synchronous lookups scoped to one request's session."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, resource_id: uuid.UUID) -> TaskSnapshot | None:
        t = self.db.get(Task, resource_id)
        if t is None:
            return None
        return TaskSnapshot(
            id=t.id,
            created_by=t.created_by,
            assigned_to=t.assigned_to,
            category=t.category,
            department=t.department,
        )

    def find_user_by_id(self, user_id: uuid.UUID) -> UserSnapshot | None:
        u = self.db.get(User, user_id)
        if u is None:
            return None
        return UserSnapshot(id=u.id, role=u.role, department=u.department)
