import uuid
from pydantic import BaseModel

from taskdesk.models.enums import TaskCategory, TaskPriority, TaskStatus

class TaskCreateIn(BaseModel):
    title: str
    description: str | None = None
    category: TaskCategory
    priority: TaskPriority = TaskPriority.medium
    assigned_to: uuid.UUID | None = None
    # owners may file work tasks into any department
    department: str | None = None

class TaskUpdateIn(BaseModel):
    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assigned_to: uuid.UUID | None = None

class ReassignIn(BaseModel):
    assigned_to: uuid.UUID | None

class TaskOut(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    category: TaskCategory
    department: str | None
    created_by: uuid.UUID
    assigned_to: uuid.UUID | None
