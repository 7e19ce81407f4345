from enum import Enum

class Role(str, Enum):
    owner = "owner"
    admin = "admin"
    viewer = "viewer"

class TaskCategory(str, Enum):
    work = "work"
    personal = "personal"

class TaskStatus(str, Enum):
    todo = "todo"
    started = "started"
    ongoing = "ongoing"
    completed = "completed"

class TaskPriority(str, Enum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"
