import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskdesk.db import SessionLocal
from taskdesk.models.enums import Role, TaskCategory
from taskdesk.models.task import Task
from taskdesk.models.user import User

@dataclass
class SeedResult:
    owner_email: str
    admin_email: str
    viewer_email: str
    department: str
    work_task_id: uuid.UUID
    personal_task_id: uuid.UUID

def get_or_create_user(db: Session, email: str, role: Role, department: str | None) -> User:
    email = email.lower().strip()
    u = db.scalar(select(User).where(User.email == email))
    if u is None:
        u = User(email=email, role=role, department=department)
        db.add(u)
        db.flush()
    else:
        if u.role != role or u.department != department:
            u.role = role
            u.department = department
            db.add(u)
            db.flush()
    return u

def get_or_create_task(
    db: Session,
    title: str,
    category: TaskCategory,
    department: str | None,
    created_by: uuid.UUID,
    assigned_to: uuid.UUID | None,
) -> Task:
    t = db.scalar(select(Task).where(Task.title == title, Task.created_by == created_by))
    if t is None:
        t = Task(
            title=title,
            category=category,
            department=department,
            created_by=created_by,
            assigned_to=assigned_to,
        )
        db.add(t)
        db.flush()
    else:
        # keep it stable if you re-run seed
        if t.assigned_to != assigned_to:
            t.assigned_to = assigned_to
            db.add(t)
            db.flush()
    return t

def seed(department: str = "engineering") -> SeedResult:
    db = SessionLocal()
    try:
        owner = get_or_create_user(db, "owner@example.com", Role.owner, None)
        admin = get_or_create_user(db, "admin@example.com", Role.admin, department)
        viewer = get_or_create_user(db, "viewer@example.com", Role.viewer, department)

        work = get_or_create_task(
            db,
            "seeded work task",
            TaskCategory.work,
            department,
            created_by=admin.id,
            assigned_to=viewer.id,
        )
        personal = get_or_create_task(
            db,
            "seeded personal task",
            TaskCategory.personal,
            department,
            created_by=viewer.id,
            assigned_to=None,
        )

        db.commit()

        return SeedResult(
            owner_email=owner.email,
            admin_email=admin.email,
            viewer_email=viewer.email,
            department=department,
            work_task_id=work.id,
            personal_task_id=personal.id,
        )
    finally:
        db.close()

if __name__ == "__main__":
    r = seed()
    print("seed complete")
    print(f"department={r.department}")
    print(f"work_task_id={r.work_task_id}")
    print(f"personal_task_id={r.personal_task_id}")
    print("users:")
    print(f"  owner:  {r.owner_email}")
    print(f"  admin:  {r.admin_email}")
    print(f"  viewer: {r.viewer_email}")
