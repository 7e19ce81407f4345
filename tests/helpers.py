import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from taskdesk.models.enums import Role, TaskCategory
from taskdesk.models.task import Task
from taskdesk.models.user import User

def login(client, email: str) -> dict:
    r = client.post("/auth/request-link", json={"email": email})
    assert r.status_code == 200, r.text
    token = r.json().get("token")
    assert token, f"no token returned: {r.json()}"

    r = client.post("/auth/redeem", json={"token": token})
    assert r.status_code == 200, r.text
    return r.json()

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def get_user(db: Session, email: str) -> User:
    user = db.scalar(select(User).where(User.email == email.lower()))
    assert user is not None
    return user

def set_profile(db: Session, email: str, role: Role, department: str | None) -> uuid.UUID:
    # roles and departments are assigned out of band, straight in the db
    user = get_user(db, email)
    user.role = role
    user.department = department
    db.add(user)
    db.commit()
    return user.id

def make_user(db: Session, email: str, role: Role = Role.viewer, department: str | None = None) -> User:
    user = User(email=email, role=role, department=department)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def make_task(
    db: Session,
    created_by: uuid.UUID,
    category: TaskCategory,
    department: str | None = None,
    assigned_to: uuid.UUID | None = None,
    title: str = "t",
) -> Task:
    t = Task(
        title=title,
        category=category,
        department=department,
        created_by=created_by,
        assigned_to=assigned_to,
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return t
