import uuid

from fastapi import APIRouter, Depends
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from taskdesk.auth.deps import get_caller
from taskdesk.db import get_db
from taskdesk.errors import NotFoundError
from taskdesk.models.enums import Role, TaskCategory
from taskdesk.models.task import Task
from taskdesk.rbac.deps import (
    TaskContext,
    get_access_guard,
    get_department_guard,
    get_store,
    require_task_perm,
)
from taskdesk.rbac.guards import AccessGuard, Caller, DepartmentScopeGuard, resolve_ownership
from taskdesk.rbac.perms import can_view_in_my_tasks
from taskdesk.schemas.tasks import ReassignIn, TaskCreateIn, TaskOut, TaskUpdateIn
from taskdesk.store import SqlResourceStore, TaskSnapshot

router = APIRouter(prefix="/tasks", tags=["tasks"])

def task_out(t: Task) -> TaskOut:
    return TaskOut(
        id=t.id,
        title=t.title,
        description=t.description,
        status=t.status,
        priority=t.priority,
        category=t.category,
        department=t.department,
        created_by=t.created_by,
        assigned_to=t.assigned_to,
    )

def _load(db: Session, task_id: uuid.UUID) -> Task:
    t = db.get(Task, task_id)
    if t is None:
        raise NotFoundError("task")
    return t

def _require_assignee(store: SqlResourceStore, user_id: uuid.UUID | None) -> None:
    if user_id is not None and store.find_user_by_id(user_id) is None:
        raise NotFoundError("user")

@router.post("", response_model=TaskOut)
def create_task(
    payload: TaskCreateIn,
    caller: Caller = Depends(get_caller),
    guard: AccessGuard = Depends(get_access_guard),
    dept_guard: DepartmentScopeGuard = Depends(get_department_guard),
    store: SqlResourceStore = Depends(get_store),
    db: Session = Depends(get_db),
) -> TaskOut:
    guard.check_create(caller, payload.category, assigned_to=payload.assigned_to)
    _require_assignee(store, payload.assigned_to)

    department = caller.department
    if caller.role == Role.owner and payload.department is not None:
        department = payload.department
    if payload.category == TaskCategory.work:
        dept_guard.check(caller, "tasks:write", department)

    t = Task(
        title=payload.title,
        description=payload.description,
        category=payload.category,
        priority=payload.priority,
        department=department,
        created_by=caller.id,
        assigned_to=payload.assigned_to,
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return task_out(t)

@router.get("/mine", response_model=list[TaskOut])
def my_tasks(
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
) -> list[TaskOut]:
    q = (
        select(Task)
        .where(or_(Task.created_by == caller.id, Task.assigned_to == caller.id))
        .order_by(Task.created_at.desc())
    )
    rows = db.scalars(q).all()
    out = []
    for r in rows:
        own = resolve_ownership(caller.id, TaskSnapshot(r.id, r.created_by, r.assigned_to, r.category, r.department))
        if can_view_in_my_tasks(caller.role, r.category, own.is_creator, own.is_assignee):
            out.append(task_out(r))
    return out

@router.patch("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: uuid.UUID,
    payload: TaskUpdateIn,
    ctx: TaskContext = Depends(require_task_perm("tasks:edit")),
    guard: AccessGuard = Depends(get_access_guard),
    store: SqlResourceStore = Depends(get_store),
    db: Session = Depends(get_db),
) -> TaskOut:
    t = _load(db, task_id)

    # allow explicit unassign by sending null
    if "assigned_to" in payload.model_fields_set and payload.assigned_to != t.assigned_to:
        guard.check(ctx.caller, "tasks:reassign", ctx.task, resource_id=task_id)
        _require_assignee(store, payload.assigned_to)
        t.assigned_to = payload.assigned_to

    if payload.title is not None:
        t.title = payload.title
    if payload.description is not None:
        t.description = payload.description
    if payload.status is not None:
        t.status = payload.status
    if payload.priority is not None:
        t.priority = payload.priority

    db.add(t)
    db.commit()
    db.refresh(t)
    return task_out(t)

@router.post("/{task_id}/reassign", response_model=TaskOut)
def reassign_task(
    task_id: uuid.UUID,
    payload: ReassignIn,
    ctx: TaskContext = Depends(require_task_perm("tasks:reassign")),
    store: SqlResourceStore = Depends(get_store),
    db: Session = Depends(get_db),
) -> TaskOut:
    t = _load(db, task_id)
    _require_assignee(store, payload.assigned_to)
    t.assigned_to = payload.assigned_to
    db.add(t)
    db.commit()
    db.refresh(t)
    return task_out(t)

@router.delete("/{task_id}")
def delete_task(
    task_id: uuid.UUID,
    ctx: TaskContext = Depends(require_task_perm("tasks:delete")),
    db: Session = Depends(get_db),
) -> dict:
    t = _load(db, task_id)
    db.delete(t)
    db.commit()
    return {"deleted": True}
