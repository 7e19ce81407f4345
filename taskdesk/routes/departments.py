from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from taskdesk.db import get_db
from taskdesk.models.enums import TaskCategory
from taskdesk.models.task import Task
from taskdesk.models.user import User
from taskdesk.rbac.deps import require_department
from taskdesk.rbac.guards import Caller
from taskdesk.rbac.perms import assignable_roles
from taskdesk.routes.tasks import task_out
from taskdesk.schemas.departments import DepartmentSummaryOut, MemberOut
from taskdesk.schemas.tasks import TaskOut

router = APIRouter(prefix="/departments/{department}", tags=["departments"])

@router.get("/tasks", response_model=list[TaskOut])
def list_department_tasks(
    department: str,
    caller: Caller = Depends(require_department("departments:tasks")),
    db: Session = Depends(get_db),
) -> list[TaskOut]:
    # personal tasks never show up in department listings
    q = (
        select(Task)
        .where(Task.department == department, Task.category == TaskCategory.work)
        .order_by(Task.created_at.desc())
    )
    return [task_out(r) for r in db.scalars(q).all()]

@router.get("/members", response_model=list[MemberOut])
def list_members(
    department: str,
    caller: Caller = Depends(require_department("departments:members")),
    db: Session = Depends(get_db),
) -> list[MemberOut]:
    assignable = set(assignable_roles(caller.role))
    rows = db.scalars(select(User).where(User.department == department).order_by(User.email)).all()
    return [
        MemberOut(id=u.id, email=u.email, role=u.role, assignable=u.role in assignable)
        for u in rows
    ]

@router.get("/summary", response_model=DepartmentSummaryOut)
def department_summary(
    department: str,
    caller: Caller = Depends(require_department("departments:analytics")),
    db: Session = Depends(get_db),
) -> DepartmentSummaryOut:
    q = (
        select(Task.status, func.count())
        .where(Task.department == department, Task.category == TaskCategory.work)
        .group_by(Task.status)
    )
    by_status = {status.value: int(n) for status, n in db.execute(q).all()}
    return DepartmentSummaryOut(department=department, total=sum(by_status.values()), by_status=by_status)
