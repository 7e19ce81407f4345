import uuid

from fastapi import Depends
from sqlalchemy.orm import Session

from taskdesk.audit import AuditSink, get_audit_sink
from taskdesk.auth.deps import get_caller
from taskdesk.db import get_db
from taskdesk.models.enums import TaskCategory
from taskdesk.rbac.guards import AccessGuard, Caller, DepartmentScopeGuard
from taskdesk.rbac.perms import DEPARTMENT_RULES, TASK_RULES
from taskdesk.store import SqlResourceStore, TaskSnapshot

class TaskContext:
    def __init__(self, caller: Caller, task: TaskSnapshot):
        self.caller = caller
        self.task = task

def get_store(db: Session = Depends(get_db)) -> SqlResourceStore:
    return SqlResourceStore(db)

def get_access_guard(audit: AuditSink = Depends(get_audit_sink)) -> AccessGuard:
    return AccessGuard(audit)

def get_department_guard(audit: AuditSink = Depends(get_audit_sink)) -> DepartmentScopeGuard:
    return DepartmentScopeGuard(audit)

def require_task_perm(action: str):
    if action not in TASK_RULES:
        raise RuntimeError(f"unknown permission action: {action}")

    def _checker(
        task_id: uuid.UUID,
        caller: Caller = Depends(get_caller),
        store: SqlResourceStore = Depends(get_store),
        guard: AccessGuard = Depends(get_access_guard),
        dept_guard: DepartmentScopeGuard = Depends(get_department_guard),
    ) -> TaskContext:
        task = store.find_by_id(task_id)
        guard.check(caller, action, task, resource_id=task_id)

        # work tasks are organization resources, scoped to the department
        if task.category == TaskCategory.work:
            dept_guard.check(caller, "tasks:write", task.department, resource_id=task_id)

        return TaskContext(caller=caller, task=task)

    return _checker

def require_department(action: str):
    if action not in DEPARTMENT_RULES:
        raise RuntimeError(f"unknown department action: {action}")

    def _checker(
        department: str,
        caller: Caller = Depends(get_caller),
        guard: DepartmentScopeGuard = Depends(get_department_guard),
    ) -> Caller:
        guard.check(caller, action, department)
        return caller

    return _checker
