"""
Request-scoped guards.

AccessGuard decides task actions from the caller, the action name and a
snapshot of the target. DepartmentScopeGuard confines non-owner callers to
their own department. Both are synchronous and hold no shared state.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from taskdesk.audit import AuditEvent, AuditSink
from taskdesk.errors import AuthorizationError, NotFoundError
from taskdesk.models.enums import Role, TaskCategory
from taskdesk.rbac.perms import DEPARTMENT_RULES, TASK_RULES, DepartmentRule, Ownership
from taskdesk.store import TaskSnapshot

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Caller:
    id: uuid.UUID
    role: Role
    department: str | None

def resolve_ownership(caller_id: uuid.UUID, target: TaskSnapshot) -> Ownership:
    return Ownership(
        is_creator=target.created_by == caller_id,
        is_assignee=target.assigned_to is not None and target.assigned_to == caller_id,
    )

class AccessGuard:
    def __init__(self, audit: AuditSink | None = None):
        self.audit = audit

    def _emit(self, event: AuditEvent) -> None:
        if self.audit is None:
            return
        try:
            self.audit.record(event)
        except Exception:
            # recording must never change the decision
            logger.exception("audit sink raised for %s", event.action)

    def check(
        self,
        caller: Caller,
        action: str,
        target: TaskSnapshot | None,
        resource_id: uuid.UUID | str | None = None,
    ) -> None:
        rule = TASK_RULES.get(action)
        if rule is None:
            raise RuntimeError(f"unknown permission action: {action}")

        rid = str(resource_id) if resource_id is not None else None
        if target is None:
            self._emit(AuditEvent(action, rid, caller.id, allowed=False, reason="not found"))
            raise NotFoundError("task")

        ownership = resolve_ownership(caller.id, target)
        if not rule.check(caller.role, target.category, ownership):
            reason = rule.deny_message(caller.role)
            self._emit(AuditEvent(action, rid or str(target.id), caller.id, allowed=False, reason=reason))
            raise AuthorizationError(reason)

        self._emit(AuditEvent(action, rid or str(target.id), caller.id, allowed=True))

    def check_create(
        self,
        caller: Caller,
        category: TaskCategory,
        assigned_to: uuid.UUID | None = None,
    ) -> None:
        """Creation has no target yet; only role and category matter."""
        own = Ownership(is_creator=True, is_assignee=False)
        steps = ["tasks:create"]
        # handing a new task to someone else is a reassignment
        if assigned_to is not None and assigned_to != caller.id:
            steps.append("tasks:reassign")

        for action in steps:
            rule = TASK_RULES[action]
            if not rule.check(caller.role, category, own):
                reason = rule.deny_message(caller.role)
                self._emit(AuditEvent(action, None, caller.id, allowed=False, reason=reason))
                raise AuthorizationError(reason)
        self._emit(AuditEvent("tasks:create", None, caller.id, allowed=True))

def _missing_department_message(role: Role) -> str:
    if role == Role.admin:
        return "Admin users must have a department assigned"
    return "Users must have a department assigned"

def department_denial(
    role: Role,
    caller_department: str | None,
    target_department: str | None,
    allowed_departments: Iterable[str] | None = None,
) -> str | None:
    """Return the denial reason, or None when access is allowed."""
    if role == Role.owner:
        return None

    # a missing department is a configuration error, never "all departments"
    if not caller_department:
        return _missing_department_message(role)

    if allowed_departments is not None:
        if caller_department not in set(allowed_departments):
            return "Access denied. Your department is not authorized for this action"
        return None

    if caller_department != target_department:
        return "Access denied. You can only access your own department"
    return None

def department_scope_allows(
    role: Role,
    caller_department: str | None,
    target_department: str | None,
    allowed_departments: Iterable[str] | None = None,
) -> bool:
    return department_denial(role, caller_department, target_department, allowed_departments) is None

def check_department_scope(
    role: Role,
    caller_department: str | None,
    target_department: str | None,
    allowed_departments: Iterable[str] | None = None,
) -> None:
    reason = department_denial(role, caller_department, target_department, allowed_departments)
    if reason is not None:
        raise AuthorizationError(reason)

class DepartmentScopeGuard:
    def __init__(self, audit: AuditSink | None = None):
        self.audit = audit

    def check(
        self,
        caller: Caller,
        action: str,
        target_department: str | None,
        resource_id: uuid.UUID | str | None = None,
    ) -> None:
        rule: DepartmentRule | None = DEPARTMENT_RULES.get(action)
        if rule is None:
            raise RuntimeError(f"unknown department action: {action}")

        reason: str | None = None
        if caller.role not in rule.allowed_roles:
            allowed = ", ".join(sorted(r.value for r in rule.allowed_roles))
            reason = f"Access denied. Required roles: {allowed}"
        else:
            reason = department_denial(
                caller.role,
                caller.department,
                target_department,
                rule.allowed_departments if not rule.require_own_department else None,
            )

        if self.audit is not None:
            try:
                self.audit.record(
                    AuditEvent(
                        action,
                        str(resource_id) if resource_id is not None else None,
                        caller.id,
                        allowed=reason is None,
                        reason=reason,
                        department=target_department,
                    )
                )
            except Exception:
                logger.exception("audit sink raised for %s", action)

        if reason is not None:
            raise AuthorizationError(reason)
