"""
Task permission decisions.

Every function here takes primitives only: role, category and ownership
flags. Callers resolve ownership before asking.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from taskdesk.models.enums import Role, TaskCategory

def can_edit(role: Role, category: TaskCategory, is_creator: bool) -> bool:
    if role in (Role.owner, Role.admin):
        return True
    if role == Role.viewer:
        return category == TaskCategory.personal and is_creator
    return False

def can_delete(role: Role, category: TaskCategory, is_creator: bool) -> bool:
    # deletion is owner-only; admins edit and reassign but never delete
    if role == Role.owner:
        return True
    if role == Role.viewer:
        return category == TaskCategory.personal and is_creator
    return False

def can_reassign(role: Role) -> bool:
    return role in (Role.owner, Role.admin)

def can_create(role: Role, category: TaskCategory) -> bool:
    if role in (Role.owner, Role.admin):
        return True
    if role == Role.viewer:
        return category == TaskCategory.personal
    return False

def can_view_in_my_tasks(
    role: Role, category: TaskCategory, is_creator: bool, is_assignee: bool
) -> bool:
    if not (is_creator or is_assignee):
        return False
    if role not in (Role.owner, Role.admin, Role.viewer):
        return False
    if category == TaskCategory.work:
        return True
    # personal tasks stay private to their author, even when assigned out
    return is_creator

def assignable_roles(role: Role) -> list[Role]:
    if role == Role.owner:
        return [Role.admin, Role.viewer]
    if role == Role.admin:
        return [Role.viewer]
    return []

@dataclass(frozen=True)
class Ownership:
    is_creator: bool
    is_assignee: bool

@dataclass(frozen=True)
class TaskRule:
    check: Callable[[Role, TaskCategory, Ownership], bool]
    deny_message: Callable[[Role], str]

def _edit_message(role: Role) -> str:
    msg = "Access denied. You cannot edit this task."
    if role == Role.viewer:
        msg += " Viewers can only edit personal tasks they created."
    return msg

def _delete_message(role: Role) -> str:
    msg = "Access denied. You cannot delete this task."
    if role == Role.admin:
        msg += " Only Owner can delete tasks."
    elif role == Role.viewer:
        msg += " Viewers can only delete personal tasks they created."
    return msg

def _create_message(role: Role) -> str:
    msg = "Access denied. You cannot create this task."
    if role == Role.viewer:
        msg += " Viewers can only create personal tasks."
    return msg

# action -> rule; the complete task rule set lives here
TASK_RULES: dict[str, TaskRule] = {
    "tasks:create": TaskRule(
        check=lambda role, category, own: can_create(role, category),
        deny_message=_create_message,
    ),
    "tasks:edit": TaskRule(
        check=lambda role, category, own: can_edit(role, category, own.is_creator),
        deny_message=_edit_message,
    ),
    "tasks:delete": TaskRule(
        check=lambda role, category, own: can_delete(role, category, own.is_creator),
        deny_message=_delete_message,
    ),
    "tasks:reassign": TaskRule(
        check=lambda role, category, own: can_reassign(role),
        deny_message=lambda role: "Access denied. You cannot reassign tasks.",
    ),
    "tasks:view": TaskRule(
        check=lambda role, category, own: can_view_in_my_tasks(
            role, category, own.is_creator, own.is_assignee
        ),
        deny_message=lambda role: "Access denied. You cannot view this task.",
    ),
}

@dataclass(frozen=True)
class DepartmentRule:
    allowed_roles: frozenset[Role]
    require_own_department: bool = False
    allowed_departments: frozenset[str] | None = None

_ADMIN_OR_OWNER = frozenset({Role.owner, Role.admin})

DEPARTMENT_RULES: dict[str, DepartmentRule] = {
    "departments:tasks": DepartmentRule(allowed_roles=_ADMIN_OR_OWNER, require_own_department=True),
    "departments:members": DepartmentRule(allowed_roles=_ADMIN_OR_OWNER, require_own_department=True),
    "departments:analytics": DepartmentRule(allowed_roles=_ADMIN_OR_OWNER, require_own_department=True),
    # work-task writes by non-owners stay inside the caller's department
    "tasks:write": DepartmentRule(
        allowed_roles=frozenset({Role.owner, Role.admin, Role.viewer}),
        require_own_department=True,
    ),
}
