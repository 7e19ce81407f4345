from taskdesk.models.audit_log import AuditLog
from taskdesk.models.auth_magic_link import AuthMagicLink
from taskdesk.models.base import Base
from taskdesk.models.task import Task
from taskdesk.models.user import User

__all__ = ["Base", "User", "Task", "AuthMagicLink", "AuditLog"]
