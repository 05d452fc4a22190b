from taskboard.models.audit_log import AuditLog
from taskboard.models.project import Project
from taskboard.models.task import Task
from taskboard.models.tenant import Tenant
from taskboard.models.user import User

__all__ = ["AuditLog", "Project", "Task", "Tenant", "User"]
