"""Role and tenant authorization decisions.

Every access rule of the API lives in :func:`authorize`, a pure function of
the authenticated context, the requested action and a description of the
target resource. Routers load the resource, describe it with
:class:`Resource` and call :func:`ensure_allowed`; nothing else in the code
base compares roles or tenant ids.

Role hierarchy::

    super_admin  (platform wide, never bound to a tenant)
      tenant_admin  (full control inside its own tenant)
        user        (own tenant only, restricted writes)

Tenant scoping is by construction: apart from ``super_admin``, a rule only
allows when ``context.tenant_id == resource.tenant_id``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional
from uuid import UUID

from taskboard.core.errors import AccessDenied
from taskboard.models.user import ROLE_SUPER_ADMIN, ROLE_TENANT_ADMIN, ROLES


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller, built from the stored account."""

    account_id: UUID
    tenant_id: Optional[UUID]
    role: str

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN


@dataclass(frozen=True)
class Resource:
    """What the caller wants to touch.

    ``owner_id`` is the project creator, or the target account for user
    actions. ``fields`` lists the attributes an update would change.
    """

    tenant_id: Optional[UUID] = None
    owner_id: Optional[UUID] = None
    fields: FrozenSet[str] = field(default_factory=frozenset)


class Action(str, Enum):
    TENANT_VIEW = "tenant.view"
    TENANT_UPDATE = "tenant.update"
    TENANT_LIST = "tenant.list"
    USER_CREATE = "user.create"
    USER_LIST = "user.list"
    USER_UPDATE = "user.update"
    USER_DELETE = "user.delete"
    PROJECT_CREATE = "project.create"
    PROJECT_VIEW = "project.view"
    PROJECT_LIST = "project.list"
    PROJECT_UPDATE = "project.update"
    PROJECT_DELETE = "project.delete"
    TASK_CREATE = "task.create"
    TASK_LIST = "task.list"
    TASK_UPDATE = "task.update"
    TASK_DELETE = "task.delete"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)

# campos que um tenant_admin pode alterar no próprio tenant
TENANT_ADMIN_TENANT_FIELDS = frozenset({"name"})
# campos que um user comum pode alterar na própria conta
SELF_SERVICE_USER_FIELDS = frozenset({"full_name"})


def deny(reason: str = "Access denied") -> Decision:
    return Decision(False, reason)


def _same_tenant(context: AuthContext, resource: Resource) -> bool:
    return resource.tenant_id is not None and context.tenant_id == resource.tenant_id


def _tenant_view(context: AuthContext, resource: Resource) -> Decision:
    if context.is_super_admin:
        return ALLOW
    if context.role == ROLE_TENANT_ADMIN and _same_tenant(context, resource):
        return ALLOW
    return deny()


def _tenant_update(context: AuthContext, resource: Resource) -> Decision:
    if context.is_super_admin:
        return ALLOW
    if context.role != ROLE_TENANT_ADMIN:
        return deny("Insufficient permissions")
    if not _same_tenant(context, resource):
        return deny()
    if not resource.fields <= TENANT_ADMIN_TENANT_FIELDS:
        return deny("Insufficient permissions. Only super admin can update subscription settings.")
    return ALLOW


def _tenant_list(context: AuthContext, resource: Resource) -> Decision:
    if context.is_super_admin:
        return ALLOW
    return deny("Access denied. Super admin only.")


def _user_create(context: AuthContext, resource: Resource) -> Decision:
    if context.role == ROLE_TENANT_ADMIN and _same_tenant(context, resource):
        return ALLOW
    return deny("Insufficient permissions. Only tenant admin can add users.")


def _user_list(context: AuthContext, resource: Resource) -> Decision:
    if context.is_super_admin:
        return ALLOW
    if context.role == ROLE_TENANT_ADMIN and _same_tenant(context, resource):
        return ALLOW
    return deny()


def _user_update(context: AuthContext, resource: Resource) -> Decision:
    if context.is_super_admin:
        return ALLOW
    if not _same_tenant(context, resource):
        return deny()
    if context.role == ROLE_TENANT_ADMIN:
        return ALLOW
    if resource.owner_id != context.account_id:
        return deny()
    if not resource.fields <= SELF_SERVICE_USER_FIELDS:
        return deny("Insufficient permissions")
    return ALLOW


def _user_delete(context: AuthContext, resource: Resource) -> Decision:
    # nenhuma conta pode se remover, independente do papel
    if resource.owner_id == context.account_id:
        return deny("Cannot delete yourself")
    if context.is_super_admin:
        return ALLOW
    if context.role != ROLE_TENANT_ADMIN:
        return deny("Insufficient permissions")
    if not _same_tenant(context, resource):
        return deny()
    return ALLOW


def _project_create(context: AuthContext, resource: Resource) -> Decision:
    if context.is_super_admin:
        return deny("Super admin cannot create projects")
    if _same_tenant(context, resource):
        return ALLOW
    return deny()


def _project_modify(verb: str) -> Callable[[AuthContext, Resource], Decision]:
    def rule(context: AuthContext, resource: Resource) -> Decision:
        if context.is_super_admin:
            return ALLOW
        if not _same_tenant(context, resource):
            return deny()
        if context.role == ROLE_TENANT_ADMIN:
            return ALLOW
        if resource.owner_id is not None and resource.owner_id == context.account_id:
            return ALLOW
        return deny(f"Access denied. Only project creator or tenant admin can {verb}.")

    return rule


def _tenant_member(context: AuthContext, resource: Resource) -> Decision:
    if context.is_super_admin or _same_tenant(context, resource):
        return ALLOW
    return deny()


_RULES: Dict[Action, Callable[[AuthContext, Resource], Decision]] = {
    Action.TENANT_VIEW: _tenant_view,
    Action.TENANT_UPDATE: _tenant_update,
    Action.TENANT_LIST: _tenant_list,
    Action.USER_CREATE: _user_create,
    Action.USER_LIST: _user_list,
    Action.USER_UPDATE: _user_update,
    Action.USER_DELETE: _user_delete,
    Action.PROJECT_CREATE: _project_create,
    Action.PROJECT_VIEW: _tenant_member,
    Action.PROJECT_LIST: _tenant_member,
    Action.PROJECT_UPDATE: _project_modify("update"),
    Action.PROJECT_DELETE: _project_modify("delete"),
    Action.TASK_CREATE: _tenant_member,
    Action.TASK_LIST: _tenant_member,
    Action.TASK_UPDATE: _tenant_member,
    Action.TASK_DELETE: _tenant_member,
}


def is_consistent(context: AuthContext) -> bool:
    """super_admin never has a tenant; every other role must have one."""
    if context.role not in ROLES:
        return False
    if context.role == ROLE_SUPER_ADMIN:
        return context.tenant_id is None
    return context.tenant_id is not None


def authorize(context: AuthContext, action: Action, resource: Optional[Resource] = None) -> Decision:
    """Decide whether ``context`` may perform ``action`` on ``resource``."""
    if not is_consistent(context):
        return deny()
    rule = _RULES.get(action)
    if rule is None:
        return deny()
    return rule(context, resource or Resource())


def ensure_allowed(context: AuthContext, action: Action, resource: Optional[Resource] = None) -> None:
    """Raise :class:`AccessDenied` unless :func:`authorize` allows."""
    decision = authorize(context, action, resource)
    if not decision.allowed:
        raise AccessDenied(decision.reason)


__all__ = [
    "Action",
    "AuthContext",
    "Decision",
    "Resource",
    "authorize",
    "ensure_allowed",
    "is_consistent",
]
