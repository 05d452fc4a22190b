"""Regras de papel e tenant, testadas direto na função pura."""

from uuid import uuid4

import pytest

from taskboard.core.authorization import Action, AuthContext, Resource, authorize, ensure_allowed, is_consistent
from taskboard.core.errors import AccessDenied

TENANT_A = uuid4()
TENANT_B = uuid4()

SUPER = AuthContext(account_id=uuid4(), tenant_id=None, role="super_admin")
ADMIN_A = AuthContext(account_id=uuid4(), tenant_id=TENANT_A, role="tenant_admin")
USER_A = AuthContext(account_id=uuid4(), tenant_id=TENANT_A, role="user")
USER_B = AuthContext(account_id=uuid4(), tenant_id=TENANT_B, role="user")


def test_inconsistent_contexts_are_always_denied():
    tenantless_user = AuthContext(account_id=uuid4(), tenant_id=None, role="user")
    super_with_tenant = AuthContext(account_id=uuid4(), tenant_id=TENANT_A, role="super_admin")
    unknown_role = AuthContext(account_id=uuid4(), tenant_id=TENANT_A, role="owner")

    for context in (tenantless_user, super_with_tenant, unknown_role):
        assert not is_consistent(context)
        assert not authorize(context, Action.PROJECT_LIST, Resource(tenant_id=TENANT_A))
        assert not authorize(context, Action.TENANT_LIST)


@pytest.mark.parametrize(
    "action",
    [
        Action.TENANT_VIEW,
        Action.USER_LIST,
        Action.PROJECT_VIEW,
        Action.PROJECT_UPDATE,
        Action.TASK_CREATE,
        Action.TASK_UPDATE,
        Action.TASK_DELETE,
    ],
)
def test_cross_tenant_access_is_denied(action):
    decision = authorize(ADMIN_A, action, Resource(tenant_id=TENANT_B, owner_id=ADMIN_A.account_id))
    assert not decision.allowed


def test_super_admin_reaches_any_tenant():
    for action in (Action.TENANT_VIEW, Action.USER_LIST, Action.PROJECT_UPDATE, Action.TASK_LIST):
        assert authorize(SUPER, action, Resource(tenant_id=TENANT_B))


def test_super_admin_cannot_create_projects_or_users():
    project = authorize(SUPER, Action.PROJECT_CREATE, Resource(tenant_id=TENANT_A))
    assert not project.allowed
    assert project.reason == "Super admin cannot create projects"
    assert not authorize(SUPER, Action.USER_CREATE, Resource(tenant_id=TENANT_A))


def test_tenant_list_is_super_admin_only():
    assert authorize(SUPER, Action.TENANT_LIST)
    denied = authorize(ADMIN_A, Action.TENANT_LIST)
    assert not denied
    assert denied.reason == "Access denied. Super admin only."


def test_tenant_admin_may_only_rename_own_tenant():
    assert authorize(ADMIN_A, Action.TENANT_UPDATE, Resource(tenant_id=TENANT_A, fields=frozenset({"name"})))

    plan_change = authorize(
        ADMIN_A,
        Action.TENANT_UPDATE,
        Resource(tenant_id=TENANT_A, fields=frozenset({"name", "subscription_plan"})),
    )
    assert not plan_change
    assert "Only super admin" in plan_change.reason

    assert authorize(
        SUPER,
        Action.TENANT_UPDATE,
        Resource(tenant_id=TENANT_A, fields=frozenset({"max_users", "status"})),
    )


def test_plain_user_has_no_tenant_access():
    assert not authorize(USER_A, Action.TENANT_VIEW, Resource(tenant_id=TENANT_A))
    assert not authorize(USER_A, Action.TENANT_UPDATE, Resource(tenant_id=TENANT_A, fields=frozenset({"name"})))


def test_user_updates_only_own_name():
    own = Resource(tenant_id=TENANT_A, owner_id=USER_A.account_id, fields=frozenset({"full_name"}))
    assert authorize(USER_A, Action.USER_UPDATE, own)

    own_role = Resource(tenant_id=TENANT_A, owner_id=USER_A.account_id, fields=frozenset({"role"}))
    assert authorize(USER_A, Action.USER_UPDATE, own_role).reason == "Insufficient permissions"

    other = Resource(tenant_id=TENANT_A, owner_id=uuid4(), fields=frozenset({"full_name"}))
    assert not authorize(USER_A, Action.USER_UPDATE, other)

    assert authorize(ADMIN_A, Action.USER_UPDATE, Resource(tenant_id=TENANT_A, owner_id=uuid4(), fields=frozenset({"role", "is_active"})))


def test_nobody_deletes_themselves():
    for context in (SUPER, ADMIN_A):
        decision = authorize(context, Action.USER_DELETE, Resource(tenant_id=context.tenant_id, owner_id=context.account_id))
        assert not decision
        assert decision.reason == "Cannot delete yourself"

    assert authorize(ADMIN_A, Action.USER_DELETE, Resource(tenant_id=TENANT_A, owner_id=USER_A.account_id))
    assert not authorize(USER_A, Action.USER_DELETE, Resource(tenant_id=TENANT_A, owner_id=uuid4()))


def test_project_changes_by_plain_user_require_ownership():
    mine = Resource(tenant_id=TENANT_A, owner_id=USER_A.account_id)
    theirs = Resource(tenant_id=TENANT_A, owner_id=uuid4())
    orphan = Resource(tenant_id=TENANT_A, owner_id=None)

    assert authorize(USER_A, Action.PROJECT_UPDATE, mine)
    assert authorize(USER_A, Action.PROJECT_DELETE, mine)

    denied = authorize(USER_A, Action.PROJECT_UPDATE, theirs)
    assert not denied
    assert denied.reason == "Access denied. Only project creator or tenant admin can update."
    assert authorize(USER_A, Action.PROJECT_DELETE, theirs).reason.endswith("can delete.")
    assert not authorize(USER_A, Action.PROJECT_UPDATE, orphan)

    assert authorize(ADMIN_A, Action.PROJECT_DELETE, theirs)


def test_any_member_works_on_tasks_of_own_tenant():
    for action in (Action.TASK_CREATE, Action.TASK_LIST, Action.TASK_UPDATE, Action.TASK_DELETE):
        assert authorize(USER_A, action, Resource(tenant_id=TENANT_A))
        assert not authorize(USER_B, action, Resource(tenant_id=TENANT_A))


def test_resource_without_tenant_is_never_shared():
    assert not authorize(USER_A, Action.PROJECT_VIEW, Resource())


def test_ensure_allowed_raises_access_denied_with_reason():
    with pytest.raises(AccessDenied) as exc_info:
        ensure_allowed(USER_A, Action.TENANT_LIST)
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Access denied. Super admin only."

    ensure_allowed(SUPER, Action.TENANT_LIST)
