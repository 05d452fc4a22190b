from fastapi import status

from conftest import auth_headers, create_project, create_task, create_user
from taskboard.models import AuditLog, Project, Task, User


def _new_user(email="carol@acme.com", **overrides):
    payload = {"email": email, "password": "Password1", "fullName": "Carol"}
    payload.update(overrides)
    return payload


def test_tenant_admin_adds_user(client, db_session, acme):
    tenant_id = acme["tenant"].id
    before = db_session.query(User).filter(User.tenant_id == tenant_id).count()

    response = client.post(
        f"/tenants/{acme['tenant'].id}/users",
        json=_new_user(role="tenant_admin"),
        headers=auth_headers(acme["admin"]),
    )

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["message"] == "User created successfully"
    assert body["data"]["email"] == "carol@acme.com"
    assert body["data"]["role"] == "tenant_admin"
    assert body["data"]["isActive"] is True
    assert "passwordHash" not in body["data"]
    assert db_session.query(User).filter(User.tenant_id == tenant_id).count() == before + 1

    audit = db_session.query(AuditLog).filter(AuditLog.action == "CREATE_USER").one()
    assert audit.entity_id == body["data"]["id"]
    assert audit.user_id == acme["admin"].id
    assert audit.ip_address is not None


def test_plain_user_cannot_add_users(client, acme):
    response = client.post(
        f"/tenants/{acme['tenant'].id}/users",
        json=_new_user(),
        headers=auth_headers(acme["alice"]),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "Insufficient permissions. Only tenant admin can add users."


def test_tenant_admin_cannot_add_users_to_other_tenant(client, db_session, acme, globex):
    response = client.post(
        f"/tenants/{globex['tenant'].id}/users",
        json=_new_user(email="intruder@acme.com"),
        headers=auth_headers(acme["admin"]),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert db_session.query(User).filter(User.email == "intruder@acme.com").count() == 0


def test_super_admin_role_cannot_be_assigned(client, acme):
    response = client.post(
        f"/tenants/{acme['tenant'].id}/users",
        json=_new_user(role="super_admin"),
        headers=auth_headers(acme["admin"]),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"].startswith("role:")


def test_duplicate_email_in_tenant_returns_409(client, acme):
    response = client.post(
        f"/tenants/{acme['tenant'].id}/users",
        json=_new_user(email="Alice@acme.com"),
        headers=auth_headers(acme["admin"]),
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["message"] == "Email already exists in this tenant"


def test_same_email_allowed_in_another_tenant(client, acme, globex):
    response = client.post(
        f"/tenants/{globex['tenant'].id}/users",
        json=_new_user(email="alice@acme.com"),
        headers=auth_headers(globex["admin"]),
    )

    assert response.status_code == status.HTTP_201_CREATED


def test_sixth_user_on_free_plan_is_rejected(client, db_session, acme):
    tenant_id = acme["tenant"].id
    headers = auth_headers(acme["admin"])

    # acme já tem 3 contas; o plano free permite 5
    for index in range(2):
        response = client.post(f"/tenants/{tenant_id}/users", json=_new_user(email=f"extra{index}@acme.com"), headers=headers)
        assert response.status_code == status.HTTP_201_CREATED

    response = client.post(f"/tenants/{tenant_id}/users", json=_new_user(email="sixth@acme.com"), headers=headers)

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "Subscription limit reached. Maximum users limit exceeded."
    assert db_session.query(User).filter(User.tenant_id == tenant_id).count() == 5
    assert db_session.query(User).filter(User.email == "sixth@acme.com").count() == 0


def test_inactive_users_do_not_count_against_quota(client, db_session, acme):
    tenant = acme["tenant"]
    create_user(db_session, tenant, "old1@acme.com", is_active=False)
    create_user(db_session, tenant, "old2@acme.com", is_active=False)
    create_user(db_session, tenant, "d@acme.com")

    # 4 ativas de 5: ainda cabe uma
    response = client.post(f"/tenants/{tenant.id}/users", json=_new_user(), headers=auth_headers(acme["admin"]))

    assert response.status_code == status.HTTP_201_CREATED


def test_reactivating_user_at_ceiling_is_rejected(client, db_session, acme):
    tenant = acme["tenant"]
    dormant = create_user(db_session, tenant, "dormant@acme.com", is_active=False)
    dormant_id = dormant.id
    create_user(db_session, tenant, "d@acme.com")
    create_user(db_session, tenant, "e@acme.com")

    # 5 ativas de 5: reativar passaria do limite
    response = client.put(f"/users/{dormant_id}", json={"isActive": True}, headers=auth_headers(acme["admin"]))

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "Subscription limit reached. Maximum users limit exceeded."
    db_session.expire_all()
    assert db_session.get(User, dormant_id).is_active is False
    assert db_session.query(User).filter(User.tenant_id == tenant.id, User.is_active.is_(True)).count() == 5


def test_reactivating_user_below_ceiling_is_allowed(client, db_session, acme):
    dormant = create_user(db_session, acme["tenant"], "dormant@acme.com", is_active=False)
    dormant_id = dormant.id

    response = client.put(f"/users/{dormant_id}", json={"isActive": True}, headers=auth_headers(acme["admin"]))

    assert response.status_code == status.HTTP_200_OK
    db_session.expire_all()
    assert db_session.get(User, dormant_id).is_active is True


def test_list_users_filters_and_paginates(client, acme):
    headers = auth_headers(acme["admin"])
    tenant_id = acme["tenant"].id

    response = client.get(f"/tenants/{tenant_id}/users", headers=headers)
    data = response.json()["data"]
    assert response.status_code == status.HTTP_200_OK
    assert data["total"] == 3
    assert data["pagination"] == {"currentPage": 1, "totalPages": 1, "limit": 50}

    by_role = client.get(f"/tenants/{tenant_id}/users", params={"role": "tenant_admin"}, headers=headers)
    assert [user["email"] for user in by_role.json()["data"]["users"]] == ["admin@acme.com"]

    search = client.get(f"/tenants/{tenant_id}/users", params={"search": "BOB"}, headers=headers)
    assert search.json()["data"]["total"] == 1

    page = client.get(f"/tenants/{tenant_id}/users", params={"limit": 2, "page": 2}, headers=headers)
    assert page.json()["data"]["total"] == 3
    assert len(page.json()["data"]["users"]) == 1
    assert page.json()["data"]["pagination"]["totalPages"] == 2


def test_list_users_is_denied_to_plain_user_and_other_tenants(client, acme, globex):
    assert client.get(f"/tenants/{acme['tenant'].id}/users", headers=auth_headers(acme["alice"])).status_code == 403
    assert client.get(f"/tenants/{acme['tenant'].id}/users", headers=auth_headers(globex["admin"])).status_code == 403


def test_super_admin_lists_any_tenant_users(client, acme, super_admin):
    response = client.get(f"/tenants/{acme['tenant'].id}/users", headers=auth_headers(super_admin))

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["total"] == 3


def test_user_updates_own_name_only(client, acme):
    alice = acme["alice"]

    response = client.put(f"/users/{alice.id}", json={"fullName": "Alice Liddell"}, headers=auth_headers(alice))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["fullName"] == "Alice Liddell"

    promote = client.put(f"/users/{alice.id}", json={"role": "tenant_admin"}, headers=auth_headers(alice))
    assert promote.status_code == status.HTTP_403_FORBIDDEN
    assert promote.json()["message"] == "Insufficient permissions"

    other = client.put(f"/users/{acme['bob'].id}", json={"fullName": "Hacked"}, headers=auth_headers(alice))
    assert other.status_code == status.HTTP_403_FORBIDDEN


def test_tenant_admin_updates_role_and_active_flag(client, db_session, acme):
    bob_id = acme["bob"].id

    response = client.put(
        f"/users/{bob_id}",
        json={"role": "tenant_admin", "isActive": False},
        headers=auth_headers(acme["admin"]),
    )

    assert response.status_code == status.HTTP_200_OK
    db_session.expire_all()
    bob = db_session.get(User, bob_id)
    assert bob.role == "tenant_admin"
    assert bob.is_active is False


def test_tenant_admin_cannot_update_other_tenant_users(client, acme, globex):
    response = client.put(
        f"/users/{globex['member'].id}",
        json={"fullName": "Nope"},
        headers=auth_headers(acme["admin"]),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_update_user_without_fields_returns_400(client, acme):
    response = client.put(f"/users/{acme['alice'].id}", json={}, headers=auth_headers(acme["admin"]))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "No valid fields to update"


def test_super_admin_account_keeps_its_role(client, db_session, super_admin):
    other_root = create_user(db_session, None, "root2@platform.com", role="super_admin")

    response = client.put(f"/users/{other_root.id}", json={"role": "user"}, headers=auth_headers(super_admin))

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_update_unknown_user_returns_404(client, acme):
    response = client.put(
        "/users/00000000-0000-0000-0000-000000000000",
        json={"fullName": "Ghost"},
        headers=auth_headers(acme["admin"]),
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "User not found"


def test_delete_user_unassigns_tasks_and_keeps_them(client, db_session, acme):
    bob_id = acme["bob"].id
    project = create_project(db_session, acme["tenant"], acme["bob"])
    task = create_task(db_session, project, "Revisar", assigned_to=bob_id)
    project_id, task_id = project.id, task.id

    response = client.delete(f"/users/{bob_id}", headers=auth_headers(acme["admin"]))

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True, "message": "User deleted successfully"}

    db_session.expire_all()
    assert db_session.get(User, bob_id) is None
    remaining = db_session.get(Task, task_id)
    assert remaining is not None
    assert remaining.assigned_to is None
    assert db_session.get(Project, project_id).created_by is None
    assert db_session.query(AuditLog).filter(AuditLog.action == "DELETE_USER").count() == 1


def test_cannot_delete_yourself(client, db_session, acme):
    admin_id = acme["admin"].id

    response = client.delete(f"/users/{admin_id}", headers=auth_headers(acme["admin"]))

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "Cannot delete yourself"
    db_session.expire_all()
    assert db_session.get(User, admin_id) is not None


def test_plain_user_cannot_delete_users(client, acme):
    response = client.delete(f"/users/{acme['bob'].id}", headers=auth_headers(acme["alice"]))

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "Insufficient permissions"


def test_tenant_admin_cannot_delete_other_tenant_user(client, acme, globex):
    response = client.delete(f"/users/{globex['member'].id}", headers=auth_headers(acme["admin"]))

    assert response.status_code == status.HTTP_403_FORBIDDEN
