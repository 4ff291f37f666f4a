"""User, dashboard and batch route tests.

Learn: These exercise the guards through real HTTP requests: role gating
on the dashboards, self-or-admin on profile edits, the secure profile
view picked by who is asking, and the batch guard's role split.
"""

import uuid

import pytest

from learnercircle.auth.roles import Role


# ═══════════════════════════════════════════════════════════
# Dashboards
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path, allowed",
    [
        ("/api/admin", {Role.ADMIN}),
        ("/api/tutor", {Role.ADMIN, Role.TUTOR}),
        ("/api/student", set(Role)),
    ],
)
async def test_dashboard_role_gating(client, create_user, auth_for, path, allowed):
    for role in Role:
        user = await create_user(role)
        r = await client.get(path, headers=auth_for(user))
        if role in allowed:
            assert r.status_code == 200, (path, role)
            assert r.json()["user"]["email"] == user.email
        else:
            assert r.status_code == 403, (path, role)
            assert r.json()["code"] == "INSUFFICIENT_ROLE"


@pytest.mark.asyncio
async def test_dashboard_without_token(client):
    r = await client.get("/api/admin")
    assert r.status_code == 401
    assert r.json()["code"] == "NO_TOKEN"


# ═══════════════════════════════════════════════════════════
# Profile views
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_profile_view_depends_on_viewer(client, create_user, auth_for):
    target = await create_user(Role.STUDENT, first_name="Ann", last_name="Lee", phone="9876543210")
    admin = await create_user(Role.ADMIN)
    tutor = await create_user(Role.TUTOR)
    path = f"/api/users/{target.id}"

    own = (await client.get(path, headers=auth_for(target))).json()["user"]
    assert own["email"] == target.email
    assert own["last_name"] == "Lee"

    by_admin = (await client.get(path, headers=auth_for(admin))).json()["user"]
    assert by_admin["phone"] == "9876543210"

    for headers in (auth_for(tutor), {}, {"Authorization": "Bearer garbage"}):
        public = (await client.get(path, headers=headers)).json()["user"]
        assert public["last_name"] == "L."
        assert public["display_name"] == "Ann L."
        assert "email" not in public
        assert "phone" not in public


@pytest.mark.asyncio
async def test_unknown_user_is_404(client):
    r = await client.get(f"/api/users/{uuid.uuid4()}")
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}


# ═══════════════════════════════════════════════════════════
# Self-or-admin edits
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_user_can_edit_own_profile(client, create_user, auth_for):
    user = await create_user()
    r = await client.patch(
        f"/api/users/{user.id}",
        json={"first_name": "Annie", "timezone": "Europe/London"},
        headers=auth_for(user),
    )
    assert r.status_code == 200
    assert r.json()["user"]["first_name"] == "Annie"
    assert r.json()["user"]["timezone"] == "Europe/London"

    r = await client.get("/api/auth/profile", headers=auth_for(user))
    assert r.json()["user"]["first_name"] == "Annie"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, field",
    [
        ({"first_name": None}, "first_name"),
        ({"last_name": None}, "last_name"),
        ({"timezone": None}, "timezone"),
        ({"profile_data": None}, "profile_data"),
        ({"first_name": "   "}, "first_name"),
    ],
)
async def test_required_fields_cannot_be_nulled_or_blanked(client, create_user, auth_for, body, field):
    user = await create_user()
    r = await client.patch(f"/api/users/{user.id}", json=body, headers=auth_for(user))
    assert r.status_code == 400
    assert r.json()["details"][0]["field"] == field

    r = await client.get("/api/auth/profile", headers=auth_for(user))
    assert r.json()["user"]["first_name"] == "Ann"


@pytest.mark.asyncio
async def test_phone_can_be_cleared_and_names_are_stripped(client, create_user, auth_for):
    user = await create_user(phone="9876543210")
    r = await client.patch(
        f"/api/users/{user.id}",
        json={"phone": None, "last_name": "  Park "},
        headers=auth_for(user),
    )
    assert r.status_code == 200
    assert r.json()["user"]["phone"] is None
    assert r.json()["user"]["last_name"] == "Park"


@pytest.mark.asyncio
async def test_user_cannot_edit_someone_else(client, create_user, auth_for):
    me = await create_user(Role.TUTOR)
    other = await create_user()
    r = await client.patch(
        f"/api/users/{other.id}", json={"first_name": "Hacked"}, headers=auth_for(me)
    )
    assert r.status_code == 403
    assert r.json()["code"] == "ACCESS_DENIED"

    r = await client.get(f"/api/users/{other.id}")
    assert r.json()["user"]["first_name"] == "Ann"


@pytest.mark.asyncio
async def test_body_cannot_override_path_target(client, create_user, auth_for):
    me = await create_user()
    other = await create_user()
    r = await client.patch(
        f"/api/users/{other.id}",
        json={"first_name": "Hacked", "user_id": str(me.id)},
        headers=auth_for(me),
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_can_edit_anyone(client, create_user, auth_for):
    admin = await create_user(Role.ADMIN)
    other = await create_user()
    r = await client.patch(
        f"/api/users/{other.id}", json={"last_name": "Park"}, headers=auth_for(admin)
    )
    assert r.status_code == 200
    assert r.json()["user"]["last_name"] == "Park"


# ═══════════════════════════════════════════════════════════
# Admin user management
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_admin_lists_users_by_role(client, create_user, auth_for):
    admin = await create_user(Role.ADMIN)
    tutors = [await create_user(Role.TUTOR) for _ in range(2)]
    await create_user(Role.STUDENT)

    r = await client.get("/api/admin/users", params={"role": "tutor"}, headers=auth_for(admin))
    assert r.status_code == 200
    emails = {u["email"] for u in r.json()["users"]}
    assert emails == {t.email for t in tutors}

    r = await client.get("/api/admin/users", headers=auth_for(admin))
    assert len(r.json()["users"]) == 4


@pytest.mark.asyncio
async def test_non_admin_cannot_list_users(client, create_user, auth_for):
    tutor = await create_user(Role.TUTOR)
    r = await client.get("/api/admin/users", headers=auth_for(tutor))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_deactivation_locks_user_out(client, create_user, auth_for):
    admin = await create_user(Role.ADMIN)
    student = await create_user()

    r = await client.patch(
        f"/api/admin/users/{student.id}/status",
        json={"is_active": False},
        headers=auth_for(admin),
    )
    assert r.status_code == 200
    assert r.json()["user"]["is_active"] is False

    r = await client.get("/api/student", headers=auth_for(student))
    assert r.status_code == 401
    assert r.json()["code"] == "INVALID_USER"

    r = await client.post(
        "/api/auth/login", json={"email": student.email, "password": "password_123"}
    )
    assert r.status_code == 401

    r = await client.patch(
        f"/api/admin/users/{student.id}/status",
        json={"is_active": True},
        headers=auth_for(admin),
    )
    assert r.status_code == 200
    assert (await client.get("/api/student", headers=auth_for(student))).status_code == 200


# ═══════════════════════════════════════════════════════════
# Batch access
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "role, status",
    [(Role.ADMIN, 200), (Role.TUTOR, 200), (Role.STUDENT, 200), (Role.PARENT, 403)],
)
async def test_batch_access_by_role(client, create_user, auth_for, role, status):
    user = await create_user(role)
    r = await client.get("/api/batches/b-101/access", headers=auth_for(user))
    assert r.status_code == status
    if status == 200:
        assert r.json() == {"batch_id": "b-101", "granted": True, "role": role.value}
    else:
        assert r.json()["code"] == "BATCH_ACCESS_DENIED"
