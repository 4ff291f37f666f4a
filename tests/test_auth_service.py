"""Auth service tests — the issuance flows without HTTP.

Learn: profile() and refresh() reload the user themselves instead of
trusting the identity they're handed, so a user who disappears or is
deactivated between authentication and the lookup is still caught.
"""

import pytest

from learnercircle.auth.identity import AuthenticatedIdentity
from learnercircle.auth.jwt import verify_token
from learnercircle.auth.roles import Role
from learnercircle.db.models import User
from learnercircle.errors import (
    ADMIN_EXISTS,
    INVALID_USER,
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from learnercircle.services.auth_service import AuthService


def identity_for(user: User) -> AuthenticatedIdentity:
    return AuthenticatedIdentity(user_id=user.id, email=user.email, role=user.role, user=user)


@pytest.fixture()
def delete_user(session_factory):
    async def _delete(user_id):
        async with session_factory() as session:
            await session.delete(await session.get(User, user_id))
            await session.commit()

    return _delete


@pytest.mark.asyncio
async def test_profile_of_a_deleted_user_is_404(create_user, delete_user, db_session):
    user = await create_user()
    identity = identity_for(user)
    await delete_user(user.id)

    with pytest.raises(NotFoundError) as exc:
        await AuthService(db_session).profile(identity)
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_refresh_of_a_deleted_user_is_invalid_user(create_user, delete_user, db_session):
    user = await create_user()
    identity = identity_for(user)
    await delete_user(user.id)

    with pytest.raises(AuthenticationError) as exc:
        await AuthService(db_session).refresh(identity)
    assert exc.value.code == INVALID_USER


@pytest.mark.asyncio
async def test_refresh_of_a_deactivated_user_is_invalid_user(create_user, set_active, db_session):
    user = await create_user()
    identity = identity_for(user)
    await set_active(user.id, False)

    with pytest.raises(AuthenticationError) as exc:
        await AuthService(db_session).refresh(identity)
    assert exc.value.code == INVALID_USER
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_refresh_mints_a_token_for_the_live_user(create_user, db_session):
    user = await create_user(Role.TUTOR)
    result = await AuthService(db_session).refresh(identity_for(user))
    claims = verify_token(result.token)
    assert claims.user_id == user.id
    assert claims.role is Role.TUTOR
    assert result.redirect == "/tutor"


@pytest.mark.asyncio
async def test_first_admin_checks_existence_before_the_body(create_user, db_session):
    await create_user(Role.ADMIN)
    with pytest.raises(ConflictError) as exc:
        await AuthService(db_session).create_first_admin({"email": "x"})
    assert exc.value.code == ADMIN_EXISTS


@pytest.mark.asyncio
async def test_first_admin_body_errors_are_per_field(db_session):
    with pytest.raises(ValidationError) as exc:
        await AuthService(db_session).create_first_admin(None)
    fields = {d["field"] for d in exc.value.details}
    assert {"email", "password", "first_name", "last_name"} <= fields
