"""Secure profile view and role redirect tests."""

import uuid

import pytest

from learnercircle.auth.roles import Role, redirect_for_role
from learnercircle.db.models import User

CONTACT_FIELDS = {"email", "phone", "profile_data", "last_login"}


def make_user(**overrides) -> User:
    fields = dict(
        id=uuid.uuid4(),
        email="ann@example.com",
        password_hash="$2b$04$hash",
        first_name="Ann",
        last_name="Lee",
        role=Role.STUDENT,
        phone="9876543210",
        timezone="Asia/Kolkata",
        profile_data={"grade": 7},
        is_active=True,
    )
    fields.update(overrides)
    return User(**fields)


@pytest.mark.parametrize("viewer", ["self", "admin", Role.ADMIN])
def test_privileged_view_has_full_contact_details(viewer):
    profile = make_user().get_secure_profile(viewer)
    assert profile["last_name"] == "Lee"
    assert profile["email"] == "ann@example.com"
    assert profile["phone"] == "9876543210"
    assert profile["profile_data"] == {"grade": 7}
    assert "display_name" not in profile


@pytest.mark.parametrize("viewer", [None, "student", "tutor", "parent"])
def test_public_view_abbreviates_and_hides_contact(viewer):
    profile = make_user().get_secure_profile(viewer)
    assert profile["last_name"] == "L."
    assert profile["display_name"] == "Ann L."
    assert profile["first_name"] == "Ann"
    assert profile["role"] == "student"
    assert not CONTACT_FIELDS & profile.keys()


def test_no_view_ever_exposes_the_password_hash():
    user = make_user()
    for viewer in ("self", "admin", None):
        assert "password_hash" not in user.get_secure_profile(viewer)


def test_empty_last_name_abbreviates_to_nothing():
    profile = make_user(last_name="").get_secure_profile(None)
    assert profile["last_name"] == ""
    assert profile["display_name"] == "Ann "


@pytest.mark.parametrize(
    "role, path",
    [
        (Role.ADMIN, "/admin"),
        (Role.TUTOR, "/tutor"),
        (Role.STUDENT, "/student"),
        (Role.PARENT, "/student"),
        ("tutor", "/tutor"),
        ("janitor", "/"),
        (None, "/"),
    ],
)
def test_redirect_for_role(role, path):
    assert redirect_for_role(role) == path
