"""User roles and the role → dashboard redirect mapping."""

import enum
from typing import Optional, Union


class Role(str, enum.Enum):
    ADMIN = "admin"
    TUTOR = "tutor"
    STUDENT = "student"
    PARENT = "parent"


ROLE_REDIRECTS: dict[Role, str] = {
    Role.ADMIN: "/admin",
    Role.TUTOR: "/tutor",
    Role.STUDENT: "/student",
    Role.PARENT: "/student",
}


def redirect_for_role(role: Optional[Union[Role, str]]) -> str:
    """Return the dashboard path for a role; unknown roles land on "/"."""
    try:
        return ROLE_REDIRECTS[Role(role)]
    except ValueError:
        return "/"
