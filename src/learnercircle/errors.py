"""Error taxonomy shared by the auth layer and the API.

Learn: Each error carries an HTTP status, a human-readable message and an
optional stable machine-readable code. Clients branch on the code (e.g.
force re-login only on TOKEN_EXPIRED / INVALID_TOKEN / INVALID_USER), never
on the message. A single FastAPI exception handler in main.py renders them.
"""

from typing import Any, Optional

# ─── Authentication codes (401) ──────────────────────────

NO_TOKEN = "NO_TOKEN"
INVALID_TOKEN = "INVALID_TOKEN"
TOKEN_EXPIRED = "TOKEN_EXPIRED"
INVALID_USER = "INVALID_USER"
NO_AUTH = "NO_AUTH"

# ─── Authorization codes (403) ───────────────────────────

INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"
ACCESS_DENIED = "ACCESS_DENIED"
BATCH_ACCESS_DENIED = "BATCH_ACCESS_DENIED"

# ─── Request / conflict codes ────────────────────────────

NO_BATCH_ID = "NO_BATCH_ID"
EMAIL_EXISTS = "EMAIL_EXISTS"
ADMIN_EXISTS = "ADMIN_EXISTS"

# ─── Unexpected (500) ────────────────────────────────────

AUTH_ERROR = "AUTH_ERROR"


class LearnerCircleError(Exception):
    """Base exception for all application errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[list[dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Convert to a response body. `code` is omitted when unset."""
        body: dict[str, Any] = {"error": self.message}
        if self.code:
            body["code"] = self.code
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(LearnerCircleError):
    """Input was missing or malformed."""

    status_code = 400


class AuthenticationError(LearnerCircleError):
    """No usable credential: retry after (re-)authenticating."""

    status_code = 401


class AuthorizationError(LearnerCircleError):
    """Authenticated, but not allowed. Not retryable without a privilege change."""

    status_code = 403


class NotFoundError(LearnerCircleError):
    status_code = 404


class ConflictError(LearnerCircleError):
    """The request collides with existing state (duplicate email, admin exists)."""

    status_code = 409


class AuthServiceError(LearnerCircleError):
    """The authentication path failed for reasons unrelated to the caller."""

    status_code = 500

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code=AUTH_ERROR)


def field_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic error dicts into the [{field, message}] shape clients render."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        details.append({
            "field": loc[-1] if loc else "body",
            "message": err.get("msg", "Invalid value"),
        })
    return details
