"""
errors.py — AppError base class and error code registry.

Every error returned by the Noteworthy API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Never conflate 401 (unauthenticated) with 403 (unauthorized).
  - Every authentication failure is reported to the client as UNAUTHORIZED
    with the same message. The specific AuthFailure reason is for logs only.
"""

from __future__ import annotations

import enum


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"
    DUPLICATE_FOLDER_NAME      = "DUPLICATE_FOLDER_NAME"
    ALREADY_HAS_ACCESS         = "ALREADY_HAS_ACCESS"
    INVITATION_ALREADY_PENDING = "INVITATION_ALREADY_PENDING"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    # RESOURCE_NOT_FOUND is also the answer for "exists but you cannot see it".
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    RESOURCE_NOT_FOUND         = "RESOURCE_NOT_FOUND"
    PERMISSION_NOT_FOUND       = "PERMISSION_NOT_FOUND"
    INVITATION_NOT_FOUND       = "INVITATION_NOT_FOUND"

    # ── Business Rule Violations (422) ────────────────────────────────────
    FOLDER_CYCLE               = "FOLDER_CYCLE"
    FOLDER_NOT_EMPTY           = "FOLDER_NOT_EMPTY"
    CANNOT_GRANT_OWNER         = "CANNOT_GRANT_OWNER"
    INVITATION_NOT_PENDING     = "INVITATION_NOT_PENDING"
    INVITATION_EXPIRED         = "INVITATION_EXPIRED"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, and you can see the resource, but the
    #       requested action is not allowed
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    UNAUTHORIZED               = "UNAUTHORIZED"           # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


class AuthFailure(str, enum.Enum):
    """Internal reason for an authentication failure. Logged, never returned."""
    MISSING_TOKEN     = "missing_token"
    MALFORMED         = "malformed"
    EXPIRED           = "expired"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_PAYLOAD   = "invalid_payload"
    REVOKED           = "revoked"


class AuthError(AppError):
    """
    Authentication failure (401).

    The response body is identical for every reason so that clients cannot
    use it as an oracle; `reason` is kept for the application log.
    """

    def __init__(self, reason: AuthFailure) -> None:
        super().__init__(
            ErrorCode.UNAUTHORIZED,
            "Authentication required.",
            401,
        )
        self.reason = reason

    def __repr__(self) -> str:
        return f"AuthError(reason={self.reason.value!r})"


class ConfigurationError(Exception):
    """
    Deployment error (missing or unusable signing secret).

    Not an AppError: it is never shown to the client as anything other than
    a generic 500, and it is logged separately from authentication failures.
    """


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They do not block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # Permission grant already existed with the requested access level.
    PERMISSION_UNCHANGED = "PERMISSION_UNCHANGED"
