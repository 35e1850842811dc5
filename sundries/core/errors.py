# sundries/core/errors.py
from __future__ import annotations

from typing import Any, Optional


class SundriesError(Exception):
    status_code: int = 400
    code: str = "error"

    def __init__(self, msg: str, *, status_code: Optional[int] = None, details: Any = None):
        super().__init__(msg)
        self.msg = msg
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class ValidationError(SundriesError):
    """Caller-supplied data fails a business precondition."""
    status_code = 400
    code = "validation_error"


class NotFoundError(ValidationError):
    """A referenced record does not exist (or is not usable, e.g. inactive)."""
    status_code = 404
    code = "not_found"


class AuthenticationError(SundriesError):
    status_code = 401
    code = "unauthenticated"


class AuthorizationError(SundriesError):
    status_code = 403
    code = "forbidden"


class UpstreamError(SundriesError):
    """Identity provider, roster or mail service call failed."""
    status_code = 502
    code = "upstream_error"


# ConflictHazard: two concurrent invoice generations for the same
# supplier/month can compute the same sequence number. Not detected, so
# there is deliberately no exception class for it.
