"""
Forum exceptions.

Services raise these instead of returning sentinels; the application-level
handler in ``forum.main`` renders any ``ForumError`` as a JSON body with the
exception's ``status_code``.
"""
from typing import Any, Dict, Optional


class ForumError(Exception):
    """Base exception for all forum errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(ForumError):
    """An entity lookup missed."""

    status_code = 404

    def __init__(self, entity: str, key: Any):
        super().__init__(
            f"{entity} [{key}] not found",
            code=f"{entity.upper()}_NOT_FOUND",
            details={"entity": entity, "key": str(key)},
        )


class AccessDeniedError(ForumError):
    """The current user may not act on the requested entity."""

    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, code="ACCESS_DENIED")


class MailingFailedError(ForumError):
    """Mail delivery failed."""

    status_code = 502

    def __init__(self, message: str = "Mail delivery failed", recipient: Optional[str] = None):
        super().__init__(
            message,
            code="MAILING_FAILED",
            details={"recipient": recipient} if recipient else None,
        )


class NoConnectionError(ForumError):
    """The credential store could not be reached during authentication."""

    status_code = 503

    def __init__(self, message: str = "Authentication backend unavailable"):
        super().__init__(message, code="NO_CONNECTION")


class UnexpectedError(ForumError):
    """Authentication failed for a reason other than bad credentials."""

    status_code = 500

    def __init__(self, message: str = "Unexpected authentication error"):
        super().__init__(message, code="UNEXPECTED_ERROR")
