from __future__ import annotations

class TaskdeskError(Exception):
    """Base for errors raised by the authorization and session layer."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

class AuthorizationError(TaskdeskError):
    """A permission check failed. Never retried."""

class NotFoundError(TaskdeskError):
    def __init__(self, resource: str = "resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource

class InvalidToken(TaskdeskError):
    """Refresh token missing, expired, already rotated or mismatched."""

    code = "invalid_token"

    def __init__(self, reason: str = "invalid refresh token"):
        super().__init__(reason)

class InactivityTimeout(InvalidToken):
    """Refresh token still valid but the activity window has lapsed."""

    code = "session_inactive"

    def __init__(self, reason: str = "session expired due to inactivity"):
        super().__init__(reason)
