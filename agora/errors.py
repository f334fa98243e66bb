"""Failure taxonomy shared by the reaction store, the HTTP layer and the client."""
from typing import Optional


class ForumError(Exception):
    """Base class for forum failures that callers are expected to handle."""


class Unauthorized(ForumError):
    """No credential, an invalid one, or one naming an unknown user."""

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)
        self.message = message


class NotFound(ForumError):
    def __init__(self, kind: Optional[str] = None, item_id: Optional[int] = None, message: Optional[str] = None):
        if message is None:
            label = (kind or "item").rstrip("s").capitalize()
            message = f"{label} not found"
        super().__init__(message)
        self.kind = kind
        self.item_id = item_id
        self.message = message


class Transient(ForumError):
    """Network failure, timeout or gateway error; safe to retry."""


class ToggleInFlight(ForumError):
    """A like toggle for this item is still waiting on the server."""
