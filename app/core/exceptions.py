# =============================================================================
# app/core/exceptions.py
# =============================================================================
from typing import Optional


class NotifierError(Exception):
    """Base class for every failure raised while relaying a webhook"""


class DecodeError(NotifierError):
    """The inbound payload is malformed or a required field is missing/mistyped"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class UnknownAction(DecodeError):
    """The `action` discriminator names a kind this service does not handle"""

    def __init__(self, action: object):
        super().__init__(f"Unknown pull request action: {action!r}", field="action")
        self.action = action


class ResolutionError(NotifierError):
    """The Gitea directory could not provide an authoritative email"""

    def __init__(self, username: str, reason: str):
        super().__init__(f"Could not resolve Gitea user '{username}': {reason}")
        self.username = username
        self.reason = reason


class ChatIdentityMiss(NotifierError):
    """No Slack user matches an email; rendering falls back to plain usernames"""


class PostError(NotifierError):
    """Slack rejected the message or could not be reached"""


class StoreError(NotifierError):
    """The durable thread store failed to read or write"""
