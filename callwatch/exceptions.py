"""Exception hierarchy for event socket sessions.

Connection, protocol and authentication errors are fatal to a session.
``ParseError`` is raised for a single bad payload and is recovered by the
session read loop.
"""

from typing import Optional


class CallwatchError(Exception):
    """Base class for all callwatch errors."""


class ESLConnectionError(CallwatchError, ConnectionError):
    """The server is unreachable, refused the connection, or the link dropped."""


class ESLProtocolError(CallwatchError):
    """The server sent something that does not fit the event socket framing or handshake."""


class AuthError(CallwatchError):
    """The server rejected the credential."""

    def __init__(self, message: str, reply_text: Optional[str] = None):
        super().__init__(message)
        self.reply_text = reply_text


class ParseError(CallwatchError):
    """An event body could not be turned into an event record."""

    def __init__(self, message: str, content_type: Optional[str] = None):
        super().__init__(message)
        self.content_type = content_type


class InvalidStateError(CallwatchError):
    """A session operation was called in a state that does not allow it."""
