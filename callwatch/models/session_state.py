"""Session lifecycle states for an event socket connection.

A session moves strictly forward through the handshake::

    DISCONNECTED -> CONNECTED -> AUTHENTICATING -> AUTHENTICATED
                 -> SUBSCRIBING -> STREAMING -> CLOSED

Any non-terminal state may drop into FAILED. CLOSED and FAILED are terminal.
"""

from enum import Enum
from typing import Dict, FrozenSet


class SessionStatus(Enum):
    """Session status enumeration for tracking the protocol handshake.

    Attributes:
        DISCONNECTED: Created, no transport yet
        CONNECTED: Transport open, waiting to authenticate
        AUTHENTICATING: ``auth`` sent, waiting for the reply
        AUTHENTICATED: Credential accepted
        SUBSCRIBING: ``event`` sent, waiting for acknowledgment
        STREAMING: Receiving events
        CLOSED: Stream ended or the session was closed
        FAILED: A fatal connection, protocol or auth error occurred
    """

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    SUBSCRIBING = "subscribing"
    STREAMING = "streaming"
    CLOSED = "closed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.CLOSED, SessionStatus.FAILED)


# Forward edges of the handshake; FAILED and CLOSED are reachable from any
# non-terminal state and are handled separately.
_FORWARD: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.DISCONNECTED: frozenset({SessionStatus.CONNECTED}),
    SessionStatus.CONNECTED: frozenset({SessionStatus.AUTHENTICATING}),
    SessionStatus.AUTHENTICATING: frozenset({SessionStatus.AUTHENTICATED}),
    SessionStatus.AUTHENTICATED: frozenset({SessionStatus.SUBSCRIBING}),
    SessionStatus.SUBSCRIBING: frozenset({SessionStatus.STREAMING}),
    SessionStatus.STREAMING: frozenset(),
    SessionStatus.CLOSED: frozenset(),
    SessionStatus.FAILED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    """Whether ``current -> target`` is a legal session transition."""
    if current.is_terminal:
        return False
    if target in (SessionStatus.FAILED, SessionStatus.CLOSED):
        return True
    return target in _FORWARD[current]
