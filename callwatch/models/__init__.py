"""
Data models for the event socket client.

Key components:
- esl_api: Pydantic models and enums for the event socket wire protocol
  (frames, content types, outbound commands, event field names).
- call_events: The closed set of call-lifecycle events the classifier
  produces, as immutable Pydantic models discriminated by ``kind``.
- session_state: The handshake state machine of a session.
"""

from .call_events import (
    BaseCallEvent,
    CallEvent,
    CallEventKind,
    ChannelAnswered,
    ChannelBridged,
    ChannelCreated,
    ChannelHungUp,
    ChannelTrying,
    GatewayStateChanged,
    HeartbeatStat,
    Malformed,
    Unclassified,
)
from .esl_api import (
    Command,
    ContentType,
    EventField,
    EventName,
    EventSubclass,
    RawFrame,
)
from .session_state import SessionStatus, can_transition

__all__ = [
    "BaseCallEvent",
    "CallEvent",
    "CallEventKind",
    "ChannelAnswered",
    "ChannelBridged",
    "ChannelCreated",
    "ChannelHungUp",
    "ChannelTrying",
    "Command",
    "ContentType",
    "EventField",
    "EventName",
    "EventSubclass",
    "GatewayStateChanged",
    "HeartbeatStat",
    "Malformed",
    "RawFrame",
    "SessionStatus",
    "Unclassified",
    "can_transition",
]
