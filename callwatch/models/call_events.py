"""
Call-lifecycle events produced by the event classifier.

Each recognized event socket message maps to exactly one of the immutable
models below. ``CallEvent`` is the closed union of all of them, discriminated
by the ``kind`` field, so observers can dispatch on ``event.kind`` or with
``isinstance``.

Two variants are not lifecycle facts:

- ``Malformed``: the event name was recognized but a required field was
  missing. The partial record is kept.
- ``Unclassified``: the event name (or CUSTOM subclass) is not one we map.
  The full record is kept so an observer can still act on it.
"""

import enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CallEventKind(str, enum.Enum):
    """Discriminator values of the ``CallEvent`` union."""

    CHANNEL_CREATED = "channel.created"
    CHANNEL_TRYING = "channel.trying"
    CHANNEL_ANSWERED = "channel.answered"
    CHANNEL_BRIDGED = "channel.bridged"
    CHANNEL_HUNG_UP = "channel.hungup"
    HEARTBEAT = "heartbeat"
    GATEWAY_STATE_CHANGED = "gateway.state_changed"
    MALFORMED = "malformed"
    UNCLASSIFIED = "unclassified"


class BaseCallEvent(BaseModel):
    """Base model for all call events."""

    model_config = ConfigDict(frozen=True)

    kind: CallEventKind


class ChannelEvent(BaseCallEvent):
    """Fields shared by every channel-scoped event."""

    timestamp: str = Field(..., description="Event-Date-GMT")
    call_id: str = Field(..., description="Channel-Call-UUID")
    direction: str = Field(..., description="Call-Direction (inbound/outbound)")
    channel_name: str = Field(..., description="Channel-Name")


class CallerChannelEvent(ChannelEvent):
    """Channel event that also identifies the caller."""

    caller_name: str = Field(..., description="Caller-Caller-ID-Name")
    caller_number: str = Field(..., description="Caller-Caller-ID-Number")


class ChannelCreated(ChannelEvent):
    """A new inbound channel: the first INVITE of a call was received."""

    kind: Literal[CallEventKind.CHANNEL_CREATED] = CallEventKind.CHANNEL_CREATED


class ChannelTrying(CallerChannelEvent):
    """The B leg was originated."""

    kind: Literal[CallEventKind.CHANNEL_TRYING] = CallEventKind.CHANNEL_TRYING


class ChannelAnswered(CallerChannelEvent):
    """A leg was answered."""

    kind: Literal[CallEventKind.CHANNEL_ANSWERED] = CallEventKind.CHANNEL_ANSWERED


class ChannelBridged(CallerChannelEvent):
    """The A leg was bridged to the B leg."""

    kind: Literal[CallEventKind.CHANNEL_BRIDGED] = CallEventKind.CHANNEL_BRIDGED


class ChannelHungUp(ChannelEvent):
    """A leg finished hanging up."""

    kind: Literal[CallEventKind.CHANNEL_HUNG_UP] = CallEventKind.CHANNEL_HUNG_UP
    hangup_cause: Optional[str] = Field(None, description="Hangup-Cause")


class HeartbeatStat(BaseCallEvent):
    """Periodic server status report."""

    kind: Literal[CallEventKind.HEARTBEAT] = CallEventKind.HEARTBEAT
    timestamp: str = Field(..., description="Event-Date-GMT")
    uptime: str = Field(..., description="Up-Time")
    session_count: Optional[str] = Field(None, description="Session-Count")
    idle_cpu: Optional[str] = Field(None, description="Idle-CPU")


class GatewayStateChanged(BaseCallEvent):
    """A sofia gateway (outbound trunk) changed registration state."""

    kind: Literal[CallEventKind.GATEWAY_STATE_CHANGED] = (
        CallEventKind.GATEWAY_STATE_CHANGED
    )
    gateway: str = Field(..., description="Gateway")
    ping_status: str = Field(..., description="Ping-Status")
    state: str = Field(..., description="State")
    status: str = Field("", description="Status, empty when absent")
    timestamp: str = Field("", description="Event-Date-GMT, empty when absent")


class Malformed(BaseCallEvent):
    """A recognized event that lacked fields its variant requires."""

    kind: Literal[CallEventKind.MALFORMED] = CallEventKind.MALFORMED
    event_name: str
    record: Dict[str, str] = Field(default_factory=dict)
    missing: List[str] = Field(default_factory=list)


class Unclassified(BaseCallEvent):
    """Anything we do not map, carried through untouched."""

    kind: Literal[CallEventKind.UNCLASSIFIED] = CallEventKind.UNCLASSIFIED
    event_name: Optional[str] = None
    record: Dict[str, str] = Field(default_factory=dict)


CallEvent = Annotated[
    Union[
        ChannelCreated,
        ChannelTrying,
        ChannelAnswered,
        ChannelBridged,
        ChannelHungUp,
        HeartbeatStat,
        GatewayStateChanged,
        Malformed,
        Unclassified,
    ],
    Field(discriminator="kind"),
]
