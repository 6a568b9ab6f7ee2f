"""
Pydantic models for the FreeSWITCH event socket (ESL) wire protocol.

The event socket speaks a line-oriented, mail-like protocol over TCP:

1. On connect the server sends an ``auth/request`` frame
2. The client answers with ``auth <password>`` and gets a ``command/reply``
3. ``event <format> <classes...>`` subscribes to the event stream
4. Events then arrive as ``text/event-json`` (or ``text/event-plain``) frames

Every frame is a block of ``Name: value`` header lines terminated by an empty
line, optionally followed by a body whose size is given by ``Content-Length``.
"""

import enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from callwatch.config.constants import MESSAGE_TERMINATOR


class ContentType(str, enum.Enum):
    """Content types the server puts in a frame's ``Content-Type`` header."""

    AUTH_REQUEST = "auth/request"
    COMMAND_REPLY = "command/reply"
    API_RESPONSE = "api/response"
    EVENT_JSON = "text/event-json"
    EVENT_PLAIN = "text/event-plain"
    EVENT_XML = "text/event-xml"
    DISCONNECT_NOTICE = "text/disconnect-notice"
    RUDE_REJECTION = "text/rude-rejection"
    LOG_DATA = "log/data"


EVENT_CONTENT_TYPES = frozenset(
    {ContentType.EVENT_JSON, ContentType.EVENT_PLAIN, ContentType.EVENT_XML}
)


class EventName(str, enum.Enum):
    """Values of the ``Event-Name`` field that carry call-lifecycle meaning."""

    CHANNEL_CREATE = "CHANNEL_CREATE"
    CHANNEL_OUTGOING = "CHANNEL_OUTGOING"
    CHANNEL_ANSWER = "CHANNEL_ANSWER"
    CHANNEL_BRIDGE = "CHANNEL_BRIDGE"
    CHANNEL_HANGUP_COMPLETE = "CHANNEL_HANGUP_COMPLETE"
    HEARTBEAT = "HEARTBEAT"
    CUSTOM = "CUSTOM"


class EventSubclass(str, enum.Enum):
    """``Event-Subclass`` values of CUSTOM events that we classify."""

    SOFIA_GATEWAY_STATE = "sofia::gateway_state"


class EventField(str, enum.Enum):
    """Field names read from an event record."""

    EVENT_NAME = "Event-Name"
    EVENT_SUBCLASS = "Event-Subclass"
    EVENT_DATE_GMT = "Event-Date-GMT"
    CALL_UUID = "Channel-Call-UUID"
    CALL_DIRECTION = "Call-Direction"
    CHANNEL_NAME = "Channel-Name"
    CALLER_NAME = "Caller-Caller-ID-Name"
    CALLER_NUMBER = "Caller-Caller-ID-Number"
    HANGUP_CAUSE = "Hangup-Cause"
    UP_TIME = "Up-Time"
    SESSION_COUNT = "Session-Count"
    IDLE_CPU = "Idle-CPU"
    GATEWAY = "Gateway"
    PING_STATUS = "Ping-Status"
    STATE = "State"
    STATUS = "Status"
    BODY = "_body"


class RawFrame(BaseModel):
    """One complete message as read off the socket.

    Example (an event frame)::

        Content-Length: 526
        Content-Type: text/event-json

        {"Event-Name": "HEARTBEAT", "Up-Time": "0 years, 0 days, ..."}
    """

    model_config = ConfigDict(frozen=True)

    headers: Dict[str, str] = Field(
        default_factory=dict, description="Frame headers, values URL-decoded"
    )
    body: Optional[str] = Field(
        None, description="Body text when the frame carried a Content-Length"
    )

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    @property
    def reply_text(self) -> Optional[str]:
        return self.headers.get("Reply-Text")

    @property
    def has_body(self) -> bool:
        return self.body is not None

    @property
    def is_event(self) -> bool:
        return self.content_type in {ct.value for ct in EVENT_CONTENT_TYPES}

    def reply_ok(self) -> bool:
        """True when a command/reply frame reports success (``+OK ...``)."""
        return (self.reply_text or "").startswith("+OK")


class Command(BaseModel):
    """An outbound command line, sent followed by a blank line."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Command line without terminator")

    @field_validator("text")
    def validate_single_line(cls, v):
        """Reject empty commands and embedded newlines (they would split the frame)."""
        if not v.strip():
            raise ValueError("Command cannot be empty")
        if "\n" in v or "\r" in v:
            raise ValueError("Command must be a single line")
        return v

    def encode(self) -> bytes:
        return f"{self.text}{MESSAGE_TERMINATOR}".encode("utf-8")

    @classmethod
    def auth(cls, password: str) -> "Command":
        return cls(text=f"auth {password}")

    @classmethod
    def event(cls, event_format: str, event_classes) -> "Command":
        return cls(text=" ".join(["event", event_format, *event_classes]))
