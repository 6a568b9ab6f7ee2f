"""
Event socket services.

- frame_source: Header/body framing over an asyncio stream
- esl_client: Session handshake state machine and event read loop
"""

from .esl_client import (
    ESLSession,
    open_esl_connection,
    parse_address,
    run_session,
    with_connect_timeout,
)
from .frame_source import FrameSource

__all__ = [
    "ESLSession",
    "FrameSource",
    "open_esl_connection",
    "parse_address",
    "run_session",
    "with_connect_timeout",
]
