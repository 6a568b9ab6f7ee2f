"""
Pytest configuration file for the callwatch test suite.

This file contains fixtures that are shared across multiple test files,
mostly helpers that fake the event socket server side of a connection.
"""

import asyncio
import json
import logging
from typing import Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from callwatch.config import set_config


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    app_logger = logging.getLogger("callwatch")
    for handler in app_logger.handlers[:]:
        app_logger.removeHandler(handler)
    app_logger.propagate = True
    app_logger.setLevel(logging.NOTSET)
    yield


@pytest.fixture(autouse=True)
def reset_config():
    """Drop any configuration a test installed."""
    yield
    set_config(None)


def build_frame(headers: Dict[str, str], body: Optional[str] = None) -> bytes:
    """Encode one event socket frame the way the server sends it."""
    payload = b""
    lines = []
    if body is not None:
        payload = body.encode("utf-8")
        lines.append(f"Content-Length: {len(payload)}")
    lines.extend(f"{name}: {value}" for name, value in headers.items())
    return ("\n".join(lines) + "\n\n").encode("utf-8") + payload


class EslWire:
    """Builders for the server's side of the conversation."""

    frame = staticmethod(build_frame)

    @staticmethod
    def auth_request() -> bytes:
        return build_frame({"Content-Type": "auth/request"})

    @staticmethod
    def reply(text: str) -> bytes:
        return build_frame({"Content-Type": "command/reply", "Reply-Text": text})

    @staticmethod
    def event_json(record: Dict[str, str]) -> bytes:
        return build_frame({"Content-Type": "text/event-json"}, json.dumps(record))

    @staticmethod
    def event_raw(body: Optional[str], content_type: str = "text/event-json") -> bytes:
        return build_frame({"Content-Type": content_type}, body)

    @staticmethod
    def disconnect_notice() -> bytes:
        return build_frame(
            {"Content-Type": "text/disconnect-notice"}, "Disconnected, goodbye.\n"
        )

    @classmethod
    def handshake(cls) -> bytes:
        """Greeting, auth accepted, subscription accepted."""
        return (
            cls.auth_request()
            + cls.reply("+OK accepted")
            + cls.reply("+OK event listener enabled json")
        )


@pytest.fixture
def esl_wire():
    return EslWire


def make_reader(data: bytes, eof: bool = True) -> asyncio.StreamReader:
    """A StreamReader preloaded with ``data``. Call from inside a running loop."""
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    if eof:
        reader.feed_eof()
    return reader


@pytest.fixture
def stream_reader():
    return make_reader


@pytest.fixture
def fake_connection():
    """Factory for (connector, writer) pairs serving canned server bytes."""

    def _factory(data: bytes, eof: bool = True):
        writer = MagicMock()
        writer.write = MagicMock()
        writer.drain = AsyncMock()
        writer.close = MagicMock()
        writer.wait_closed = AsyncMock()

        async def connector(host, port):
            return make_reader(data, eof=eof), writer

        return connector, writer

    return _factory


@pytest.fixture
def answer_record():
    return {
        "Event-Name": "CHANNEL_ANSWER",
        "Event-Date-GMT": "Mon, 19 Oct 2026 10:00:00 GMT",
        "Channel-Call-UUID": "6a7b2c1e-0d3f-4e5a-9b8c-7d6e5f4a3b2c",
        "Call-Direction": "outbound",
        "Channel-Name": "sofia/external/1001@pbx.example.com",
        "Caller-Caller-ID-Name": "Alice",
        "Caller-Caller-ID-Number": "1001",
    }
