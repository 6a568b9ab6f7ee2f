"""
Event socket session: handshake state machine and event read loop.

``ESLSession`` drives one connection through

    connect -> authenticate -> subscribe -> stream

and feeds every event frame through the parser and the classifier to an
observer. Each step checks the server's reply before moving on: a rejected
password raises ``AuthError`` and a rejected subscription raises
``ESLProtocolError``.

Only connection, protocol and auth errors end a session. A payload that does
not parse is reported through the error handler and skipped; the loop keeps
reading. Nothing here retries; callers that want reconnects create a new
session.

Example:
    ```python
    observer = LogLineObserver()
    async with ESLSession(observer) as session:
        await session.connect("127.0.0.1:8021")
        await session.authenticate("ClueCon")
        await session.subscribe("json", ["ALL"])
        await session.stream()
    ```
"""

import asyncio
import logging
import uuid
from typing import (
    Awaitable,
    Callable,
    Iterable,
    NoReturn,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from callwatch.config.constants import (
    DEFAULT_ESL_PORT,
    DEFAULT_EVENT_CLASSES,
    DEFAULT_EVENT_FORMAT,
    LOGGER_NAME,
    MAX_HEADER_LINE,
    SUPPORTED_EVENT_FORMATS,
)
from callwatch.exceptions import (
    AuthError,
    ESLConnectionError,
    ESLProtocolError,
    InvalidStateError,
    ParseError,
)
from callwatch.handlers.error_handler import (
    ErrorContext,
    ErrorHandler,
)
from callwatch.handlers.event_classifier import classify_event
from callwatch.handlers.event_parser import EventRecord, parse_frame
from callwatch.models.call_events import CallEvent
from callwatch.models.esl_api import Command, ContentType, RawFrame
from callwatch.models.session_state import SessionStatus, can_transition
from callwatch.observers import Observer, deliver
from callwatch.services.frame_source import FrameSource

logger = logging.getLogger(LOGGER_NAME)

Address = Union[str, Tuple[str, int]]
Connector = Callable[
    [str, int], Awaitable[Tuple[asyncio.StreamReader, asyncio.StreamWriter]]
]
Classifier = Callable[[EventRecord], CallEvent]


def parse_address(address: Address) -> Tuple[str, int]:
    """Normalize ``"host"``, ``"host:port"``, ``"[v6]:port"`` or ``(host, port)``."""
    if isinstance(address, tuple):
        host, port = address
    else:
        text = address.strip()
        if text.startswith("["):
            host, _, rest = text[1:].partition("]")
            port_text = rest[1:] if rest.startswith(":") else ""
        elif text.count(":") == 1:
            host, _, port_text = text.partition(":")
        else:
            host, port_text = text, ""
        try:
            port = int(port_text) if port_text else DEFAULT_ESL_PORT
        except ValueError:
            raise ValueError(f"Invalid port in address: {address!r}")

    if not host:
        raise ValueError(f"Missing host in address: {address!r}")
    if not 0 < int(port) < 65536:
        raise ValueError(f"Port out of range in address: {address!r}")
    return host, int(port)


async def open_esl_connection(
    host: str, port: int
) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Open a plain TCP connection to the event socket."""
    return await asyncio.open_connection(host, port, limit=MAX_HEADER_LINE)


def with_connect_timeout(connector: Connector, timeout: float) -> Connector:
    """Wrap a connector so that a slow connect fails like a refused one.

    The wrapped connector raises the builtin ``TimeoutError`` (an ``OSError``),
    which ``ESLSession.connect`` reports as an ``ESLConnectionError``.
    """

    async def _connect(host: str, port: int):
        try:
            return await asyncio.wait_for(connector(host, port), timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"connect timed out after {timeout}s") from None

    return _connect


def _body_text(frame: RawFrame) -> str:
    return frame.body.strip() if frame.has_body else ""


class ESLSession:
    """One event socket connection and its handshake state.

    Args:
        observer: Receives every call event, in arrival order
        classifier: Maps event records to call events
        error_handler: Where errors are reported (defaults to a new handler
            owned by this session)
        connector: Opens the transport; replaced in tests
        session_id: Identifier used in logs and error metadata
    """

    def __init__(
        self,
        observer: Observer,
        *,
        classifier: Classifier = classify_event,
        error_handler: Optional[ErrorHandler] = None,
        connector: Connector = open_esl_connection,
        session_id: Optional[str] = None,
    ):
        self.observer = observer
        self.classifier = classifier
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self.error_handler = error_handler or ErrorHandler(session_id=self.session_id)
        self._connector = connector

        self.status = SessionStatus.DISCONNECTED
        self.address: Optional[Tuple[str, int]] = None
        self._credential: Optional[str] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._frames: Optional[FrameSource] = None
        # First event frame seen while waiting for the subscription reply
        self._pending: Optional[RawFrame] = None

        self.events_delivered = 0
        self.parse_failures = 0

    def __repr__(self) -> str:
        return (
            f"ESLSession(id={self.session_id}, status={self.status.value}, "
            f"address={self.address})"
        )

    async def __aenter__(self) -> "ESLSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Handshake
    # ------------------------------------------------------------------

    async def connect(self, address: Address) -> None:
        """Open the transport. ``DISCONNECTED -> CONNECTED``.

        Raises:
            ESLConnectionError: the server is unreachable or refused us
        """
        self._require(SessionStatus.DISCONNECTED, operation="connect")
        host, port = parse_address(address)
        self.address = (host, port)

        try:
            reader, writer = await self._connector(host, port)
        except OSError as e:
            error = ESLConnectionError(f"Could not connect to {host}:{port}: {e}")
            error.__cause__ = e
            await self._abort(error, ErrorContext.CONNECTION, "connect")

        self._writer = writer
        self._frames = FrameSource(reader)
        self._transition(SessionStatus.CONNECTED)
        logger.info(f"[{self.session_id}] Connected to event socket at {host}:{port}")

    async def authenticate(self, credential: str) -> None:
        """Answer the server's auth request. ``CONNECTED -> AUTHENTICATED``.

        Raises:
            AuthError: the server replied ``-ERR``
            ESLConnectionError: the server rejected or dropped the connection
            ESLProtocolError: the server sent something other than the
                expected auth request or command reply
        """
        self._require(SessionStatus.CONNECTED, operation="authenticate")
        command = Command.auth(credential)
        self._credential = credential

        greeting = await self._expect_frame("authenticate")
        if greeting.content_type == ContentType.RUDE_REJECTION.value:
            await self._abort(
                ESLConnectionError(
                    f"Server rejected the connection: {_body_text(greeting)}"
                ),
                ErrorContext.CONNECTION,
                "authenticate",
            )
        if greeting.content_type != ContentType.AUTH_REQUEST.value:
            await self._abort(
                ESLProtocolError(
                    f"Expected {ContentType.AUTH_REQUEST.value}, got {greeting.content_type}"
                ),
                ErrorContext.PROTOCOL,
                "authenticate",
            )

        self._transition(SessionStatus.AUTHENTICATING)
        await self._send(command, "authenticate")

        reply = await self._expect_frame("authenticate")
        if reply.content_type != ContentType.COMMAND_REPLY.value:
            await self._abort(
                ESLProtocolError(
                    f"Expected {ContentType.COMMAND_REPLY.value} to auth, got {reply.content_type}"
                ),
                ErrorContext.PROTOCOL,
                "authenticate",
            )
        if not reply.reply_ok():
            await self._abort(
                AuthError(f"Authentication rejected: {reply.reply_text}", reply.reply_text),
                ErrorContext.AUTH,
                "authenticate",
            )

        self._transition(SessionStatus.AUTHENTICATED)
        logger.info(f"[{self.session_id}] Authenticated")

    async def subscribe(
        self,
        event_format: str = DEFAULT_EVENT_FORMAT,
        event_classes: Iterable[str] = DEFAULT_EVENT_CLASSES,
    ) -> None:
        """Subscribe to events. ``AUTHENTICATED -> STREAMING``.

        The subscription counts as acknowledged on a ``+OK`` reply or on the
        first event frame, whichever arrives first. An early event frame is
        kept and delivered first by :meth:`stream`.

        Raises:
            ValueError: unsupported format or no event classes
            ESLProtocolError: the server replied ``-ERR``
            ESLConnectionError: the connection dropped before acknowledgment
        """
        self._require(SessionStatus.AUTHENTICATED, operation="subscribe")
        if event_format not in SUPPORTED_EVENT_FORMATS:
            raise ValueError(
                f"Unsupported event format '{event_format}', "
                f"expected one of {SUPPORTED_EVENT_FORMATS}"
            )
        classes = list(event_classes)
        if not classes:
            raise ValueError("At least one event class is required")
        command = Command.event(event_format, classes)

        self._transition(SessionStatus.SUBSCRIBING)
        await self._send(command, "subscribe")

        while True:
            frame = await self._expect_frame("subscribe")
            if frame.is_event:
                self._pending = frame
                break
            if frame.content_type == ContentType.COMMAND_REPLY.value:
                if frame.reply_ok():
                    break
                await self._abort(
                    ESLProtocolError(f"Subscription rejected: {frame.reply_text}"),
                    ErrorContext.PROTOCOL,
                    "subscribe",
                )
            logger.debug(
                f"[{self.session_id}] Ignoring {frame.content_type} frame while subscribing"
            )

        self._transition(SessionStatus.STREAMING)
        logger.info(
            f"[{self.session_id}] Subscribed to {' '.join(classes)} ({event_format})"
        )

    # ------------------------------------------------------------------
    # Read loop
    # ------------------------------------------------------------------

    async def stream(self) -> int:
        """Deliver call events until the server closes the stream.

        ``STREAMING -> CLOSED`` on a clean end, ``STREAMING -> FAILED`` when
        the connection or the framing breaks (the error is re-raised).

        Returns:
            int: Number of call events delivered by this call
        """
        self._require(SessionStatus.STREAMING, operation="stream")
        delivered = 0

        while True:
            if self._pending is not None:
                frame, self._pending = self._pending, None
            else:
                frame = await self._next_frame("stream")
                if frame is None:
                    break
            if await self._process_frame(frame):
                delivered += 1

        self._transition(SessionStatus.CLOSED)
        await self._close_transport()
        logger.info(
            f"[{self.session_id}] Event stream ended after {delivered} events "
            f"({self.parse_failures} unparseable)"
        )
        return delivered

    async def _process_frame(self, frame: RawFrame) -> bool:
        """Parse, classify and deliver one frame. True if an event was delivered."""
        if frame.content_type == ContentType.DISCONNECT_NOTICE.value:
            logger.info(
                f"[{self.session_id}] Server disconnect notice: {_body_text(frame)}"
            )
            return False
        if not frame.is_event:
            logger.debug(f"[{self.session_id}] Skipping {frame.content_type} frame")
            return False

        try:
            record = parse_frame(frame)
        except ParseError as e:
            self.parse_failures += 1
            await self.error_handler.handle_error(
                e,
                ErrorContext.PARSE,
                operation="parse_event",
                content_type=frame.content_type,
            )
            return False

        event = self.classifier(record)
        try:
            await deliver(self.observer, event)
        except Exception as e:
            await self.error_handler.handle_error(
                e,
                ErrorContext.OBSERVER,
                operation="deliver_event",
                kind=event.kind.value,
            )
        self.events_delivered += 1
        return True

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the connection. Non-terminal sessions become CLOSED."""
        if not self.status.is_terminal:
            self._transition(SessionStatus.CLOSED)
        self._pending = None
        await self._close_transport()

    async def _close_transport(self) -> None:
        writer, self._writer = self._writer, None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"[{self.session_id}] Error while closing connection: {e}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, *allowed: SessionStatus, operation: str) -> None:
        if self.status not in allowed:
            raise InvalidStateError(
                f"Cannot {operation} in state {self.status.value}; "
                f"expected {', '.join(s.value for s in allowed)}"
            )

    def _transition(self, target: SessionStatus) -> None:
        if not can_transition(self.status, target):
            raise InvalidStateError(
                f"Illegal session transition {self.status.value} -> {target.value}"
            )
        logger.debug(f"[{self.session_id}] {self.status.value} -> {target.value}")
        self.status = target

    async def _abort(
        self,
        error: Exception,
        context: ErrorContext,
        operation: str,
    ) -> NoReturn:
        """Report a fatal error, mark the session FAILED and raise."""
        if not self.status.is_terminal:
            self._transition(SessionStatus.FAILED)
        self._pending = None
        await self._close_transport()
        await self.error_handler.handle_error(
            error,
            context,
            operation=operation,
            address=self.address,
        )
        raise error

    async def _next_frame(self, operation: str) -> Optional[RawFrame]:
        try:
            return await self._frames.read_frame()
        except ESLProtocolError as e:
            await self._abort(e, ErrorContext.PROTOCOL, operation)
        except ESLConnectionError as e:
            await self._abort(e, ErrorContext.CONNECTION, operation)

    async def _expect_frame(self, operation: str) -> RawFrame:
        frame = await self._next_frame(operation)
        if frame is None:
            await self._abort(
                ESLConnectionError(f"Connection closed by server during {operation}"),
                ErrorContext.CONNECTION,
                operation,
            )
        return frame

    async def _send(self, command: Command, operation: str) -> None:
        try:
            self._writer.write(command.encode())
            await self._writer.drain()
        except OSError as e:
            error = ESLConnectionError(f"Error writing to event socket: {e}")
            error.__cause__ = e
            await self._abort(error, ErrorContext.CONNECTION, operation)


async def run_session(
    address: Address,
    credential: str,
    observer: Observer,
    event_format: str = DEFAULT_EVENT_FORMAT,
    event_classes: Sequence[str] = DEFAULT_EVENT_CLASSES,
    **session_kwargs,
) -> int:
    """Connect, authenticate, subscribe and stream; always closes.

    Returns:
        int: Number of call events delivered
    """
    async with ESLSession(observer, **session_kwargs) as session:
        await session.connect(address)
        await session.authenticate(credential)
        await session.subscribe(event_format, event_classes)
        return await session.stream()
