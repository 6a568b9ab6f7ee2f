"""
Per-session error reporting with callbacks and categorization.

Every ``ESLSession`` owns one ``ErrorHandler``; nothing here is shared between
sessions. The session reports each error it meets before deciding what to do
with it: connection, protocol and auth errors end the session, parse and
observer errors are counted and the read loop goes on.

Key Features:
- Error categorization by context (connection, protocol, auth, parse, ...)
- Severity derived from the context unless the caller overrides it
- Sync or async callbacks, per context or for every context
- Per-context counts and a short history of recent errors

Usage:
    handler = ErrorHandler(session_id="a1b2c3d4")

    async def on_parse_error(error_info: ErrorInfo):
        metrics.increment("bad_payloads")

    handler.register_handler(on_parse_error, ErrorContext.PARSE)
    session = ESLSession(observer, error_handler=handler)
"""

import inspect
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from callwatch.config.constants import LOGGER_NAME


class ErrorContext(Enum):
    """Where in a session an error happened."""

    CONNECTION = "connection"
    PROTOCOL = "protocol"
    AUTH = "auth"
    PARSE = "parse"
    OBSERVER = "observer"
    SESSION = "session"
    UNKNOWN = "unknown"

    @property
    def is_fatal(self) -> bool:
        """Errors in these contexts end the session."""
        return self in FATAL_CONTEXTS


FATAL_CONTEXTS = frozenset(
    {ErrorContext.CONNECTION, ErrorContext.PROTOCOL, ErrorContext.AUTH}
)


class ErrorSeverity(Enum):
    """Error severity levels, each mapped to a logging level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self]


_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.DEBUG,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}

DEFAULT_SEVERITY: Dict[ErrorContext, ErrorSeverity] = {
    ErrorContext.CONNECTION: ErrorSeverity.CRITICAL,
    ErrorContext.PROTOCOL: ErrorSeverity.CRITICAL,
    ErrorContext.AUTH: ErrorSeverity.HIGH,
    ErrorContext.PARSE: ErrorSeverity.MEDIUM,
    ErrorContext.OBSERVER: ErrorSeverity.HIGH,
    ErrorContext.SESSION: ErrorSeverity.MEDIUM,
    ErrorContext.UNKNOWN: ErrorSeverity.MEDIUM,
}


@dataclass
class ErrorInfo:
    """One reported error, as passed to callbacks."""

    error: Exception
    context: ErrorContext
    severity: ErrorSeverity
    operation: str
    session_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def fatal(self) -> bool:
        return self.context.is_fatal

    def describe(self) -> str:
        prefix = f"[{self.session_id}] " if self.session_id else ""
        return f"{prefix}Error in {self.context.value} ({self.operation}): {self.error}"


class ErrorHandler:
    """
    Error reporter for one session.

    Args:
        session_id: Prefix for log lines and ``ErrorInfo.session_id``
        logger: Where errors are logged (defaults to the callwatch logger)
        history_size: How many recent errors ``recent_errors`` keeps
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        history_size: int = 50,
    ):
        self.session_id = session_id
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self._handlers: Dict[ErrorContext, List[Callable]] = {
            context: [] for context in ErrorContext
        }
        self._global_handlers: List[Callable] = []
        self._error_count: Dict[ErrorContext, int] = {
            context: 0 for context in ErrorContext
        }
        self._history: Deque[ErrorInfo] = deque(maxlen=history_size)

    def register_handler(
        self,
        handler: Callable[[ErrorInfo], Any],
        context: Optional[ErrorContext] = None,
    ) -> None:
        """Register a callback for one context, or for all when ``context`` is None."""
        if context is None:
            self._global_handlers.append(handler)
        else:
            self._handlers[context].append(handler)

    def unregister_handler(
        self, handler: Callable, context: Optional[ErrorContext] = None
    ) -> bool:
        """
        Remove a callback.

        Returns:
            bool: True if the callback was registered
        """
        target_list = (
            self._global_handlers if context is None else self._handlers[context]
        )
        if handler in target_list:
            target_list.remove(handler)
            return True
        return False

    async def handle_error(
        self,
        error: Exception,
        context: ErrorContext = ErrorContext.UNKNOWN,
        severity: Optional[ErrorSeverity] = None,
        operation: str = "unknown",
        **metadata,
    ) -> ErrorInfo:
        """
        Log, count and dispatch one error.

        Args:
            error: The exception that occurred
            context: Where it happened
            severity: Overrides the context's default severity
            operation: Name of the session operation that failed
            **metadata: Extra details passed through to callbacks

        Returns:
            ErrorInfo: The recorded error
        """
        error_info = ErrorInfo(
            error=error,
            context=context,
            severity=severity or DEFAULT_SEVERITY[context],
            operation=operation,
            session_id=self.session_id,
            metadata=metadata,
        )
        self._error_count[context] += 1
        self._history.append(error_info)

        self.logger.log(error_info.severity.log_level, error_info.describe())

        await self._execute_handlers(self._handlers[context], error_info)
        await self._execute_handlers(self._global_handlers, error_info)
        return error_info

    async def _execute_handlers(
        self, handlers: List[Callable], error_info: ErrorInfo
    ) -> None:
        for handler in list(handlers):
            try:
                result = handler(error_info)
                if inspect.isawaitable(result):
                    await result
            except Exception as handler_error:
                self.logger.error(f"Error in error callback: {handler_error}")

    @property
    def last_error(self) -> Optional[ErrorInfo]:
        return self._history[-1] if self._history else None

    def recent_errors(self, context: Optional[ErrorContext] = None) -> List[ErrorInfo]:
        """Recent errors, oldest first, optionally for one context."""
        return [
            info for info in self._history if context is None or info.context == context
        ]

    def get_error_stats(self) -> Dict[str, Any]:
        """Counts per context, the total and the number of fatal errors."""
        return {
            "session_id": self.session_id,
            "error_counts": {
                ctx.value: count for ctx, count in self._error_count.items()
            },
            "total_errors": sum(self._error_count.values()),
            "fatal_errors": sum(
                count for ctx, count in self._error_count.items() if ctx.is_fatal
            ),
        }

    def reset_stats(self) -> None:
        self._error_count = {context: 0 for context in ErrorContext}
        self._history.clear()
