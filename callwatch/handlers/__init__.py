"""
Event handling components.

Components:
- event_parser: Turns event frame bodies into flat event records
- event_classifier: Table-driven mapping from event records to call events
- error_handler: Per-session error reporting with callbacks and statistics
"""

from .error_handler import (
    ErrorContext,
    ErrorHandler,
    ErrorInfo,
    ErrorSeverity,
)
from .event_classifier import ClassificationRule, EventClassifier, classify_event
from .event_parser import EventRecord, parse_event_body, parse_frame

__all__ = [
    "ClassificationRule",
    "ErrorContext",
    "ErrorHandler",
    "ErrorInfo",
    "ErrorSeverity",
    "EventClassifier",
    "EventRecord",
    "classify_event",
    "parse_event_body",
    "parse_frame",
]
