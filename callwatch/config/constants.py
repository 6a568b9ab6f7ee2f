"""
Constants and protocol values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol strings and defaults and making it easier
to maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "callwatch"

# Event socket connection defaults
DEFAULT_ESL_HOST = "127.0.0.1"
DEFAULT_ESL_PORT = 8021
DEFAULT_ESL_PASSWORD = "ClueCon"
DEFAULT_CONNECT_TIMEOUT = 10.0  # seconds, applied by the CLI only

# Subscription defaults ("event json ALL")
DEFAULT_EVENT_FORMAT = "json"
DEFAULT_EVENT_CLASSES = ["ALL"]
SUPPORTED_EVENT_FORMATS = ["json", "plain"]

# Every command and every header block ends with a blank line
MESSAGE_TERMINATOR = "\n\n"

# Longest header line the frame reader accepts
MAX_HEADER_LINE = 64 * 1024
