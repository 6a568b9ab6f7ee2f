"""
Configuration models for the callwatch application.

This module defines dataclasses for the different configuration domains,
providing type safety and validation for all application settings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from callwatch.config.constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_ESL_HOST,
    DEFAULT_ESL_PASSWORD,
    DEFAULT_ESL_PORT,
    DEFAULT_EVENT_CLASSES,
    DEFAULT_EVENT_FORMAT,
    SUPPORTED_EVENT_FORMATS,
)


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ESLConfig:
    """Event socket connection and subscription settings."""

    host: str = DEFAULT_ESL_HOST
    port: int = DEFAULT_ESL_PORT
    password: str = DEFAULT_ESL_PASSWORD
    event_format: str = DEFAULT_EVENT_FORMAT
    event_classes: List[str] = field(
        default_factory=lambda: list(DEFAULT_EVENT_CLASSES)
    )
    # None disables the timeout around connect()
    connect_timeout: Optional[float] = DEFAULT_CONNECT_TIMEOUT

    def __post_init__(self):
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid ESL port: {self.port}")
        if self.event_format not in SUPPORTED_EVENT_FORMATS:
            raise ValueError(
                f"Unsupported event format '{self.event_format}', "
                f"expected one of {SUPPORTED_EVENT_FORMATS}"
            )
        if not self.event_classes:
            raise ValueError("At least one event class is required")

    @property
    def address(self) -> Tuple[str, int]:
        """The (host, port) pair to connect to."""
        return self.host, self.port


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    log_to_file: bool = True
    log_dir: str = "logs"
    log_filename: str = "callwatch.log"


@dataclass
class ApplicationConfig:
    """Top-level configuration container."""

    environment: Environment = Environment.PRODUCTION
    esl: ESLConfig = field(default_factory=ESLConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
