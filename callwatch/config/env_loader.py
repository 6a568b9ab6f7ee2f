"""
Environment variable loader for callwatch configuration.

This module handles loading configuration from environment variables,
with type conversion, validation, and fallback to defaults.

Environment variables must be explicitly loaded using load_env_file() before
accessing any configuration functions.
"""

import os
from typing import Any, Dict, List, Optional, Type, TypeVar, cast, get_origin

from dotenv import load_dotenv

from .constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_ESL_HOST,
    DEFAULT_ESL_PASSWORD,
    DEFAULT_ESL_PORT,
    DEFAULT_EVENT_CLASSES,
    DEFAULT_EVENT_FORMAT,
)
from .models import (
    ApplicationConfig,
    Environment,
    ESLConfig,
    LoggingConfig,
    LogLevel,
)

# Track if environment variables have been loaded
_env_loaded = False


def load_env_file(env_file: Optional[str] = None) -> None:
    """Load environment variables from a .env file.

    This function must be called before accessing any configuration functions.

    Args:
        env_file: Path to the .env file. If None, uses default behavior.
    """
    global _env_loaded
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()
    _env_loaded = True


def _check_env_loaded() -> None:
    """Check if environment variables have been loaded, raise error if not."""
    if not _env_loaded:
        raise RuntimeError(
            "Environment variables not loaded. Call load_env_file() before accessing configuration."
        )


T = TypeVar("T")


def safe_convert(value: Optional[str], target_type: Type[T], default: T) -> T:
    """Safely convert environment variable string to target type."""
    if value is None:
        return default

    try:
        if target_type == bool:
            return cast(T, value.strip().lower() in ("true", "1", "yes"))
        elif target_type == int:
            return cast(T, int(value))
        elif target_type == float:
            return cast(T, float(value))
        elif target_type == str:
            return cast(T, value)
        elif get_origin(target_type) == list:
            items = [item.strip() for item in value.split(",") if item.strip()]
            return cast(T, items or default)
        elif callable(target_type):
            return cast(T, target_type(value))  # type: ignore
        else:
            return default
    except (ValueError, TypeError):
        return default


def safe_string_or_none(value: Optional[str]) -> Optional[str]:
    """Convert environment variable to string or None if empty."""
    if value is None or value.strip() == "":
        return None
    return value.strip()


def load_esl_config() -> ESLConfig:
    """Load event socket configuration from environment variables."""
    _check_env_loaded()

    timeout = safe_convert(
        os.getenv("ESL_CONNECT_TIMEOUT"), float, DEFAULT_CONNECT_TIMEOUT
    )

    return ESLConfig(
        host=os.getenv("ESL_HOST", DEFAULT_ESL_HOST),
        port=safe_convert(os.getenv("ESL_PORT"), int, DEFAULT_ESL_PORT),
        password=os.getenv("ESL_PASSWORD", DEFAULT_ESL_PASSWORD),
        event_format=os.getenv("ESL_EVENT_FORMAT", DEFAULT_EVENT_FORMAT).lower(),
        event_classes=safe_convert(
            os.getenv("ESL_EVENT_CLASSES"), List[str], list(DEFAULT_EVENT_CLASSES)
        ),
        connect_timeout=timeout if timeout and timeout > 0 else None,
    )


def load_logging_config() -> LoggingConfig:
    """Load logging configuration from environment variables."""
    _check_env_loaded()

    level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    try:
        level = LogLevel(level_str)
    except ValueError:
        level = LogLevel.INFO

    return LoggingConfig(
        level=level,
        log_to_file=safe_convert(os.getenv("LOG_TO_FILE"), bool, True),
        log_dir=os.getenv("LOG_DIR", "logs"),
        log_filename=os.getenv("LOG_FILE", "callwatch.log"),
    )


def load_application_config() -> ApplicationConfig:
    """Load the complete application configuration from environment variables."""
    _check_env_loaded()

    env_str = os.getenv("ENV", "production").lower()
    try:
        environment = Environment(env_str)
    except ValueError:
        environment = Environment.PRODUCTION

    return ApplicationConfig(
        environment=environment,
        esl=load_esl_config(),
        logging=load_logging_config(),
    )


def get_environment_info() -> Dict[str, Any]:
    """Summarize the configuration-relevant environment, without secrets."""
    _check_env_loaded()
    return {
        "env": os.getenv("ENV", "production"),
        "esl_host": os.getenv("ESL_HOST", DEFAULT_ESL_HOST),
        "esl_port": os.getenv("ESL_PORT", str(DEFAULT_ESL_PORT)),
        "esl_password_set": safe_string_or_none(os.getenv("ESL_PASSWORD")) is not None,
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }
