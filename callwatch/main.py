"""
Command line entry point: watch call lifecycle events on an event socket.

Connects to a FreeSWITCH event socket, authenticates, subscribes and logs one
line per call event until the server closes the connection.

Usage:
    callwatch [ADDRESS] [PASSWORD] [--format json|plain] [--events CLASS ...]
              [--log-level LEVEL] [--env-file PATH] [--no-log-file]

ADDRESS and PASSWORD fall back to ESL_HOST/ESL_PORT and ESL_PASSWORD.
Exit status is 0 when the stream ends cleanly, 1 when the configuration is
invalid or the session fails, and 130 on Ctrl-C.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Sequence

from callwatch.config import get_config, get_environment_info, load_env_file
from callwatch.config.constants import LOGGER_NAME, SUPPORTED_EVENT_FORMATS
from callwatch.config.logging_config import configure_logging
from callwatch.exceptions import AuthError, ESLConnectionError, ESLProtocolError
from callwatch.observers import CompositeObserver, EventCounterObserver, LogLineObserver
from callwatch.services.esl_client import (
    Address,
    Connector,
    ESLSession,
    open_esl_connection,
    with_connect_timeout,
)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="callwatch",
        description="Log call lifecycle events from a FreeSWITCH event socket",
    )
    parser.add_argument(
        "address",
        nargs="?",
        default=None,
        help="Event socket address as host[:port] (default: ESL_HOST:ESL_PORT)",
    )
    parser.add_argument(
        "password",
        nargs="?",
        default=None,
        help="Event socket password (default: ESL_PASSWORD)",
    )
    parser.add_argument(
        "--format",
        dest="event_format",
        choices=SUPPORTED_EVENT_FORMATS,
        default=None,
        help="Event encoding to subscribe with (default: ESL_EVENT_FORMAT or json)",
    )
    parser.add_argument(
        "--events",
        nargs="+",
        metavar="CLASS",
        default=None,
        help="Event classes to subscribe to (default: ESL_EVENT_CLASSES or ALL)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Logging level (default: LOG_LEVEL env var or INFO)",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to a .env file to load before reading configuration",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to the console only",
    )
    return parser.parse_args(argv)


async def watch(
    address: Address,
    password: str,
    event_format: str,
    event_classes: List[str],
    logger: logging.Logger,
    connect_timeout: Optional[float] = None,
    connector: Connector = open_esl_connection,
) -> int:
    """Run one session to completion and return the process exit status."""
    if connect_timeout:
        connector = with_connect_timeout(connector, connect_timeout)
    counter = EventCounterObserver()
    session = ESLSession(
        CompositeObserver([LogLineObserver(logger), counter]), connector=connector
    )

    try:
        async with session:
            await session.connect(address)
            await session.authenticate(password)
            await session.subscribe(event_format, event_classes)
            await session.stream()
    except ValueError as e:
        logger.error(f"Invalid session parameters: {e}")
        return 1
    except (ESLConnectionError, ESLProtocolError, AuthError) as e:
        logger.error(f"Session failed: {e}")
        return 1
    finally:
        logger.info(f"Event summary: {counter.snapshot()}")
        errors = session.error_handler.get_error_stats()
        if errors["total_errors"]:
            counts = {ctx: n for ctx, n in errors["error_counts"].items() if n}
            logger.info(f"Error summary: {counts}")

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    load_env_file(args.env_file)
    try:
        config = get_config()
    except ValueError as e:
        logger = configure_logging(LOGGER_NAME, file_path=None, level=args.log_level)
        logger.error(f"Invalid configuration: {e}")
        return 1

    log_dir = None
    if config.logging.log_to_file and not args.no_log_file:
        log_dir = config.logging.log_dir
    logger = configure_logging(
        LOGGER_NAME,
        file_path=log_dir,
        log_filename=config.logging.log_filename,
        level=args.log_level or config.logging.level.value,
    )

    esl = config.esl
    address = args.address or esl.address
    password = args.password if args.password is not None else esl.password
    event_format = args.event_format or esl.event_format
    event_classes = args.events or esl.event_classes

    logger.info("=== callwatch ===")
    logger.info(f"Environment: {config.environment.value}")
    logger.debug(f"Environment variables: {get_environment_info()}")
    logger.info(f"Target: {address}")
    logger.info(f"Subscription: {event_format} {' '.join(event_classes)}")

    try:
        return asyncio.run(
            watch(
                address,
                password,
                event_format,
                event_classes,
                logger,
                connect_timeout=esl.connect_timeout,
            )
        )
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
