"""Turn an event frame body into a flat event record.

An event record is a ``Dict[str, str]``. The server sends events either as a
JSON object (``text/event-json``) or as URL-encoded header lines
(``text/event-plain``); both end up in the same shape.

JSON values that are not strings are normalized instead of rejected:

- numbers and booleans become their JSON text (``5``, ``true``)
- ``null`` drops the key
- nested objects and arrays become compact JSON text
"""

import json
from typing import Any, Dict, Optional
from urllib.parse import unquote

from callwatch.exceptions import ParseError
from callwatch.models.esl_api import ContentType, EventField, RawFrame

EventRecord = Dict[str, str]


def _stringify(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def parse_json_event(body: str) -> EventRecord:
    """Parse a ``text/event-json`` body.

    Raises:
        ParseError: invalid JSON, a non-object top level, or nesting deeper
            than the interpreter can decode
    """
    try:
        data = json.loads(body)
    except ValueError as e:
        raise ParseError(
            f"Event body is not valid JSON: {e}", ContentType.EVENT_JSON.value
        ) from e
    except RecursionError as e:
        raise ParseError(
            "Event body is nested too deeply", ContentType.EVENT_JSON.value
        ) from e

    if not isinstance(data, dict):
        raise ParseError(
            f"Event body must be a JSON object, got {type(data).__name__}",
            ContentType.EVENT_JSON.value,
        )

    record: EventRecord = {}
    try:
        for key, value in data.items():
            text = _stringify(value)
            if text is not None:
                record[key] = text
    except RecursionError as e:
        raise ParseError(
            f"Event field {key!r} is nested too deeply", ContentType.EVENT_JSON.value
        ) from e
    return record


def parse_plain_event(body: str) -> EventRecord:
    """Parse a ``text/event-plain`` body.

    Header lines come first, then an optional blank line and a free-form body,
    which is kept under ``_body``.
    """
    record: EventRecord = {}
    head, sep, rest = body.partition("\n\n")
    for line in head.splitlines():
        if not line.strip():
            continue
        name, colon, value = line.partition(":")
        if not colon or not name.strip():
            raise ParseError(
                f"Malformed event header line: {line!r}",
                ContentType.EVENT_PLAIN.value,
            )
        record[name.strip()] = unquote(value.strip())
    if sep and rest:
        record[EventField.BODY.value] = rest
    return record


_PARSERS = {
    ContentType.EVENT_JSON.value: parse_json_event,
    ContentType.EVENT_PLAIN.value: parse_plain_event,
}


def parse_event_body(
    body: Optional[str], content_type: Optional[str] = ContentType.EVENT_JSON.value
) -> EventRecord:
    """Parse an event body according to its content type.

    Raises:
        ParseError: if the body is missing, malformed, or of a format we do
            not read
    """
    if body is None:
        raise ParseError("Event frame has no body", content_type)

    parser = _PARSERS.get(content_type or "")
    if parser is None:
        raise ParseError(f"Unsupported event content type: {content_type}", content_type)
    return parser(body)


def parse_frame(frame: RawFrame) -> EventRecord:
    """Parse the body of an event frame."""
    return parse_event_body(frame.body, frame.content_type)
