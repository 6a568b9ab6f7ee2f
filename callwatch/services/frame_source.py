"""
Read event socket frames from an asyncio stream.

A frame is a block of ``Name: value`` header lines ended by an empty line.
When the headers carry ``Content-Length``, exactly that many bytes of body
follow. Header values are URL-decoded.

``FrameSource`` is a lazy, non-restartable async iterator:

- it yields one ``RawFrame`` per complete message
- it raises ``ESLProtocolError`` on broken framing and ``ESLConnectionError``
  on I/O failure, after which it is exhausted
- it stops cleanly when the peer closes between two frames
"""

import asyncio
import logging
from typing import Dict, Optional
from urllib.parse import unquote

from callwatch.config.constants import LOGGER_NAME
from callwatch.exceptions import ESLConnectionError, ESLProtocolError
from callwatch.models.esl_api import RawFrame

logger = logging.getLogger(LOGGER_NAME)


class FrameSource:
    """Async iterator of raw frames over a ``StreamReader``."""

    def __init__(self, reader: asyncio.StreamReader):
        self._reader = reader
        self._exhausted = False
        self.frames_read = 0

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def __aiter__(self) -> "FrameSource":
        return self

    async def __anext__(self) -> RawFrame:
        frame = await self.read_frame()
        if frame is None:
            raise StopAsyncIteration
        return frame

    async def read_frame(self) -> Optional[RawFrame]:
        """Read the next frame, or return None once the stream has ended."""
        if self._exhausted:
            return None
        try:
            frame = await self._read_frame()
        except (ESLProtocolError, ESLConnectionError):
            self._exhausted = True
            raise
        if frame is None:
            self._exhausted = True
            logger.debug(f"Frame stream ended after {self.frames_read} frames")
        else:
            self.frames_read += 1
        return frame

    async def _read_frame(self) -> Optional[RawFrame]:
        headers: Dict[str, str] = {}
        while True:
            line = await self._read_line(in_frame=bool(headers))
            if line is None:
                return None

            text = line.decode("utf-8", errors="replace").rstrip("\r\n")
            if not text:
                if headers:
                    break
                # blank lines between frames
                continue

            name, sep, value = text.partition(":")
            if not sep or not name.strip():
                raise ESLProtocolError(f"Malformed header line: {text!r}")
            headers[name.strip()] = unquote(value.strip())

        body = None
        length_header = headers.get("Content-Length")
        if length_header is not None:
            try:
                length = int(length_header)
            except ValueError:
                raise ESLProtocolError(f"Invalid Content-Length: {length_header!r}")
            if length < 0:
                raise ESLProtocolError(f"Negative Content-Length: {length}")
            body = (await self._read_body(length)).decode("utf-8", errors="replace")

        return RawFrame(headers=headers, body=body)

    async def _read_line(self, in_frame: bool) -> Optional[bytes]:
        try:
            return await self._reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            if in_frame or e.partial.strip():
                raise ESLProtocolError("Connection closed inside a header block") from e
            return None
        except asyncio.LimitOverrunError as e:
            raise ESLProtocolError("Header line exceeds the reader limit") from e
        except OSError as e:
            raise ESLConnectionError(f"Error reading from event socket: {e}") from e

    async def _read_body(self, length: int) -> bytes:
        try:
            return await self._reader.readexactly(length)
        except asyncio.IncompleteReadError as e:
            raise ESLProtocolError(
                f"Body truncated: expected {length} bytes, got {len(e.partial)}"
            ) from e
        except OSError as e:
            raise ESLConnectionError(f"Error reading from event socket: {e}") from e
