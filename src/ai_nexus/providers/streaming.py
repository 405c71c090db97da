"""Server-sent event decoding for streaming chat providers.

Network reads do not align with event boundaries, so the decoder buffers
partial lines between reads and only parses complete ``data:`` lines. A
literal ``[DONE]`` payload ends the stream.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from ai_nexus.utils.logging import get_logger

logger = get_logger(__name__)

DONE_MARKER = "[DONE]"


class SSEDecoder:
    """Incremental decoder turning raw text reads into JSON events."""

    def __init__(self) -> None:
        self._buffer = ""
        self.done = False

    def feed(self, data: str) -> list[dict[str, Any]]:
        """Add a network read and return the events it completed."""
        if self.done:
            return []
        self._buffer += data
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def flush(self) -> list[dict[str, Any]]:
        """Parse whatever is left once the transport has closed."""
        if self.done or not self._buffer:
            return []
        remainder, self._buffer = self._buffer, ""
        return self._parse_lines([remainder])

    def _parse_lines(self, lines: list[str]) -> list[dict[str, Any]]:
        events: list[dict[str, Any]] = []
        for raw_line in lines:
            line = raw_line.strip()
            if not line.startswith("data:"):
                continue
            data_str = line[5:].strip()
            if not data_str:
                continue
            if data_str == DONE_MARKER:
                self.done = True
                break
            try:
                event = json.loads(data_str)
            except json.JSONDecodeError:
                logger.debug("stream_chunk_parse_failed", data_preview=data_str[:200])
                continue
            if isinstance(event, dict):
                events.append(event)
        return events


async def iter_sse_events(chunks: AsyncIterable[str]) -> AsyncIterator[dict[str, Any]]:
    """Yield decoded events from an async stream of text reads, in order."""
    decoder = SSEDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
        if decoder.done:
            return
    for event in decoder.flush():
        yield event


def extract_openai_delta(event: dict[str, Any]) -> str:
    """Text delta of an OpenAI-compatible chat completion chunk."""
    choices = event.get("choices") or []
    if not choices:
        return ""
    choice = choices[0] or {}
    delta = choice.get("delta") or {}
    return delta.get("content") or choice.get("text") or ""


def extract_gemini_text(event: dict[str, Any]) -> str:
    """Concatenated text parts of a Gemini response, skipping thought parts."""
    candidates = event.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(
        part.get("text", "") for part in parts if not part.get("thought")
    )
