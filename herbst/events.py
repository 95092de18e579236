"""
Server-push channel: ``text/event-stream`` framing and the channel seam used
by the live-state store.

Reconnection is a plain reopen of the stream; ``id:`` and ``retry:`` fields
are ignored since the server offers no resumable offsets.
"""

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Protocol

import httpx

from herbst.client import DashboardClient
from herbst.errors import ChannelError

logger = logging.getLogger(__name__)

DEFAULT_EVENT_TYPE = "message"


@dataclass(frozen=True)
class ServerEvent:
    event: str
    data: str


async def iter_sse(lines: AsyncIterator[str]) -> AsyncIterator[ServerEvent]:
    """Decode SSE lines (without line terminators) into events."""
    event_type = ""
    data_lines: list[str] = []

    async for line in lines:
        if line == "":
            if data_lines:
                yield ServerEvent(event=event_type or DEFAULT_EVENT_TYPE, data="\n".join(data_lines))
            event_type = ""
            data_lines = []
            continue

        if line.startswith(":"):
            continue  # comment / keep-alive

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            event_type = value
        elif field == "data":
            data_lines.append(value)


class EventChannel(Protocol):
    """
    A single connection to the push stream.

    ``messages()`` yields events until the stream ends. Transport failures
    raise ``ChannelError``; a normal end of iteration means the server closed
    the stream.
    """

    def messages(self) -> AsyncIterator[ServerEvent]: ...


class HttpEventChannel:
    """EventChannel backed by ``GET /api/events``."""

    def __init__(self, client: DashboardClient):
        self._client = client

    async def messages(self) -> AsyncIterator[ServerEvent]:
        try:
            async with self._client.stream_events() as response:
                if not response.is_success:
                    raise ChannelError(f"event stream returned HTTP {response.status_code}")
                async for event in iter_sse(response.aiter_lines()):
                    yield event
        except (httpx.HTTPError, httpx.StreamError) as e:
            raise ChannelError(f"event stream failed: {e!r}") from e
