"""Queue-backed transport for local runs and tests.

Inbound activities are pushed with `push` and consumed once through
`activities()`. Outbound traffic is recorded and forwarded to an optional
`on_send` callback (the console runner prints from it).
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable, List, Optional, Tuple, Union

from core.models import Activity, Address

_CLOSED = object()


class QueueTransport:
    """Transport adapter over an `asyncio.Queue`."""

    def __init__(self, on_send: Optional[Callable[[Optional[Address], Union[Activity, str]], None]] = None) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._on_send = on_send
        self._consumed = False
        self.sent: List[Tuple[Optional[Address], Union[Activity, str]]] = []
        self.posted: List[Activity] = []

    def push(self, activity: Activity) -> None:
        self._queue.put_nowait(activity)

    def close(self) -> None:
        """Complete the inbound stream after already queued activities."""

        self._queue.put_nowait(_CLOSED)

    def send(self, address: Optional[Address], content: Union[Activity, str]) -> None:
        self.sent.append((address, content))
        if self._on_send:
            self._on_send(address, content)

    async def send_async(self, address: Optional[Address], content: Union[Activity, str]) -> None:
        self.send(address, content)

    def post_activity(self, activity: Activity) -> None:
        self.posted.append(activity)
        if self._on_send:
            self._on_send(None, activity)

    async def activities(self) -> AsyncIterator[Activity]:
        if self._consumed:
            raise RuntimeError("Activity stream can only be consumed once")
        self._consumed = True
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item
