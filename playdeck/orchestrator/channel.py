"""Unbounded FIFO channel carrying commands to the worker."""

from __future__ import annotations

import asyncio
from typing import Final, cast

from playdeck.core.commands import Command
from playdeck.errors import ChannelClosedError

_CLOSED: Final = object()


class CommandChannel:
    """Multi-producer, single-consumer queue of :class:`Command` values.

    ``send`` never blocks. Once closed, further sends raise
    :class:`ChannelClosedError` and the consumer drains what is left before
    ``receive`` starts returning ``None``.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    def __len__(self) -> int:
        size = self._queue.qsize()
        # A closed channel holds exactly one end marker.
        return size - 1 if self._closed and size else size

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, command: Command) -> None:
        if self._closed:
            raise ChannelClosedError()
        self._queue.put_nowait(command)

    async def receive(self) -> Command | None:
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the marker visible for any later receive call.
            self._queue.put_nowait(_CLOSED)
            return None
        return cast(Command, item)

    def try_receive(self) -> Command | None:
        """Return the next queued command without waiting."""

        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            return None
        return cast(Command, item)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)


__all__ = ["CommandChannel"]
