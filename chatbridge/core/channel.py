"""Bounded push channel connecting a chunk producer to a single consumer."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Generic, TypeVar

from .exceptions import ChannelClosed
from .logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_END = object()


class _Failure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


class ChunkChannel(Generic[T]):
    """Ordered, bounded queue of chunks.

    The producer calls `send` for every chunk and ends the stream with either
    `finish` or `fail`. The consumer iterates with `async for` and may stop
    early with `aclose`; the producer then gets `ChannelClosed` from its next
    `send` and is expected to stop.
    """

    def __init__(self, maxsize: int = 64) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._ended = False
        self._task: asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    async def send(self, item: T) -> None:
        if self._closed:
            raise ChannelClosed("chunk channel closed by consumer")
        if self._ended:
            raise RuntimeError("cannot send on a finished chunk channel")
        await self._queue.put(item)

    async def finish(self) -> None:
        await self._end(_END)

    async def fail(self, error: BaseException) -> None:
        await self._end(_Failure(error))

    async def _end(self, marker: object) -> None:
        if self._closed or self._ended:
            return
        self._ended = True
        await self._queue.put(marker)

    async def aclose(self) -> None:
        """Close from the consumer side and unblock a producer waiting on a full queue."""

        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()

    def spawn(self, producer: Callable[[ChunkChannel[T]], Awaitable[None]]) -> asyncio.Task[None]:
        """Run `producer(self)` as a task whose outcome terminates the channel."""

        async def _run() -> None:
            try:
                await producer(self)
            except ChannelClosed:
                logger.info("chunk_channel_closed_by_consumer")
                return
            except Exception as exc:
                await self.fail(exc)
                return
            await self.finish()

        self._task = asyncio.create_task(_run())
        return self._task

    async def __aiter__(self) -> AsyncIterator[T]:
        while not self._closed:
            item = await self._queue.get()
            if item is _END:
                return
            if isinstance(item, _Failure):
                raise item.error
            yield item  # type: ignore[misc]
