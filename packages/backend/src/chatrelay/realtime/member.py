"""Members and their outbound queues.

Learn: A Member is one connected participant. Its outbound queue is
bounded: the owning Group is the only writer, the member's writer task
is the only reader. When the queue is full, Group delivery waits, which
is how a slow client pushes back on the whole room.
"""

import asyncio
import random
from collections import deque
from typing import Optional

from chatrelay.realtime.connection import Connection
from chatrelay.realtime.errors import QueueClosed

MESSAGE_BUFFER_SIZE = 256


def generate_display_name() -> str:
    """Pick a display name like "user417". Names are not unique."""
    return f"user{random.randint(0, 999)}"


class OutboundQueue:
    """Bounded FIFO of text frames waiting to be written to one connection.

    - put() waits while the queue is full. It gives up (returns False)
      once the queue is abandoned, or when a timeout is given and expires.
    - get() keeps returning frames after close() until the queue is
      drained, then raises QueueClosed.
    - close() and abandon() can be called any number of times.
    """

    def __init__(self, maxsize: int = MESSAGE_BUFFER_SIZE):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.maxsize = maxsize
        self._frames: deque[str] = deque()
        self._closed = False
        self._abandoned = False
        self._cond = asyncio.Condition()

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    def full(self) -> bool:
        return len(self._frames) >= self.maxsize

    def _writable(self) -> bool:
        return self._closed or self._abandoned or not self.full()

    def _readable(self) -> bool:
        return self._closed or bool(self._frames)

    async def put(self, frame: str, timeout: Optional[float] = None) -> bool:
        """Enqueue a frame. Returns True if it was queued."""
        async with self._cond:
            if timeout is None:
                await self._cond.wait_for(self._writable)
            else:
                try:
                    await asyncio.wait_for(self._cond.wait_for(self._writable), timeout)
                except asyncio.TimeoutError:
                    return False

            if self._closed:
                raise QueueClosed("put() on a closed outbound queue")
            if self._abandoned:
                return False

            self._frames.append(frame)
            self._cond.notify_all()
            return True

    async def get(self) -> str:
        """Take the next frame, waiting if there is none yet."""
        async with self._cond:
            await self._cond.wait_for(self._readable)
            if not self._frames:
                raise QueueClosed("outbound queue closed")
            frame = self._frames.popleft()
            self._cond.notify_all()
            return frame

    async def close(self) -> None:
        """Signal end-of-stream to the reader."""
        async with self._cond:
            self._closed = True
            self._cond.notify_all()

    async def abandon(self) -> None:
        """Stop accepting frames; releases a put() blocked on a full queue."""
        async with self._cond:
            self._abandoned = True
            self._cond.notify_all()


class Member:
    """One participant's session state inside a Group.

    Members hash and compare by identity — two members may well share a
    display name.
    """

    def __init__(
        self,
        connection: Connection,
        name: Optional[str] = None,
        buffer_size: int = MESSAGE_BUFFER_SIZE,
    ):
        self._name = name if name is not None else generate_display_name()
        self.connection = connection
        self.outbound = OutboundQueue(buffer_size)

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"<Member {self._name!r} at {id(self):#x}>"
