"""Group — the fan-out engine for one room.

Learn: A Group owns its membership set and a FIFO of requests. A single
asyncio task (run()) pops requests one by one:

  join      → add the member
  leave     → remove the member, close its outbound queue
  broadcast → put the frame on every current member's outbound queue
  snapshot  → report the current membership

Because leave is processed in the same loop as broadcast, a broadcast
can never target a queue that leave has already closed. The price is
that one member with a full queue stalls the whole room until it drains
(or until delivery_timeout, when configured, drops that member's copy).
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

import structlog

from chatrelay.realtime.errors import GroupClosed
from chatrelay.realtime.member import Member

logger = structlog.get_logger()

JOIN = "join"
LEAVE = "leave"
BROADCAST = "broadcast"
SNAPSHOT = "snapshot"


@dataclass
class _Request:
    op: str
    done: asyncio.Future
    member: Optional[Member] = None
    frame: Optional[str] = None


class Group:
    """A named set of members that all receive the same messages."""

    def __init__(self, name: str, delivery_timeout: Optional[float] = None):
        self.name = name
        self.delivery_timeout = delivery_timeout
        self._members: set[Member] = set()
        self._requests: asyncio.Queue[_Request] = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._current: Optional[_Request] = None
        self._stopped = False
        self._log = logger.bind(group=name)

    def __repr__(self) -> str:
        return f"<Group {self.name!r}>"

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ─── Lifecycle ──────────────────────────────────────────

    def start(self) -> None:
        """Launch the serialization task (no-op if already started)."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self.run(), name=f"group:{self.name}")

    async def stop(self) -> None:
        """Stop the serialization task and fail every unprocessed request."""
        self._stopped = True
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        unfinished = [self._current] if self._current is not None else []
        self._current = None
        while not self._requests.empty():
            unfinished.append(self._requests.get_nowait())
        for request in unfinished:
            if not request.done.done():
                request.done.set_exception(GroupClosed(f"group {self.name!r} is stopped"))
        self._log.info("group.stopped")

    # ─── Public operations ──────────────────────────────────

    async def join(self, member: Member) -> None:
        """Add a member. It only sees messages broadcast after this."""
        await self._submit(JOIN, member=member)

    async def leave(self, member: Member) -> None:
        """Remove a member and close its outbound queue."""
        await self._submit(LEAVE, member=member)

    async def broadcast(self, frame: str) -> int:
        """Deliver a frame to every current member, sender included.

        Returns the number of members the frame was queued for.
        """
        return await self._submit(BROADCAST, frame=frame)

    async def members(self) -> frozenset[Member]:
        """Snapshot of the membership, ordered with every other request."""
        return await self._submit(SNAPSHOT)

    async def _submit(self, op: str, member: Optional[Member] = None, frame: Optional[str] = None) -> Any:
        if self._stopped:
            raise GroupClosed(f"group {self.name!r} is stopped")
        done = asyncio.get_running_loop().create_future()
        self._requests.put_nowait(_Request(op=op, done=done, member=member, frame=frame))
        return await done

    # ─── Serialization point ────────────────────────────────

    async def run(self) -> None:
        """Process requests one at a time, in submission order."""
        self._log.info("group.started")
        while True:
            request = await self._requests.get()
            # Left set if stop() cancels us mid-request, so it can fail it
            self._current = request
            try:
                result = await self._handle(request)
            except Exception as e:
                self._current = None
                self._log.exception("group.request_failed", op=request.op)
                if not request.done.done():
                    request.done.set_exception(e)
                continue
            self._current = None
            # The submitter may have been cancelled while we worked
            if not request.done.done():
                request.done.set_result(result)

    async def _handle(self, request: _Request) -> Any:
        if request.op == JOIN:
            self._members.add(request.member)
            self._log.info("group.member_joined", member=request.member.name, members=len(self._members))
            return None

        if request.op == LEAVE:
            self._members.discard(request.member)
            await request.member.outbound.close()
            self._log.info("group.member_left", member=request.member.name, members=len(self._members))
            return None

        if request.op == BROADCAST:
            return await self._deliver(request.frame)

        if request.op == SNAPSHOT:
            return frozenset(self._members)

        raise ValueError(f"Unknown group request: {request.op}")

    async def _deliver(self, frame: str) -> int:
        delivered = 0
        for member in list(self._members):
            if await member.outbound.put(frame, timeout=self.delivery_timeout):
                delivered += 1
            elif member.outbound.abandoned:
                self._log.debug("group.delivery_skipped", member=member.name, reason="leaving")
            else:
                self._log.warning(
                    "group.delivery_dropped",
                    member=member.name,
                    reason="queue_full",
                    timeout=self.delivery_timeout,
                )
        return delivered
