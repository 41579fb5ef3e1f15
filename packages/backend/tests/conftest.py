"""Test fixtures — fake connections, isolated registries, app clients.

Learn: The relay core never touches a socket directly; it talks to a
Connection. FakeConnection is an in-memory one: tests push inbound
frames with push(), simulate a disconnect with hang_up(), and read what
the member was sent from .sent.

Every test gets its own GroupRegistry, stopped afterwards, so group
tasks never leak between event loops.
"""

import asyncio

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from chatrelay.config import Settings
from chatrelay.main import create_app
from chatrelay.realtime import ConnectionClosed, GroupRegistry, Member


class FakeConnection:
    """In-memory Connection for driving sessions without a network."""

    def __init__(self):
        self.inbound: asyncio.Queue = asyncio.Queue()
        self.sent: list[str] = []
        self.opened = False
        self.close_calls = 0
        self.fail_sends = False

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def open(self) -> None:
        self.opened = True

    async def receive_frame(self) -> str:
        item = await self.inbound.get()
        if item is None:
            raise ConnectionClosed(code=1000, reason="client hung up")
        return item

    async def send_frame(self, frame: str) -> None:
        if self.fail_sends or self.closed:
            raise ConnectionClosed(code=1006, reason="send failed")
        self.sent.append(frame)

    async def close(self) -> None:
        self.close_calls += 1

    # ─── Test helpers ───────────────────────────────────────

    def push(self, text: str) -> None:
        self.inbound.put_nowait(text)

    def hang_up(self) -> None:
        self.inbound.put_nowait(None)


def make_member(name: str = "user1", buffer_size: int = 256) -> Member:
    return Member(FakeConnection(), name=name, buffer_size=buffer_size)


async def drain(member: Member) -> list[str]:
    """Pop everything currently sitting in a member's outbound queue."""
    frames = []
    while len(member.outbound):
        frames.append(await member.outbound.get())
    return frames


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll until predicate() is true, failing the test after timeout."""
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest_asyncio.fixture()
async def registry():
    """A fresh registry per test, with every group stopped afterwards."""
    reg = GroupRegistry()
    try:
        yield reg
    finally:
        await reg.close()


@pytest_asyncio.fixture()
async def group(registry):
    return await registry.get_or_create("lobby")


@pytest_asyncio.fixture()
async def app():
    """A fresh app with its own registry."""
    application = create_app(Settings())
    try:
        yield application
    finally:
        await application.state.registry.close()


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client against the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
