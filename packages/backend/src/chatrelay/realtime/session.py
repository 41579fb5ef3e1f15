"""Member session — the two tasks that move frames for one connection.

Learn: Each connected member runs two concurrent tasks:
1. Reader — pulls frames off the connection, wraps them as
   {"name", "message"} and broadcasts them to the group
2. Writer — drains the member's outbound queue onto the connection

When either side finishes, the other is cancelled and the session tears
down: close the connection, abandon the outbound queue (so a broadcast
stuck on it is released), then leave the group. Leave closes the queue
from inside the group's own loop.
"""

import asyncio

import structlog

from chatrelay.realtime.errors import ConnectionClosed, EncodingError, GroupClosed, QueueClosed
from chatrelay.realtime.group import Group
from chatrelay.realtime.member import Member
from chatrelay.realtime.messages import encode_message

logger = structlog.get_logger()


async def _read_loop(group: Group, member: Member) -> None:
    log = logger.bind(group=group.name, member=member.name)
    while True:
        try:
            text = await member.connection.receive_frame()
        except ConnectionClosed as e:
            log.debug("session.reader_closed", code=e.code)
            return

        try:
            frame = encode_message(member.name, text)
        except EncodingError as e:
            log.warning("session.encoding_failed", error=str(e))
            continue

        try:
            await group.broadcast(frame)
        except GroupClosed:
            log.info("session.group_stopped")
            return


async def _write_loop(member: Member) -> None:
    while True:
        try:
            frame = await member.outbound.get()
        except QueueClosed:
            return

        try:
            await member.connection.send_frame(frame)
        except ConnectionClosed as e:
            logger.debug("session.writer_closed", member=member.name, code=e.code)
            return


async def _teardown(group: Group, member: Member) -> None:
    log = logger.bind(group=group.name, member=member.name)
    await member.connection.close()
    # Releases a broadcast stuck on this member's full queue
    await member.outbound.abandon()
    try:
        await group.leave(member)
    except GroupClosed:
        log.debug("session.group_already_stopped")
    log.info("session.ended")


async def run_session(group: Group, member: Member) -> None:
    """Join the group, relay frames until the connection ends, then leave."""
    log = logger.bind(group=group.name, member=member.name)

    try:
        # A cancelled join is still processed; teardown's leave queues behind it
        try:
            await group.join(member)
        except GroupClosed:
            log.info("session.group_stopped")
            return
        await member.connection.open()
        log.info("session.started")

        reader = asyncio.create_task(_read_loop(group, member), name=f"reader:{member.name}")
        writer = asyncio.create_task(_write_loop(member), name=f"writer:{member.name}")

        try:
            done, _ = await asyncio.wait([reader, writer], return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (reader, writer):
                if not task.done():
                    task.cancel()
            await asyncio.gather(reader, writer, return_exceptions=True)

        # Surface anything other than a clean end-of-stream
        for task in done:
            task.result()
    finally:
        # Leave must happen even if the server cancels this handler
        await asyncio.shield(_teardown(group, member))
