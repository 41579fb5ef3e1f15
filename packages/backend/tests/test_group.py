"""Group tests — membership, fan-out, leave semantics, backpressure.

Learn: Every Group operation goes through the group's own task, so
tests just await join/leave/broadcast and then inspect the members'
outbound queues. Blocking behavior is checked by starting a broadcast
as a task and asserting it is still pending.
"""

import asyncio
import json

import pytest

from chatrelay.realtime import GroupClosed, GroupRegistry
from chatrelay.realtime.messages import encode_message
from conftest import drain, make_member


# ─── Membership ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_join_and_leave_update_membership(group):
    a = make_member("A")
    b = make_member("B")

    await group.join(a)
    await group.join(b)
    assert await group.members() == {a, b}

    await group.leave(a)
    assert await group.members() == {b}


@pytest.mark.asyncio
async def test_leave_closes_outbound_queue(group):
    a = make_member("A")
    await group.join(a)
    assert not a.outbound.closed

    await group.leave(a)
    assert a.outbound.closed


@pytest.mark.asyncio
async def test_members_with_same_display_name_are_distinct(group):
    first = make_member("user7")
    second = make_member("user7")

    await group.join(first)
    await group.join(second)
    assert len(await group.members()) == 2

    await group.leave(first)
    assert await group.members() == {second}


@pytest.mark.asyncio
async def test_concurrent_join_leave_matches_serial_order(group):
    """Final membership equals applying every request one at a time."""
    members = [make_member(f"user{i}") for i in range(40)]

    await asyncio.gather(*(group.join(m) for m in members))
    leaving = members[::3]
    await asyncio.gather(*(group.leave(m) for m in leaving))

    assert await group.members() == set(members) - set(leaving)


@pytest.mark.asyncio
async def test_interleaved_requests_apply_in_submission_order(group):
    a = make_member("A")
    # join, leave, snapshot: all queued before the loop runs any of them
    results = await asyncio.gather(group.join(a), group.leave(a), group.members())
    assert results[2] == frozenset()


# ─── Broadcast ──────────────────────────────────────────


@pytest.mark.asyncio
async def test_broadcast_reaches_every_member_including_sender(group):
    a = make_member("A")
    b = make_member("B")
    await group.join(a)
    await group.join(b)

    frame = encode_message("A", "hi")
    delivered = await group.broadcast(frame)

    assert delivered == 2
    assert await drain(b) == [frame]
    # Sender gets its own message back (no self-echo suppression)
    assert await drain(a) == [frame]
    assert json.loads(frame) == {"name": "A", "message": "hi"}


@pytest.mark.asyncio
async def test_broadcasts_arrive_once_and_in_order(group):
    members = [make_member(f"user{i}") for i in range(3)]
    for m in members:
        await group.join(m)

    frames = [encode_message("user0", f"msg {i}") for i in range(5)]
    for frame in frames:
        await group.broadcast(frame)

    for m in members:
        assert await drain(m) == frames


@pytest.mark.asyncio
async def test_broadcast_to_empty_group(group):
    assert await group.broadcast("nobody home") == 0


@pytest.mark.asyncio
async def test_late_joiner_gets_no_backlog(group):
    a = make_member("A")
    await group.join(a)
    await group.broadcast("before")

    late = make_member("late")
    await group.join(late)
    await group.broadcast("after")

    assert await drain(a) == ["before", "after"]
    assert await drain(late) == ["after"]


@pytest.mark.asyncio
async def test_no_delivery_after_leave(group):
    a = make_member("A")
    await group.join(a)
    await group.leave(a)

    # Must not error, must not touch A's (closed) queue
    assert await group.broadcast("anyone?") == 0
    assert len(a.outbound) == 0


# ─── Backpressure ───────────────────────────────────────


@pytest.mark.asyncio
async def test_full_queue_blocks_broadcast_until_drained(group):
    slow = make_member("slow", buffer_size=1)
    fast = make_member("fast", buffer_size=10)
    await group.join(slow)
    await group.join(fast)

    await group.broadcast("one")  # fills slow's queue
    pending = asyncio.create_task(group.broadcast("two"))
    await asyncio.sleep(0.05)
    assert not pending.done()

    # Later requests queue up behind the stalled broadcast
    snapshot = asyncio.create_task(group.members())
    await asyncio.sleep(0.01)
    assert not snapshot.done()

    assert await slow.outbound.get() == "one"
    assert await asyncio.wait_for(pending, 1) == 2
    assert await asyncio.wait_for(snapshot, 1) == {slow, fast}

    assert await drain(slow) == ["two"]
    assert await drain(fast) == ["one", "two"]


@pytest.mark.asyncio
async def test_abandoned_member_releases_blocked_broadcast(group):
    slow = make_member("slow", buffer_size=1)
    fast = make_member("fast")
    await group.join(slow)
    await group.join(fast)

    await group.broadcast("one")
    pending = asyncio.create_task(group.broadcast("two"))
    await asyncio.sleep(0.05)
    assert not pending.done()

    # What a session does on teardown: abandon, then leave
    await slow.outbound.abandon()
    assert await asyncio.wait_for(pending, 1) == 1
    await group.leave(slow)

    assert await group.members() == {fast}
    assert await drain(fast) == ["one", "two"]


@pytest.mark.asyncio
async def test_delivery_timeout_drops_only_the_slow_copy():
    registry = GroupRegistry(delivery_timeout=0.05)
    try:
        group = await registry.get_or_create("lobby")
        slow = make_member("slow", buffer_size=1)
        fast = make_member("fast")
        await group.join(slow)
        await group.join(fast)

        await group.broadcast("one")
        assert await asyncio.wait_for(group.broadcast("two"), 1) == 1

        assert await drain(slow) == ["one"]
        assert await drain(fast) == ["one", "two"]
    finally:
        await registry.close()


# ─── Lifecycle ──────────────────────────────────────────


@pytest.mark.asyncio
async def test_stopped_group_rejects_requests(group):
    assert group.running
    await group.stop()
    assert not group.running

    with pytest.raises(GroupClosed):
        await group.join(make_member("A"))


@pytest.mark.asyncio
async def test_stop_fails_a_stalled_broadcast(group):
    slow = make_member("slow", buffer_size=1)
    await group.join(slow)
    await group.broadcast("one")

    pending = asyncio.create_task(group.broadcast("two"))
    queued = asyncio.create_task(group.members())
    await asyncio.sleep(0.05)

    await group.stop()

    with pytest.raises(GroupClosed):
        await asyncio.wait_for(pending, 1)
    with pytest.raises(GroupClosed):
        await asyncio.wait_for(queued, 1)
