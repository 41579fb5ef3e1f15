"""Real-time relay core — groups, members, and the registry that owns them.

Learn: Every room is a Group with its own asyncio task. Join, leave and
broadcast requests are queued to that task and processed one at a time,
so membership and delivery are never observed half-updated.
"""

from chatrelay.realtime.connection import Connection, ConnectionClosed, WebSocketConnection
from chatrelay.realtime.errors import EncodingError, GroupClosed, QueueClosed, RelayError
from chatrelay.realtime.group import Group
from chatrelay.realtime.member import Member, OutboundQueue, generate_display_name
from chatrelay.realtime.registry import GroupRegistry
from chatrelay.realtime.session import run_session

__all__ = [
    "Connection",
    "ConnectionClosed",
    "EncodingError",
    "Group",
    "GroupClosed",
    "GroupRegistry",
    "Member",
    "OutboundQueue",
    "QueueClosed",
    "RelayError",
    "WebSocketConnection",
    "generate_display_name",
    "run_session",
]
