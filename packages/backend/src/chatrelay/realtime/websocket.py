"""WebSocket endpoint — the door into a room.

Learn: Clients connect to /room?room=<name>. The handler:
1. Rejects the connection if no room was given (before any side effect)
2. Resolves the room through the app's GroupRegistry
3. Joins a new Member with a random display name and runs its session

A plain GET on /room (no upgrade) gets a 400, like any WebSocket-only
endpoint should.
"""

from fastapi import APIRouter, Depends, HTTPException, WebSocket, status
from starlette.requests import HTTPConnection

from chatrelay.realtime.connection import WebSocketConnection
from chatrelay.realtime.member import Member
from chatrelay.realtime.registry import GroupRegistry
from chatrelay.realtime.session import run_session

router = APIRouter()

MISSING_ROOM = "Missing room parameter"


def get_registry(conn: HTTPConnection) -> GroupRegistry:
    """The app-wide registry (set up in create_app)."""
    return conn.app.state.registry


def get_buffer_size(conn: HTTPConnection) -> int:
    return conn.app.state.settings.message_buffer_size


@router.websocket("/room")
async def room_websocket(
    websocket: WebSocket,
    registry: GroupRegistry = Depends(get_registry),
    buffer_size: int = Depends(get_buffer_size),
):
    """Relay messages between every member of one room."""
    room = websocket.query_params.get("room")
    if not room:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=MISSING_ROOM)
        return

    group = await registry.get_or_create(room)
    member = Member(WebSocketConnection(websocket), buffer_size=buffer_size)
    await run_session(group, member)


@router.get("/room", include_in_schema=False)
async def room_http(room: str = ""):
    """Non-upgrade requests to the room endpoint."""
    if not room:
        raise HTTPException(status_code=400, detail=MISSING_ROOM)
    raise HTTPException(status_code=400, detail="WebSocket upgrade required")
