"""Connection endpoint — the transport a member talks through.

Learn: The relay core only needs four things from a connection: accept
it, read the next text frame, write a text frame, and close it. Anything
that goes wrong on the wire surfaces as ConnectionClosed, which ends that
member's session and nothing else.
"""

from typing import Protocol

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from chatrelay.realtime.errors import ConnectionClosed

__all__ = ["Connection", "ConnectionClosed", "WebSocketConnection"]


class Connection(Protocol):
    async def open(self) -> None: ...

    async def receive_frame(self) -> str: ...

    async def send_frame(self, frame: str) -> None: ...

    async def close(self) -> None: ...


class WebSocketConnection:
    """Connection backed by a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False

    async def open(self) -> None:
        await self.websocket.accept()

    async def receive_frame(self) -> str:
        try:
            message = await self.websocket.receive()
        except RuntimeError as e:
            # Starlette refuses to receive after a disconnect was seen
            raise ConnectionClosed(reason=str(e)) from e

        if message["type"] == "websocket.disconnect":
            raise ConnectionClosed(code=message.get("code", 1000), reason=message.get("reason") or "")

        text = message.get("text")
        if text is not None:
            return text
        return (message.get("bytes") or b"").decode("utf-8", errors="replace")

    async def send_frame(self, frame: str) -> None:
        if self._closed:
            raise ConnectionClosed(reason="connection already closed")
        try:
            await self.websocket.send_text(frame)
        except WebSocketDisconnect as e:
            raise ConnectionClosed(code=e.code, reason=e.reason or "") from e
        except (RuntimeError, OSError) as e:
            raise ConnectionClosed(reason=str(e)) from e

    async def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        ):
            try:
                await self.websocket.close()
            except (RuntimeError, OSError):
                # The peer vanished between the state check and the close frame
                pass
