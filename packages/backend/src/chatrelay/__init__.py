"""chatrelay — minimal real-time chat relay.

Clients connect over a WebSocket, join a named room and receive every
message broadcast to that room. All room state lives in this process.
"""

__version__ = "0.1.0"
