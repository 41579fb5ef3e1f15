"""Wire format for relayed chat messages.

Every frame a member receives is a JSON object with two keys:

    {"name": "user42", "message": "hi"}
"""

from pydantic import BaseModel, ValidationError

from chatrelay.realtime.errors import EncodingError


class ChatMessage(BaseModel):
    """One chat line: who said it and what they said."""

    name: str
    message: str


def encode_message(name: str, text: str) -> str:
    """Serialize a chat line into the outbound JSON frame."""
    try:
        return ChatMessage(name=name, message=text).model_dump_json()
    except (ValidationError, ValueError) as e:
        raise EncodingError(f"cannot encode message from {name!r}: {e}") from e
