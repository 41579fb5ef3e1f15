"""Health check endpoint."""

from fastapi import APIRouter, Depends

from chatrelay import __version__
from chatrelay.realtime.registry import GroupRegistry
from chatrelay.realtime.websocket import get_registry

router = APIRouter()


@router.get("/health")
async def health_check(registry: GroupRegistry = Depends(get_registry)):
    """Report that the relay is up and how many rooms it holds."""
    return {"status": "ok", "version": __version__, "groups": len(registry)}
