"""Group registry — room name → Group, created on first use.

Learn: The check-then-create sequence runs under one asyncio.Lock so that
two connections racing to open the same new room end up sharing a single
Group. The lock is held only for that lookup, never across a broadcast.

The registry is an ordinary object owned by the application (app.state),
not a module global, so tests can build as many as they like.
"""

import asyncio
from typing import Optional

import structlog

from chatrelay.realtime.group import Group

logger = structlog.get_logger()


class GroupRegistry:
    def __init__(self, delivery_timeout: Optional[float] = None):
        self.delivery_timeout = delivery_timeout
        self._groups: dict[str, Group] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, name: str) -> bool:
        return name in self._groups

    def names(self) -> list[str]:
        return sorted(self._groups)

    async def get_or_create(self, name: str) -> Group:
        """Return the Group for a name, creating and starting it if needed."""
        async with self._lock:
            group = self._groups.get(name)
            if group is None:
                group = Group(name, delivery_timeout=self.delivery_timeout)
                self._groups[name] = group
                group.start()
                logger.info("registry.group_created", group=name, groups=len(self._groups))
            return group

    async def close(self) -> None:
        """Stop every group. Used at application shutdown."""
        async with self._lock:
            groups = list(self._groups.values())
        for group in groups:
            await group.stop()
        logger.info("registry.closed", groups=len(groups))
