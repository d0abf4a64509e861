"""In-memory broadcast relay for the chat channel.

The relay owns the set of open connections. Everything else talks to it
through ``add``, ``remove`` and ``broadcast``; the set itself is only
touched while holding the relay's lock.

Connections are duck-typed on aiohttp's ``WebSocketResponse``: they expose
a ``closed`` flag and ``send_str`` / ``send_bytes`` coroutines.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Union

logger = logging.getLogger(__name__)

Payload = Union[str, bytes]


class ChatRelay:
    """Fan-out of inbound messages to every other connected peer."""

    def __init__(self) -> None:
        self._connections: set[Any] = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    async def add(self, conn: Any) -> None:
        async with self._lock:
            self._connections.add(conn)
            total = len(self._connections)
        logger.info("chat peer connected (%d open)", total)

    async def remove(self, conn: Any) -> None:
        async with self._lock:
            self._connections.discard(conn)
            total = len(self._connections)
        logger.info("chat peer disconnected (%d open)", total)

    async def broadcast(self, sender: Any, payload: Payload) -> int:
        """Forward *payload* verbatim to every open peer except *sender*.

        Closed peers are skipped and a failed send is logged, never raised,
        so one bad peer cannot abort the rest of the broadcast.

        Returns the number of peers the payload was written to.
        """
        async with self._lock:
            peers = [c for c in self._connections if c is not sender]

        delivered = 0
        for peer in peers:
            if peer.closed:
                continue
            try:
                if isinstance(payload, bytes):
                    await peer.send_bytes(payload)
                else:
                    await peer.send_str(payload)
            except (ConnectionError, RuntimeError) as exc:
                logger.warning("skipping chat peer after send failure: %s", exc)
                continue
            delivered += 1
        return delivered
