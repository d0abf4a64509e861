"""WebSocket server for the member chat.

This module exposes ``create_chat_app`` building an ``aiohttp.web``
application whose WebSocket endpoint relays every frame it receives to all
other connected clients, and ``start_chat_server`` which serves it on
``ws://<CHAT_HOST>:<CHAT_PORT>/`` (8080 by default).

There is no message schema: text frames are relayed as text, binary frames
as binary, unchanged. Nothing is stored.
"""

from __future__ import annotations

import asyncio
import logging
import os

from aiohttp import WSMsgType, web
from dotenv import load_dotenv

from ashilac.chat_service.relay import ChatRelay

load_dotenv()

logger = logging.getLogger(__name__)

CHAT_HOST = os.getenv("CHAT_HOST", "0.0.0.0")
CHAT_PORT = int(os.getenv("CHAT_PORT", 8080))

RELAY_KEY = web.AppKey("relay", ChatRelay)


async def chat_handler(request: web.Request) -> web.WebSocketResponse:
    """Upgrade to WebSocket and relay frames until the client goes away."""
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    relay = request.app[RELAY_KEY]
    await relay.add(ws)
    try:
        async for msg in ws:
            if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                await relay.broadcast(ws, msg.data)
            elif msg.type == WSMsgType.ERROR:
                logger.warning("chat connection closed with error: %s", ws.exception())
    finally:
        await relay.remove(ws)

    return ws


def create_chat_app(relay: ChatRelay | None = None) -> web.Application:
    """Create the aiohttp application serving the chat relay."""
    app = web.Application()
    app[RELAY_KEY] = relay if relay is not None else ChatRelay()
    app.router.add_get("/", chat_handler)
    app.router.add_get("/chat", chat_handler)
    return app


async def start_chat_server(host: str | None = None, port: int | None = None) -> None:
    """Launch the chat server.

    This coroutine **never returns**: it blocks until the event loop is
    cancelled. Run it with ``asyncio.create_task`` or on its own thread.
    """
    _host = host or CHAT_HOST
    _port = port or CHAT_PORT
    app = create_chat_app()

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=_host, port=_port)
    await site.start()

    logger.info("Chat relay listening on ws://%s:%d/", _host, _port)

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()


if __name__ == "__main__":
    # python -m ashilac.chat_service.server
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")
    try:
        asyncio.run(start_chat_server())
    except (KeyboardInterrupt, SystemExit):
        pass
