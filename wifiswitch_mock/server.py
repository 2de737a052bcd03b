"""HTTP listener that upgrades clients to wifiswitch sessions."""

from __future__ import annotations

import logging
import random
import weakref
from collections.abc import Callable
from typing import Any

from aiohttp import WSCloseCode, web

from .config import load_config
from .const import CONF_HOST, CONF_PORT, CONF_PUSH_INTERVAL, PROTOCOL, PUSH_INTERVAL
from .dispatcher import CommandDispatcher
from .exceptions import OriginRejected
from .session import Session
from .state import DeviceStateStore

_LOGGER = logging.getLogger(__name__)

STORE_KEY = web.AppKey("store", DeviceStateStore)
DISPATCHER_KEY = web.AppKey("dispatcher", CommandDispatcher)
SESSIONS_KEY = web.AppKey("sessions", weakref.WeakSet)
CONFIG_KEY = web.AppKey("config", dict)
ORIGIN_POLICY_KEY = web.AppKey("origin_policy", Callable)
RNG_KEY = web.AppKey("rng", random.Random)


def origin_is_allowed(origin: str | None) -> bool:
    """Decide whether a client origin may connect; every origin is allowed"""
    return True


async def handle_request(request: web.Request) -> web.StreamResponse:
    """Upgrade to a wifiswitch session, or answer 404 to plain HTTP"""
    app = request.app
    ws = web.WebSocketResponse(protocols=(PROTOCOL,))
    if not ws.can_prepare(request).ok:
        _LOGGER.info("Received request for %s", request.path)
        raise web.HTTPNotFound()

    origin = request.headers.get("Origin")
    session = Session(
        ws,
        app[STORE_KEY],
        app[DISPATCHER_KEY],
        remote=request.remote,
        origin=origin,
        push_interval=app[CONFIG_KEY].get(CONF_PUSH_INTERVAL, PUSH_INTERVAL),
        rng=app[RNG_KEY],
    )
    if not app[ORIGIN_POLICY_KEY](origin):
        session.reject()
        raise OriginRejected(origin)

    await ws.prepare(request)
    app[SESSIONS_KEY].add(session)
    try:
        await session.run()
    finally:
        app[SESSIONS_KEY].discard(session)
    return ws


async def _close_sessions(app: web.Application) -> None:
    """Tell every connected client the device is going away"""
    for session in set(app[SESSIONS_KEY]):
        await session.ws.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")
        await session.close()


def create_app(
    config: dict[str, Any] | None = None,
    store: DeviceStateStore | None = None,
    origin_policy: Callable[[str | None], bool] = origin_is_allowed,
    rng: random.Random | None = None,
) -> web.Application:
    """Build the wifiswitch application"""
    store = store or DeviceStateStore()

    app = web.Application()
    app[CONFIG_KEY] = config or {}
    app[STORE_KEY] = store
    app[DISPATCHER_KEY] = CommandDispatcher(store)
    app[SESSIONS_KEY] = weakref.WeakSet()
    app[ORIGIN_POLICY_KEY] = origin_policy
    app[RNG_KEY] = rng or random.Random()
    app.router.add_route("*", "/{tail:.*}", handle_request)
    app.on_shutdown.append(_close_sessions)
    return app


def run(config: dict[str, Any] | None = None) -> None:
    """Serve the mock device until interrupted"""
    config = config or load_config()
    app = create_app(config)
    # A port that cannot be bound raises OSError here and aborts startup
    web.run_app(
        app,
        host=config[CONF_HOST],
        port=config[CONF_PORT],
        print=lambda msg: _LOGGER.info(msg.strip()),
    )
