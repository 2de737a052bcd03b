"""One client connection speaking the wifiswitch protocol."""

from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum

from aiohttp import WSMessage, WSMsgType, web

from .codec import Envelope, decode_frame, encode
from .const import PUSH_GPIO_PIN, PUSH_INTERVAL, MessageType
from .dispatcher import CommandDispatcher
from .exceptions import (
    MalformedMessageError,
    SessionStateError,
    UnsupportedFrameError,
)
from .state import DeviceStateStore

_LOGGER = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle of a session"""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    REJECTED = "rejected"


# Allowed transitions; CLOSED and REJECTED are terminal
TRANSITIONS = {
    SessionState.CONNECTING: {SessionState.OPEN, SessionState.REJECTED},
    SessionState.OPEN: {SessionState.CLOSED},
    SessionState.CLOSED: set(),
    SessionState.REJECTED: set(),
}


class Session:
    """Server side of one accepted connection.

    The session owns nothing but its push timer: device state lives in the
    shared store. Events are ``open``, ``reject``, ``handle_frame`` and
    ``close``; ``run`` drives them from the socket and makes sure ``close``
    happens on every way out of the OPEN state.
    """

    def __init__(
        self,
        ws: web.WebSocketResponse,
        store: DeviceStateStore,
        dispatcher: CommandDispatcher,
        remote: str | None = None,
        origin: str | None = None,
        push_interval: float = PUSH_INTERVAL,
        rng: random.Random | None = None,
    ) -> None:
        self.ws = ws
        self.store = store
        self.dispatcher = dispatcher
        self.remote = remote
        self.origin = origin
        self.push_interval = push_interval
        self.rng = rng or random.Random()
        self.state = SessionState.CONNECTING
        self._push_task: asyncio.Task | None = None

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise SessionStateError(
                f"Cannot go from {self.state.value} to {new_state.value}"
            )
        self.state = new_state

    def reject(self) -> None:
        """Handshake refused; the session never opens"""
        self._transition(SessionState.REJECTED)
        _LOGGER.info(f"Connection from origin {self.origin} rejected.")

    def open(self) -> None:
        """Connection accepted; start pushing GPIO changes"""
        self._transition(SessionState.OPEN)
        _LOGGER.info(f"Connection accepted from {self.remote}")
        self._push_task = asyncio.create_task(self._push_loop())

    async def handle_frame(self, msg: WSMessage) -> None:
        """Decode, dispatch and answer one inbound frame"""
        if self.state != SessionState.OPEN:
            raise SessionStateError(f"Frame received while {self.state.value}")

        try:
            envelope = decode_frame(msg)
        except UnsupportedFrameError as err:
            _LOGGER.warning(f"Dropping frame from {self.remote}: {err}")
            return
        except MalformedMessageError as err:
            _LOGGER.warning(f"Could not parse request from {self.remote}: {err}")
            return

        _LOGGER.info(f"Received message: {msg.data}")
        try:
            reply = self.dispatcher.handle(envelope)
        except Exception:
            _LOGGER.exception(f"Error handling request from {self.remote}")
            return
        if reply is not None:
            await self.send(reply)

    async def send(self, envelope: Envelope) -> None:
        message = encode(envelope)
        _LOGGER.info(f"Sending: {message}")
        await self.ws.send_str(message)

    async def close(self) -> None:
        """Connection gone; stop the push timer"""
        if self.state == SessionState.CLOSED:
            return
        self._transition(SessionState.CLOSED)

        if self._push_task is not None:
            self._push_task.cancel()
            try:
                await self._push_task
            except asyncio.CancelledError:
                pass
            except Exception:
                _LOGGER.exception(f"Push timer for {self.remote} failed")
            self._push_task = None

        _LOGGER.info(
            f"Peer {self.remote} disconnected "
            f"(code={self.ws.close_code}, reason={self._close_reason()})"
        )

    def _close_reason(self) -> str:
        exc = self.ws.exception()
        return str(exc) if exc is not None else "normal"

    async def run(self) -> None:
        """Serve the connection until it closes"""
        self.open()
        try:
            async for msg in self.ws:
                if msg.type == WSMsgType.ERROR:
                    _LOGGER.warning(
                        f"Connection to {self.remote} closed with exception "
                        f"{self.ws.exception()}"
                    )
                    break
                await self.handle_frame(msg)
        except ConnectionResetError as err:
            _LOGGER.warning(f"Connection to {self.remote} reset: {err}")
        finally:
            await self.close()

    async def _push_loop(self) -> None:
        """Flip the designated pin at random and tell the client"""
        while True:
            await asyncio.sleep(self.push_interval)
            value = self.rng.randint(0, 1)
            self.store.set_gpio(PUSH_GPIO_PIN, value)
            try:
                await self.send({"type": MessageType.GPIO, str(PUSH_GPIO_PIN): value})
            except ConnectionResetError as err:
                _LOGGER.debug(f"Push to {self.remote} failed: {err}")
                return
