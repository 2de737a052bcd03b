"""Wifiswitch WebSocket client library."""

import asyncio
import logging
from typing import Any

import aiohttp

from .codec import Envelope, decode, encode
from .const import DEFAULT_PORT, PROTOCOL, MessageType
from .exceptions import MalformedMessageError

REPLY_TIMEOUT = 5.0  # Seconds to wait for the device to answer a request


def is_push(envelope: Envelope) -> bool:
    """Unsolicited GPIO pushes are gpio envelopes without the channel list"""
    return envelope.get("type") == MessageType.GPIO and "gpios" not in envelope


class WifiSwitchClient:
    """Client for the wifiswitch protocol"""

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        session: aiohttp.ClientSession | None = None,
        logger: logging.Logger | None = None,
        timeout: float = REPLY_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.session = session
        self._owns_session = session is None
        self.ws: aiohttp.ClientWebSocketResponse | None = None
        # Pushes that arrived while waiting for a reply
        self.pushes: asyncio.Queue[Envelope] = asyncio.Queue()

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}/"

    async def connect(self):
        """Open the WebSocket to the device"""
        self.logger.info(f"Connecting to {self.url}")
        if self.session is None:
            self.session = aiohttp.ClientSession()

        try:
            self.ws = await self.session.ws_connect(self.url, protocols=(PROTOCOL,))
        except aiohttp.WSServerHandshakeError as e:
            self.logger.error(f"Handshake refused by {self.url}: {e.status}")
            await self._close_session()
            raise ConnectionError(f"Handshake refused by {self.url}") from e
        except (aiohttp.ClientError, OSError) as e:
            self.logger.error(f"Failed to connect to {self.url}: {e}")
            await self._close_session()
            raise ConnectionError(f"Cannot reach {self.host}:{self.port}") from e

        self.logger.info(f"Connected using sub-protocol {self.ws.protocol}")

    async def shutdown(self):
        """Close the connection"""
        if self.ws is not None:
            await self.ws.close()
            self.ws = None
            self.logger.info("Connection closed")
        await self._close_session()

    async def _close_session(self):
        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None

    async def send(self, envelope: Envelope):
        """Send an envelope without waiting for an answer"""
        if self.ws is None:
            raise ConnectionError("Not connected")
        message = encode(envelope)
        self.logger.debug(f"Sending: {message}")
        await self.ws.send_str(message)

    async def send_raw(self, data: str | bytes):
        """Send a frame as-is, text or binary"""
        if self.ws is None:
            raise ConnectionError("Not connected")
        if isinstance(data, bytes):
            await self.ws.send_bytes(data)
        else:
            await self.ws.send_str(data)

    async def _read_envelope(self, timeout: float) -> Envelope:
        """Read the next text frame from the device"""
        if self.ws is None:
            raise ConnectionError("Not connected")

        msg = await asyncio.wait_for(self.ws.receive(), timeout=timeout)
        if msg.type in (
            aiohttp.WSMsgType.CLOSE,
            aiohttp.WSMsgType.CLOSING,
            aiohttp.WSMsgType.CLOSED,
            aiohttp.WSMsgType.ERROR,
        ):
            raise ConnectionError(f"Connection closed by device ({msg.type.name})")
        if msg.type != aiohttp.WSMsgType.TEXT:
            raise MalformedMessageError(f"Unexpected {msg.type.name} frame")

        self.logger.debug(f"Received: {msg.data}")
        return decode(msg.data)

    async def request(self, envelope: Envelope) -> Envelope:
        """Send a command and return the device's reply.

        Pushes received in the meantime are queued for wait_for_push().
        Raises TimeoutError if the device stays silent, which is what it
        does for unknown or malformed requests.
        """
        await self.send(envelope)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise TimeoutError(f"No reply to {envelope.get('type')} request")
            reply = await self._read_envelope(remaining)
            if is_push(reply):
                self.pushes.put_nowait(reply)
                continue
            return reply

    async def wait_for_push(self, timeout: float | None = None) -> Envelope:
        """Return the next unsolicited GPIO push"""
        if not self.pushes.empty():
            return self.pushes.get_nowait()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + (self.timeout if timeout is None else timeout)
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise TimeoutError("No push received")
            envelope = await self._read_envelope(remaining)
            if is_push(envelope):
                return envelope
            self.logger.debug(f"Ignoring unexpected reply: {envelope}")

    async def get_firmware(self, mode: str | None = None) -> Envelope:
        """Read the firmware info, optionally switching radio mode first"""
        envelope: Envelope = {"type": MessageType.FW}
        if mode is not None:
            envelope["mode"] = mode
        return await self.request(envelope)

    async def list_networks(self) -> list[str]:
        """List the networks visible to the device"""
        reply = await self.request({"type": MessageType.NETWORKS})
        return reply.get("ssids", [])

    async def configure_station(
        self,
        ssid: str | None = None,
        hostname: str | None = None,
        ip: str | None = None,
    ) -> Envelope:
        """Send station settings; missing ones come back as device defaults"""
        envelope = _without_none(
            {"type": MessageType.STATION, "ssid": ssid, "hostname": hostname, "ip": ip}
        )
        return await self.request(envelope)

    async def configure_ap(
        self,
        ssid: str | None = None,
        hostname: str | None = None,
        channel: int | None = None,
    ) -> Envelope:
        """Send access point settings; missing ones come back as device defaults"""
        envelope = _without_none(
            {"type": MessageType.AP, "ssid": ssid, "hostname": hostname, "channel": channel}
        )
        return await self.request(envelope)

    async def set_gpio(self, values: dict[int, Any]) -> Envelope:
        """Write GPIO values and return the merged GPIO state"""
        envelope: Envelope = {"type": MessageType.GPIO}
        for pin, value in values.items():
            envelope[str(pin)] = value
        return await self.request(envelope)

    async def read_gpio(self) -> Envelope:
        """Return the merged GPIO state without changing anything"""
        return await self.request({"type": MessageType.GPIO})


def _without_none(envelope: Envelope) -> Envelope:
    return {key: value for key, value in envelope.items() if value is not None}


# High-level convenience functions
async def list_networks(host: str, port: int = DEFAULT_PORT) -> list[str]:
    """List the networks a wifiswitch device can see"""
    client = WifiSwitchClient(host, port)
    try:
        await client.connect()
        return await client.list_networks()
    finally:
        await client.shutdown()
