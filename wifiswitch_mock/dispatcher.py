"""Command dispatcher for the wifiswitch protocol."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .codec import Envelope
from .const import (
    DEFAULT_AP_CHANNEL,
    DEFAULT_HOSTNAME,
    DEFAULT_SSID,
    DEFAULT_STATION_IP,
    FIRMWARE_VERSION,
    MessageType,
)
from .exceptions import UnknownCommandError
from .state import DeviceStateStore

_LOGGER = logging.getLogger(__name__)

# Field names accepted as GPIO pin identifiers; no leading zeros
PIN_PATTERN = re.compile(r"0|[1-9][0-9]{0,8}")


def is_pin_name(name: str) -> bool:
    """Return True if an envelope field name denotes a GPIO pin"""
    return bool(PIN_PATTERN.fullmatch(name))


@dataclass
class StationSettings:
    """Station mode settings; None means the client left the field out"""

    ssid: str | None = None
    hostname: str | None = None
    ip: str | None = None

    @classmethod
    def from_envelope(cls, envelope: Envelope) -> StationSettings:
        return cls(
            ssid=envelope.get("ssid"),
            hostname=envelope.get("hostname"),
            ip=envelope.get("ip"),
        )

    def with_defaults(self) -> StationSettings:
        return StationSettings(
            ssid=DEFAULT_SSID if self.ssid is None else self.ssid,
            hostname=DEFAULT_HOSTNAME if self.hostname is None else self.hostname,
            ip=DEFAULT_STATION_IP if self.ip is None else self.ip,
        )


@dataclass
class AccessPointSettings:
    """Access point mode settings; None means the client left the field out"""

    ssid: str | None = None
    hostname: str | None = None
    channel: int | None = None

    @classmethod
    def from_envelope(cls, envelope: Envelope) -> AccessPointSettings:
        return cls(
            ssid=envelope.get("ssid"),
            hostname=envelope.get("hostname"),
            channel=envelope.get("channel"),
        )

    def with_defaults(self) -> AccessPointSettings:
        return AccessPointSettings(
            ssid=DEFAULT_SSID if self.ssid is None else self.ssid,
            hostname=DEFAULT_HOSTNAME if self.hostname is None else self.hostname,
            channel=DEFAULT_AP_CHANNEL if self.channel is None else self.channel,
        )


class CommandDispatcher:
    """Maps an envelope's type to a handler producing the reply envelope"""

    def __init__(self, store: DeviceStateStore) -> None:
        self.store = store
        self._handlers: dict[str, Callable[[Envelope], Envelope]] = {
            MessageType.FW: self._handle_fw,
            MessageType.NETWORKS: self._handle_networks,
            MessageType.STATION: self._handle_station,
            MessageType.AP: self._handle_ap,
            MessageType.GPIO: self._handle_gpio,
        }

    def handle(self, envelope: Envelope) -> Envelope | None:
        """Apply a command and return the reply, or None if there is none"""
        try:
            handler = self._handler_for(envelope.get("type"))
        except UnknownCommandError as err:
            _LOGGER.warning("%s", err)
            return None
        return handler(envelope)

    def _handler_for(self, message_type: Any) -> Callable[[Envelope], Envelope]:
        handler = self._handlers.get(message_type)
        if handler is None:
            raise UnknownCommandError(message_type)
        return handler

    def _handle_fw(self, envelope: Envelope) -> Envelope:
        _LOGGER.info("Firmware message")
        if envelope.get("mode") is not None:
            self.store.set_radio_mode(envelope["mode"])

        state = self.store.get_state()
        return {
            "type": MessageType.FW,
            "mode": state.radio_mode,
            "ver": FIRMWARE_VERSION,
        }

    def _handle_networks(self, envelope: Envelope) -> Envelope:
        _LOGGER.info("Networks message")
        state = self.store.get_state()
        return {"type": MessageType.NETWORKS, "ssids": list(state.known_networks)}

    def _handle_station(self, envelope: Envelope) -> Envelope:
        _LOGGER.info("Station message")
        settings = StationSettings.from_envelope(envelope).with_defaults()
        return {
            "type": MessageType.STATION,
            "ssid": settings.ssid,
            "hostname": settings.hostname,
            "ip": settings.ip,
        }

    def _handle_ap(self, envelope: Envelope) -> Envelope:
        _LOGGER.info("AP message")
        settings = AccessPointSettings.from_envelope(envelope).with_defaults()
        return {
            "type": MessageType.AP,
            "ssid": settings.ssid,
            "hostname": settings.hostname,
            "channel": settings.channel,
        }

    def _handle_gpio(self, envelope: Envelope) -> Envelope:
        _LOGGER.info("GPIO message")
        pins = {key: value for key, value in envelope.items() if is_pin_name(key)}
        if not pins:
            _LOGGER.debug("GPIO read request")
        for pin, value in pins.items():
            self.store.set_gpio(pin, value)

        return gpio_reply(self.store)


def gpio_reply(store: DeviceStateStore) -> Envelope:
    """Build the enabled channel list merged with the current pin values"""
    state = store.get_state()
    reply: Envelope = {"type": MessageType.GPIO, "gpios": list(state.gpio_channels)}
    for pin in sorted(state.gpio_values):
        reply[str(pin)] = state.gpio_values[pin]
    return reply
