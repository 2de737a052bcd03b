"""In-memory state of the simulated wifiswitch firmware."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from .const import DEFAULT_RADIO_MODE, GPIO_CHANNELS, KNOWN_NETWORKS

_LOGGER = logging.getLogger(__name__)


@dataclass
class DeviceState:
    """Current configuration of the simulated device"""

    radio_mode: Any = DEFAULT_RADIO_MODE
    known_networks: tuple[str, ...] = KNOWN_NETWORKS
    gpio_channels: tuple[int, ...] = GPIO_CHANNELS
    # Sparse; only pins that have been written appear here
    gpio_values: dict[int, Any] = field(default_factory=dict)


class DeviceStateStore:
    """Holds the device state for the lifetime of the process.

    One store is shared by every session of an application. There is no
    locking: all access happens on the event loop thread.
    """

    def __init__(self, state: DeviceState | None = None) -> None:
        self._state = state or DeviceState()

    def get_state(self) -> DeviceState:
        """Return a snapshot of the current state"""
        return replace(self._state, gpio_values=dict(self._state.gpio_values))

    def set_radio_mode(self, mode: Any) -> None:
        """Overwrite the radio mode"""
        self._state.radio_mode = mode
        _LOGGER.debug("Radio mode set to %s", self._state.radio_mode)

    def set_gpio(self, pin: int | str, value: Any) -> None:
        """Write a single GPIO value"""
        self._state.gpio_values[int(pin)] = value
        _LOGGER.debug("GPIO%s set to %s", pin, value)
