"""Mock wifiswitch device speaking JSON over WebSocket."""

from .client import WifiSwitchClient
from .server import create_app, origin_is_allowed, run
from .state import DeviceState, DeviceStateStore

__all__ = [
    "DeviceState",
    "DeviceStateStore",
    "WifiSwitchClient",
    "create_app",
    "origin_is_allowed",
    "run",
]
