"""Errors raised by the wifiswitch mock device."""

from aiohttp import web


class WifiSwitchError(Exception):
    """Base class for wifiswitch protocol errors."""


class MalformedMessageError(WifiSwitchError):
    """Error to indicate a frame could not be decoded into an envelope."""


class UnsupportedFrameError(WifiSwitchError):
    """Error to indicate a non-text frame was received."""


class UnknownCommandError(WifiSwitchError):
    """Error to indicate an envelope carries an unrecognised type."""

    def __init__(self, message_type: str) -> None:
        super().__init__(f"Unknown wifiswitch request: {message_type!r}")
        self.message_type = message_type


class SessionStateError(WifiSwitchError):
    """Error to indicate an event arrived in a state that cannot accept it."""


class OriginRejected(web.HTTPForbidden):
    """Handshake refused by the origin policy."""

    def __init__(self, origin: str | None) -> None:
        super().__init__(text=f"Connection from origin {origin} rejected.")
        self.origin = origin
