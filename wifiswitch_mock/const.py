"""Constants for the wifiswitch mock device."""

# WebSocket sub-protocol negotiated on upgrade
PROTOCOL = "wifiswitch"

# Configuration keys
CONF_HOST = "host"
CONF_PORT = "port"
CONF_PUSH_INTERVAL = "push_interval"
CONF_LOG_LEVEL = "log_level"

# Default values
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_LOG_LEVEL = "INFO"

# Unsolicited GPIO push period (in seconds)
PUSH_INTERVAL = 3.333

# Simulated firmware
FIRMWARE_VERSION = "1.0.1"
DEFAULT_RADIO_MODE = "station"
KNOWN_NETWORKS = ("testAP", "PrettyFlyForAWIFI", "NewAdventuresInWIFI")
GPIO_CHANNELS = (4, 5, 9)
PUSH_GPIO_PIN = 5

# Defaults substituted into sparse station/ap commands
DEFAULT_SSID = "OhMyWIFI"
DEFAULT_HOSTNAME = "testswitch"
DEFAULT_STATION_IP = "500.500.500.500"
DEFAULT_AP_CHANNEL = 9


class MessageType:
    """Envelope type discriminators"""

    FW = "fw"
    NETWORKS = "networks"
    STATION = "station"
    AP = "ap"
    GPIO = "gpio"
