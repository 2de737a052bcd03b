"""Run the wifiswitch mock device.

Usage:
    export WIFISWITCH_PORT=8080
    python -m wifiswitch_mock
"""

import logging
import sys

import voluptuous as vol

from .config import load_config
from .const import CONF_HOST, CONF_LOG_LEVEL, CONF_PORT
from .server import run


def main() -> int:
    """Load configuration and serve until interrupted"""
    try:
        config = load_config()
    except vol.Invalid as err:
        print(f"Error: invalid configuration: {err}")
        return 1

    logging.basicConfig(
        level=config[CONF_LOG_LEVEL],
        format="[%(asctime)s] %(levelname)s: %(message)s",
    )

    print("Wifiswitch Mock Device")
    print("======================")
    print(f"Listening on {config[CONF_HOST]}:{config[CONF_PORT]}")
    print("\nPress Ctrl+C to stop")

    run(config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
