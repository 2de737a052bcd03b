"""Configuration for the wifiswitch mock device."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

import voluptuous as vol

from .const import (
    CONF_HOST,
    CONF_LOG_LEVEL,
    CONF_PORT,
    CONF_PUSH_INTERVAL,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_PORT,
    PUSH_INTERVAL,
)

_LOGGER = logging.getLogger(__name__)

# Environment variable feeding each configuration key
ENV_VARS = {
    CONF_HOST: "WIFISWITCH_HOST",
    CONF_PORT: "WIFISWITCH_PORT",
    CONF_PUSH_INTERVAL: "WIFISWITCH_PUSH_INTERVAL",
    CONF_LOG_LEVEL: "WIFISWITCH_LOG_LEVEL",
}

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_HOST, default=DEFAULT_HOST): str,
        vol.Optional(CONF_PORT, default=DEFAULT_PORT): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=65535)
        ),
        vol.Optional(CONF_PUSH_INTERVAL, default=PUSH_INTERVAL): vol.All(
            vol.Coerce(float), vol.Range(min=0, min_included=False)
        ),
        vol.Optional(CONF_LOG_LEVEL, default=DEFAULT_LOG_LEVEL): vol.All(
            vol.Upper, vol.In(LOG_LEVELS)
        ),
    }
)


def load_config(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Read and validate configuration from the environment.

    Raises voluptuous.Invalid when a variable holds an unusable value.
    """
    if environ is None:
        environ = os.environ

    raw = {key: environ[var] for key, var in ENV_VARS.items() if var in environ}
    config = CONFIG_SCHEMA(raw)
    _LOGGER.debug("Loaded configuration: %s", config)
    return config
