"""Configuration schema for a dsiot device bridge."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import voluptuous as vol

from .const import DEFAULT_LOCK_TIMEOUT, DEFAULT_REFRESH_INTERVAL, DEFAULT_REQUEST_TIMEOUT

CONF_HOST = "host"
CONF_REFRESH_INTERVAL = "refresh_interval"
CONF_LOCK_TIMEOUT = "lock_timeout"
CONF_REQUEST_TIMEOUT = "request_timeout"
CONF_OPERATION_SOUND = "operation_sound"

# Remote-controller sound only.
DEFAULT_OPERATION_SOUND = 4

_positive_seconds = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_HOST): vol.All(str, vol.Length(min=1)),
        vol.Optional(
            CONF_REFRESH_INTERVAL,
            default=DEFAULT_REFRESH_INTERVAL.total_seconds(),
        ): _positive_seconds,
        vol.Optional(
            CONF_LOCK_TIMEOUT, default=DEFAULT_LOCK_TIMEOUT.total_seconds()
        ): _positive_seconds,
        vol.Optional(
            CONF_REQUEST_TIMEOUT, default=DEFAULT_REQUEST_TIMEOUT.total_seconds()
        ): _positive_seconds,
        vol.Optional(CONF_OPERATION_SOUND, default=DEFAULT_OPERATION_SOUND): vol.Any(
            None, vol.All(vol.Coerce(int), vol.Range(min=0, max=4))
        ),
    }
)


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Validated settings for one device coordinator."""

    host: str
    refresh_interval: timedelta = DEFAULT_REFRESH_INTERVAL
    lock_timeout: timedelta = DEFAULT_LOCK_TIMEOUT
    request_timeout: timedelta = DEFAULT_REQUEST_TIMEOUT
    operation_sound: int | None = DEFAULT_OPERATION_SOUND

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> EngineConfig:
        """Validate ``payload`` against :data:`CONFIG_SCHEMA`."""

        data = CONFIG_SCHEMA(dict(payload))
        return cls(
            host=data[CONF_HOST],
            refresh_interval=timedelta(seconds=data[CONF_REFRESH_INTERVAL]),
            lock_timeout=timedelta(seconds=data[CONF_LOCK_TIMEOUT]),
            request_timeout=timedelta(seconds=data[CONF_REQUEST_TIMEOUT]),
            operation_sound=data[CONF_OPERATION_SOUND],
        )
