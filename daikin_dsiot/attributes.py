"""Downstream attribute publishing contract and an in-memory shadow store."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

_LOGGER = logging.getLogger(__name__)

AttributeKey = tuple[str, str]


@dataclass(frozen=True, slots=True)
class ChangeContext:
    """Origin marker passed to attribute handlers."""

    originated_locally: bool


AttributeHandler = Callable[[Any, Any, ChangeContext], Awaitable[None]]


class AttributePublisher(Protocol):
    """Capability collaborator receiving normalised device attributes."""

    async def async_publish_attribute(self, group: str, name: str, value: Any) -> None:
        """Publish ``value`` for the attribute and notify subscribers."""

    def subscribe_attribute(
        self, group: str, name: str, handler: AttributeHandler
    ) -> Callable[[], None]:
        """Register ``handler`` for changes and return an unsubscribe callback."""


class AttributeStore:
    """Shadow attribute cache with subscriber notifications.

    Publishes from the bridge itself are marked as local; writes arriving
    through :meth:`async_write_attribute` model a remote controller.
    """

    def __init__(self) -> None:
        """Start with no values and no subscribers."""

        self._values: dict[AttributeKey, Any] = {}
        self._handlers: dict[AttributeKey, list[AttributeHandler]] = {}

    def get(self, group: str, name: str, default: Any = None) -> Any:
        """Return the cached value for an attribute."""

        return self._values.get((group, name), default)

    def snapshot(self) -> dict[AttributeKey, Any]:
        """Return a copy of every cached attribute."""

        return dict(self._values)

    def subscribe_attribute(
        self, group: str, name: str, handler: AttributeHandler
    ) -> Callable[[], None]:
        """Register ``handler`` for the attribute."""

        handlers = self._handlers.setdefault((group, name), [])
        handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    async def async_publish_attribute(self, group: str, name: str, value: Any) -> None:
        """Store a value produced by the bridge."""

        await self._async_set((group, name), value, ChangeContext(originated_locally=True))

    async def async_write_attribute(self, group: str, name: str, value: Any) -> None:
        """Store a value requested by a remote controller."""

        await self._async_set((group, name), value, ChangeContext(originated_locally=False))

    async def _async_set(self, key: AttributeKey, value: Any, context: ChangeContext) -> None:
        old = self._values.get(key)
        self._values[key] = value
        if old == value and context.originated_locally:
            return
        for handler in list(self._handlers.get(key, ())):
            _LOGGER.debug("Notifying %s.%s: %r -> %r", key[0], key[1], old, value)
            await handler(value, old, context)
