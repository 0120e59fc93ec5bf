"""Tests for the in-memory attribute store."""

from __future__ import annotations

from typing import Any

import pytest

from daikin_dsiot.attributes import AttributeStore, ChangeContext


class RecordingHandler:
    """Collect handler invocations."""

    def __init__(self) -> None:
        """Start with no recorded calls."""

        self.calls: list[tuple[Any, Any, ChangeContext]] = []

    async def __call__(self, new: Any, old: Any, context: ChangeContext) -> None:
        """Record one notification."""

        self.calls.append((new, old, context))


@pytest.mark.asyncio
async def test_publish_notifies_with_local_origin() -> None:
    """Bridge publishes are marked as local."""

    store = AttributeStore()
    handler = RecordingHandler()
    store.subscribe_attribute("on_off", "on_off", handler)

    await store.async_publish_attribute("on_off", "on_off", True)

    assert handler.calls == [(True, None, ChangeContext(originated_locally=True))]
    assert store.get("on_off", "on_off") is True


@pytest.mark.asyncio
async def test_unchanged_local_publish_is_silent() -> None:
    """Republishing the same value does not notify again."""

    store = AttributeStore()
    handler = RecordingHandler()
    store.subscribe_attribute("thermostat", "system_mode", handler)

    await store.async_publish_attribute("thermostat", "system_mode", "cool")
    await store.async_publish_attribute("thermostat", "system_mode", "cool")

    assert len(handler.calls) == 1


@pytest.mark.asyncio
async def test_remote_write_notifies_even_when_unchanged() -> None:
    """Remote writes always reach handlers with a remote origin."""

    store = AttributeStore()
    handler = RecordingHandler()
    store.subscribe_attribute("fan_control", "fan_mode", handler)
    await store.async_publish_attribute("fan_control", "fan_mode", "auto")

    await store.async_write_attribute("fan_control", "fan_mode", "auto")

    assert handler.calls[-1] == ("auto", "auto", ChangeContext(originated_locally=False))


@pytest.mark.asyncio
async def test_unsubscribe_stops_notifications() -> None:
    """The returned callback removes the handler."""

    store = AttributeStore()
    handler = RecordingHandler()
    unsubscribe = store.subscribe_attribute("on_off", "on_off", handler)

    unsubscribe()
    unsubscribe()
    await store.async_write_attribute("on_off", "on_off", False)

    assert handler.calls == []
    assert store.snapshot() == {("on_off", "on_off"): False}
