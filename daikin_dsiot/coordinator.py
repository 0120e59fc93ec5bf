"""Per-device synchronisation engine for dsiot appliances."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Coroutine, Mapping
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, Generic, TypeVar

from .attributes import AttributeHandler, AttributeKey, AttributePublisher, ChangeContext
from .client import DsiotTransport
from .config import EngineConfig
from .const import FRAME_INDOOR_STATUS
from .device_types.base import DeviceMapper
from .exceptions import DsiotError, LockTimeoutError, ProtocolDecodeError
from .protocol import status_query, write_request
from .tree import ParameterTree

_LOGGER = logging.getLogger(__name__)

S = TypeVar("S")


class EngineState(Enum):
    """Lifecycle of a device coordinator."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    RUNNING = "running"
    DESTROYED = "destroyed"


class DsiotDeviceCoordinator(Generic[S]):
    """Serialise refreshes and commands against one device.

    Every refresh replaces the cached snapshot wholesale and republishes all
    attributes. Commands are encoded against the last fetched tree, sent, and
    confirmed by a refresh inside the same exclusive section.
    """

    def __init__(
        self,
        *,
        config: EngineConfig,
        transport: DsiotTransport,
        mapper: DeviceMapper[S],
        publisher: AttributePublisher,
        loop: asyncio.AbstractEventLoop | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialise the coordinator with its collaborators."""

        self.config = config
        self.mapper = mapper
        self.logger = logger or _LOGGER
        self._traffic_logger = self.logger.getChild("traffic")
        self._transport = transport
        self._publisher = publisher
        self._loop = loop
        self._lock = asyncio.Lock()
        self._refresh_task: asyncio.TimerHandle | None = None
        self._pending_tasks: set[asyncio.Task[Any]] = set()
        self._unsubscribers: list[Callable[[], None]] = []
        self.engine_state = EngineState.DISCONNECTED
        self.tree: ParameterTree | None = None
        self.data: S | None = None

    @property
    def host(self) -> str:
        """Return the device address."""

        return self.config.host

    @property
    def _refresh_interval_seconds(self) -> float:
        return self.config.refresh_interval.total_seconds()

    async def async_connect(self) -> None:
        """Fetch and decode the first snapshot.

        Any failure leaves the coordinator disconnected.

        """

        if self.engine_state is not EngineState.DISCONNECTED:
            raise RuntimeError(f"Cannot connect while {self.engine_state.value}")
        self.tree, self.data = await self._async_fetch()
        self.engine_state = EngineState.CONNECTED
        identity = self.mapper.identity(self.data)
        self.logger.info(
            "Connected to %s '%s' at %s", identity.device_type, identity.name, self.host
        )

    async def async_register_and_start(self) -> None:
        """Publish the snapshot, then subscribe attribute handlers and arm the timer."""

        if self.engine_state is not EngineState.CONNECTED:
            raise RuntimeError(f"Cannot start while {self.engine_state.value}")
        async with self._exclusive():
            await self._async_publish()
        for group, name in self.mapper.writable_attributes:
            self._unsubscribers.append(
                self._publisher.subscribe_attribute(
                    group, name, self._attribute_handler((group, name))
                )
            )
        self.engine_state = EngineState.RUNNING
        self.async_schedule_refresh(self._async_refresh_tick)

    async def async_refresh(self) -> None:
        """Fetch, decode and publish a complete snapshot."""

        self._ensure_active()
        async with self._exclusive():
            await self._async_refresh_locked()

    async def async_command(self, change: Mapping[str, Any]) -> None:
        """Send ``change`` as one write and confirm it with a refresh."""

        self._ensure_active()
        async with self._exclusive():
            if self.tree is None or self.data is None:
                raise RuntimeError("No snapshot available to encode against")
            patch = self.mapper.build_command(self.tree, self.data, change)
            if not patch:
                self.logger.debug("Change %s produced no patch for %s", change, self.host)
                return
            request = write_request(FRAME_INDOOR_STATUS, patch)
            self._traffic_logger.debug("Sending %s to %s", request.to_wire(), self.host)
            await self._transport.async_send(self.host, request)
            await self._async_refresh_locked()

    async def async_destroy(self) -> None:
        """Stop scheduling refreshes; in-flight work is left to finish."""

        if self.engine_state is EngineState.DESTROYED:
            return
        self.cancel_refresh()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.engine_state = EngineState.DESTROYED
        self.logger.info("Stopped coordinator for %s", self.host)

    def async_schedule_refresh(
        self, callback: Callable[[], Awaitable[Any] | None]
    ) -> asyncio.TimerHandle:
        """Schedule recurring refresh callbacks."""

        loop = self._loop or asyncio.get_running_loop()

        def _wrapper() -> None:
            if self.engine_state is EngineState.DESTROYED:
                return
            task = callback()
            if isinstance(task, Coroutine):
                task_obj = loop.create_task(task)
                self._pending_tasks.add(task_obj)
                task_obj.add_done_callback(self._pending_tasks.discard)
            self._refresh_task = loop.call_later(
                self._refresh_interval_seconds, _wrapper
            )

        if self._refresh_task is not None:
            self._refresh_task.cancel()
        self._refresh_task = loop.call_later(self._refresh_interval_seconds, _wrapper)
        return self._refresh_task

    def cancel_refresh(self) -> None:
        """Cancel any scheduled refresh callbacks."""

        if self._refresh_task is not None:
            self._refresh_task.cancel()
            self._refresh_task = None

    def _ensure_active(self) -> None:
        if self.engine_state in (EngineState.DISCONNECTED, EngineState.DESTROYED):
            raise RuntimeError(f"Coordinator for {self.host} is {self.engine_state.value}")

    @asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        timeout = self.config.lock_timeout.total_seconds()
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout)
        except asyncio.TimeoutError as err:
            raise LockTimeoutError(
                f"Timed out after {timeout}s waiting for {self.host}"
            ) from err
        try:
            yield
        finally:
            self._lock.release()

    async def _async_fetch(self) -> tuple[ParameterTree, S]:
        tree = await self._transport.async_query(self.host, status_query())
        try:
            data = self.mapper.decode(tree)
        except ValueError as err:
            raise ProtocolDecodeError(
                f"Undecodable snapshot from {self.host}: {err}"
            ) from err
        if not self.mapper.identity(data).mac_address:
            raise ProtocolDecodeError(f"{self.host} reported no MAC address")
        return tree, data

    async def _async_refresh_locked(self) -> None:
        self.logger.debug("Refreshing %s", self.host)
        self.tree, self.data = await self._async_fetch()
        await self._async_publish()

    async def _async_publish(self) -> None:
        if self.data is None:
            return
        for (group, name), value in self.mapper.attributes(self.data).items():
            await self._publisher.async_publish_attribute(group, name, value)

    async def _async_refresh_tick(self) -> None:
        if self.engine_state is EngineState.DESTROYED:
            return
        try:
            await self.async_refresh()
        except DsiotError as err:
            self.logger.warning("Skipping refresh of %s: %s", self.host, err)

    def _attribute_handler(self, key: AttributeKey) -> AttributeHandler:
        group, name = key

        async def _handler(new_value: Any, old_value: Any, context: ChangeContext) -> None:
            # Our own publishes come back through the subscription.
            if context.originated_locally:
                return
            if self.data is None:
                return
            try:
                change = self.mapper.change_for_attribute(
                    group, name, new_value, self.data
                )
                await self.async_command(change)
            except ValueError as err:
                self.logger.info(
                    "Rejected %s.%s=%r for %s: %s", group, name, new_value, self.host, err
                )
                await self._publisher.async_publish_attribute(group, name, old_value)
            except DsiotError as err:
                self.logger.error(
                    "Command %s.%s=%r failed for %s: %s",
                    group,
                    name,
                    new_value,
                    self.host,
                    err,
                )
                raise

        return _handler
