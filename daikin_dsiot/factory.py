"""Classify a device by its reported family tag and build its coordinator."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from .attributes import AttributePublisher
from .client import DsiotClient, DsiotTransport
from .config import EngineConfig
from .const import FRAME_DEVICE_INFO
from .coordinator import DsiotDeviceCoordinator
from .device_types import air_conditioner, air_purifier
from .device_types.base import FamilyDescriptor
from .exceptions import ClassificationError
from .protocol import probe_request

_LOGGER = logging.getLogger(__name__)

DEVICE_TYPE_PATH = "type"

FAMILY_REGISTRY: Mapping[str, FamilyDescriptor] = MappingProxyType(
    {
        descriptor.tag: descriptor
        for descriptor in (air_conditioner.DESCRIPTOR, air_purifier.DESCRIPTOR)
    }
)


async def async_detect_family(
    host: str,
    transport: DsiotTransport,
    registry: Mapping[str, FamilyDescriptor] = FAMILY_REGISTRY,
) -> FamilyDescriptor:
    """Probe ``host`` and return the descriptor matching its type tag."""

    tree = await transport.async_query(host, probe_request())
    tag = tree.extract_string(FRAME_DEVICE_INFO, DEVICE_TYPE_PATH)
    if tag is None:
        raise ClassificationError(f"{host} did not report a device type")
    descriptor = registry.get(tag)
    if descriptor is None:
        raise ClassificationError(f"{host} reported unknown device type {tag!r}")
    _LOGGER.info("Detected %s (%s) at %s", descriptor.name, tag, host)
    return descriptor


async def async_create_coordinator(
    config: EngineConfig,
    transport: DsiotTransport | None,
    publisher: AttributePublisher,
    *,
    registry: Mapping[str, FamilyDescriptor] = FAMILY_REGISTRY,
    **kwargs: Any,
) -> DsiotDeviceCoordinator[Any]:
    """Classify the device at ``config.host`` and return an unconnected coordinator.

    Without a ``transport`` a :class:`DsiotClient` is built from ``config``.
    Extra keyword arguments are passed through to the coordinator.

    """

    if transport is None:
        transport = DsiotClient.from_config(config)
    descriptor = await async_detect_family(config.host, transport, registry)
    return DsiotDeviceCoordinator(
        config=config,
        transport=transport,
        mapper=descriptor.mapper_factory(config),
        publisher=publisher,
        **kwargs,
    )
