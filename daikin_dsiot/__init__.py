"""Bridge Daikin dsiot appliances to an attribute-based controller model."""

from .attributes import AttributePublisher, AttributeStore, ChangeContext
from .client import DsiotClient, DsiotTransport
from .config import CONFIG_SCHEMA, EngineConfig
from .coordinator import DsiotDeviceCoordinator, EngineState
from .exceptions import (
    ClassificationError,
    DsiotError,
    FieldNotFoundError,
    LockTimeoutError,
    ProtocolDecodeError,
    TransportError,
    UnsupportedValueError,
)
from .factory import FAMILY_REGISTRY, async_create_coordinator, async_detect_family
from .tree import ParameterTree, merge_trees

__all__ = [
    "CONFIG_SCHEMA",
    "FAMILY_REGISTRY",
    "AttributePublisher",
    "AttributeStore",
    "ChangeContext",
    "ClassificationError",
    "DsiotClient",
    "DsiotDeviceCoordinator",
    "DsiotError",
    "DsiotTransport",
    "EngineConfig",
    "EngineState",
    "FieldNotFoundError",
    "LockTimeoutError",
    "ParameterTree",
    "ProtocolDecodeError",
    "TransportError",
    "UnsupportedValueError",
    "async_create_coordinator",
    "async_detect_family",
    "merge_trees",
]
