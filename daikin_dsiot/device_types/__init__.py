"""Device family mappers for the dsiot bridge."""

from .air_conditioner import AirConditionerMapper, AirConditionerState
from .air_purifier import AirPurifierMapper, AirPurifierState
from .base import (
    Capability,
    DeviceIdentity,
    DeviceMapper,
    FamilyDescriptor,
    FanMode,
    SystemMode,
)

__all__ = [
    "AirConditionerMapper",
    "AirConditionerState",
    "AirPurifierMapper",
    "AirPurifierState",
    "Capability",
    "DeviceIdentity",
    "DeviceMapper",
    "FamilyDescriptor",
    "FanMode",
    "SystemMode",
]
