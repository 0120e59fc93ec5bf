"""Shared vocabulary for the per-family state mappers."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from ..attributes import AttributeKey
from ..const import (
    FRAME_ADAPTER_DETAIL,
    FRAME_ADAPTER_INFO,
    FRAME_DEVICE_INFO,
    FRAME_INDOOR_STATUS,
)
from ..exceptions import FieldNotFoundError, ProtocolDecodeError, UnsupportedValueError
from ..protocol import Patch
from ..tree import ParameterTree, merge_trees

if TYPE_CHECKING:
    from ..config import EngineConfig

E = TypeVar("E", bound=Enum)
S = TypeVar("S")

Change = dict[str, Any]

POWER_PATH = "e_1002/e_A002/p_01"
INDOOR_TEMPERATURE_PATH = "e_1002/e_A00B/p_01"
INDOOR_HUMIDITY_PATH = "e_1002/e_A00B/p_02"

FLAG_ON = "01"
FLAG_OFF = "00"


class FanMode(str, Enum):
    """Normalised fan modes understood by downstream controllers."""

    OFF = "off"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ON = "on"
    AUTO = "auto"
    SMART = "smart"


class SystemMode(str, Enum):
    """Normalised thermostat system modes."""

    OFF = "off"
    AUTO = "auto"
    COOL = "cool"
    HEAT = "heat"
    EMERGENCY_HEAT = "emergency_heat"
    PRECOOLING = "precooling"
    FAN_ONLY = "fan_only"
    DRY = "dry"
    SLEEP = "sleep"


class Capability(str, Enum):
    """Downstream capabilities a family exposes."""

    ON_OFF = "on_off"
    THERMOSTAT = "thermostat"
    FAN_CONTROL = "fan_control"
    MODE_SELECT = "mode_select"
    HUMIDITY_CONTROL = "humidity_control"
    VENTILATION = "ventilation"
    AIRFLOW_DIRECTION = "airflow_direction"
    MOTION_DETECTION = "motion_detection"
    HUMIDITY_SENSOR = "humidity_sensor"
    TEMPERATURE_SENSOR = "temperature_sensor"
    AIR_QUALITY = "air_quality"
    WATER_TANK = "water_tank"


@dataclass(frozen=True, slots=True)
class DeviceIdentity:
    """Adapter and device identification strings."""

    mac_address: str
    ssid: str
    registration: str
    firmware_version: str
    name: str
    device_type: str


class DeviceMapper(Protocol[S]):
    """Translate between parameter trees, family state and attributes."""

    writable_attributes: tuple[AttributeKey, ...]

    def decode(self, tree: ParameterTree) -> S:
        """Decode the complete family state from ``tree``."""

    def identity(self, state: S) -> DeviceIdentity:
        """Return the identity carried by ``state``."""

    def build_command(
        self, tree: ParameterTree, state: S, change: Mapping[str, Any]
    ) -> Patch:
        """Translate ``change`` into a single merged patch."""

    def attributes(self, state: S) -> dict[AttributeKey, Any]:
        """Return every attribute value derived from ``state``."""

    def change_for_attribute(
        self, group: str, name: str, value: Any, state: S
    ) -> Change:
        """Translate a downstream attribute write into a change."""


@dataclass(frozen=True, slots=True)
class FamilyDescriptor:
    """Registry entry describing one device family."""

    tag: str
    name: str
    mapper_factory: Callable[[EngineConfig], DeviceMapper[Any]]
    capabilities: frozenset[Capability]


def validate_table(
    name: str, enum_type: type[E], table: Mapping[E, Any]
) -> Mapping[E, Any]:
    """Ensure ``table`` has an entry for every member of ``enum_type``.

    Entries may be ``None`` to mark a member explicitly unsupported.

    """

    missing = [member.name for member in enum_type if member not in table]
    if missing:
        raise ValueError(f"Table {name} lacks entries for {', '.join(missing)}")
    return MappingProxyType(dict(table))


def coerce_enum(enum_type: type[E], value: Any) -> E:
    """Convert a downstream value into ``enum_type``.

    Raises ``UnsupportedValueError`` for values outside the enum.

    """

    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError as err:
        raise UnsupportedValueError(
            f"{value!r} is not a valid {enum_type.__name__}"
        ) from err


def decode_enum(enum_type: type[E], raw: int, path: str) -> E:
    """Convert a decoded wire integer, failing the decode on unknown values."""

    try:
        return enum_type(raw)
    except ValueError as err:
        raise ProtocolDecodeError(
            f"Unexpected {enum_type.__name__} value {raw} at {path!r}"
        ) from err


def require_int(tree: ParameterTree, path: str, frame: str = FRAME_INDOOR_STATUS) -> int:
    """Decode a mandatory integer field."""

    value = tree.extract_int(frame, path)
    if value is None:
        raise FieldNotFoundError(frame, path)
    return value


def require_float(
    tree: ParameterTree, path: str, frame: str = FRAME_INDOOR_STATUS
) -> float:
    """Decode a mandatory numeric field."""

    value = tree.extract_float(frame, path)
    if value is None:
        raise FieldNotFoundError(frame, path)
    return value


def require_string(
    tree: ParameterTree, path: str, frame: str = FRAME_INDOOR_STATUS
) -> str:
    """Return a mandatory raw field."""

    value = tree.extract_string(frame, path)
    if value is None:
        raise FieldNotFoundError(frame, path)
    return value


def decode_identity(tree: ParameterTree) -> DeviceIdentity:
    """Read identification strings; absent values become empty strings."""

    def _text(frame: str, path: str) -> str:
        return tree.extract_string(frame, path) or ""

    return DeviceIdentity(
        mac_address=_text(FRAME_ADAPTER_INFO, "mac"),
        ssid=_text(FRAME_ADAPTER_INFO, "ssid"),
        registration=_text(FRAME_ADAPTER_INFO, "reg"),
        firmware_version=_text(FRAME_ADAPTER_INFO, "ver"),
        name=_text(FRAME_ADAPTER_DETAIL, "name"),
        device_type=_text(FRAME_DEVICE_INFO, "type") + _text(FRAME_ADAPTER_INFO, "enlv"),
    )


def combine(fragments: Iterable[Patch]) -> Patch:
    """Merge ``fragments`` into one patch."""

    patch: Patch = []
    for fragment in fragments:
        merge_trees(patch, fragment)
    return patch


def check_change_keys(change: Mapping[str, Any], accepted: frozenset[str]) -> None:
    """Reject change keys a family does not understand."""

    unknown = sorted(set(change) - accepted)
    if unknown:
        raise KeyError(f"Unsupported change keys: {', '.join(unknown)}")
