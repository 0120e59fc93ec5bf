"""Humidifying air purifier family (device type tag ``1D``)."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from ..attributes import AttributeKey
from ..const import FRAME_INDOOR_STATUS
from ..exceptions import UnsupportedValueError
from ..protocol import Patch
from ..tree import ParameterTree, leaf_fragment
from .base import (
    FLAG_OFF,
    FLAG_ON,
    INDOOR_HUMIDITY_PATH,
    INDOOR_TEMPERATURE_PATH,
    POWER_PATH,
    Capability,
    Change,
    DeviceIdentity,
    FamilyDescriptor,
    FanMode,
    check_change_keys,
    coerce_enum,
    combine,
    decode_enum,
    decode_identity,
    require_float,
    require_int,
    require_string,
    validate_table,
)

if TYPE_CHECKING:
    from ..config import EngineConfig

TAG = "1D"

_PURIFIER = "e_1002/e_3007"
FIXED_HUMIDIFY_PATH = "e_1002/e_3001/p_3F"
MODE_PATH = f"{_PURIFIER}/p_01"
MODE_HUMIDIFY_PATH = f"{_PURIFIER}/p_03"
FAN_SPEED_PATH = f"{_PURIFIER}/p_04"
FAN_SPEED_HUMIDIFY_PATH = f"{_PURIFIER}/p_06"
HUMIDIFY_LEVEL_PATH = f"{_PURIFIER}/p_13"
PM25_PATH = f"{_PURIFIER}/p_1D"
DUST_PATH = f"{_PURIFIER}/p_1E"
SMELL_PATH = f"{_PURIFIER}/p_1F"
WATER_TANK_PATH = f"{_PURIFIER}/p_20"

# Values written to the fixed-humidify flag.
_HUMIDIFY_DISABLED = 0
_HUMIDIFY_ENABLED = 2


class OperationMode(IntEnum):
    """Purifier operation modes."""

    AUTO = 0
    FIXED_FLOW = 1
    FLOW_AUTO = 2
    ECO = 3
    POLLEN = 4
    THROAT = 5
    CIRCULATOR = 6


class HumidifyLevel(IntEnum):
    """Humidifier output; ``AUTO`` is implied by some modes and never written."""

    OFF = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    AUTO = 100


class FanSpeed(IntEnum):
    """Fixed airflow levels; ``AUTO`` stands for any non fixed-flow mode."""

    SILENT = 0
    SPEED_1 = 1
    SPEED_2 = 2
    SPEED_3 = 4
    AUTO = 100


FORCE_AUTO_HUMIDIFY = validate_table(
    "force_auto_humidify",
    OperationMode,
    {
        OperationMode.AUTO: True,
        OperationMode.FIXED_FLOW: False,
        OperationMode.FLOW_AUTO: False,
        OperationMode.ECO: False,
        OperationMode.POLLEN: False,
        OperationMode.THROAT: True,
        OperationMode.CIRCULATOR: False,
    },
)

FAN_SPEED_BY_FAN_MODE = validate_table(
    "fan_speed_by_fan_mode",
    FanMode,
    {
        FanMode.OFF: FanSpeed.SILENT,
        FanMode.LOW: FanSpeed.SPEED_1,
        FanMode.MEDIUM: FanSpeed.SPEED_2,
        FanMode.HIGH: FanSpeed.SPEED_3,
        FanMode.ON: None,
        FanMode.AUTO: None,
        FanMode.SMART: None,
    },
)

FAN_MODE_BY_FAN_SPEED = validate_table(
    "fan_mode_by_fan_speed",
    FanSpeed,
    {
        FanSpeed.SILENT: FanMode.OFF,
        FanSpeed.SPEED_1: FanMode.LOW,
        FanSpeed.SPEED_2: FanMode.MEDIUM,
        FanSpeed.SPEED_3: FanMode.HIGH,
        FanSpeed.AUTO: FanMode.AUTO,
    },
)

HUMIDIFY_LEVEL_BY_FAN_MODE = validate_table(
    "humidify_level_by_fan_mode",
    FanMode,
    {
        FanMode.OFF: HumidifyLevel.OFF,
        FanMode.LOW: HumidifyLevel.LOW,
        FanMode.MEDIUM: HumidifyLevel.MEDIUM,
        FanMode.HIGH: HumidifyLevel.HIGH,
        FanMode.ON: None,
        FanMode.AUTO: None,
        FanMode.SMART: None,
    },
)

FAN_MODE_BY_HUMIDIFY_LEVEL = validate_table(
    "fan_mode_by_humidify_level",
    HumidifyLevel,
    {
        HumidifyLevel.OFF: FanMode.OFF,
        HumidifyLevel.LOW: FanMode.LOW,
        HumidifyLevel.MEDIUM: FanMode.MEDIUM,
        HumidifyLevel.HIGH: FanMode.HIGH,
        HumidifyLevel.AUTO: FanMode.AUTO,
    },
)

_PERCENT_BY_FAN_SPEED = validate_table(
    "percent_by_fan_speed",
    FanSpeed,
    {
        FanSpeed.SILENT: 0,
        FanSpeed.SPEED_1: 33,
        FanSpeed.SPEED_2: 66,
        FanSpeed.SPEED_3: 100,
        FanSpeed.AUTO: 0,
    },
)

_PERCENT_BY_HUMIDIFY_LEVEL = validate_table(
    "percent_by_humidify_level",
    HumidifyLevel,
    {
        HumidifyLevel.OFF: 0,
        HumidifyLevel.LOW: 33,
        HumidifyLevel.MEDIUM: 66,
        HumidifyLevel.HIGH: 100,
        HumidifyLevel.AUTO: 0,
    },
)


def fan_speed_from_percent(percent: float) -> FanSpeed:
    """Bucket a 0-100 airflow setting into a fixed fan speed."""

    if percent <= 0:
        return FanSpeed.SILENT
    if percent <= 33:
        return FanSpeed.SPEED_1
    if percent <= 66:
        return FanSpeed.SPEED_2
    return FanSpeed.SPEED_3


def percent_from_fan_speed(speed: FanSpeed) -> int:
    """Return the representative percentage of ``speed``."""

    return _PERCENT_BY_FAN_SPEED[speed]


def humidify_level_from_percent(percent: float) -> HumidifyLevel:
    """Bucket a 0-100 humidifier setting into a fixed level."""

    if percent <= 0:
        return HumidifyLevel.OFF
    if percent <= 33:
        return HumidifyLevel.LOW
    if percent <= 66:
        return HumidifyLevel.MEDIUM
    return HumidifyLevel.HIGH


def percent_from_humidify_level(level: HumidifyLevel) -> int:
    """Return the representative percentage of ``level``."""

    return _PERCENT_BY_HUMIDIFY_LEVEL[level]


def is_fixed_humidify(level: HumidifyLevel) -> bool:
    """Return True for levels the user selects explicitly."""

    return level not in (HumidifyLevel.OFF, HumidifyLevel.AUTO)


@dataclass(frozen=True, slots=True)
class AirPurifierState:
    """Complete decoded snapshot of an air purifier."""

    identity: DeviceIdentity
    power: bool
    mode: OperationMode
    fan_speed: FanSpeed
    humidify_level: HumidifyLevel
    indoor_temperature: float
    indoor_humidity: float
    pm25_level: int
    dust_level: int
    smell_level: int
    water_tank_empty: bool


def _sensor_level(tree: ParameterTree, path: str) -> int:
    # Reported 0-5, exposed 1-6.
    return require_int(tree, path) + 1


def decode_state(tree: ParameterTree) -> AirPurifierState:
    """Decode a full purifier snapshot.

    The fixed-humidify flag picks the mode and fan speed fields; the mode
    then decides whether fan speed and humidify level are read at all.

    """

    fixed_humidify = (
        tree.extract_string(FRAME_INDOOR_STATUS, FIXED_HUMIDIFY_PATH) != FLAG_OFF
    )
    mode_path = MODE_HUMIDIFY_PATH if fixed_humidify else MODE_PATH
    mode = decode_enum(OperationMode, require_int(tree, mode_path), mode_path)

    fan_speed = FanSpeed.AUTO
    if mode is OperationMode.FIXED_FLOW:
        speed_path = FAN_SPEED_HUMIDIFY_PATH if fixed_humidify else FAN_SPEED_PATH
        fan_speed = decode_enum(FanSpeed, require_int(tree, speed_path), speed_path)

    if FORCE_AUTO_HUMIDIFY[mode]:
        humidify_level = HumidifyLevel.AUTO
    elif not fixed_humidify:
        humidify_level = HumidifyLevel.OFF
    else:
        humidify_level = decode_enum(
            HumidifyLevel, require_int(tree, HUMIDIFY_LEVEL_PATH), HUMIDIFY_LEVEL_PATH
        )

    return AirPurifierState(
        identity=decode_identity(tree),
        power=require_string(tree, POWER_PATH) == FLAG_ON,
        mode=mode,
        fan_speed=fan_speed,
        humidify_level=humidify_level,
        indoor_temperature=require_float(tree, INDOOR_TEMPERATURE_PATH),
        indoor_humidity=require_float(tree, INDOOR_HUMIDITY_PATH),
        pm25_level=_sensor_level(tree, PM25_PATH),
        dust_level=_sensor_level(tree, DUST_PATH),
        smell_level=_sensor_level(tree, SMELL_PATH),
        water_tank_empty=(
            tree.extract_string(FRAME_INDOOR_STATUS, WATER_TANK_PATH) == FLAG_ON
        ),
    )


def set_power(tree: ParameterTree, power: bool) -> Patch:
    """Switch the purifier on or off."""

    return leaf_fragment(POWER_PATH, FLAG_ON if power else FLAG_OFF)


def set_operation_mode_and_humidify(
    tree: ParameterTree, mode: OperationMode, humidify: HumidifyLevel
) -> Patch:
    """Select ``mode`` together with the humidifier setting.

    Modes that force auto-humidify, and fixed humidify levels, address the
    alternate mode field; the level itself is only written when fixed and
    not overridden by the mode.

    """

    fixed = is_fixed_humidify(humidify)
    force_auto = FORCE_AUTO_HUMIDIFY[mode]
    humidify_active = fixed or force_auto
    mode_path = MODE_HUMIDIFY_PATH if humidify_active else MODE_PATH
    fragments = [
        tree.encode_int(FRAME_INDOOR_STATUS, mode_path, mode),
        tree.encode_int(
            FRAME_INDOOR_STATUS,
            FIXED_HUMIDIFY_PATH,
            _HUMIDIFY_ENABLED if humidify_active else _HUMIDIFY_DISABLED,
        ),
    ]
    if fixed and not force_auto:
        fragments.append(
            tree.encode_int(FRAME_INDOOR_STATUS, HUMIDIFY_LEVEL_PATH, humidify)
        )
    return combine(fragments)


def set_fan_speed_and_humidify(
    tree: ParameterTree, speed: FanSpeed, humidify: HumidifyLevel
) -> Patch:
    """Switch to fixed airflow at ``speed`` keeping the humidifier setting."""

    if speed is FanSpeed.AUTO:
        raise UnsupportedValueError("Automatic airflow is a mode, not a fan speed")
    patch = set_operation_mode_and_humidify(tree, OperationMode.FIXED_FLOW, humidify)
    speed_path = (
        FAN_SPEED_HUMIDIFY_PATH if is_fixed_humidify(humidify) else FAN_SPEED_PATH
    )
    return combine((patch, tree.encode_int(FRAME_INDOOR_STATUS, speed_path, speed)))


CHANGE_KEYS = frozenset({"power", "mode", "fan_speed", "humidify_level"})

ON_OFF = ("on_off", "on_off")
OPERATION_MODE = ("mode_select", "operation_mode")
FAN_MODE = ("fan_control", "fan_mode")
FAN_PERCENT = ("fan_control", "percent_setting")
HUMIDIFY_FAN_MODE = ("humidify", "fan_mode")
HUMIDIFY_PERCENT = ("humidify", "percent_setting")
WATER_TANK_EMPTY = ("humidify", "water_tank_empty")
INDOOR_HUMIDITY = ("humidity_sensor", "measured_value")
INDOOR_TEMPERATURE = ("temperature_sensor", "measured_value")
PM25_LEVEL = ("air_quality", "pm25")
DUST_LEVEL = ("air_quality", "dust")
SMELL_LEVEL = ("air_quality", "smell")


class AirPurifierMapper:
    """Mapper for the humidifying air purifier family."""

    writable_attributes: tuple[AttributeKey, ...] = (
        ON_OFF,
        OPERATION_MODE,
        FAN_MODE,
        FAN_PERCENT,
        HUMIDIFY_FAN_MODE,
        HUMIDIFY_PERCENT,
    )

    def decode(self, tree: ParameterTree) -> AirPurifierState:
        """Decode ``tree`` into a snapshot."""

        return decode_state(tree)

    def identity(self, state: AirPurifierState) -> DeviceIdentity:
        """Return the identity of the snapshot."""

        return state.identity

    def build_command(
        self,
        tree: ParameterTree,
        state: AirPurifierState,
        change: Mapping[str, Any],
    ) -> Patch:
        """Merge every requested field into one patch.

        A fan speed implies fixed airflow. A humidify level alone keeps the
        current mode and, in fixed airflow, rewrites the speed so it lands on
        the field matching the new humidify state.

        """

        check_change_keys(change, CHANGE_KEYS)
        fragments: list[Patch] = []
        if "power" in change:
            fragments.append(set_power(tree, bool(change["power"])))

        mode = coerce_enum(OperationMode, change.get("mode", state.mode))
        if "fan_speed" in change:
            if mode is not OperationMode.FIXED_FLOW and "mode" in change:
                raise UnsupportedValueError(
                    f"A fan speed requires fixed airflow, not {mode.name}"
                )
            mode = OperationMode.FIXED_FLOW

        humidify = state.humidify_level
        if "humidify_level" in change:
            humidify = coerce_enum(HumidifyLevel, change["humidify_level"])
            if humidify is HumidifyLevel.AUTO and not FORCE_AUTO_HUMIDIFY[mode]:
                raise UnsupportedValueError(
                    f"Automatic humidification is implied by the mode, not {mode.name}"
                )
            if FORCE_AUTO_HUMIDIFY[mode] and humidify is not HumidifyLevel.AUTO:
                raise UnsupportedValueError(
                    f"{mode.name} mode controls humidification automatically"
                )

        if "fan_speed" in change:
            speed = coerce_enum(FanSpeed, change["fan_speed"])
            fragments.append(set_fan_speed_and_humidify(tree, speed, humidify))
        elif "mode" in change or "humidify_level" in change:
            if mode is OperationMode.FIXED_FLOW and state.fan_speed is not FanSpeed.AUTO:
                fragments.append(
                    set_fan_speed_and_humidify(tree, state.fan_speed, humidify)
                )
            else:
                fragments.append(set_operation_mode_and_humidify(tree, mode, humidify))
        return combine(fragments)

    def attributes(self, state: AirPurifierState) -> dict[AttributeKey, Any]:
        """Project the snapshot onto downstream attributes."""

        return {
            ON_OFF: state.power,
            OPERATION_MODE: state.mode,
            FAN_MODE: FAN_MODE_BY_FAN_SPEED[state.fan_speed],
            FAN_PERCENT: percent_from_fan_speed(state.fan_speed),
            HUMIDIFY_FAN_MODE: FAN_MODE_BY_HUMIDIFY_LEVEL[state.humidify_level],
            HUMIDIFY_PERCENT: percent_from_humidify_level(state.humidify_level),
            WATER_TANK_EMPTY: state.water_tank_empty,
            INDOOR_HUMIDITY: state.indoor_humidity,
            INDOOR_TEMPERATURE: state.indoor_temperature,
            PM25_LEVEL: state.pm25_level,
            DUST_LEVEL: state.dust_level,
            SMELL_LEVEL: state.smell_level,
        }

    def change_for_attribute(
        self, group: str, name: str, value: Any, state: AirPurifierState
    ) -> Change:
        """Translate a downstream write into a change for :meth:`build_command`."""

        key = (group, name)
        if key == ON_OFF:
            return {"power": bool(value)}
        if key == OPERATION_MODE:
            return {"mode": coerce_enum(OperationMode, value)}
        if key == FAN_MODE:
            fan_mode = coerce_enum(FanMode, value)
            if fan_mode is FanMode.AUTO:
                return {"mode": OperationMode.FLOW_AUTO}
            return {"fan_speed": FAN_SPEED_BY_FAN_MODE[fan_mode] or FanSpeed.SILENT}
        if key == FAN_PERCENT:
            return {"fan_speed": fan_speed_from_percent(float(value))}
        if key in (HUMIDIFY_FAN_MODE, HUMIDIFY_PERCENT):
            if FORCE_AUTO_HUMIDIFY[state.mode]:
                raise UnsupportedValueError(
                    f"{state.mode.name} mode controls humidification automatically"
                )
            if key == HUMIDIFY_PERCENT:
                return {"humidify_level": humidify_level_from_percent(float(value))}
            level = HUMIDIFY_LEVEL_BY_FAN_MODE[coerce_enum(FanMode, value)]
            if level is None:
                raise UnsupportedValueError(f"Unsupported humidify level {value!r}")
            return {"humidify_level": level}
        raise KeyError(key)


def _build_mapper(config: EngineConfig) -> AirPurifierMapper:
    return AirPurifierMapper()


DESCRIPTOR = FamilyDescriptor(
    tag=TAG,
    name="Humidifying air purifier",
    mapper_factory=_build_mapper,
    capabilities=frozenset(
        {
            Capability.ON_OFF,
            Capability.FAN_CONTROL,
            Capability.MODE_SELECT,
            Capability.HUMIDITY_CONTROL,
            Capability.HUMIDITY_SENSOR,
            Capability.TEMPERATURE_SENSOR,
            Capability.AIR_QUALITY,
            Capability.WATER_TANK,
        }
    ),
)
