"""Air conditioner family (device type tag ``RA``)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, NamedTuple

from ..attributes import AttributeKey
from ..const import FRAME_INDOOR_STATUS, FRAME_OUTDOOR_STATUS
from ..exceptions import UnsupportedValueError
from ..protocol import Patch
from ..tree import ParameterTree, leaf_fragment, merge_trees
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
    SystemMode,
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

_LOGGER = logging.getLogger(__name__)

TAG = "RA"

_OPERATION = "e_1002/e_3001"
MODE_PATH = f"{_OPERATION}/p_01"
VENTILATION_FLAG_PATH = f"{_OPERATION}/p_36"
VENTILATION_SPEED_PATH = f"{_OPERATION}/p_1C"
MOTION_DETECTION_PATH = "e_1002/e_3003/p_27"
OPERATION_SOUND_PATH = "e_1002/e_3003/p_2D"
OUTDOOR_TEMPERATURE_PATH = "e_1003/e_A00D/p_01"


class OperationMode(IntEnum):
    """Air conditioner operation modes."""

    FAN_ONLY = 0
    HEAT = 1
    COOL = 2
    AUTO = 3
    DRY = 5
    HUMIDIFY = 8


class FanSpeed(IntEnum):
    """Indoor fan speeds."""

    SPEED_1 = 3
    SPEED_2 = 4
    SPEED_3 = 5
    SPEED_4 = 6
    SPEED_5 = 7
    AUTO = 10
    SILENT = 11


class HumidityMode(IntEnum):
    """Humidity control setting of a mode."""

    OFF = 0
    TARGET = 1
    MEDIUM = 2
    HIGH = 3
    LOW = 4
    CONTINUOUS = 6


class VentilationSpeed(IntEnum):
    """Fresh-air ventilation speed; ``OFF`` is written through a separate flag."""

    OFF = 0
    MAX = 1
    AUTO = 2


class VerticalDirection(IntEnum):
    """Vertical louver positions, top to bottom."""

    DIR_1 = 1
    DIR_2 = 2
    DIR_3 = 3
    DIR_4 = 4
    DIR_5 = 5
    DIR_6 = 6
    SWING = 15
    AUTO = 16
    CIRCULATION = 20


class HorizontalDirection(IntEnum):
    """Horizontal louver positions, left to right."""

    DIR_1 = 10
    DIR_2 = 11
    DIR_3 = 12
    DIR_4 = 13
    DIR_5 = 14
    SWING = 15
    AUTO = 16


class OperationSound(IntEnum):
    """Announcement played by the indoor unit when a command arrives."""

    SMARTPHONE_START = 0
    SMARTPHONE_STOP = 1
    SMARTPHONE = 2
    SILENT = 3
    REMOTE_CONTROL_ONLY = 4


class HumiditySetting(NamedTuple):
    """Humidity mode plus the target value used by ``HumidityMode.TARGET``."""

    mode: HumidityMode
    value: int | None = None


def _field(name: str | None) -> str | None:
    return None if name is None else f"{_OPERATION}/{name}"


TARGET_TEMPERATURE_FIELDS = validate_table(
    "target_temperature",
    OperationMode,
    {
        OperationMode.HEAT: _field("p_03"),
        OperationMode.COOL: _field("p_02"),
        OperationMode.AUTO: _field("p_1F"),
        OperationMode.DRY: None,
        OperationMode.HUMIDIFY: None,
        OperationMode.FAN_ONLY: None,
    },
)

FAN_SPEED_FIELDS = validate_table(
    "fan_speed",
    OperationMode,
    {
        OperationMode.HEAT: _field("p_0A"),
        OperationMode.COOL: _field("p_09"),
        OperationMode.AUTO: _field("p_26"),
        OperationMode.DRY: _field("p_27"),
        OperationMode.HUMIDIFY: _field("p_27"),
        OperationMode.FAN_ONLY: _field("p_28"),
    },
)

HUMIDITY_MODE_FIELDS = validate_table(
    "humidity_mode",
    OperationMode,
    {
        OperationMode.HEAT: _field("p_2D"),
        OperationMode.COOL: _field("p_0C"),
        # AUTO only offers OFF/LOW/MEDIUM/HIGH.
        OperationMode.AUTO: _field("p_2F"),
        OperationMode.DRY: _field("p_31"),
        OperationMode.HUMIDIFY: _field("p_33"),
        OperationMode.FAN_ONLY: None,
    },
)

HUMIDITY_VALUE_FIELDS = validate_table(
    "humidity_value",
    OperationMode,
    {
        OperationMode.HEAT: _field("p_2C"),
        OperationMode.COOL: _field("p_0B"),
        OperationMode.AUTO: None,
        OperationMode.DRY: _field("p_30"),
        OperationMode.HUMIDIFY: _field("p_32"),
        OperationMode.FAN_ONLY: None,
    },
)

VERTICAL_DIRECTION_FIELDS = validate_table(
    "vertical_direction",
    OperationMode,
    {
        OperationMode.HEAT: _field("p_07"),
        OperationMode.COOL: _field("p_05"),
        OperationMode.AUTO: _field("p_20"),
        OperationMode.DRY: _field("p_22"),
        OperationMode.HUMIDIFY: _field("p_29"),
        OperationMode.FAN_ONLY: _field("p_24"),
    },
)

HORIZONTAL_DIRECTION_FIELDS = validate_table(
    "horizontal_direction",
    OperationMode,
    {
        OperationMode.HEAT: _field("p_08"),
        OperationMode.COOL: _field("p_06"),
        OperationMode.AUTO: _field("p_21"),
        OperationMode.DRY: _field("p_23"),
        OperationMode.HUMIDIFY: _field("p_2A"),
        OperationMode.FAN_ONLY: _field("p_25"),
    },
)

VERTICAL_AUTO_ALLOWED = validate_table(
    "vertical_auto_allowed",
    OperationMode,
    {
        OperationMode.HEAT: True,
        OperationMode.COOL: True,
        OperationMode.AUTO: True,
        OperationMode.DRY: True,
        OperationMode.HUMIDIFY: True,
        OperationMode.FAN_ONLY: False,
    },
)

SYSTEM_MODE_BY_OPERATION_MODE = validate_table(
    "system_mode",
    OperationMode,
    {
        OperationMode.HEAT: SystemMode.HEAT,
        OperationMode.COOL: SystemMode.COOL,
        OperationMode.AUTO: SystemMode.AUTO,
        OperationMode.DRY: SystemMode.DRY,
        # Humidify has no thermostat counterpart.
        OperationMode.HUMIDIFY: SystemMode.AUTO,
        OperationMode.FAN_ONLY: SystemMode.FAN_ONLY,
    },
)

OPERATION_MODE_BY_SYSTEM_MODE = validate_table(
    "operation_mode",
    SystemMode,
    {
        SystemMode.OFF: None,
        SystemMode.AUTO: OperationMode.AUTO,
        SystemMode.COOL: OperationMode.COOL,
        SystemMode.HEAT: OperationMode.HEAT,
        SystemMode.EMERGENCY_HEAT: None,
        SystemMode.PRECOOLING: None,
        SystemMode.FAN_ONLY: OperationMode.FAN_ONLY,
        SystemMode.DRY: OperationMode.DRY,
        SystemMode.SLEEP: None,
    },
)

FAN_SPEED_BY_FAN_MODE = validate_table(
    "fan_speed_by_fan_mode",
    FanMode,
    {
        FanMode.OFF: None,
        FanMode.LOW: FanSpeed.SILENT,
        FanMode.MEDIUM: FanSpeed.SPEED_3,
        FanMode.HIGH: FanSpeed.SPEED_5,
        FanMode.ON: None,
        FanMode.AUTO: FanSpeed.AUTO,
        FanMode.SMART: None,
    },
)

FAN_MODE_BY_FAN_SPEED = validate_table(
    "fan_mode_by_fan_speed",
    FanSpeed,
    {
        FanSpeed.AUTO: FanMode.AUTO,
        FanSpeed.SILENT: FanMode.LOW,
        FanSpeed.SPEED_1: FanMode.LOW,
        FanSpeed.SPEED_2: FanMode.MEDIUM,
        FanSpeed.SPEED_3: FanMode.MEDIUM,
        FanSpeed.SPEED_4: FanMode.MEDIUM,
        FanSpeed.SPEED_5: FanMode.HIGH,
    },
)

SPEED_SETTING_BY_FAN_SPEED = validate_table(
    "speed_setting",
    FanSpeed,
    {
        FanSpeed.AUTO: None,
        FanSpeed.SILENT: 1,
        FanSpeed.SPEED_1: 2,
        FanSpeed.SPEED_2: 3,
        FanSpeed.SPEED_3: 4,
        FanSpeed.SPEED_4: 5,
        FanSpeed.SPEED_5: 6,
    },
)
FAN_SPEED_BY_SPEED_SETTING: Mapping[int, FanSpeed] = MappingProxyType(
    {
        setting: speed
        for speed, setting in SPEED_SETTING_BY_FAN_SPEED.items()
        if setting is not None
    }
)

VENTILATION_BY_FAN_MODE = validate_table(
    "ventilation_by_fan_mode",
    FanMode,
    {
        FanMode.OFF: VentilationSpeed.OFF,
        FanMode.LOW: VentilationSpeed.AUTO,
        FanMode.MEDIUM: VentilationSpeed.AUTO,
        FanMode.HIGH: VentilationSpeed.MAX,
        FanMode.ON: None,
        FanMode.AUTO: VentilationSpeed.AUTO,
        FanMode.SMART: None,
    },
)

FAN_MODE_BY_VENTILATION = validate_table(
    "fan_mode_by_ventilation",
    VentilationSpeed,
    {
        VentilationSpeed.OFF: FanMode.OFF,
        VentilationSpeed.MAX: FanMode.HIGH,
        VentilationSpeed.AUTO: FanMode.AUTO,
    },
)

# Target humidity written for LOW/MEDIUM/HIGH, per mode.
_DEHUMIDIFY_TARGETS = (50, 55, 60)
_HUMIDIFY_TARGETS = (40, 45, 50)
HUMIDITY_TARGETS = validate_table(
    "humidity_targets",
    OperationMode,
    {
        OperationMode.HEAT: _HUMIDIFY_TARGETS,
        OperationMode.COOL: _DEHUMIDIFY_TARGETS,
        OperationMode.AUTO: None,
        OperationMode.DRY: _DEHUMIDIFY_TARGETS,
        OperationMode.HUMIDIFY: _HUMIDIFY_TARGETS,
        OperationMode.FAN_ONLY: None,
    },
)

_PERCENT_BY_FAN_SPEED = validate_table(
    "percent_by_fan_speed",
    FanSpeed,
    {
        FanSpeed.AUTO: 0,
        FanSpeed.SILENT: 10,
        FanSpeed.SPEED_1: 20,
        FanSpeed.SPEED_2: 30,
        FanSpeed.SPEED_3: 40,
        FanSpeed.SPEED_4: 50,
        FanSpeed.SPEED_5: 100,
    },
)
_FAN_SPEED_PERCENT_STEPS = (
    (0, FanSpeed.AUTO),
    (10, FanSpeed.SILENT),
    (20, FanSpeed.SPEED_1),
    (30, FanSpeed.SPEED_2),
    (40, FanSpeed.SPEED_3),
    (50, FanSpeed.SPEED_4),
)


def fan_speed_from_percent(percent: float) -> FanSpeed:
    """Bucket a 0-100 fan setting into a device fan speed."""

    for upper, speed in _FAN_SPEED_PERCENT_STEPS:
        if percent <= upper:
            return speed
    return FanSpeed.SPEED_5


def percent_from_fan_speed(speed: FanSpeed) -> int:
    """Return the representative percentage of ``speed``."""

    return _PERCENT_BY_FAN_SPEED[speed]


def humidity_setting_from_fan_mode(
    mode: OperationMode, fan_mode: FanMode
) -> HumiditySetting | None:
    """Map a humidity fan mode to the setting written for ``mode``."""

    if fan_mode is FanMode.OFF and HUMIDITY_MODE_FIELDS[mode] is not None:
        return HumiditySetting(HumidityMode.OFF)
    if mode is OperationMode.AUTO:
        level = {
            FanMode.LOW: HumidityMode.LOW,
            FanMode.MEDIUM: HumidityMode.MEDIUM,
            FanMode.HIGH: HumidityMode.HIGH,
        }.get(fan_mode)
        return None if level is None else HumiditySetting(level)
    targets = HUMIDITY_TARGETS[mode]
    if targets is None:
        return None
    if fan_mode is FanMode.AUTO:
        return HumiditySetting(HumidityMode.CONTINUOUS)
    index = {FanMode.LOW: 0, FanMode.MEDIUM: 1, FanMode.HIGH: 2}.get(fan_mode)
    if index is None:
        return None
    return HumiditySetting(HumidityMode.TARGET, targets[index])


def fan_mode_from_humidity(
    mode: OperationMode, settings: Mapping[OperationMode, HumiditySetting]
) -> FanMode:
    """Summarise the humidity setting of ``mode`` as a fan mode."""

    setting = settings.get(mode)
    if setting is None:
        return FanMode.OFF
    if setting.mode is HumidityMode.LOW:
        return FanMode.LOW
    if setting.mode is HumidityMode.MEDIUM:
        return FanMode.MEDIUM
    if setting.mode is HumidityMode.HIGH:
        return FanMode.HIGH
    if setting.mode is HumidityMode.CONTINUOUS:
        return FanMode.AUTO
    targets = HUMIDITY_TARGETS[mode]
    if setting.mode is HumidityMode.TARGET and targets is not None:
        value = setting.value or 0
        if value >= targets[2]:
            return FanMode.HIGH
        if value >= targets[1]:
            return FanMode.MEDIUM
        return FanMode.LOW
    return FanMode.OFF


@dataclass(frozen=True, slots=True)
class AirConditionerState:
    """Complete decoded snapshot of an air conditioner."""

    identity: DeviceIdentity
    power: bool
    mode: OperationMode
    fan_speed: FanSpeed
    ventilation_speed: VentilationSpeed
    motion_detection: bool
    indoor_temperature: float
    indoor_humidity: float
    outdoor_temperature: float
    target_temperatures: Mapping[OperationMode, float]
    target_temperature_limits: Mapping[OperationMode, tuple[float | None, float | None]]
    target_humidities: Mapping[OperationMode, HumiditySetting]
    target_humidity_limits: Mapping[OperationMode, tuple[float | None, float | None]]
    vertical_directions: Mapping[OperationMode, VerticalDirection]
    horizontal_directions: Mapping[OperationMode, HorizontalDirection]

    @property
    def system_mode(self) -> SystemMode:
        """Return the thermostat view of power and mode."""

        if not self.power:
            return SystemMode.OFF
        return SYSTEM_MODE_BY_OPERATION_MODE[self.mode]


def _read_float_map(
    tree: ParameterTree, fields: Mapping[OperationMode, str | None]
) -> dict[OperationMode, float]:
    values: dict[OperationMode, float] = {}
    for mode, path in fields.items():
        if path is None:
            continue
        value = tree.extract_float(FRAME_INDOOR_STATUS, path)
        if value is not None:
            values[mode] = value
    return values


def _read_limits(
    tree: ParameterTree, fields: Mapping[OperationMode, str | None]
) -> dict[OperationMode, tuple[float | None, float | None]]:
    limits: dict[OperationMode, tuple[float | None, float | None]] = {}
    for mode, path in fields.items():
        if path is None:
            continue
        bounds = tree.extract_min_max(FRAME_INDOOR_STATUS, path)
        if bounds is not None:
            limits[mode] = bounds
    return limits


def _read_enum_map(
    tree: ParameterTree,
    fields: Mapping[OperationMode, str | None],
    enum_type: type[IntEnum],
) -> dict[OperationMode, Any]:
    values: dict[OperationMode, Any] = {}
    for mode, path in fields.items():
        if path is None:
            continue
        raw = tree.extract_int(FRAME_INDOOR_STATUS, path)
        if raw is None:
            continue
        try:
            values[mode] = enum_type(raw)
        except ValueError:
            _LOGGER.debug("Ignoring unknown %s %s at %s", enum_type.__name__, raw, path)
    return values


def _read_humidity(
    tree: ParameterTree, mode: OperationMode
) -> HumiditySetting | None:
    mode_path = HUMIDITY_MODE_FIELDS[mode]
    if mode_path is None:
        return None
    raw = tree.extract_int(FRAME_INDOOR_STATUS, mode_path)
    if raw is None:
        return None
    try:
        humidity_mode = HumidityMode(raw)
    except ValueError:
        return None
    if humidity_mode is not HumidityMode.TARGET:
        return HumiditySetting(humidity_mode)
    value_path = HUMIDITY_VALUE_FIELDS[mode]
    value = (
        tree.extract_int(FRAME_INDOOR_STATUS, value_path)
        if value_path is not None
        else None
    )
    return HumiditySetting(HumidityMode.TARGET, value)


def decode_state(tree: ParameterTree) -> AirConditionerState:
    """Decode a full air conditioner snapshot.

    The current mode is resolved first because it selects the fan speed
    field; each humidity mode likewise selects whether a target value is read.
    Per-mode collections skip modes whose fields are absent.

    """

    mode = decode_enum(OperationMode, require_int(tree, MODE_PATH), MODE_PATH)
    fan_path = FAN_SPEED_FIELDS[mode]
    fan_speed = decode_enum(FanSpeed, require_int(tree, fan_path), fan_path)

    ventilation = VentilationSpeed.OFF
    flag = tree.extract_string(FRAME_INDOOR_STATUS, VENTILATION_FLAG_PATH)
    if flag is not None and flag != FLAG_OFF:
        ventilation = decode_enum(
            VentilationSpeed,
            require_int(tree, VENTILATION_SPEED_PATH),
            VENTILATION_SPEED_PATH,
        )

    humidities: dict[OperationMode, HumiditySetting] = {}
    for candidate in OperationMode:
        setting = _read_humidity(tree, candidate)
        if setting is not None:
            humidities[candidate] = setting

    return AirConditionerState(
        identity=decode_identity(tree),
        power=require_string(tree, POWER_PATH) == FLAG_ON,
        mode=mode,
        fan_speed=fan_speed,
        ventilation_speed=ventilation,
        motion_detection=(
            tree.extract_string(FRAME_INDOOR_STATUS, MOTION_DETECTION_PATH) == FLAG_ON
        ),
        indoor_temperature=require_float(tree, INDOOR_TEMPERATURE_PATH),
        indoor_humidity=require_float(tree, INDOOR_HUMIDITY_PATH),
        outdoor_temperature=require_float(
            tree, OUTDOOR_TEMPERATURE_PATH, FRAME_OUTDOOR_STATUS
        ),
        target_temperatures=MappingProxyType(
            _read_float_map(tree, TARGET_TEMPERATURE_FIELDS)
        ),
        target_temperature_limits=MappingProxyType(
            _read_limits(tree, TARGET_TEMPERATURE_FIELDS)
        ),
        target_humidities=MappingProxyType(humidities),
        target_humidity_limits=MappingProxyType(
            _read_limits(tree, HUMIDITY_VALUE_FIELDS)
        ),
        vertical_directions=MappingProxyType(
            _read_enum_map(tree, VERTICAL_DIRECTION_FIELDS, VerticalDirection)
        ),
        horizontal_directions=MappingProxyType(
            _read_enum_map(tree, HORIZONTAL_DIRECTION_FIELDS, HorizontalDirection)
        ),
    )


def _with_sound(
    tree: ParameterTree, patch: Patch, operation_sound: OperationSound | None
) -> Patch:
    if operation_sound is None:
        return patch
    return combine(
        (patch, tree.encode_int(FRAME_INDOOR_STATUS, OPERATION_SOUND_PATH, operation_sound))
    )


def _mode_field(
    fields: Mapping[OperationMode, str | None], mode: OperationMode, what: str
) -> str:
    path = fields[mode]
    if path is None:
        raise UnsupportedValueError(f"{mode.name} mode has no {what} setting")
    return path


def set_power(
    tree: ParameterTree, power: bool, operation_sound: OperationSound | None = None
) -> Patch:
    """Switch the unit on or off."""

    patch = leaf_fragment(POWER_PATH, FLAG_ON if power else FLAG_OFF)
    return _with_sound(tree, patch, operation_sound)


def set_operation_mode(
    tree: ParameterTree,
    mode: OperationMode,
    operation_sound: OperationSound | None = None,
) -> Patch:
    """Select the operation mode."""

    patch = tree.encode_int(FRAME_INDOOR_STATUS, MODE_PATH, mode)
    return _with_sound(tree, patch, operation_sound)


def set_target_temperature(
    tree: ParameterTree,
    mode: OperationMode,
    temperature: float,
    operation_sound: OperationSound | None = None,
) -> Patch:
    """Set the target temperature stored for ``mode``."""

    path = _mode_field(TARGET_TEMPERATURE_FIELDS, mode, "target temperature")
    patch = tree.encode_float(FRAME_INDOOR_STATUS, path, temperature)
    return _with_sound(tree, patch, operation_sound)


def set_target_humidity(
    tree: ParameterTree,
    mode: OperationMode,
    setting: HumiditySetting,
    operation_sound: OperationSound | None = None,
) -> Patch:
    """Set the humidity mode, and target value when given, for ``mode``."""

    path = _mode_field(HUMIDITY_MODE_FIELDS, mode, "humidity")
    patch = tree.encode_int(FRAME_INDOOR_STATUS, path, setting.mode)
    value_path = HUMIDITY_VALUE_FIELDS[mode]
    if value_path is not None and setting.value is not None:
        merge_trees(
            patch, tree.encode_int(FRAME_INDOOR_STATUS, value_path, setting.value)
        )
    return _with_sound(tree, patch, operation_sound)


def set_fan_speed(
    tree: ParameterTree,
    mode: OperationMode,
    speed: FanSpeed,
    operation_sound: OperationSound | None = None,
) -> Patch:
    """Set the fan speed stored for ``mode``."""

    path = _mode_field(FAN_SPEED_FIELDS, mode, "fan speed")
    patch = tree.encode_int(FRAME_INDOOR_STATUS, path, speed)
    return _with_sound(tree, patch, operation_sound)


def set_ventilation_speed(
    tree: ParameterTree,
    speed: VentilationSpeed,
    operation_sound: OperationSound | None = None,
) -> Patch:
    """Switch ventilation off or run it at ``speed``."""

    enabled = speed is not VentilationSpeed.OFF
    patch = leaf_fragment(VENTILATION_FLAG_PATH, FLAG_ON if enabled else FLAG_OFF)
    if enabled:
        merge_trees(
            patch, tree.encode_int(FRAME_INDOOR_STATUS, VENTILATION_SPEED_PATH, speed)
        )
    return _with_sound(tree, patch, operation_sound)


def set_vertical_direction(
    tree: ParameterTree,
    mode: OperationMode,
    direction: VerticalDirection,
    operation_sound: OperationSound | None = None,
) -> Patch:
    """Set the vertical louver for ``mode``; AUTO falls back to SWING where absent."""

    if direction is VerticalDirection.AUTO and not VERTICAL_AUTO_ALLOWED[mode]:
        direction = VerticalDirection.SWING
    path = _mode_field(VERTICAL_DIRECTION_FIELDS, mode, "vertical direction")
    patch = tree.encode_int(FRAME_INDOOR_STATUS, path, direction)
    return _with_sound(tree, patch, operation_sound)


def set_horizontal_direction(
    tree: ParameterTree,
    mode: OperationMode,
    direction: HorizontalDirection,
    operation_sound: OperationSound | None = None,
) -> Patch:
    """Set the horizontal louver for ``mode``."""

    path = _mode_field(HORIZONTAL_DIRECTION_FIELDS, mode, "horizontal direction")
    patch = tree.encode_int(FRAME_INDOOR_STATUS, path, direction)
    return _with_sound(tree, patch, operation_sound)


def set_motion_detection(tree: ParameterTree, enabled: bool) -> Patch:
    """Enable or disable the occupancy sensor."""

    return leaf_fragment(MOTION_DETECTION_PATH, FLAG_ON if enabled else FLAG_OFF)


CHANGE_KEYS = frozenset(
    {
        "power",
        "mode",
        "cooling_setpoint",
        "heating_setpoint",
        "auto_setpoint",
        "fan_speed",
        "humidity",
        "ventilation_speed",
        "vertical_direction",
        "horizontal_direction",
        "motion_detection",
    }
)

_SETPOINT_MODES = {
    "cooling_setpoint": OperationMode.COOL,
    "heating_setpoint": OperationMode.HEAT,
    "auto_setpoint": OperationMode.AUTO,
}

ON_OFF = ("on_off", "on_off")
COOLING_SETPOINT = ("thermostat", "occupied_cooling_setpoint")
HEATING_SETPOINT = ("thermostat", "occupied_heating_setpoint")
AUTO_SETPOINT = ("thermostat", "auto_setpoint")
LOCAL_TEMPERATURE = ("thermostat", "local_temperature")
OUTDOOR_TEMPERATURE = ("thermostat", "outdoor_temperature")
SYSTEM_MODE = ("thermostat", "system_mode")
OPERATION_MODE = ("mode_select", "operation_mode")
FAN_MODE = ("fan_control", "fan_mode")
FAN_PERCENT = ("fan_control", "percent_setting")
FAN_SPEED_SETTING = ("fan_control", "speed_setting")
FAN_SPEED = ("fan_control", "fan_speed")
INDOOR_HUMIDITY = ("humidity_sensor", "measured_value")
HUMIDITY_FAN_MODE = ("humidity_control", "fan_mode")
VENTILATION_FAN_MODE = ("ventilation", "fan_mode")
VERTICAL_DIRECTION = ("vertical_direction", "current_mode")
HORIZONTAL_DIRECTION = ("horizontal_direction", "current_mode")
MOTION_DETECTION = ("motion_detection", "enabled")


class AirConditionerMapper:
    """Mapper for the air conditioner family."""

    writable_attributes: tuple[AttributeKey, ...] = (
        ON_OFF,
        COOLING_SETPOINT,
        HEATING_SETPOINT,
        AUTO_SETPOINT,
        SYSTEM_MODE,
        OPERATION_MODE,
        FAN_MODE,
        FAN_PERCENT,
        FAN_SPEED_SETTING,
        FAN_SPEED,
        HUMIDITY_FAN_MODE,
        VENTILATION_FAN_MODE,
        VERTICAL_DIRECTION,
        HORIZONTAL_DIRECTION,
        MOTION_DETECTION,
    )

    def __init__(
        self, operation_sound: OperationSound | None = OperationSound.REMOTE_CONTROL_ONLY
    ) -> None:
        """Remember the announcement merged into every command."""

        self.operation_sound = operation_sound

    def decode(self, tree: ParameterTree) -> AirConditionerState:
        """Decode ``tree`` into a snapshot."""

        return decode_state(tree)

    def identity(self, state: AirConditionerState) -> DeviceIdentity:
        """Return the identity of the snapshot."""

        return state.identity

    def build_command(
        self,
        tree: ParameterTree,
        state: AirConditionerState,
        change: Mapping[str, Any],
    ) -> Patch:
        """Merge every requested field into one patch.

        Mode-dependent fields target the mode requested in the same change,
        falling back to the current mode.

        """

        check_change_keys(change, CHANGE_KEYS)
        sound = self.operation_sound
        mode = coerce_enum(OperationMode, change.get("mode", state.mode))
        fragments: list[Patch] = []

        if "power" in change:
            fragments.append(set_power(tree, bool(change["power"]), sound))
        if "mode" in change:
            fragments.append(set_operation_mode(tree, mode, sound))
        for key, setpoint_mode in _SETPOINT_MODES.items():
            if key in change:
                fragments.append(
                    set_target_temperature(
                        tree, setpoint_mode, float(change[key]), sound
                    )
                )
        if "fan_speed" in change:
            speed = coerce_enum(FanSpeed, change["fan_speed"])
            fragments.append(set_fan_speed(tree, mode, speed, sound))
        if "humidity" in change:
            setting = change["humidity"]
            if not isinstance(setting, HumiditySetting):
                setting = HumiditySetting(coerce_enum(HumidityMode, setting))
            fragments.append(set_target_humidity(tree, mode, setting, sound))
        if "ventilation_speed" in change:
            ventilation = coerce_enum(VentilationSpeed, change["ventilation_speed"])
            fragments.append(set_ventilation_speed(tree, ventilation, sound))
        if "vertical_direction" in change:
            vertical = coerce_enum(VerticalDirection, change["vertical_direction"])
            fragments.append(set_vertical_direction(tree, mode, vertical, sound))
        if "horizontal_direction" in change:
            horizontal = coerce_enum(HorizontalDirection, change["horizontal_direction"])
            fragments.append(set_horizontal_direction(tree, mode, horizontal, sound))
        if "motion_detection" in change:
            fragments.append(set_motion_detection(tree, bool(change["motion_detection"])))

        return combine(fragments)

    def attributes(self, state: AirConditionerState) -> dict[AttributeKey, Any]:
        """Project the snapshot onto downstream attributes."""

        return {
            ON_OFF: state.power,
            COOLING_SETPOINT: state.target_temperatures.get(OperationMode.COOL),
            HEATING_SETPOINT: state.target_temperatures.get(OperationMode.HEAT),
            AUTO_SETPOINT: state.target_temperatures.get(OperationMode.AUTO),
            LOCAL_TEMPERATURE: state.indoor_temperature,
            OUTDOOR_TEMPERATURE: state.outdoor_temperature,
            SYSTEM_MODE: state.system_mode,
            OPERATION_MODE: state.mode,
            FAN_MODE: FAN_MODE_BY_FAN_SPEED[state.fan_speed],
            FAN_PERCENT: percent_from_fan_speed(state.fan_speed),
            FAN_SPEED_SETTING: SPEED_SETTING_BY_FAN_SPEED[state.fan_speed],
            FAN_SPEED: state.fan_speed,
            INDOOR_HUMIDITY: state.indoor_humidity,
            HUMIDITY_FAN_MODE: fan_mode_from_humidity(
                state.mode, state.target_humidities
            ),
            VENTILATION_FAN_MODE: FAN_MODE_BY_VENTILATION[state.ventilation_speed],
            VERTICAL_DIRECTION: state.vertical_directions.get(state.mode),
            HORIZONTAL_DIRECTION: state.horizontal_directions.get(state.mode),
            MOTION_DETECTION: state.motion_detection,
        }

    def change_for_attribute(
        self, group: str, name: str, value: Any, state: AirConditionerState
    ) -> Change:
        """Translate a downstream write into a change for :meth:`build_command`."""

        key = (group, name)
        if key == ON_OFF:
            return {"power": bool(value)}
        if key == COOLING_SETPOINT:
            return {"cooling_setpoint": float(value)}
        if key == HEATING_SETPOINT:
            return {"heating_setpoint": float(value)}
        if key == AUTO_SETPOINT:
            return {"auto_setpoint": float(value)}
        if key == SYSTEM_MODE:
            return self._system_mode_change(coerce_enum(SystemMode, value), state)
        if key == OPERATION_MODE:
            return {"mode": coerce_enum(OperationMode, value)}
        if key == FAN_MODE:
            fan_mode = coerce_enum(FanMode, value)
            return {"fan_speed": FAN_SPEED_BY_FAN_MODE[fan_mode] or FanSpeed.AUTO}
        if key == FAN_PERCENT:
            return {"fan_speed": fan_speed_from_percent(float(value))}
        if key == FAN_SPEED_SETTING:
            speed = FAN_SPEED_BY_SPEED_SETTING.get(value)
            if speed is None:
                raise UnsupportedValueError(f"Unsupported speed setting {value!r}")
            return {"fan_speed": speed}
        if key == FAN_SPEED:
            return {"fan_speed": coerce_enum(FanSpeed, value)}
        if key == HUMIDITY_FAN_MODE:
            setting = humidity_setting_from_fan_mode(
                state.mode, coerce_enum(FanMode, value)
            )
            if setting is None:
                raise UnsupportedValueError(
                    f"Humidity level {value!r} unsupported in {state.mode.name} mode"
                )
            return {"humidity": setting}
        if key == VENTILATION_FAN_MODE:
            ventilation = VENTILATION_BY_FAN_MODE[coerce_enum(FanMode, value)]
            return {"ventilation_speed": ventilation or VentilationSpeed.AUTO}
        if key == VERTICAL_DIRECTION:
            return {"vertical_direction": coerce_enum(VerticalDirection, value)}
        if key == HORIZONTAL_DIRECTION:
            return {"horizontal_direction": coerce_enum(HorizontalDirection, value)}
        if key == MOTION_DETECTION:
            return {"motion_detection": bool(value)}
        raise KeyError(key)

    @staticmethod
    def _system_mode_change(
        system_mode: SystemMode, state: AirConditionerState
    ) -> Change:
        if system_mode is SystemMode.OFF:
            return {"power": False}
        mode = OPERATION_MODE_BY_SYSTEM_MODE[system_mode]
        if mode is None:
            raise UnsupportedValueError(f"System mode {system_mode.value} unsupported")
        change: Change = {"mode": mode}
        if not state.power:
            change["power"] = True
        return change


def _build_mapper(config: EngineConfig) -> AirConditionerMapper:
    sound = config.operation_sound
    return AirConditionerMapper(None if sound is None else OperationSound(sound))


DESCRIPTOR = FamilyDescriptor(
    tag=TAG,
    name="Air conditioner",
    mapper_factory=_build_mapper,
    capabilities=frozenset(
        {
            Capability.ON_OFF,
            Capability.THERMOSTAT,
            Capability.FAN_CONTROL,
            Capability.MODE_SELECT,
            Capability.HUMIDITY_CONTROL,
            Capability.VENTILATION,
            Capability.AIRFLOW_DIRECTION,
            Capability.MOTION_DETECTION,
            Capability.HUMIDITY_SENSOR,
            Capability.TEMPERATURE_SENSOR,
        }
    ),
)
