"""Tests for the air conditioner decode, command and attribute mapping."""

from dataclasses import replace

import pytest

from daikin_dsiot.config import EngineConfig
from daikin_dsiot.device_types import air_conditioner as ac
from daikin_dsiot.device_types.base import FanMode, SystemMode
from daikin_dsiot.exceptions import (
    FieldNotFoundError,
    ProtocolDecodeError,
    UnsupportedValueError,
)

from payloads import ac_tree, flatten, leaf


def test_decode_state_reads_full_snapshot() -> None:
    """The fixture should decode into the expected normalised state."""

    state = ac.decode_state(ac_tree())

    assert state.power is True
    assert state.mode is ac.OperationMode.COOL
    assert state.fan_speed is ac.FanSpeed.AUTO
    assert state.ventilation_speed is ac.VentilationSpeed.OFF
    assert state.motion_detection is False
    assert state.indoor_temperature == 22.0
    assert state.indoor_humidity == 50.0
    assert state.outdoor_temperature == 15.0
    assert dict(state.target_temperatures) == {
        ac.OperationMode.COOL: 24.0,
        ac.OperationMode.HEAT: 22.0,
        ac.OperationMode.AUTO: 23.0,
    }
    assert state.target_temperature_limits[ac.OperationMode.COOL] == (16.0, 32.0)
    assert dict(state.target_humidities) == {
        ac.OperationMode.COOL: ac.HumiditySetting(ac.HumidityMode.TARGET, 50)
    }
    assert state.vertical_directions[ac.OperationMode.COOL] is ac.VerticalDirection.AUTO
    assert (
        state.vertical_directions[ac.OperationMode.FAN_ONLY]
        is ac.VerticalDirection.SWING
    )
    assert (
        state.horizontal_directions[ac.OperationMode.COOL]
        is ac.HorizontalDirection.AUTO
    )
    assert state.system_mode is SystemMode.COOL


def test_decode_state_reads_identity() -> None:
    """Identity strings come from the adapter and device frames."""

    identity = ac.decode_state(ac_tree()).identity

    assert identity.mac_address == "A4B1C2D3E4F5"
    assert identity.ssid == "DaikinAP12345"
    assert identity.registration == "jp"
    assert identity.firmware_version == "2_8_0"
    assert identity.name == "Living room"
    assert identity.device_type == "RA20"


def test_decode_state_rejects_malformed_setpoint_bounds() -> None:
    """Undecodable bounds surface as decode errors, not ``ValueError``."""

    tree = ac_tree({"e_1002/e_3001/p_02": leaf("3000", 0xF5, "4000", "200")})

    with pytest.raises(ProtocolDecodeError):
        ac.decode_state(tree)


def test_decode_state_reports_off_system_mode_when_powered_down() -> None:
    """Power takes precedence over the stored mode."""

    state = ac.decode_state(ac_tree({"e_1002/e_A002/p_01": leaf("00", 0, "01")}))

    assert state.power is False
    assert state.mode is ac.OperationMode.COOL
    assert state.system_mode is SystemMode.OFF


def test_decode_state_reads_ventilation_speed_when_enabled() -> None:
    """The ventilation flag gates the speed field."""

    state = ac.decode_state(
        ac_tree(
            {
                "e_1002/e_3001/p_36": leaf("01", 0, "01"),
                "e_1002/e_3001/p_1C": leaf("0100", 0, "0200"),
            }
        )
    )

    assert state.ventilation_speed is ac.VentilationSpeed.MAX


def test_decode_state_fan_speed_follows_current_mode() -> None:
    """The fan speed is read from the field of the active mode."""

    state = ac.decode_state(ac_tree({"e_1002/e_3001/p_01": leaf("0100", 0, "0800")}))

    assert state.mode is ac.OperationMode.HEAT
    assert state.fan_speed is ac.FanSpeed.SPEED_1


def test_decode_state_rejects_unknown_mode() -> None:
    """An unrecognised mode value fails the whole decode."""

    with pytest.raises(ProtocolDecodeError):
        ac.decode_state(ac_tree({"e_1002/e_3001/p_01": leaf("0400", 0, "0800")}))


def test_decode_state_requires_current_fan_speed() -> None:
    """Core fields are mandatory."""

    with pytest.raises(FieldNotFoundError):
        ac.decode_state(ac_tree({"e_1002/e_3001/p_09": None}))


def test_decode_state_skips_unknown_louver_positions() -> None:
    """Optional per-mode values tolerate unrecognised positions."""

    state = ac.decode_state(ac_tree({"e_1002/e_3001/p_05": leaf("0700", 0, "1400")}))

    assert ac.OperationMode.COOL not in state.vertical_directions


def test_set_target_temperature_writes_single_leaf() -> None:
    """Without a sound the patch carries only the setpoint."""

    patch = ac.set_target_temperature(ac_tree(), ac.OperationMode.COOL, 25.5)

    assert flatten(patch) == {"e_1002/e_3001/p_02": "3300"}


def test_set_target_temperature_merges_operation_sound() -> None:
    """A requested sound is merged into the same patch."""

    patch = ac.set_target_temperature(
        ac_tree(),
        ac.OperationMode.COOL,
        25.5,
        ac.OperationSound.REMOTE_CONTROL_ONLY,
    )

    assert flatten(patch) == {
        "e_1002/e_3001/p_02": "3300",
        "e_1002/e_3003/p_2D": "04",
    }
    assert len(patch) == 1


def test_set_target_temperature_rejects_modes_without_setpoint() -> None:
    """Dry mode has no temperature target."""

    with pytest.raises(UnsupportedValueError):
        ac.set_target_temperature(ac_tree(), ac.OperationMode.DRY, 25.0)


def test_set_vertical_direction_falls_back_to_swing() -> None:
    """Fan-only mode has no automatic vertical louver."""

    patch = ac.set_vertical_direction(
        ac_tree(), ac.OperationMode.FAN_ONLY, ac.VerticalDirection.AUTO
    )

    assert flatten(patch) == {"e_1002/e_3001/p_24": "0F00"}


def test_set_ventilation_speed_toggles_flag() -> None:
    """Off only clears the flag; other speeds set both fields."""

    tree = ac_tree()

    assert flatten(ac.set_ventilation_speed(tree, ac.VentilationSpeed.OFF)) == {
        "e_1002/e_3001/p_36": "00"
    }
    assert flatten(ac.set_ventilation_speed(tree, ac.VentilationSpeed.MAX)) == {
        "e_1002/e_3001/p_36": "01",
        "e_1002/e_3001/p_1C": "0100",
    }


def test_set_target_humidity_writes_mode_and_value() -> None:
    """A target setting carries its percentage."""

    patch = ac.set_target_humidity(
        ac_tree(),
        ac.OperationMode.COOL,
        ac.HumiditySetting(ac.HumidityMode.TARGET, 55),
    )

    assert flatten(patch) == {
        "e_1002/e_3001/p_0C": "0100",
        "e_1002/e_3001/p_0B": "3700",
    }


def test_build_command_targets_requested_mode() -> None:
    """Mode-dependent fields use the mode requested alongside them."""

    tree = ac_tree()
    mapper = ac.AirConditionerMapper(operation_sound=None)
    state = mapper.decode(tree)

    patch = mapper.build_command(
        tree, state, {"mode": ac.OperationMode.HEAT, "fan_speed": ac.FanSpeed.AUTO}
    )

    assert flatten(patch) == {
        "e_1002/e_3001/p_01": "0100",
        "e_1002/e_3001/p_0A": "0A00",
    }


def test_build_command_uses_configured_sound() -> None:
    """The mapper built from configuration adds the default sound."""

    tree = ac_tree()
    mapper = ac.DESCRIPTOR.mapper_factory(EngineConfig(host="192.0.2.10"))
    state = mapper.decode(tree)

    patch = mapper.build_command(tree, state, {"power": False})

    assert flatten(patch) == {
        "e_1002/e_A002/p_01": "00",
        "e_1002/e_3003/p_2D": "04",
    }


def test_build_command_without_sound_when_disabled() -> None:
    """A ``None`` operation sound keeps patches single-field."""

    tree = ac_tree()
    mapper = ac.DESCRIPTOR.mapper_factory(
        EngineConfig(host="192.0.2.10", operation_sound=None)
    )

    patch = mapper.build_command(tree, mapper.decode(tree), {"power": True})

    assert flatten(patch) == {"e_1002/e_A002/p_01": "01"}


def test_build_command_rejects_unknown_keys() -> None:
    """Typos in change keys are programming errors."""

    tree = ac_tree()
    mapper = ac.AirConditionerMapper()

    with pytest.raises(KeyError):
        mapper.build_command(tree, mapper.decode(tree), {"colour": "blue"})


def test_attributes_project_state() -> None:
    """Downstream attributes derive from the decoded snapshot."""

    mapper = ac.AirConditionerMapper()
    attributes = mapper.attributes(mapper.decode(ac_tree()))

    assert attributes[ac.ON_OFF] is True
    assert attributes[ac.COOLING_SETPOINT] == 24.0
    assert attributes[ac.HEATING_SETPOINT] == 22.0
    assert attributes[ac.LOCAL_TEMPERATURE] == 22.0
    assert attributes[ac.OUTDOOR_TEMPERATURE] == 15.0
    assert attributes[ac.SYSTEM_MODE] is SystemMode.COOL
    assert attributes[ac.FAN_MODE] is FanMode.AUTO
    assert attributes[ac.FAN_PERCENT] == 0
    assert attributes[ac.FAN_SPEED_SETTING] is None
    assert attributes[ac.HUMIDITY_FAN_MODE] is FanMode.LOW
    assert attributes[ac.VENTILATION_FAN_MODE] is FanMode.OFF
    assert attributes[ac.VERTICAL_DIRECTION] is ac.VerticalDirection.AUTO


def test_change_for_system_mode() -> None:
    """System mode writes toggle power and select the operation mode."""

    mapper = ac.AirConditionerMapper()
    state = mapper.decode(ac_tree())
    powered_off = replace(state, power=False)

    assert mapper.change_for_attribute(*ac.SYSTEM_MODE, "off", state) == {
        "power": False
    }
    assert mapper.change_for_attribute(*ac.SYSTEM_MODE, "heat", state) == {
        "mode": ac.OperationMode.HEAT
    }
    assert mapper.change_for_attribute(*ac.SYSTEM_MODE, "heat", powered_off) == {
        "mode": ac.OperationMode.HEAT,
        "power": True,
    }
    with pytest.raises(UnsupportedValueError):
        mapper.change_for_attribute(*ac.SYSTEM_MODE, "sleep", state)
    with pytest.raises(UnsupportedValueError):
        mapper.change_for_attribute(*ac.SYSTEM_MODE, "bogus", state)


def test_change_for_fan_attributes() -> None:
    """Fan mode, percentage and speed setting map to device fan speeds."""

    mapper = ac.AirConditionerMapper()
    state = mapper.decode(ac_tree())

    assert mapper.change_for_attribute(*ac.FAN_MODE, "high", state) == {
        "fan_speed": ac.FanSpeed.SPEED_5
    }
    assert mapper.change_for_attribute(*ac.FAN_MODE, "on", state) == {
        "fan_speed": ac.FanSpeed.AUTO
    }
    assert mapper.change_for_attribute(*ac.FAN_PERCENT, 35, state) == {
        "fan_speed": ac.FanSpeed.SPEED_3
    }
    assert mapper.change_for_attribute(*ac.FAN_SPEED_SETTING, 1, state) == {
        "fan_speed": ac.FanSpeed.SILENT
    }
    with pytest.raises(UnsupportedValueError):
        mapper.change_for_attribute(*ac.FAN_SPEED_SETTING, 9, state)


def test_change_for_humidity_fan_mode_depends_on_mode() -> None:
    """Humidity levels are only available in modes with a humidity field."""

    mapper = ac.AirConditionerMapper()
    state = mapper.decode(ac_tree())
    fan_only = replace(state, mode=ac.OperationMode.FAN_ONLY)

    assert mapper.change_for_attribute(*ac.HUMIDITY_FAN_MODE, "high", state) == {
        "humidity": ac.HumiditySetting(ac.HumidityMode.TARGET, 60)
    }
    assert mapper.change_for_attribute(*ac.HUMIDITY_FAN_MODE, "auto", state) == {
        "humidity": ac.HumiditySetting(ac.HumidityMode.CONTINUOUS)
    }
    with pytest.raises(UnsupportedValueError):
        mapper.change_for_attribute(*ac.HUMIDITY_FAN_MODE, "high", fan_only)


def test_percent_round_trip_is_bucketed() -> None:
    """Percentages bucket onto speeds and back onto representative values."""

    assert ac.fan_speed_from_percent(0) is ac.FanSpeed.AUTO
    assert ac.fan_speed_from_percent(15) is ac.FanSpeed.SPEED_1
    assert ac.fan_speed_from_percent(100) is ac.FanSpeed.SPEED_5
    assert ac.percent_from_fan_speed(ac.FanSpeed.SPEED_5) == 100
