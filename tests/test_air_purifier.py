"""Tests for the humidifying air purifier mapping and its mode interlocks."""

from dataclasses import replace

import pytest

from daikin_dsiot.device_types import air_purifier as ap
from daikin_dsiot.device_types.base import FanMode
from daikin_dsiot.exceptions import UnsupportedValueError

from payloads import ap_tree, flatten, leaf


def test_decode_state_in_fixed_flow_without_humidify() -> None:
    """Plain fixed airflow reads the non-humidify fields."""

    state = ap.decode_state(ap_tree())

    assert state.power is True
    assert state.mode is ap.OperationMode.FIXED_FLOW
    assert state.fan_speed is ap.FanSpeed.SPEED_2
    assert state.humidify_level is ap.HumidifyLevel.OFF
    assert state.indoor_temperature == 22.0
    assert state.indoor_humidity == 50.0
    assert (state.pm25_level, state.dust_level, state.smell_level) == (2, 1, 3)
    assert state.water_tank_empty is False
    assert state.identity.device_type == "1D20"


def test_decode_state_reads_humidify_fields_when_fixed() -> None:
    """The fixed-humidify flag switches mode, speed and level fields."""

    state = ap.decode_state(
        ap_tree(
            {
                "e_1002/e_3001/p_3F": leaf("02", 0, "02"),
                "e_1002/e_3007/p_06": leaf("0400", 0, "6400"),
                "e_1002/e_3007/p_13": leaf("0200", 0, "0300"),
            }
        )
    )

    assert state.mode is ap.OperationMode.FIXED_FLOW
    assert state.fan_speed is ap.FanSpeed.SPEED_3
    assert state.humidify_level is ap.HumidifyLevel.MEDIUM


def test_decode_state_forces_auto_humidify_in_throat_mode() -> None:
    """Modes that control humidification report ``AUTO``."""

    state = ap.decode_state(ap_tree({"e_1002/e_3007/p_01": leaf("0500", 0, "0600")}))

    assert state.mode is ap.OperationMode.THROAT
    assert state.fan_speed is ap.FanSpeed.AUTO
    assert state.humidify_level is ap.HumidifyLevel.AUTO


def test_fan_speed_change_selects_fixed_flow() -> None:
    """A fan speed implies fixed airflow on the non-humidify fields."""

    tree = ap_tree()
    mapper = ap.AirPurifierMapper()

    patch = mapper.build_command(
        tree, mapper.decode(tree), {"fan_speed": ap.FanSpeed.SPEED_3}
    )

    assert flatten(patch) == {
        "e_1002/e_3007/p_01": "0100",
        "e_1002/e_3001/p_3F": "00",
        "e_1002/e_3007/p_04": "0400",
    }


def test_humidify_change_in_fixed_flow_moves_speed_field() -> None:
    """Enabling humidification rewrites the speed on the humidify field."""

    tree = ap_tree()
    mapper = ap.AirPurifierMapper()

    patch = mapper.build_command(
        tree, mapper.decode(tree), {"humidify_level": ap.HumidifyLevel.LOW}
    )

    assert flatten(patch) == {
        "e_1002/e_3007/p_03": "0100",
        "e_1002/e_3001/p_3F": "02",
        "e_1002/e_3007/p_13": "0100",
        "e_1002/e_3007/p_06": "0200",
    }


def test_force_auto_mode_skips_humidify_level() -> None:
    """Throat mode enables humidification without writing a level."""

    tree = ap_tree()
    mapper = ap.AirPurifierMapper()

    patch = mapper.build_command(
        tree, mapper.decode(tree), {"mode": ap.OperationMode.THROAT}
    )

    assert flatten(patch) == {
        "e_1002/e_3007/p_03": "0500",
        "e_1002/e_3001/p_3F": "02",
    }


def test_build_command_rejects_conflicting_interlocks() -> None:
    """Fan speeds need fixed airflow and force-auto modes reject levels."""

    tree = ap_tree()
    mapper = ap.AirPurifierMapper()
    state = mapper.decode(tree)

    with pytest.raises(UnsupportedValueError):
        mapper.build_command(
            tree,
            state,
            {"mode": ap.OperationMode.AUTO, "fan_speed": ap.FanSpeed.SPEED_1},
        )
    with pytest.raises(UnsupportedValueError):
        mapper.build_command(
            tree,
            state,
            {"mode": ap.OperationMode.THROAT, "humidify_level": ap.HumidifyLevel.LOW},
        )
    with pytest.raises(UnsupportedValueError):
        mapper.build_command(tree, state, {"fan_speed": ap.FanSpeed.AUTO})


@pytest.mark.parametrize(
    "mode",
    [ap.OperationMode.ECO, ap.OperationMode.POLLEN, ap.OperationMode.FIXED_FLOW],
)
def test_build_command_rejects_manual_auto_humidify(mode: ap.OperationMode) -> None:
    """Automatic humidification cannot be requested outside force-auto modes."""

    tree = ap_tree()
    mapper = ap.AirPurifierMapper()
    state = replace(mapper.decode(tree), mode=mode)

    with pytest.raises(UnsupportedValueError):
        mapper.build_command(
            tree, state, {"humidify_level": ap.HumidifyLevel.AUTO}
        )
    with pytest.raises(UnsupportedValueError):
        mapper.build_command(
            tree,
            mapper.decode(tree),
            {"mode": mode, "humidify_level": ap.HumidifyLevel.AUTO},
        )


def test_power_change_writes_flag() -> None:
    """Power is a plain flag write."""

    tree = ap_tree()
    mapper = ap.AirPurifierMapper()

    patch = mapper.build_command(tree, mapper.decode(tree), {"power": False})

    assert flatten(patch) == {"e_1002/e_A002/p_01": "00"}


def test_attributes_project_state() -> None:
    """Downstream attributes derive from the decoded snapshot."""

    mapper = ap.AirPurifierMapper()
    attributes = mapper.attributes(mapper.decode(ap_tree()))

    assert attributes[ap.ON_OFF] is True
    assert attributes[ap.OPERATION_MODE] is ap.OperationMode.FIXED_FLOW
    assert attributes[ap.FAN_MODE] is FanMode.MEDIUM
    assert attributes[ap.FAN_PERCENT] == 66
    assert attributes[ap.HUMIDIFY_FAN_MODE] is FanMode.OFF
    assert attributes[ap.HUMIDIFY_PERCENT] == 0
    assert attributes[ap.PM25_LEVEL] == 2
    assert attributes[ap.WATER_TANK_EMPTY] is False


def test_change_for_fan_attributes() -> None:
    """Automatic fan mode selects a mode; other modes select speeds."""

    mapper = ap.AirPurifierMapper()
    state = mapper.decode(ap_tree())

    assert mapper.change_for_attribute(*ap.FAN_MODE, "auto", state) == {
        "mode": ap.OperationMode.FLOW_AUTO
    }
    assert mapper.change_for_attribute(*ap.FAN_MODE, "high", state) == {
        "fan_speed": ap.FanSpeed.SPEED_3
    }
    assert mapper.change_for_attribute(*ap.FAN_MODE, "on", state) == {
        "fan_speed": ap.FanSpeed.SILENT
    }
    assert mapper.change_for_attribute(*ap.FAN_PERCENT, 10, state) == {
        "fan_speed": ap.FanSpeed.SPEED_1
    }


def test_change_for_humidify_rejected_in_force_auto_mode() -> None:
    """Humidify attributes are read-only while the mode controls them."""

    mapper = ap.AirPurifierMapper()
    state = mapper.decode(ap_tree())
    throat = replace(state, mode=ap.OperationMode.THROAT)

    assert mapper.change_for_attribute(*ap.HUMIDIFY_PERCENT, 50, state) == {
        "humidify_level": ap.HumidifyLevel.MEDIUM
    }
    with pytest.raises(UnsupportedValueError):
        mapper.change_for_attribute(*ap.HUMIDIFY_FAN_MODE, "low", throat)
    with pytest.raises(UnsupportedValueError):
        mapper.change_for_attribute(*ap.HUMIDIFY_FAN_MODE, "auto", state)
