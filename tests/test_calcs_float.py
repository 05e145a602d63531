"""
Tests for the float valve state machine
"""

import pytest

from trip_calculations.calcs_float import (
    FillHypothesis,
    FloatState,
    expected_fill_volumes,
    float_label,
    next_float_state,
)

CRACK = 300.0


def test_closed_float_needs_crack_plus_tolerance():
    assert not next_float_state(FloatState.CLOSED, 1300.0, 1000.0, CRACK).is_open
    assert not next_float_state(FloatState.CLOSED, 1305.0, 1000.0, CRACK).is_open
    opened = next_float_state(FloatState.CLOSED, 1305.1, 1000.0, CRACK)
    assert opened.is_open
    assert opened.hypothesis is FillHypothesis.OPEN
    assert opened.differential_kpa == pytest.approx(305.1)


def test_open_float_stays_open_above_crack():
    # Hysteresis band: between crack and crack + tolerance the previous state holds
    assert next_float_state(FloatState.OPEN, 1302.0, 1000.0, CRACK).is_open
    assert not next_float_state(FloatState.CLOSED, 1302.0, 1000.0, CRACK).is_open


def test_open_float_closes_at_crack():
    closed = next_float_state(FloatState.OPEN, 1300.0, 1000.0, CRACK)
    assert closed.state is FloatState.CLOSED
    assert closed.hypothesis is FillHypothesis.CLOSED


def test_annulus_heavier_keeps_float_closed():
    assert not next_float_state(FloatState.CLOSED, 1000.0, 2000.0, 0.0).is_open


def test_expected_fill_volumes(vertical_geometry):
    if_closed, if_open = expected_fill_volumes(vertical_geometry, 500.0, 400.0)
    assert if_closed == pytest.approx(vertical_geometry.volume_of_string_od(400.0, 500.0))
    assert if_open == pytest.approx(vertical_geometry.volume_of_steel(400.0, 500.0))
    assert if_open < if_closed


@pytest.mark.parametrize("open_count, total, label", [
    (0, 0, "CLOSED 100%"),
    (0, 20, "CLOSED 100%"),
    (20, 20, "OPEN 100%"),
    (5, 20, "OPEN 25%"),
    (1, 1000, "OPEN 1%"),
])
def test_float_label(open_count, total, label):
    assert float_label(open_count, total) == label
