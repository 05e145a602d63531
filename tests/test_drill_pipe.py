"""
Tests for the API 5DP drill pipe reference table
"""

import pytest

from reference_data import drill_pipe


def test_standard_weights():
    assert drill_pipe.get_standard_weights(5.0) == [16.25, 19.50, 25.60]
    assert drill_pipe.get_standard_weights(7.0) is None


def test_pipe_id_lookup():
    assert drill_pipe.get_pipe_id(5.0, 19.5) == 4.276
    assert drill_pipe.get_pipe_id(5.0, 19.505) == 4.276
    assert drill_pipe.get_pipe_id(5.0, 20.0) is None
    assert drill_pipe.get_pipe_id(7.0, 20.0) is None


def test_dimensions_in_metres():
    od_m, id_m = drill_pipe.get_pipe_dimensions_m(3.5, 13.3)
    assert od_m == pytest.approx(0.0889)
    assert id_m == pytest.approx(2.764 * 0.0254)
    assert drill_pipe.get_pipe_dimensions_m(3.5, 1.0) is None


def test_every_entry_has_id_below_od():
    for od, weights in drill_pipe.DRILL_PIPE_DATA.items():
        for pipe_id in weights.values():
            assert 0.0 < pipe_id < od


def test_pipe_label():
    assert drill_pipe.pipe_label(5.0, 19.5) == '5" 19.50 ppf'
