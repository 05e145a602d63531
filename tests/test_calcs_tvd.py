"""
Tests for MD -> TVD sampling, minimum curvature and heel detection
"""

import math

import numpy as np
import pytest

from trip_calculations.calcs_tvd import (
    SurveyStation,
    TvdSampler,
    compute_station_tvds,
    find_heel_depth,
    find_inclination_depth,
    minimum_curvature_step,
)


def test_vertical_sampler_is_identity():
    sampler = TvdSampler.vertical()
    assert sampler.is_vertical
    assert sampler(0.0) == 0.0
    assert sampler(1234.5) == 1234.5
    np.testing.assert_allclose(sampler.tvd_array([0.0, 10.0, 20.0]), [0.0, 10.0, 20.0])


def test_sampler_interpolates_and_clamps():
    sampler = TvdSampler([0.0, 1000.0, 2000.0], [0.0, 1000.0, 1500.0])
    assert sampler(500.0) == pytest.approx(500.0)
    assert sampler(1500.0) == pytest.approx(1250.0)
    # Outside the stations the end values are held
    assert sampler(-10.0) == pytest.approx(0.0)
    assert sampler(3000.0) == pytest.approx(1500.0)


def test_sampler_forces_monotonic_tvd():
    # A TVD reversal in the input must not make TVD decrease with MD
    sampler = TvdSampler([0.0, 100.0, 200.0, 300.0], [0.0, 100.0, 90.0, 150.0])
    samples = sampler.tvd_array(np.linspace(0.0, 300.0, 61))
    assert np.all(np.diff(samples) >= 0.0)


def test_sampler_drops_duplicate_md():
    sampler = TvdSampler([0.0, 100.0, 100.0, 200.0], [0.0, 100.0, 120.0, 200.0])
    assert sampler(100.0) == pytest.approx(100.0)


def test_sampler_rejects_mismatched_arrays():
    with pytest.raises(ValueError):
        TvdSampler([0.0, 1.0], [0.0])


def test_minimum_curvature_vertical_step():
    d_tvd, d_n, d_e, dls = minimum_curvature_step(0.0, 0.0, 0.0, 100.0, 0.0, 0.0)
    assert d_tvd == pytest.approx(100.0)
    assert d_n == pytest.approx(0.0)
    assert d_e == pytest.approx(0.0)
    assert dls == pytest.approx(0.0)


def test_minimum_curvature_constant_inclination():
    d_tvd, d_n, _, dls = minimum_curvature_step(1000.0, 30.0, 0.0, 1100.0, 30.0, 0.0)
    assert d_tvd == pytest.approx(100.0 * math.cos(math.radians(30.0)))
    assert d_n == pytest.approx(100.0 * math.sin(math.radians(30.0)))
    assert dls == pytest.approx(0.0)


def test_minimum_curvature_build_section():
    # 0 -> 90 deg over a quarter circle of radius R: dTVD = dN = R
    radius = 200.0
    arc = math.pi / 2.0 * radius
    d_tvd, d_n, _, _ = minimum_curvature_step(0.0, 0.0, 0.0, arc, 90.0, 0.0)
    assert d_tvd == pytest.approx(radius, rel=1e-9)
    assert d_n == pytest.approx(radius, rel=1e-9)


def test_station_tvds_keep_given_values():
    stations = [SurveyStation(500.0, 0.0, 0.0),
                SurveyStation(600.0, 0.0, 0.0, tvd=590.0),
                SurveyStation(700.0, 0.0, 0.0)]
    assert compute_station_tvds(stations) == pytest.approx([500.0, 590.0, 690.0])


def test_from_stations_anchors_surface():
    sampler = TvdSampler.from_stations([SurveyStation(1000.0, 0.0, 0.0), SurveyStation(2000.0, 60.0, 0.0)])
    assert sampler(0.0) == pytest.approx(0.0)
    assert sampler(500.0) == pytest.approx(500.0)
    assert sampler(2000.0) < 2000.0


def test_heel_is_first_ninety_degree_station():
    surveys = [SurveyStation(0.0, 0.0), SurveyStation(1500.0, 60.0, tvd=1400.0),
               SurveyStation(1800.0, 90.0, tvd=1550.0), SurveyStation(2500.0, 90.0, tvd=1550.0)]
    assert find_heel_depth(surveys) == (1800.0, 1550.0)


def test_heel_falls_back_to_steepest_station():
    surveys = [SurveyStation(0.0, 0.0), SurveyStation(1500.0, 70.0, tvd=1300.0),
               SurveyStation(2000.0, 65.0, tvd=1500.0)]
    assert find_heel_depth(surveys) == (1500.0, 1300.0)


def test_no_heel_in_near_vertical_well():
    surveys = [SurveyStation(0.0, 0.0), SurveyStation(1000.0, 20.0, tvd=990.0)]
    assert find_heel_depth(surveys) is None
    assert find_heel_depth([]) is None


def test_heel_prefers_plan_when_requested():
    surveys = [SurveyStation(1000.0, 90.0, tvd=900.0)]
    plan = [SurveyStation(1200.0, 90.0, tvd=950.0)]
    assert find_heel_depth(surveys, plan, prefer_plan=True) == (1200.0, 950.0)
    assert find_heel_depth(surveys, plan, prefer_plan=False) == (1000.0, 900.0)


def test_heel_tvd_taken_from_sampler():
    surveys = [SurveyStation(0.0, 0.0), SurveyStation(1000.0, 0.0),
               SurveyStation(1500.0, 90.0), SurveyStation(2500.0, 90.0)]
    sampler = TvdSampler.from_stations(surveys)
    md, tvd = find_heel_depth(surveys, tvd_of_md=sampler)
    assert md == 1500.0
    assert tvd == pytest.approx(sampler(1500.0))
    assert tvd < 1500.0


def test_find_inclination_depth():
    surveys = [SurveyStation(0.0, 0.0), SurveyStation(800.0, 30.0, tvd=790.0),
               SurveyStation(1200.0, 60.0, tvd=1100.0)]
    assert find_inclination_depth(45.0, surveys) == (1200.0, 1100.0)
    assert find_inclination_depth(80.0, surveys) is None
