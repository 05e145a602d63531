"""
Tests for the kill mud / slug optimizer
"""

from dataclasses import replace

import pytest

from trip_calculations.calcs_geometry import AnnulusSection, GeometryService
from trip_calculations.calcs_optimizer import (
    KILL_DENSITY_FLOOR_KGM3,
    TripOptimizerInput,
    calculate,
    second_slug_density,
    slug_drop_height,
)
from trip_calculations.calcs_tvd import SurveyStation, TvdSampler


@pytest.fixture
def optimizer_input():
    return TripOptimizerInput(
        target_esd_kgm3=1250.0,
        surface_slug_volume_m3=1.0,
        surface_slug_density_kgm3=1600.0,
        base_mud_density_kgm3=1200.0,
        crack_float_kpa=0.0,
        start_bit_md_m=1000.0,
        control_md_m=1000.0,
        manual_heel_md_m=800.0,
    )


def test_second_slug_formula():
    assert second_slug_density(1250.0, 1200.0, 0.0, 1000.0) == pytest.approx(1300.0)
    # 981 kPa over 1000 m TVD is 100 kg/m3
    assert second_slug_density(1250.0, 1200.0, 981.0, 1000.0) == pytest.approx(1400.0)


def test_slug_drop_height():
    assert slug_drop_height(1600.0, 100.0, 1250.0) == pytest.approx(28.0)
    assert slug_drop_height(1250.0, 100.0, 1250.0) == 0.0


def test_kill_density_reproduces_target(optimizer_input, vertical_geometry):
    result = calculate(optimizer_input, TvdSampler.vertical(), vertical_geometry)

    assert result is not None
    assert result.warnings == []
    assert result.is_valid
    assert 1000.0 < result.kill_mud_density_kgm3 < 1600.0
    assert result.esd_at_control_kgm3 == pytest.approx(1250.0, abs=1.0)
    assert result.second_slug_density_was_calculated
    assert result.second_slug_density_kgm3 == pytest.approx(1300.0)
    assert result.heel_md_m == 800.0
    assert [row.name for row in result.layers] == [
        "Kill mud", "Surface slug", "Active mud", "Second slug", "Original mud"]


def test_layer_boundaries_are_ordered(optimizer_input, vertical_geometry):
    result = calculate(optimizer_input, TvdSampler.vertical(), vertical_geometry)
    rows = result.layers
    assert rows[0].top_md_m == 0.0
    for upper, lower in zip(rows[:-1], rows[1:]):
        assert upper.bottom_md_m == pytest.approx(lower.top_md_m)
    assert rows[-1].bottom_md_m == pytest.approx(1000.0)
    heights = (result.kill_mud_height_m + result.surface_slug_height_m + result.active_mud_height_m
               + result.second_slug_height_m + result.original_mud_height_m)
    assert heights == pytest.approx(result.control_tvd_m)


def test_kill_volume_is_steel_plus_drop(optimizer_input, vertical_geometry):
    result = calculate(optimizer_input, TvdSampler.vertical(), vertical_geometry)
    assert result.total_steel_displacement_m3 == pytest.approx(vertical_geometry.volume_of_steel(0.0, 1000.0))
    assert result.kill_mud_volume_m3 == pytest.approx(result.total_steel_displacement_m3
                                                      + result.slug_drop_volume_m3)
    assert result.slug_drop_volume_m3 > 0.0


def test_observed_drop_and_given_second_slug(optimizer_input, vertical_geometry):
    given = replace(optimizer_input, observed_slug_drop_m3=1.0, second_slug_density_kgm3=1350.0)
    result = calculate(given, TvdSampler.vertical(), vertical_geometry)
    assert result.slug_drop_volume_m3 == 1.0
    assert result.slug_drop_calculated_m3 != 1.0
    assert not result.second_slug_density_was_calculated
    assert result.second_slug_density_kgm3 == 1350.0
    assert result.second_slug_density_calculated_kgm3 == pytest.approx(1300.0)


def test_heel_from_surveys(optimizer_input, vertical_geometry):
    surveys = [SurveyStation(0.0, 0.0, tvd=0.0), SurveyStation(600.0, 90.0, tvd=600.0)]
    result = calculate(replace(optimizer_input, manual_heel_md_m=None), TvdSampler.vertical(),
                       vertical_geometry, surveys=surveys)
    assert result.heel_md_m == 600.0
    assert not any("heel" in w for w in result.warnings)


def test_heel_fallback_warns(optimizer_input, vertical_geometry):
    result = calculate(replace(optimizer_input, manual_heel_md_m=None), TvdSampler.vertical(), vertical_geometry)
    assert result.heel_md_m == pytest.approx(700.0)
    assert any("No heel" in w for w in result.warnings)


def test_heavy_slugs_clamp_kill_density(optimizer_input, vertical_geometry):
    heavy = replace(optimizer_input, target_esd_kgm3=1200.0, surface_slug_volume_m3=5.0,
                    surface_slug_density_kgm3=2400.0)
    result = calculate(heavy, TvdSampler.vertical(), vertical_geometry)
    assert result.kill_mud_density_kgm3 == KILL_DENSITY_FLOOR_KGM3
    assert any("very low" in w for w in result.warnings)
    assert any("Verification" in w for w in result.warnings)


def test_degenerate_inputs_return_none(optimizer_input, vertical_geometry):
    sampler = TvdSampler.vertical()
    assert calculate(replace(optimizer_input, control_md_m=0.0), sampler, vertical_geometry) is None
    no_string = GeometryService([], [AnnulusSection("OH", 0.0, 1000.0, 0.2159)])
    assert calculate(optimizer_input, sampler, no_string) is None
