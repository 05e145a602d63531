"""
Tests for JSON configuration loading and the command line runner
"""

import copy
import json
import logging

import pytest

import main
from trip_calculations import config
from trip_calculations.calcs_layers import ColorRGBA, Placement
from trip_calculations.errors import ConfigurationError


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logging.getLogger("trip_calculations").handlers.clear()


@pytest.fixture
def sample_data():
    return config.load_input_data(config.DEFAULT_INPUT_PATH)


def _write(tmp_path, data):
    path = tmp_path / "input.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        config.load_input_data(tmp_path / "nope.json")


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{ not json", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid JSON"):
        config.load_input_data(path)


def test_missing_section(tmp_path, sample_data):
    data = copy.deepcopy(sample_data)
    del data["trip"]
    with pytest.raises(ConfigurationError, match="'trip'"):
        config.load_input_data(_write(tmp_path, data))


def test_drill_pipe_lookup(sample_data):
    sections = config.build_drill_string(sample_data)
    dp, dc = sections
    assert dp.od_m == pytest.approx(5.0 * 0.0254)
    assert dp.id_m == pytest.approx(4.276 * 0.0254)
    assert dc.id_m == pytest.approx(2.8125 * 0.0254)


def test_unknown_drill_pipe_weight(sample_data):
    data = copy.deepcopy(sample_data)
    data["drill_string"][0]["weight_ppf"] = 99.0
    with pytest.raises(ConfigurationError, match="no drill pipe entry"):
        config.build_drill_string(data)


def test_geometry_from_sample(sample_data):
    geometry = config.build_geometry(sample_data, strict=True)
    assert geometry.deepest_md == pytest.approx(3500.0)
    assert geometry.hole_id(2500.0) == pytest.approx(8.5 * 0.0254)


def test_strict_geometry_rejects_oversized_pipe(sample_data):
    data = copy.deepcopy(sample_data)
    data["drill_string"][1]["od_in"] = 9.0
    with pytest.raises(ConfigurationError, match="exceeds hole ID"):
        config.build_geometry(data, strict=True)
    # Non-strict only logs the issue
    assert config.build_geometry(data).drill_string


def test_tvd_sampler_from_surveys(sample_data):
    sampler = config.build_tvd_sampler(sample_data)
    assert sampler(800.0) == pytest.approx(800.0)
    assert sampler(2500.0) == pytest.approx(sampler(3500.0))
    assert not sampler.is_using_plan


def test_vertical_sampler_without_surveys(sample_data):
    data = copy.deepcopy(sample_data)
    data["surveys"] = []
    assert config.build_tvd_sampler(data).is_vertical


def test_muds_and_final_layers(sample_data):
    muds = config.build_muds(sample_data)
    assert set(muds) == {"Active", "Kill", "Slug"}
    assert muds["Slug"].color == ColorRGBA(1.0, 0.5, 0.0)
    assert muds["Active"].pv_cp == pytest.approx(17.0)

    (slug,) = config.build_final_layers(sample_data, muds)
    assert slug.placement is Placement.STRING
    assert slug.density_kgm3 == 1600.0
    assert slug.color == muds["Slug"].color


def test_final_layer_with_unknown_mud(sample_data):
    data = copy.deepcopy(sample_data)
    data["final_layers"][0]["mud"] = "Missing"
    with pytest.raises(ConfigurationError, match="unknown mud"):
        config.build_final_layers(data, config.build_muds(data))


def test_bad_colour_is_a_configuration_error(sample_data):
    data = copy.deepcopy(sample_data)
    data["muds"][0]["color"] = "sparkly"
    with pytest.raises(ConfigurationError, match="colour"):
        config.build_muds(data)


def test_trip_and_optimizer_inputs(sample_data):
    muds = config.build_muds(sample_data)
    sampler = config.build_tvd_sampler(sample_data)
    trip_input = config.build_trip_input(sample_data, muds, sampler)
    assert trip_input.base_mud_density_kgm3 == 1200.0
    assert trip_input.backfill_density_kgm3 == 1250.0
    assert trip_input.is_pulling_out
    assert trip_input.td_md_m == 3500.0
    assert trip_input.observed_initial_pit_gain_m3 is None

    optimizer_input = config.build_optimizer_input(sample_data, trip_input)
    assert optimizer_input.target_esd_kgm3 == 1220.0
    assert optimizer_input.second_slug_density_kgm3 is None

    data = copy.deepcopy(sample_data)
    del data["optimizer"]
    assert config.build_optimizer_input(data, trip_input) is None


def test_main_runs_sample(capsys):
    assert main.main([]) == 0
    out = capsys.readouterr().out
    assert "TRIP SIMULATION REPORT" in out
    assert "KILL MUD DENSITY" in out


def test_main_reports_bad_input(tmp_path, sample_data):
    data = copy.deepcopy(sample_data)
    data["trip"]["step_m"] = 0.0
    assert main.main([str(_write(tmp_path, data))]) == 1


@pytest.mark.parametrize("section, index, key, value", [
    ("trip", None, "step_m", "ten"),
    ("trip", None, "crack_float_kpa", [100.0]),
    ("annulus", 0, "bottom_md", "deep"),
    ("muds", 0, "density_kgm3", {"value": 1200}),
])
def test_non_numeric_value_is_a_configuration_error(sample_data, section, index, key, value):
    data = copy.deepcopy(sample_data)
    entry = data[section] if index is None else data[section][index]
    entry[key] = value
    muds = config.build_muds(sample_data)
    sampler = config.build_tvd_sampler(sample_data)
    builders = {
        "trip": lambda: config.build_trip_input(data, muds, sampler),
        "annulus": lambda: config.build_annulus(data),
        "muds": lambda: config.build_muds(data),
    }
    with pytest.raises(ConfigurationError, match=f"'{key}' must be a number"):
        builders[section]()


def test_main_reports_non_numeric_input(tmp_path, sample_data):
    data = copy.deepcopy(sample_data)
    data["trip"]["control_md_m"] = "two thousand"
    assert main.main([str(_write(tmp_path, data))]) == 1


def test_main_rejects_control_depth_below_td(tmp_path, sample_data):
    data = copy.deepcopy(sample_data)
    data["trip"]["control_md_m"] = 5000.0
    assert main.main([str(_write(tmp_path, data))]) == 1
