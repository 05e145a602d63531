"""
Tests for frozen simulation inputs and staleness detection
"""

from dataclasses import replace

import pytest

from trip_calculations.calcs_frozen import FrozenSimulationInputs, staleness_reasons
from trip_calculations.calcs_geometry import AnnulusSection, DrillStringSection
from trip_calculations.calcs_rheology import Mud
from trip_calculations.calcs_tvd import SurveyStation


def _capture(hole_id=0.2159, active_density=1200.0, surveys=None):
    return FrozenSimulationInputs.capture(
        drill_string=[DrillStringSection("DC", 900.0, 100.0, 0.1651, 0.0714),
                      DrillStringSection("DP", 0.0, 900.0, 0.127, 0.1086)],
        annulus=[AnnulusSection("OH", 0.0, 1000.0, hole_id)],
        backfill_mud=Mud("Kill", 1250.0),
        active_mud=Mud("Active", active_density, dial600=60.0, dial300=40.0),
        surveys=surveys if surveys is not None else [SurveyStation(0.0), SurveyStation(1000.0, tvd=990.0)],
    )


def test_capture_sorts_sections_and_fills_survey_tvd():
    frozen = _capture()
    assert [d.name for d in frozen.drill_string] == ["DP", "DC"]
    assert frozen.surveys[0].tvd == 0.0
    assert frozen.surveys[1].tvd == 990.0
    assert frozen.max_drill_string_depth_m == pytest.approx(1000.0)
    assert frozen.captured_at


def test_hash_ignores_capture_time():
    a = _capture()
    b = replace(a, captured_at="2000-01-01T00:00:00+00:00")
    assert a == b
    assert a.input_hash == b.input_hash
    assert len(a.input_hash) == 64


def test_hash_changes_with_inputs():
    assert _capture().input_hash != _capture(active_density=1300.0).input_hash


def test_dict_round_trip():
    frozen = _capture()
    restored = FrozenSimulationInputs.from_dict(frozen.to_dict())
    assert restored == frozen
    assert restored.input_hash == frozen.input_hash


def test_make_tvd_sampler():
    sampler = _capture().make_tvd_sampler()
    assert sampler(500.0) == pytest.approx(495.0)


def test_unchanged_inputs_are_not_stale():
    assert staleness_reasons(_capture(), _capture()) == []


def test_small_changes_are_within_tolerance():
    assert staleness_reasons(_capture(), _capture(hole_id=0.21595, active_density=1200.5)) == []


def test_stale_reasons():
    frozen = _capture()
    current = _capture(hole_id=0.2200, active_density=1300.0,
                       surveys=[SurveyStation(0.0), SurveyStation(1000.0, tvd=950.0)])
    reasons = staleness_reasons(frozen, current)
    assert "Annulus section 1 geometry changed" in reasons
    assert any(r.startswith("Active mud density changed") for r in reasons)
    assert "Survey stations changed" in reasons


def test_section_count_change():
    frozen = _capture()
    current = replace(frozen, drill_string=frozen.drill_string[:1], backfill_mud=None)
    reasons = staleness_reasons(frozen, current)
    assert "Drill string sections changed (2 -> 1)" in reasons
    assert "Backfill mud configuration changed" in reasons
