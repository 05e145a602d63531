"""
Tests for wellbore geometry areas, interval volumes and validation
"""

import logging
import math

import pytest

from trip_calculations.calcs_geometry import AnnulusSection, DrillStringSection, GeometryService, circle_area

from conftest import HOLE_ID_M, PIPE_ID_M, PIPE_OD_M


@pytest.fixture
def two_section_geometry():
    # 5" DP over 6.5" collars, 8.681" casing over 8.5" open hole
    return GeometryService(
        drill_string=[DrillStringSection("DP", 0.0, 800.0, 0.127, 0.1086),
                      DrillStringSection("DC", 800.0, 200.0, 0.1651, 0.0714)],
        annulus=[AnnulusSection("Casing", 0.0, 500.0, 0.2205),
                 AnnulusSection("Open hole", 500.0, 1000.0, 0.2159)],
    )


def test_areas(vertical_geometry):
    g = vertical_geometry
    assert g.hole_area(500.0) == pytest.approx(math.pi * HOLE_ID_M ** 2 / 4.0)
    assert g.string_capacity_area(500.0) == pytest.approx(circle_area(PIPE_ID_M))
    assert g.steel_displacement(500.0) == pytest.approx(circle_area(PIPE_OD_M) - circle_area(PIPE_ID_M))
    assert g.annulus_area(500.0) == pytest.approx(circle_area(HOLE_ID_M) - circle_area(PIPE_OD_M))


def test_no_pipe_below_current_string_bottom():
    g = GeometryService([DrillStringSection("DP", 0.0, 1000.0, 0.127, 0.1086)],
                        [AnnulusSection("OH", 0.0, 1000.0, 0.2159)],
                        current_string_bottom_md=600.0)
    assert g.pipe_od(700.0) == 0.0
    assert g.annulus_area(700.0) == pytest.approx(g.hole_area(700.0))


def test_hole_keeps_last_size_below_deepest_section(vertical_geometry):
    assert vertical_geometry.hole_id(1200.0) == pytest.approx(HOLE_ID_M)


def test_volumes_are_additive(two_section_geometry):
    g = two_section_geometry
    for volume in (g.volume_in_annulus, g.volume_in_string, g.volume_of_string_od,
                   g.volume_of_steel, g.volume_in_hole):
        whole = volume(0.0, 1000.0)
        parts = volume(0.0, 333.0) + volume(333.0, 870.0) + volume(870.0, 1000.0)
        assert whole == pytest.approx(parts)


def test_volume_across_section_change(two_section_geometry):
    g = two_section_geometry
    expected = circle_area(0.1086) * 100.0 + circle_area(0.0714) * 50.0
    assert g.volume_in_string(700.0, 850.0) == pytest.approx(expected)


def test_volume_ignores_order_and_empty_interval(vertical_geometry):
    g = vertical_geometry
    assert g.volume_in_annulus(400.0, 100.0) == pytest.approx(g.volume_in_annulus(100.0, 400.0))
    assert g.volume_in_annulus(250.0, 250.0) == 0.0


def test_od_volume_is_string_plus_steel(two_section_geometry):
    g = two_section_geometry
    assert g.volume_of_string_od(100.0, 950.0) == pytest.approx(
        g.volume_in_string(100.0, 950.0) + g.volume_of_steel(100.0, 950.0))


def test_length_for_volume_inverts_volume(two_section_geometry):
    g = two_section_geometry
    volume = g.volume_in_annulus(0.0, 640.0)
    assert g.length_for_annulus_volume(0.0, volume) == pytest.approx(640.0)
    volume = g.volume_in_string(0.0, 900.0)
    assert g.length_for_string_volume(0.0, volume) == pytest.approx(900.0)
    assert g.length_for_string_volume(0.0, 0.0) == 0.0


def test_length_for_volume_beyond_geometry(vertical_geometry):
    g = vertical_geometry
    extra = g.string_capacity_area(999.0) * 50.0
    total = g.volume_in_string(0.0, 1000.0) + extra
    assert g.length_for_string_volume(0.0, total) == pytest.approx(1050.0)


def test_negative_annulus_area_is_clamped_and_warned_once(caplog):
    g = GeometryService([DrillStringSection("Fat", 0.0, 100.0, 0.30, 0.10)],
                        [AnnulusSection("OH", 0.0, 100.0, 0.2159)])
    with caplog.at_level(logging.WARNING, logger="trip_calculations"):
        assert g.annulus_area(10.0) == 0.0
        assert g.annulus_area(50.0) == 0.0
    warnings = [r for r in caplog.records if "clamped" in r.getMessage()]
    assert len(warnings) == 1


def test_reset_warnings_reports_clamp_again(caplog):
    g = GeometryService([DrillStringSection("Fat", 0.0, 100.0, 0.30, 0.10)],
                        [AnnulusSection("OH", 0.0, 100.0, 0.2159)])
    with caplog.at_level(logging.WARNING, logger="trip_calculations"):
        g.annulus_area(10.0)
        g.reset_warnings()
        g.annulus_area(10.0)
    assert len([r for r in caplog.records if "clamped" in r.getMessage()]) == 2


def test_validate_clean_geometry(two_section_geometry):
    assert two_section_geometry.validate() == []


def test_validate_reports_problems():
    g = GeometryService(
        drill_string=[DrillStringSection("DP", 0.0, 600.0, 0.127, 0.1086),
                      DrillStringSection("Bad", 500.0, 100.0, 0.10, 0.12),
                      DrillStringSection("Fat", 600.0, 100.0, 0.30, 0.10)],
        annulus=[AnnulusSection("OH", 0.0, 1000.0, 0.2159)],
    )
    issues = g.validate()
    assert any("overlap" in i for i in issues)
    assert any("ID larger than OD" in i for i in issues)
    assert any("exceeds hole ID" in i for i in issues)


def test_empty_geometry():
    g = GeometryService([], [])
    assert g.is_empty
    assert g.deepest_md == 0.0
    assert "No drill string sections defined" in g.validate()
