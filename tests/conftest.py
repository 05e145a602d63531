"""
Shared fixtures: a simple vertical well with one pipe size and one hole size.
"""

import pytest

from trip_calculations.calcs_geometry import AnnulusSection, DrillStringSection, GeometryService
from trip_calculations.calcs_trip import TripInput

HOLE_ID_M = 0.2159      # 8.5"
PIPE_OD_M = 0.127       # 5"
PIPE_ID_M = 0.1086      # 4.276"


@pytest.fixture
def vertical_geometry():
    return GeometryService(
        drill_string=[DrillStringSection("DP", 0.0, 1000.0, PIPE_OD_M, PIPE_ID_M)],
        annulus=[AnnulusSection("Open hole", 0.0, 1000.0, HOLE_ID_M)],
    )


@pytest.fixture
def base_trip_input():
    """Pull out 1000 -> 0 m in a vertical well full of 1200 kg/m3 mud."""
    return TripInput(
        start_bit_md_m=1000.0,
        end_md_m=0.0,
        step_m=100.0,
        control_md_m=1000.0,
        base_mud_density_kgm3=1200.0,
        backfill_density_kgm3=1200.0,
        target_esd_at_td_kgm3=1200.0,
        crack_float_kpa=0.0,
    )
