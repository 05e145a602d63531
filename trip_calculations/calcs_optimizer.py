"""
Trip Optimizer
One-shot kill mud / slug design for pulling out of hole.

Model:
- A surface slug of chosen volume and density is pumped into the string
- A second slug fills the string from the surface slug bottom down to the heel
- The heavy slugs U-tube and drop; the drop plus pipe steel is replaced by kill mud
- Annulus layers from surface: kill mud, surface slug, active mud, second slug,
  original mud down to the control depth
- The kill mud density is solved so the column gives the target ESD at control
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from .calcs_geometry import GeometryService
from .calcs_hydrostatic import esd_from_pressure, integrate_pressure
from .calcs_layers import LayerRow, make_row
from .calcs_tvd import SurveyStation, find_heel_depth
from .constants import EPS, G_KPA_PER_M_PER_KGM3

logger = logging.getLogger(__name__)

MIN_ANNULUS_CAPACITY_M2 = 0.001
MIN_KILL_HEIGHT_M = 0.1
KILL_DENSITY_WARN_LOW_KGM3 = 1000.0
KILL_DENSITY_FLOOR_KGM3 = 800.0
KILL_DENSITY_CEILING_KGM3 = 2500.0
VERIFICATION_TOL_KGM3 = 1.0
HEEL_FALLBACK_FRACTION = 0.7


@dataclass
class TripOptimizerInput:
    target_esd_kgm3: float
    surface_slug_volume_m3: float
    surface_slug_density_kgm3: float
    base_mud_density_kgm3: float
    crack_float_kpa: float
    start_bit_md_m: float
    control_md_m: float
    second_slug_density_kgm3: Optional[float] = None
    manual_heel_md_m: Optional[float] = None
    observed_slug_drop_m3: Optional[float] = None


@dataclass
class TripOptimizerResult:
    kill_mud_density_kgm3: float

    # Volumes (m3)
    surface_slug_volume_m3: float
    active_mud_volume_m3: float
    second_slug_volume_m3: float
    slug_drop_volume_m3: float
    slug_drop_calculated_m3: float
    kill_mud_volume_m3: float
    total_steel_displacement_m3: float

    # Slug drop details
    effective_esd_kgm3: float
    surface_slug_md_length_m: float
    surface_slug_tvd_height_m: float
    second_slug_md_length_m: float
    second_slug_tvd_height_m: float
    surface_slug_drop_height_m: float
    second_slug_drop_height_m: float

    # Annulus layer TVD heights from surface
    kill_mud_height_m: float
    surface_slug_height_m: float
    active_mud_height_m: float
    second_slug_height_m: float
    original_mud_height_m: float
    annulus_capacity_m3_per_m: float

    heel_md_m: float
    heel_tvd_m: float
    control_tvd_m: float
    surface_slug_bottom_md_m: float

    surface_slug_density_kgm3: float
    second_slug_density_kgm3: float
    second_slug_density_calculated_kgm3: float
    second_slug_density_was_calculated: bool
    base_mud_density_kgm3: float

    layers: Tuple[LayerRow, ...] = ()
    esd_at_control_kgm3: float = 0.0
    warnings: List[str] = field(default_factory=list)
    is_valid: bool = True


def second_slug_density(target_esd_kgm3: float, base_mud_density_kgm3: float,
                        crack_float_kpa: float, heel_tvd_m: float) -> float:
    """2 x target - base + crack float expressed as density over the heel TVD."""
    return (2.0 * target_esd_kgm3 - base_mud_density_kgm3
            + crack_float_kpa / max(heel_tvd_m, EPS) / G_KPA_PER_M_PER_KGM3)


def slug_drop_height(slug_density_kgm3: float, tvd_height_m: float, effective_esd_kgm3: float) -> float:
    """U-tube drop of one slug: (rho_slug - ESD_eff) * h / ESD_eff."""
    return (slug_density_kgm3 - effective_esd_kgm3) * tvd_height_m / max(effective_esd_kgm3, EPS)


def calculate(optimizer_input: TripOptimizerInput, tvd_sampler: Callable[[float], float],
              geometry: GeometryService, surveys: Sequence[SurveyStation] = (),
              plan_stations: Sequence[SurveyStation] = ()) -> Optional[TripOptimizerResult]:
    """
    Solve for the kill mud density that holds the target ESD at control depth.

    Parameters:
    -----------
    optimizer_input : TripOptimizerInput
        Target ESD, slug choices and well state
    tvd_sampler : callable
        MD -> TVD; a TvdSampler also tells whether the plan is in use
    geometry : GeometryService
        Drill string and annulus sections
    surveys, plan_stations : sequences of SurveyStation
        Used for heel detection when no manual heel is given

    Returns:
    --------
    TripOptimizerResult, or None when the control TVD or drill string is degenerate
    """
    inp = optimizer_input
    warnings: List[str] = []

    control_tvd = tvd_sampler(inp.control_md_m)
    bore_area = geometry.string_capacity_area(0.0)
    if control_tvd <= EPS or not geometry.drill_string or bore_area <= EPS:
        logger.warning("Trip optimizer skipped: control TVD %.2f m, %d drill string sections",
                       control_tvd, len(geometry.drill_string))
        return None

    # 1. Heel
    if inp.manual_heel_md_m is not None:
        heel_md = inp.manual_heel_md_m
        heel_tvd = tvd_sampler(heel_md)
    else:
        detected = find_heel_depth(surveys, plan_stations,
                                   prefer_plan=getattr(tvd_sampler, "is_using_plan", False),
                                   tvd_of_md=tvd_sampler)
        if detected is not None:
            heel_md, heel_tvd = detected
        else:
            heel_md = inp.start_bit_md_m * HEEL_FALLBACK_FRACTION
            heel_tvd = tvd_sampler(heel_md)
            warnings.append("No heel (90 deg) found. Using 70% of TD as estimate.")

    # 2. Second slug density
    second_calculated = second_slug_density(inp.target_esd_kgm3, inp.base_mud_density_kgm3,
                                            inp.crack_float_kpa, heel_tvd)
    was_calculated = inp.second_slug_density_kgm3 is None
    rho_second = second_calculated if was_calculated else inp.second_slug_density_kgm3

    # 3. Slugs inside the string
    surface_slug_bottom_md = geometry.length_for_string_volume(0.0, inp.surface_slug_volume_m3)
    second_volume = geometry.volume_in_string(surface_slug_bottom_md, heel_md) if heel_md > surface_slug_bottom_md else 0.0

    # 4. Slug drop
    effective_esd = inp.target_esd_kgm3 + inp.crack_float_kpa / max(heel_tvd, EPS) / G_KPA_PER_M_PER_KGM3
    surface_slug_bottom_tvd = tvd_sampler(surface_slug_bottom_md)
    surface_tvd_height = surface_slug_bottom_tvd
    second_md_length = heel_md - surface_slug_bottom_md
    second_tvd_height = heel_tvd - surface_slug_bottom_tvd
    surface_drop = slug_drop_height(inp.surface_slug_density_kgm3, surface_tvd_height, effective_esd)
    second_drop = slug_drop_height(rho_second, second_tvd_height, effective_esd)
    drop_calculated = max(0.0, surface_drop + second_drop) * bore_area
    drop = inp.observed_slug_drop_m3 if inp.observed_slug_drop_m3 is not None else drop_calculated

    # 5-6. Kill mud volume
    steel = geometry.volume_of_steel(0.0, inp.start_bit_md_m)
    kill_volume = steel + drop

    # 7. Annulus layer boundaries (MD), clipped so they never overlap or pass control
    first_annulus_md = geometry.annulus[0].top_md if geometry.annulus else 0.0
    annulus_capacity = geometry.annulus_area(first_annulus_md)
    capacity = max(annulus_capacity, MIN_ANNULUS_CAPACITY_M2)
    control_md = inp.control_md_m

    def clip(md):
        return min(max(md, 0.0), control_md)

    kill_bottom = clip(kill_volume / capacity)
    slug_bottom = clip(max(kill_bottom + inp.surface_slug_volume_m3 / capacity, kill_bottom))
    second_top = clip(max(heel_md - second_volume / capacity, slug_bottom))
    heel_clipped = clip(max(heel_md, second_top))
    boundaries = [0.0, kill_bottom, slug_bottom, second_top, heel_clipped, control_md]
    tvds = [tvd_sampler(md) for md in boundaries]
    heights = [max(0.0, b - a) for a, b in zip(tvds[:-1], tvds[1:])]
    h_kill, h_slug, h_active, h_second, h_original = heights

    # 8. Kill mud density
    target_pressure = inp.target_esd_kgm3 * G_KPA_PER_M_PER_KGM3 * control_tvd
    others = G_KPA_PER_M_PER_KGM3 * (inp.surface_slug_density_kgm3 * h_slug
                                     + inp.base_mud_density_kgm3 * h_active
                                     + rho_second * h_second
                                     + inp.base_mud_density_kgm3 * h_original)
    if h_kill > MIN_KILL_HEIGHT_M:
        rho_kill = (target_pressure - others) / (G_KPA_PER_M_PER_KGM3 * h_kill)
    else:
        rho_kill = inp.base_mud_density_kgm3
        warnings.append("Kill mud height too small. Using base mud density.")

    # 9. Clamp
    if rho_kill < KILL_DENSITY_WARN_LOW_KGM3:
        warnings.append(f"Calculated kill mud density ({rho_kill:.0f} kg/m3) is very low. "
                        "Heavy slugs may be overcompensating.")
        rho_kill = max(rho_kill, KILL_DENSITY_FLOOR_KGM3)
    if rho_kill > KILL_DENSITY_CEILING_KGM3:
        warnings.append(f"Kill mud density clamped to {KILL_DENSITY_CEILING_KGM3:.0f} kg/m3. Check inputs.")
        rho_kill = KILL_DENSITY_CEILING_KGM3

    # Verification row: integrate the layered column back to control
    names = ["Kill mud", "Surface slug", "Active mud", "Second slug", "Original mud"]
    densities = [rho_kill, inp.surface_slug_density_kgm3, inp.base_mud_density_kgm3,
                 rho_second, inp.base_mud_density_kgm3]
    rows = []
    for name, rho, top, bottom in zip(names, densities, boundaries[:-1], boundaries[1:]):
        if bottom - top <= EPS:
            continue
        rows.append(make_row("annulus", top, bottom, rho, tvd_sampler,
                             geometry.volume_in_annulus(top, bottom), name=name))
    esd_control = esd_from_pressure(integrate_pressure(rows, to_tvd=control_tvd), control_tvd)
    if abs(esd_control - inp.target_esd_kgm3) > VERIFICATION_TOL_KGM3:
        warnings.append(f"Verification ESD at control {esd_control:.1f} kg/m3 differs from target "
                        f"{inp.target_esd_kgm3:.1f} kg/m3.")

    for message in warnings:
        logger.warning("Trip optimizer: %s", message)

    return TripOptimizerResult(
        kill_mud_density_kgm3=rho_kill,
        surface_slug_volume_m3=inp.surface_slug_volume_m3,
        active_mud_volume_m3=max(0.0, second_top - slug_bottom) * annulus_capacity,
        second_slug_volume_m3=second_volume,
        slug_drop_volume_m3=drop,
        slug_drop_calculated_m3=drop_calculated,
        kill_mud_volume_m3=kill_volume,
        total_steel_displacement_m3=steel,
        effective_esd_kgm3=effective_esd,
        surface_slug_md_length_m=surface_slug_bottom_md,
        surface_slug_tvd_height_m=surface_tvd_height,
        second_slug_md_length_m=second_md_length,
        second_slug_tvd_height_m=second_tvd_height,
        surface_slug_drop_height_m=surface_drop,
        second_slug_drop_height_m=second_drop,
        kill_mud_height_m=h_kill,
        surface_slug_height_m=h_slug,
        active_mud_height_m=h_active,
        second_slug_height_m=h_second,
        original_mud_height_m=h_original,
        annulus_capacity_m3_per_m=annulus_capacity,
        heel_md_m=heel_md,
        heel_tvd_m=heel_tvd,
        control_tvd_m=control_tvd,
        surface_slug_bottom_md_m=surface_slug_bottom_md,
        surface_slug_density_kgm3=inp.surface_slug_density_kgm3,
        second_slug_density_kgm3=rho_second,
        second_slug_density_calculated_kgm3=second_calculated,
        second_slug_density_was_calculated=was_calculated,
        base_mud_density_kgm3=inp.base_mud_density_kgm3,
        layers=tuple(rows),
        esd_at_control_kgm3=esd_control,
        warnings=warnings,
        is_valid=KILL_DENSITY_FLOOR_KGM3 <= rho_kill <= KILL_DENSITY_CEILING_KGM3,
    )
