"""
Numerical Trip Simulation
Incremental pull-out / run-in of a drill string with per-step fluid accounting.

For every recorded bit depth the engine produces a TripStep holding SABP,
ESD at TD, the float state and the surface volume balance, together with
immutable snapshots of the annulus, string and pocket columns.

Conventions:
- step_backfill_m3 is the volume pumped into the annulus from surface
- pit_gain_m3 is the volume overflowing back to the tanks
- surface_tank_delta_m3 = step_backfill_m3 - pit_gain_m3 (positive = net draw)
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import pandas as pd

from .calcs_float import FloatState, expected_fill_volumes, float_label, next_float_state
from .calcs_geometry import GeometryService
from .calcs_hydrostatic import esd_from_pressure, pressure_at_depth
from .calcs_layers import (
    CarvedFluid,
    Column,
    ColorRGBA,
    FinalFluidLayer,
    Layer,
    LayerRow,
    Placement,
    PocketColumn,
    Stack,
    Totals,
    blend_colors,
    slice_layers_at,
    summarize,
)
from .constants import (
    COARSE_STEP_M,
    COARSE_STEP_MARGIN_KPA,
    EPS,
    FINE_STEP_M,
    FLOAT_TOLERANCE_KPA,
    G_KPA_PER_M_PER_KGM3,
    MAX_INITIAL_PULSE_ITERATIONS,
    MAX_STEP_EQUALIZATION_ITERATIONS,
    PULSE_PARCEL_M3,
    VOLUME_EPS,
)
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Record depths closer than this to the end depth are merged into it
RECORD_MERGE_TOL_M = 1e-6


def vertical_tvd(md: float) -> float:
    return md


@dataclass(frozen=True)
class TripInput:
    """Configuration for one simulation run."""
    start_bit_md_m: float
    end_md_m: float
    step_m: float
    control_md_m: float
    base_mud_density_kgm3: float
    backfill_density_kgm3: float
    target_esd_at_td_kgm3: float
    crack_float_kpa: float = 0.0
    initial_sabp_kpa: float = 0.0
    hold_sabp_open: bool = False
    tvd_of_md: Callable[[float], float] = field(default=vertical_tvd, compare=False)
    fixed_backfill_volume_m3: float = 0.0
    switch_to_base_after_fixed: bool = True
    backfill_color: Optional[ColorRGBA] = None
    base_mud_color: Optional[ColorRGBA] = None
    backfill_pv_cp: float = 0.0
    backfill_yp_pa: float = 0.0
    base_mud_pv_cp: float = 0.0
    base_mud_yp_pa: float = 0.0
    observed_initial_pit_gain_m3: Optional[float] = None
    total_depth_md_m: Optional[float] = None
    fine_step_m: float = FINE_STEP_M
    coarse_step_m: float = COARSE_STEP_M

    @property
    def td_md_m(self) -> float:
        if self.total_depth_md_m is not None:
            return self.total_depth_md_m
        return max(self.start_bit_md_m, self.end_md_m)

    @property
    def is_pulling_out(self) -> bool:
        return self.end_md_m < self.start_bit_md_m


@dataclass(frozen=True)
class TripStep:
    """One recorded snapshot of the simulation."""
    bit_md_m: float
    bit_tvd_m: float
    sabp_kpa: float
    sabp_dynamic_kpa: float
    esd_at_td_kgm3: float
    float_state: FloatState
    float_label: str
    step_backfill_m3: float
    pit_gain_m3: float
    surface_tank_delta_m3: float
    cumulative_backfill_m3: float
    cumulative_pit_gain_m3: float
    cumulative_surface_tank_delta_m3: float
    cumulative_slug_contribution_m3: float
    expected_fill_if_closed_m3: float
    expected_fill_if_open_m3: float
    backfill_remaining_m3: float
    layers_annulus: Tuple[LayerRow, ...]
    layers_string: Tuple[LayerRow, ...]
    layers_pocket: Tuple[LayerRow, ...]
    sabp_raw_kpa: float = 0.0
    esd_at_bit_kgm3: float = 0.0
    esd_at_control_kgm3: float = 0.0
    pressure_at_td_kpa: float = 0.0
    slug_contribution_m3: float = 0.0
    totals_annulus: Totals = Totals()
    totals_string: Totals = Totals()
    totals_pocket: Totals = Totals()


def _is_finite(*values) -> bool:
    return all(math.isfinite(v) for v in values)


def validate_trip_input(trip_input: TripInput, geometry: GeometryService) -> None:
    """
    Reject configurations that cannot be simulated.

    Raises:
    -------
    ConfigurationError : with every problem found, one per line
    """
    problems: List[str] = []
    ti = trip_input

    depths = (ti.start_bit_md_m, ti.end_md_m, ti.control_md_m)
    if not _is_finite(*depths):
        problems.append("Start, end and control depths must be finite numbers")
    elif min(depths) < 0.0:
        problems.append("Depths must not be negative")

    if not _is_finite(ti.step_m) or ti.step_m <= 0.0:
        problems.append(f"Step size must be positive, got {ti.step_m}")
    if not _is_finite(ti.fine_step_m, ti.coarse_step_m) or ti.fine_step_m <= 0.0 or ti.coarse_step_m <= 0.0:
        problems.append("Internal sub-step sizes must be positive")

    for label, value in (("Base mud density", ti.base_mud_density_kgm3),
                         ("Backfill density", ti.backfill_density_kgm3),
                         ("Target ESD", ti.target_esd_at_td_kgm3)):
        if not _is_finite(value) or value <= 0.0:
            problems.append(f"{label} must be positive, got {value}")

    if not _is_finite(ti.crack_float_kpa) or ti.crack_float_kpa < 0.0:
        problems.append("Crack float pressure must not be negative")
    if not _is_finite(ti.initial_sabp_kpa) or ti.initial_sabp_kpa < 0.0:
        problems.append("Initial SABP must not be negative")
    if ti.fixed_backfill_volume_m3 < 0.0:
        problems.append("Fixed backfill volume must not be negative")
    if ti.total_depth_md_m is not None and ti.total_depth_md_m < max(ti.start_bit_md_m, ti.end_md_m) - EPS:
        problems.append("Total depth must not be above the start or end depth")
    if _is_finite(ti.control_md_m) and ti.control_md_m > ti.td_md_m + EPS:
        problems.append("Control depth must not be below total depth")

    if geometry is None or geometry.is_empty:
        problems.append("Geometry has no drill string or annulus sections")

    if problems:
        raise ConfigurationError("; ".join(problems))


def record_depths(start_md: float, end_md: float, step_m: float) -> List[float]:
    """Bit depths at which steps are recorded; the last one is exactly end_md."""
    depths = [start_md]
    if abs(end_md - start_md) <= EPS:
        return depths
    direction = 1.0 if end_md > start_md else -1.0
    k = 1
    while True:
        md = start_md + direction * k * step_m
        if direction * (end_md - md) <= RECORD_MERGE_TOL_M:
            break
        depths.append(md)
        k += 1
    depths.append(end_md)
    return depths


class _StepAccumulator:
    """Volume movements gathered over the sub-steps of one recorded step."""

    def __init__(self):
        self.backfill_m3 = 0.0
        self.pit_gain_m3 = 0.0
        self.slug_m3 = 0.0
        self.expected_closed_m3 = 0.0
        self.expected_open_m3 = 0.0
        self.substeps = 0
        self.open_substeps = 0


class TripSimulation:
    """
    State of a single run. Created by NumericalTripModel.run and discarded
    once the step tuple is built.
    """

    def __init__(self, trip_input: TripInput, geometry: GeometryService,
                 final_layers: Sequence[FinalFluidLayer] = ()):
        self.inp = trip_input
        self.geometry = geometry
        self.final_layers = list(final_layers)
        self.tvd = trip_input.tvd_of_md

        self.td_md = trip_input.td_md_m
        self.td_tvd = self.tvd(self.td_md)
        self.control_tvd = self.tvd(trip_input.control_md_m)
        self.target_pressure_td_kpa = trip_input.target_esd_at_td_kgm3 * G_KPA_PER_M_PER_KGM3 * self.td_tvd

        self.bit_md = trip_input.start_bit_md_m
        self.sabp_kpa = trip_input.initial_sabp_kpa
        self.float_state = FloatState.CLOSED
        self.backfill_remaining_m3 = trip_input.fixed_backfill_volume_m3

        self.annulus = Stack(Column.ANNULUS, geometry, self.tvd)
        self.string = Stack(Column.STRING, geometry, self.tvd)
        self.pocket = PocketColumn(geometry, self.tvd)

        self.cumulative_backfill_m3 = 0.0
        self.cumulative_pit_gain_m3 = 0.0
        self.cumulative_tank_delta_m3 = 0.0
        self.cumulative_slug_m3 = 0.0

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------
    def _base_mud(self):
        inp = self.inp
        return inp.base_mud_density_kgm3, inp.base_mud_color, inp.base_mud_pv_cp, inp.base_mud_yp_pa

    def seed_columns(self):
        rho, color, pv, yp = self._base_mud()
        bit = self.bit_md
        self.annulus.seed_uniform(rho, 0.0, bit, color, pv, yp)
        self.string.seed_uniform(rho, 0.0, bit, color, pv, yp)

        above, below = slice_layers_at(self.final_layers, bit, self.tvd)
        for row in above:
            placement = Placement(row.side)
            if placement.covers_annulus:
                self.annulus.paint_interval(row.top_md_m, row.bottom_md_m, row.density_kgm3,
                                            row.color, row.pv_cp, row.yp_pa)
            if placement.covers_string:
                self.string.paint_interval(row.top_md_m, row.bottom_md_m, row.density_kgm3,
                                           row.color, row.pv_cp, row.yp_pa)

        # Pocket: annulus-side placement below the bit, base mud elsewhere, down to TD
        if self.td_md > bit + EPS:
            hole = Stack(Column.ANNULUS, self.geometry, self.tvd)
            hole.seed_uniform(rho, 0.0, self.td_md, color, pv, yp)
            for row in below:
                if Placement(row.side).covers_annulus:
                    hole.paint_interval(row.top_md_m, min(row.bottom_md_m, self.td_md), row.density_kgm3,
                                        row.color, row.pv_cp, row.yp_pa)
            hole.split_at(bit)
            self.pocket.seed(l for l in hole.layers if l.top_md >= bit - EPS)

    # ------------------------------------------------------------------
    # Pressures and float
    # ------------------------------------------------------------------
    def _pressures_at_bit(self, bit_md: float):
        p_string = self.string.pressure_at_bit_kpa(0.0, bit_md)
        p_annulus = self.annulus.pressure_at_bit_kpa(self.sabp_kpa, bit_md)
        return p_string, p_annulus

    def _evaluate_float(self, bit_md: float):
        p_string, p_annulus = self._pressures_at_bit(bit_md)
        return next_float_state(self.float_state, p_string, p_annulus, self.inp.crack_float_kpa)

    def _update_sabp(self) -> float:
        column_kpa = self.annulus.pressure_at_bit_kpa(0.0, self.bit_md) + self.pocket.pressure_kpa(self.bit_md)
        raw = self.target_pressure_td_kpa - column_kpa
        self.sabp_kpa = 0.0 if self.inp.hold_sabp_open else max(0.0, raw)
        return raw

    # ------------------------------------------------------------------
    # U-tube equalization
    # ------------------------------------------------------------------
    def _drain_parcel(self, volume_m3: float, bit_md: float) -> float:
        """Move one parcel from the string bottom to the annulus bottom."""
        parcel = self.string.drain_bottom_volume(volume_m3)
        if parcel is None:
            return 0.0
        self.string.add_air_from_surface(parcel.volume_m3, bit_md)
        self.string.extend_to(bit_md)
        self.annulus.inject_parcel_at_bit_push_uphole(
            parcel.density(self.inp.base_mud_density_kgm3), parcel.volume_m3, bit_md,
            parcel.color, parcel.pv_cp, parcel.yp_pa)
        return parcel.volume_m3

    def equalize(self, bit_md: float, max_iterations: int) -> float:
        """Drain parcels until the string no longer outweighs annulus + crack."""
        drained = 0.0
        crack = self.inp.crack_float_kpa
        for _ in range(max_iterations):
            p_string, p_annulus = self._pressures_at_bit(bit_md)
            if p_string <= p_annulus + crack:
                return drained
            moved = self._drain_parcel(PULSE_PARCEL_M3, bit_md)
            if moved <= VOLUME_EPS:
                return drained
            drained += moved
        logger.warning("U-tube equalization at %.1f m MD stopped after %d parcels", bit_md, max_iterations)
        return drained

    def initial_slug_pulse(self) -> float:
        """Drain a heavy slug before the first move; returns the volume drained."""
        observed = self.inp.observed_initial_pit_gain_m3
        if observed is not None and observed > 0.0:
            remaining = observed
            drained = 0.0
            for _ in range(MAX_INITIAL_PULSE_ITERATIONS):
                if remaining <= VOLUME_EPS:
                    break
                moved = self._drain_parcel(min(PULSE_PARCEL_M3, remaining), self.bit_md)
                if moved <= VOLUME_EPS:
                    break
                remaining -= moved
                drained += moved
            logger.info("Initial slug calibrated to observed pit gain: %.3f m3 drained", drained)
            return drained

        drained = self.equalize(self.bit_md, MAX_INITIAL_PULSE_ITERATIONS)
        if drained > 0.0:
            logger.info("Initial slug pulse drained %.3f m3 from the string", drained)
        return drained

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------
    def _backfill(self, need_m3: float, bit_md: float) -> float:
        """Pump need_m3 into the annulus from surface; returns the volume pumped."""
        if need_m3 <= VOLUME_EPS:
            return 0.0
        inp = self.inp
        pumped = 0.0
        if inp.fixed_backfill_volume_m3 > VOLUME_EPS:
            use_fixed = min(need_m3, max(0.0, self.backfill_remaining_m3)) if inp.switch_to_base_after_fixed else need_m3
            if use_fixed > VOLUME_EPS:
                self.annulus.add_backfill_from_surface(inp.backfill_density_kgm3, use_fixed, bit_md,
                                                       inp.backfill_color, inp.backfill_pv_cp, inp.backfill_yp_pa)
                self.backfill_remaining_m3 -= use_fixed
                pumped += use_fixed
            rest = need_m3 - pumped
            if rest > VOLUME_EPS and inp.switch_to_base_after_fixed:
                rho, color, pv, yp = self._base_mud()
                self.annulus.add_backfill_from_surface(rho, rest, bit_md, color, pv, yp)
                pumped += rest
        else:
            self.annulus.add_backfill_from_surface(inp.backfill_density_kgm3, need_m3, bit_md,
                                                   inp.backfill_color, inp.backfill_pv_cp, inp.backfill_yp_pa)
            pumped = need_m3
        return pumped

    def pull_out(self, old_bit: float, new_bit: float, float_open: bool) -> float:
        """Lift the bit from old_bit to new_bit; returns the backfill pumped."""
        dl = old_bit - new_bit
        base_rho = self.inp.base_mud_density_kgm3

        annulus_part = self.annulus.take_bottom_by_length(dl)
        rho_annulus = annulus_part.density(base_rho)
        if float_open:
            string_part = self.string.take_bottom_by_length(dl)
            vacated = self.geometry.volume_of_steel(new_bit, old_bit)
        else:
            string_part = CarvedFluid()
            vacated = self.geometry.volume_of_string_od(new_bit, old_bit)

        # The pipe void below the new bit fills with annulus fluid
        annulus_volume = annulus_part.volume_m3 + vacated
        annulus_mass = annulus_part.mass_kg + rho_annulus * vacated
        pocket_volume = annulus_volume + string_part.volume_m3
        pocket_mass = annulus_mass + string_part.mass_kg
        rho_mix = pocket_mass / pocket_volume if pocket_volume > VOLUME_EPS else base_rho
        color = blend_colors([(annulus_part.color, annulus_volume), (string_part.color, string_part.volume_m3)])
        if pocket_volume > VOLUME_EPS:
            pv = (annulus_part.pv_cp * annulus_volume + string_part.pv_cp * string_part.volume_m3) / pocket_volume
            yp = (annulus_part.yp_pa * annulus_volume + string_part.yp_pa * string_part.volume_m3) / pocket_volume
        else:
            pv, yp = annulus_part.pv_cp, annulus_part.yp_pa

        if float_open:
            self.annulus.adjust_bit(new_bit)
            self.string.adjust_bit(new_bit)
            self.annulus.ensure_invariants(new_bit)
            self.string.ensure_invariants(new_bit)
        else:
            # String contents travel up with the pipe
            self.string.translate_all_layers(-dl, new_bit)
            self.annulus.ensure_invariants(new_bit)

        self.pocket.push_at_bit(rho_mix, dl, new_bit, color, pv, yp)
        pumped = self._backfill(vacated, new_bit)
        self.annulus.extend_to(new_bit)
        self.string.extend_to(new_bit)
        return pumped

    def _pocket_fluid(self, old_bit: float, new_bit: float) -> List[Layer]:
        """Pocket fluid in [old_bit, new_bit], base mud where the pocket is empty."""
        rho, color, pv, yp = self._base_mud()
        taken = self.pocket.take_top(old_bit, new_bit)
        filled: List[Layer] = []
        cursor = old_bit
        for layer in taken:
            if layer.top_md > cursor + EPS:
                filled.append(Layer(rho, cursor, layer.top_md, color, pv, yp))
            filled.append(layer)
            cursor = layer.bottom_md
        if new_bit > cursor + EPS:
            filled.append(Layer(rho, cursor, new_bit, color, pv, yp))
        return filled

    def run_in(self, old_bit: float, new_bit: float, float_open: bool) -> float:
        """Lower the bit from old_bit to new_bit; returns the pit gain."""
        dl = new_bit - old_bit
        fluid = self._pocket_fluid(old_bit, new_bit)

        self.annulus.append_at_bottom(fluid, new_bit)
        if float_open:
            self.string.append_at_bottom(fluid, new_bit)
            displaced = self.geometry.volume_of_steel(old_bit, new_bit)
        else:
            self.string.push_down_with_air(dl, new_bit)
            displaced = self.geometry.volume_of_string_od(old_bit, new_bit)

        total_length = sum(l.length for l in fluid)
        rho = (sum(l.density_kgm3 * l.length for l in fluid) / total_length
               if total_length > EPS else self.inp.base_mud_density_kgm3)
        color = blend_colors([(l.color, l.length) for l in fluid])
        overflow = self.annulus.inject_parcel_at_bit_push_uphole(rho, displaced, new_bit, color)
        self.annulus.extend_to(new_bit)
        self.string.extend_to(new_bit)
        return overflow

    def advance(self, target_md: float, acc: _StepAccumulator):
        """One internal sub-step toward target_md."""
        inp = self.inp
        old_bit = self.bit_md
        direction = -1.0 if target_md < old_bit else 1.0

        p_string, p_annulus = self._pressures_at_bit(old_bit)
        transition = next_float_state(self.float_state, p_string, p_annulus, inp.crack_float_kpa)
        margin = p_annulus + FLOAT_TOLERANCE_KPA - p_string
        use_coarse = not transition.is_open and margin > COARSE_STEP_MARGIN_KPA
        dl = min(inp.coarse_step_m if use_coarse else inp.fine_step_m, abs(target_md - old_bit))
        new_bit = target_md if dl >= abs(target_md - old_bit) - EPS else old_bit + direction * dl

        if_closed, if_open = expected_fill_volumes(self.geometry, old_bit, new_bit)
        acc.expected_closed_m3 += if_closed
        acc.expected_open_m3 += if_open

        opened = transition.is_open
        if opened:
            self.float_state = transition.state
            drained = self.equalize(old_bit, MAX_STEP_EQUALIZATION_ITERATIONS)
            acc.slug_m3 += drained
            acc.pit_gain_m3 += drained
            transition = self._evaluate_float(old_bit)
        self.float_state = transition.state

        if direction < 0:
            acc.backfill_m3 += self.pull_out(old_bit, new_bit, transition.is_open)
        else:
            acc.pit_gain_m3 += self.run_in(old_bit, new_bit, transition.is_open)

        self.bit_md = new_bit
        self._update_sabp()
        # Re-check after the move so the next sub-step starts from a consistent state
        self.float_state = self._evaluate_float(new_bit).state

        acc.substeps += 1
        if opened:
            acc.open_substeps += 1

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------
    def record(self, acc: _StepAccumulator) -> TripStep:
        bit = self.bit_md
        bit_tvd = self.tvd(bit)
        rows_annulus = self.annulus.snapshot(bit)
        rows_string = self.string.snapshot(bit)
        rows_pocket = self.pocket.snapshot(bit)
        tot_annulus = summarize(rows_annulus)
        tot_string = summarize(rows_string)
        tot_pocket = summarize(rows_pocket)

        sabp_raw = self.target_pressure_td_kpa - tot_pocket.delta_p_kpa - tot_annulus.delta_p_kpa
        self.sabp_kpa = 0.0 if self.inp.hold_sabp_open else max(0.0, sabp_raw)
        sabp = self.sabp_kpa

        was_open = acc.open_substeps > 0
        sabp_dynamic = sabp + self.inp.crack_float_kpa if was_open else sabp

        pressure_td = tot_pocket.delta_p_kpa + tot_annulus.delta_p_kpa + sabp
        esd_td = esd_from_pressure(pressure_td, self.td_tvd)
        esd_bit = max(0.0, esd_from_pressure(tot_annulus.delta_p_kpa + sabp, bit_tvd))
        pressure_control = pressure_at_depth(rows_annulus, rows_pocket, bit_tvd, self.control_tvd, sabp)
        esd_control = esd_from_pressure(pressure_control, self.control_tvd)

        tank_delta = acc.backfill_m3 - acc.pit_gain_m3
        self.cumulative_backfill_m3 += acc.backfill_m3
        self.cumulative_pit_gain_m3 += acc.pit_gain_m3
        self.cumulative_tank_delta_m3 += tank_delta
        self.cumulative_slug_m3 += acc.slug_m3

        return TripStep(
            bit_md_m=bit,
            bit_tvd_m=bit_tvd,
            sabp_kpa=sabp,
            sabp_dynamic_kpa=sabp_dynamic,
            esd_at_td_kgm3=esd_td,
            float_state=FloatState.OPEN if was_open else FloatState.CLOSED,
            float_label=float_label(acc.open_substeps, acc.substeps),
            step_backfill_m3=acc.backfill_m3,
            pit_gain_m3=acc.pit_gain_m3,
            surface_tank_delta_m3=tank_delta,
            cumulative_backfill_m3=self.cumulative_backfill_m3,
            cumulative_pit_gain_m3=self.cumulative_pit_gain_m3,
            cumulative_surface_tank_delta_m3=self.cumulative_tank_delta_m3,
            cumulative_slug_contribution_m3=self.cumulative_slug_m3,
            expected_fill_if_closed_m3=acc.expected_closed_m3,
            expected_fill_if_open_m3=acc.expected_open_m3,
            backfill_remaining_m3=max(0.0, self.backfill_remaining_m3),
            layers_annulus=rows_annulus,
            layers_string=rows_string,
            layers_pocket=rows_pocket,
            sabp_raw_kpa=sabp_raw,
            esd_at_bit_kgm3=esd_bit,
            esd_at_control_kgm3=esd_control,
            pressure_at_td_kpa=pressure_td,
            slug_contribution_m3=acc.slug_m3,
            totals_annulus=tot_annulus,
            totals_string=tot_string,
            totals_pocket=tot_pocket,
        )

    def execute(self) -> Tuple[TripStep, ...]:
        inp = self.inp
        depths = record_depths(inp.start_bit_md_m, inp.end_md_m, inp.step_m)
        logger.info("Trip simulation %.1f -> %.1f m MD, %d recorded steps",
                    inp.start_bit_md_m, inp.end_md_m, len(depths))

        self.geometry.reset_warnings()
        self.seed_columns()

        initial = _StepAccumulator()
        drained = self.initial_slug_pulse()
        if drained > 0.0:
            initial.pit_gain_m3 = drained
            initial.slug_m3 = drained
            initial.open_substeps = initial.substeps = 1
        self.float_state = self._evaluate_float(self.bit_md).state

        steps = [self.record(initial)]
        for target in depths[1:]:
            acc = _StepAccumulator()
            while abs(target - self.bit_md) > EPS:
                self.advance(target, acc)
            self.bit_md = target
            step = self.record(acc)
            logger.debug("Bit %.1f m: SABP %.1f kPa, ESD@TD %.1f kg/m3, %s",
                         step.bit_md_m, step.sabp_kpa, step.esd_at_td_kgm3, step.float_label)
            steps.append(step)
        return tuple(steps)


class NumericalTripModel:
    """Entry point for trip simulations. Holds no state between runs."""

    def run(self, trip_input: TripInput, geometry: GeometryService,
            final_layers: Sequence[FinalFluidLayer] = ()) -> Tuple[TripStep, ...]:
        """
        Simulate the trip described by trip_input.

        Parameters:
        -----------
        trip_input : TripInput
            Depths, densities, pressures and the MD -> TVD function
        geometry : GeometryService
            Drill string and annulus sections
        final_layers : sequence of FinalFluidLayer
            Fluid placement along the well before the trip starts

        Returns:
        --------
        tuple of TripStep : one per recorded depth, starting at start_bit_md_m

        Raises:
        -------
        ConfigurationError : if the input cannot be simulated
        """
        validate_trip_input(trip_input, geometry)
        return TripSimulation(trip_input, geometry, final_layers).execute()


STEP_COLUMNS = [
    'bit_md_m', 'bit_tvd_m', 'sabp_kpa', 'sabp_dynamic_kpa', 'sabp_raw_kpa',
    'esd_at_td_kgm3', 'esd_at_bit_kgm3', 'esd_at_control_kgm3', 'float_label',
    'step_backfill_m3', 'pit_gain_m3', 'surface_tank_delta_m3',
    'cumulative_backfill_m3', 'cumulative_pit_gain_m3', 'cumulative_surface_tank_delta_m3',
    'cumulative_slug_contribution_m3', 'expected_fill_if_closed_m3', 'expected_fill_if_open_m3',
    'backfill_remaining_m3',
]


def steps_to_dataframe(steps: Sequence[TripStep]) -> pd.DataFrame:
    """Tabular view of the scalar fields of each step."""
    records = []
    for step in steps:
        rec = {col: getattr(step, col) for col in STEP_COLUMNS}
        rec['float_state'] = step.float_state.value
        records.append(rec)
    return pd.DataFrame(records, columns=STEP_COLUMNS + ['float_state'])


LAYER_COLUMNS = [
    'side', 'name', 'top_md_m', 'bottom_md_m', 'top_tvd_m', 'bottom_tvd_m',
    'density_kgm3', 'delta_hydrostatic_kpa', 'volume_m3', 'pv_cp', 'yp_pa', 'color',
]


def layers_to_dataframe(rows: Sequence[LayerRow]) -> pd.DataFrame:
    records = []
    for row in rows:
        rec = asdict(row)
        rec['color'] = row.color.to_hex() if row.color else None
        records.append(rec)
    return pd.DataFrame(records, columns=LAYER_COLUMNS)
