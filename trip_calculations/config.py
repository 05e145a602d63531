"""
Configuration Loading
Reads the JSON input file and builds the typed objects the engine consumes.

Expected top-level keys: drill_string, annulus, muds, trip. Optional keys:
surveys, plan_stations, use_plan, final_layers, optimizer.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from reference_data import drill_pipe

from .calcs_geometry import AnnulusSection, DrillStringSection, GeometryService
from .calcs_layers import FinalFluidLayer, Placement, resolve_color
from .calcs_optimizer import TripOptimizerInput
from .calcs_rheology import Mud
from .calcs_trip import TripInput
from .calcs_tvd import SurveyStation, TvdSampler
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_INPUT_PATH = Path(__file__).resolve().parent.parent / "reference_data" / "trip_input.json"


def load_input_data(filename: Union[str, Path] = DEFAULT_INPUT_PATH) -> Dict[str, Any]:
    """Load simulation parameters from a JSON configuration file."""
    path = Path(filename)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file '{path}' not found.")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in '{path}': {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{path}' must contain a JSON object.")
    for key in ('drill_string', 'annulus', 'muds', 'trip'):
        if key not in data:
            raise ConfigurationError(f"Configuration file '{path}' is missing the '{key}' section.")
    logger.debug("Loaded configuration from %s", path)
    return data


def _get(entry: Dict[str, Any], key: str, context: str):
    try:
        return entry[key]
    except KeyError:
        raise ConfigurationError(f"{context}: missing '{key}'")


_REQUIRED = object()


def _number(entry: Dict[str, Any], key: str, context: str, default: Any = _REQUIRED) -> Optional[float]:
    """entry[key] as a float; default is returned when the key is absent or null."""
    value = entry.get(key)
    if value is None:
        if default is _REQUIRED:
            raise ConfigurationError(f"{context}: missing '{key}'")
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{context}: '{key}' must be a number, got {value!r}")


def _diameter_m(entry: Dict[str, Any], name: str, context: str) -> Optional[float]:
    # Accept either metres (<name>_m) or inches (<name>_in)
    if f"{name}_m" in entry:
        return _number(entry, f"{name}_m", context)
    if f"{name}_in" in entry:
        return _number(entry, f"{name}_in", context) * drill_pipe.INCH_TO_M
    return None


def build_drill_string(data: Dict[str, Any]) -> List[DrillStringSection]:
    sections = []
    for i, entry in enumerate(data.get('drill_string', []), 1):
        context = f"drill_string[{i}]"
        name = entry.get('name', f"Section {i}")
        od_m = _diameter_m(entry, 'od', context)
        id_m = _diameter_m(entry, 'id', context)
        if id_m is None and 'weight_ppf' in entry and 'od_in' in entry:
            dims = drill_pipe.get_pipe_dimensions_m(_number(entry, 'od_in', context),
                                                     _number(entry, 'weight_ppf', context))
            if dims is None:
                raise ConfigurationError(
                    f"{context}: no drill pipe entry for {drill_pipe.pipe_label(entry['od_in'], entry['weight_ppf'])}")
            od_m, id_m = dims
        if od_m is None or id_m is None:
            raise ConfigurationError(f"{context}: give od/id in m or in, or od_in with weight_ppf")
        sections.append(DrillStringSection(
            name=name,
            top_md=_number(entry, 'top_md', context),
            length_m=_number(entry, 'length_m', context),
            od_m=od_m,
            id_m=id_m,
        ))
    return sections


def build_annulus(data: Dict[str, Any]) -> List[AnnulusSection]:
    sections = []
    for i, entry in enumerate(data.get('annulus', []), 1):
        context = f"annulus[{i}]"
        hole_id = _diameter_m(entry, 'hole_id', context)
        if hole_id is None:
            raise ConfigurationError(f"{context}: missing 'hole_id_m' or 'hole_id_in'")
        sections.append(AnnulusSection(
            name=entry.get('name', f"Section {i}"),
            top_md=_number(entry, 'top_md', context),
            bottom_md=_number(entry, 'bottom_md', context),
            hole_id_m=hole_id,
        ))
    return sections


def build_geometry(data: Dict[str, Any], strict: bool = False) -> GeometryService:
    """
    Build the geometry service.

    With strict=True any validation issue (e.g. pipe OD larger than hole ID)
    raises ConfigurationError; otherwise issues are logged as warnings.
    """
    geometry = GeometryService(build_drill_string(data), build_annulus(data))
    issues = geometry.validate()
    if issues and strict:
        raise ConfigurationError("Invalid geometry: " + "; ".join(issues))
    for issue in issues:
        logger.warning("Geometry: %s", issue)
    return geometry


def build_surveys(data: Dict[str, Any], key: str = 'surveys') -> List[SurveyStation]:
    stations = []
    for i, entry in enumerate(data.get(key) or [], 1):
        context = f"{key}[{i}]"
        stations.append(SurveyStation(
            md=_number(entry, 'md', context),
            inc_deg=_number(entry, 'inc_deg', context, 0.0),
            azi_deg=_number(entry, 'azi_deg', context, 0.0),
            tvd=_number(entry, 'tvd', context, None),
        ))
    return stations


def build_tvd_sampler(data: Dict[str, Any]) -> TvdSampler:
    """Sampler from the plan when use_plan is set and a plan exists, else from surveys."""
    plan = build_surveys(data, 'plan_stations')
    if data.get('use_plan') and plan:
        return TvdSampler.from_stations(plan, is_using_plan=True)
    surveys = build_surveys(data)
    if not surveys:
        logger.info("No surveys given; treating the well as vertical")
        return TvdSampler.vertical()
    return TvdSampler.from_stations(surveys)


def build_muds(data: Dict[str, Any]) -> Dict[str, Mud]:
    muds = {}
    for i, entry in enumerate(data.get('muds', []), 1):
        context = f"muds[{i}]"
        name = _get(entry, 'name', context)
        try:
            color = resolve_color(entry.get('color'))
        except ValueError as e:
            raise ConfigurationError(f"{context}: {e}")
        muds[name] = Mud(
            name=name,
            density_kgm3=_number(entry, 'density_kgm3', context),
            dial600=_number(entry, 'dial600', context, None),
            dial300=_number(entry, 'dial300', context, None),
            color=color,
        )
    return muds


def _lookup_mud(muds: Dict[str, Mud], name: str, context: str) -> Mud:
    if name not in muds:
        raise ConfigurationError(f"{context}: unknown mud '{name}'")
    return muds[name]


def build_final_layers(data: Dict[str, Any], muds: Dict[str, Mud]) -> List[FinalFluidLayer]:
    """Final fluid placement; each layer names a mud or gives its own density."""
    layers = []
    for i, entry in enumerate(data.get('final_layers') or [], 1):
        context = f"final_layers[{i}]"
        try:
            placement = Placement(entry.get('placement', 'annulus'))
        except ValueError:
            raise ConfigurationError(f"{context}: placement must be annulus, string or both")
        mud = _lookup_mud(muds, entry['mud'], context) if 'mud' in entry else None
        density = _number(entry, 'density_kgm3', context, mud.density_kgm3 if mud else None)
        if density is None:
            raise ConfigurationError(f"{context}: give 'mud' or 'density_kgm3'")
        try:
            color = resolve_color(entry['color']) if 'color' in entry else (mud.color if mud else None)
        except ValueError as e:
            raise ConfigurationError(f"{context}: {e}")
        layers.append(FinalFluidLayer(
            name=entry.get('name', mud.name if mud else f"Layer {i}"),
            placement=placement,
            top_md=_number(entry, 'top_md', context),
            bottom_md=_number(entry, 'bottom_md', context),
            density_kgm3=density,
            color=color,
            pv_cp=mud.pv_cp if mud else 0.0,
            yp_pa=mud.yp_pa if mud else 0.0,
        ))
    return layers


def build_trip_input(data: Dict[str, Any], muds: Dict[str, Mud], sampler: TvdSampler) -> TripInput:
    trip = data['trip']
    context = "trip"
    base = _lookup_mud(muds, _get(trip, 'base_mud', context), context)
    backfill = _lookup_mud(muds, trip.get('backfill_mud', base.name), context)
    return TripInput(
        start_bit_md_m=_number(trip, 'start_bit_md_m', context),
        end_md_m=_number(trip, 'end_md_m', context),
        step_m=_number(trip, 'step_m', context),
        control_md_m=_number(trip, 'control_md_m', context),
        base_mud_density_kgm3=base.density_kgm3,
        backfill_density_kgm3=backfill.density_kgm3,
        target_esd_at_td_kgm3=_number(trip, 'target_esd_at_td_kgm3', context),
        crack_float_kpa=_number(trip, 'crack_float_kpa', context, 0.0),
        initial_sabp_kpa=_number(trip, 'initial_sabp_kpa', context, 0.0),
        hold_sabp_open=bool(trip.get('hold_sabp_open', False)),
        tvd_of_md=sampler,
        fixed_backfill_volume_m3=_number(trip, 'fixed_backfill_volume_m3', context, 0.0),
        switch_to_base_after_fixed=bool(trip.get('switch_to_base_after_fixed', True)),
        backfill_color=backfill.color,
        base_mud_color=base.color,
        backfill_pv_cp=backfill.pv_cp,
        backfill_yp_pa=backfill.yp_pa,
        base_mud_pv_cp=base.pv_cp,
        base_mud_yp_pa=base.yp_pa,
        observed_initial_pit_gain_m3=_number(trip, 'observed_initial_pit_gain_m3', context, None),
        total_depth_md_m=_number(trip, 'total_depth_md_m', context, None),
    )


def build_optimizer_input(data: Dict[str, Any], trip_input: TripInput) -> Optional[TripOptimizerInput]:
    """Optimizer settings, with well state taken from the trip input. None if absent."""
    opt = data.get('optimizer')
    if not opt:
        return None
    context = "optimizer"

    return TripOptimizerInput(
        target_esd_kgm3=_number(opt, 'target_esd_kgm3', context, trip_input.target_esd_at_td_kgm3),
        surface_slug_volume_m3=_number(opt, 'surface_slug_volume_m3', context),
        surface_slug_density_kgm3=_number(opt, 'surface_slug_density_kgm3', context),
        base_mud_density_kgm3=trip_input.base_mud_density_kgm3,
        crack_float_kpa=trip_input.crack_float_kpa,
        start_bit_md_m=trip_input.start_bit_md_m,
        control_md_m=trip_input.control_md_m,
        second_slug_density_kgm3=_number(opt, 'second_slug_density_kgm3', context, None),
        manual_heel_md_m=_number(opt, 'manual_heel_md_m', context, None),
        observed_slug_drop_m3=_number(opt, 'observed_slug_drop_m3', context, None),
    )
