"""
Trip Simulation Tool
Incremental pull-out / run-in simulation with float valve and volume tracking

This tool performs:
- Step-by-step trip simulation (SABP, ESD at TD, float state, backfill and pit gain)
- Kill mud / slug optimization for a target ESD at the control depth

Usage:
    python main.py [input.json] [--debug]
"""

import logging
import sys

import pandas as pd

from trip_calculations import config
from trip_calculations.calcs_optimizer import calculate as calculate_optimizer
from trip_calculations.calcs_trip import NumericalTripModel, layers_to_dataframe, steps_to_dataframe
from trip_calculations.errors import ConfigurationError
from trip_calculations.logging_config import setup_logging

logger = logging.getLogger("trip_calculations.main")

REPORT_COLUMNS = {
    'bit_md_m': 'Bit MD (m)',
    'bit_tvd_m': 'Bit TVD (m)',
    'sabp_kpa': 'SABP (kPa)',
    'sabp_dynamic_kpa': 'SABP dyn (kPa)',
    'esd_at_td_kgm3': 'ESD@TD (kg/m3)',
    'esd_at_control_kgm3': 'ESD@Ctrl (kg/m3)',
    'float_label': 'Float',
    'step_backfill_m3': 'Backfill (m3)',
    'pit_gain_m3': 'Pit gain (m3)',
    'cumulative_surface_tank_delta_m3': 'Cum tank (m3)',
}


def print_trip_results(steps):
    """
    Print the trip simulation report to console.

    Parameters:
    -----------
    steps : tuple of TripStep
        Result of NumericalTripModel.run
    """
    if not steps:
        return

    first, last = steps[0], steps[-1]
    print("\n" + "="*90)
    print("TRIP SIMULATION REPORT")
    print("="*90)
    print(f"  Start bit depth:            {first.bit_md_m:.1f} m MD  ({first.bit_tvd_m:.1f} m TVD)")
    print(f"  End bit depth:              {last.bit_md_m:.1f} m MD  ({last.bit_tvd_m:.1f} m TVD)")
    print(f"  Recorded steps:             {len(steps)}")
    print(f"  Initial slug pit gain:      {first.pit_gain_m3:.3f} m3")
    print("-"*90)

    table = steps_to_dataframe(steps)
    table = table[list(REPORT_COLUMNS)].rename(columns=REPORT_COLUMNS)
    with pd.option_context('display.width', 160, 'display.max_columns', None):
        print(table.to_string(index=False, float_format=lambda v: f"{v:.2f}"))

    print(f"\n{'='*90}")
    print("VOLUME BALANCE")
    print(f"{'='*90}")
    print(f"  Cumulative backfill:        {last.cumulative_backfill_m3:.3f} m3")
    print(f"  Cumulative pit gain:        {last.cumulative_pit_gain_m3:.3f} m3")
    print(f"  Cumulative tank delta:      {last.cumulative_surface_tank_delta_m3:.3f} m3 (positive = drawn from tanks)")
    print(f"  Slug contribution:          {last.cumulative_slug_contribution_m3:.3f} m3")

    print(f"\n{'='*90}")
    print(f"FLUID COLUMNS AT START ({first.bit_md_m:.1f} m MD)")
    print(f"{'='*90}")
    for label, rows in (("Annulus", first.layers_annulus), ("String", first.layers_string),
                        ("Pocket", first.layers_pocket)):
        if not rows:
            continue
        print(f"\n  {label}:")
        frame = layers_to_dataframe(rows)[['top_md_m', 'bottom_md_m', 'density_kgm3',
                                           'delta_hydrostatic_kpa', 'volume_m3']]
        print(frame.to_string(index=False, float_format=lambda v: f"{v:.2f}"))


def print_optimizer_results(result):
    """Print the kill mud / slug optimizer report."""
    print("\n" + "="*90)
    print("TRIP OPTIMIZER")
    print("="*90)
    if result is None:
        print("  Optimizer skipped: degenerate control depth or drill string.")
        return

    print(f"  Heel:                       {result.heel_md_m:.1f} m MD  ({result.heel_tvd_m:.1f} m TVD)")
    print(f"  Control TVD:                {result.control_tvd_m:.1f} m")
    print(f"  Effective ESD:              {result.effective_esd_kgm3:.1f} kg/m3")
    print(f"  Second slug density:        {result.second_slug_density_kgm3:.1f} kg/m3"
          f"{' (calculated)' if result.second_slug_density_was_calculated else ''}")
    print(f"  Slug drop:                  {result.slug_drop_volume_m3:.3f} m3")
    print(f"  Kill mud volume:            {result.kill_mud_volume_m3:.3f} m3")
    print(f"  KILL MUD DENSITY:           {result.kill_mud_density_kgm3:.1f} kg/m3")
    print(f"  ESD @ Control (check):      {result.esd_at_control_kgm3:.1f} kg/m3")
    print("-"*90)
    frame = layers_to_dataframe(result.layers)[['name', 'top_md_m', 'bottom_md_m', 'top_tvd_m',
                                                'bottom_tvd_m', 'density_kgm3', 'delta_hydrostatic_kpa']]
    print(frame.to_string(index=False, float_format=lambda v: f"{v:.2f}"))
    for warning in result.warnings:
        print(f"  WARNING: {warning}")


def main(argv=None):
    """Main execution function."""
    args = list(sys.argv[1:] if argv is None else argv)
    debug = '--debug' in args
    args = [a for a in args if a != '--debug']
    setup_logging(logging.DEBUG if debug else logging.INFO)

    print("\n" + "="*90)
    print("TRIP SIMULATION TOOL")
    print("Pull-out / run-in with float valve, backfill and pit gain tracking")
    print("="*90)

    filename = args[0] if args else config.DEFAULT_INPUT_PATH
    try:
        data = config.load_input_data(filename)
        geometry = config.build_geometry(data, strict=bool(data.get('strict_geometry', False)))
        sampler = config.build_tvd_sampler(data)
        muds = config.build_muds(data)
        final_layers = config.build_final_layers(data, muds)
        trip_input = config.build_trip_input(data, muds, sampler)
        optimizer_input = config.build_optimizer_input(data, trip_input)

        steps = NumericalTripModel().run(trip_input, geometry, final_layers)
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1

    print_trip_results(steps)

    if optimizer_input is not None:
        result = calculate_optimizer(optimizer_input, sampler, geometry,
                                     surveys=config.build_surveys(data),
                                     plan_stations=config.build_surveys(data, 'plan_stations'))
        print_optimizer_results(result)

    print("\n\n" + "="*90)
    print("SIMULATION COMPLETE")
    print("="*90)
    return 0


if __name__ == "__main__":
    sys.exit(main())
