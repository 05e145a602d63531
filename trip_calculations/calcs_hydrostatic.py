"""
Hydrostatic Pressure Integration
Pressure along TVD through ordered fluid layers, and ESD conversions.

All pressures in kPa, densities in kg/m^3, depths in metres.
"""

from typing import Optional, Sequence

from .calcs_layers import LayerRow
from .constants import EPS, G_KPA_PER_M_PER_KGM3


def integrate_pressure(rows: Sequence[LayerRow], to_tvd: Optional[float] = None, from_tvd: float = 0.0,
                       surface_kpa: float = 0.0) -> float:
    """
    Integrate rho * g * dTVD top-down through a column.

    Parameters:
    -----------
    rows : sequence of LayerRow
        Layers ordered by MD ascending
    to_tvd : float, optional
        Stop once this TVD is reached. None integrates the full column.
    from_tvd : float
        Ignore the part of the column above this TVD
    surface_kpa : float
        Pressure already present at from_tvd (e.g. SABP)

    Returns:
    --------
    float : Pressure at to_tvd (kPa)
    """
    pressure = surface_kpa
    for row in rows:
        top = max(row.top_tvd_m, from_tvd)
        bottom = row.bottom_tvd_m if to_tvd is None else min(row.bottom_tvd_m, to_tvd)
        # Zero-height and fully-outside layers contribute nothing
        if bottom - top <= EPS:
            continue
        pressure += row.density_kgm3 * G_KPA_PER_M_PER_KGM3 * (bottom - top)
        if to_tvd is not None and row.bottom_tvd_m >= to_tvd - EPS:
            break
    return pressure


def pressure_at_depth(annulus_rows: Sequence[LayerRow], pocket_rows: Sequence[LayerRow],
                      bit_tvd: float, target_tvd: float, sabp_kpa: float = 0.0) -> float:
    """
    Pressure at target_tvd seen from the annulus.

    When the target is below the bit, the annulus is integrated down to the
    bit and the pocket continues from the bit to the target.
    """
    if target_tvd <= bit_tvd + EPS:
        return integrate_pressure(annulus_rows, to_tvd=target_tvd, surface_kpa=sabp_kpa)
    at_bit = integrate_pressure(annulus_rows, to_tvd=bit_tvd, surface_kpa=sabp_kpa)
    return integrate_pressure(pocket_rows, to_tvd=target_tvd, from_tvd=bit_tvd, surface_kpa=at_bit)


def esd_from_pressure(pressure_kpa: float, tvd_m: float) -> float:
    """Equivalent static density (kg/m^3) for a pressure at a TVD."""
    return pressure_kpa / (G_KPA_PER_M_PER_KGM3 * max(tvd_m, EPS))


def pressure_from_esd(esd_kgm3: float, tvd_m: float) -> float:
    return esd_kgm3 * G_KPA_PER_M_PER_KGM3 * tvd_m
