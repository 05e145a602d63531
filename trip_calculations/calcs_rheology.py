"""
Mud Catalogue and Fann 35 Rheology
Bingham plastic and power-law parameters from viscometer dial readings.

Rheology is carried on fluid layers for display; the trip engine does not
compute friction pressures from it.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .calcs_layers import ColorRGBA
from .constants import FANN35_300RPM_SHEAR_RATE, FANN35_600RPM_SHEAR_RATE, FANN35_DIAL_TO_PA


def bingham_from_dials(dial600: float, dial300: float):
    """
    Bingham plastic parameters from Fann 35 readings.

    Parameters:
    -----------
    dial600 : float
        600 rpm dial reading
    dial300 : float
        300 rpm dial reading

    Returns:
    --------
    tuple : (pv_cp, yp_pa)
        Plastic viscosity (cP) and yield point (Pa, never negative)
    """
    pv_cp = dial600 - dial300
    yp_pa = max(0.0, (dial300 - pv_cp) * FANN35_DIAL_TO_PA)
    return pv_cp, yp_pa


def power_law_from_dials(dial600: float, dial300: float):
    """
    Power-law flow index n and consistency index K (Pa.s^n).

    Returns (1.0, 0.0) when the readings cannot be fitted.
    """
    if dial600 <= 0.0 or dial300 <= 0.0:
        return 1.0, 0.0
    n = math.log(dial600 / dial300) / math.log(FANN35_600RPM_SHEAR_RATE / FANN35_300RPM_SHEAR_RATE)
    k = dial300 * FANN35_DIAL_TO_PA / (FANN35_300RPM_SHEAR_RATE ** n)
    return n, k


@dataclass(frozen=True)
class Mud:
    """Named fluid from the mud catalogue."""
    name: str
    density_kgm3: float
    dial600: Optional[float] = None
    dial300: Optional[float] = None
    color: Optional[ColorRGBA] = None

    @property
    def has_rheology(self) -> bool:
        return self.dial600 is not None and self.dial300 is not None

    @property
    def pv_cp(self) -> float:
        if not self.has_rheology:
            return 0.0
        return bingham_from_dials(self.dial600, self.dial300)[0]

    @property
    def yp_pa(self) -> float:
        if not self.has_rheology:
            return 0.0
        return bingham_from_dials(self.dial600, self.dial300)[1]

    def power_law(self):
        if not self.has_rheology:
            return 1.0, 0.0
        return power_law_from_dials(self.dial600, self.dial300)
