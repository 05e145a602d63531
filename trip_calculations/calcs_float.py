"""
Float Valve State Machine
Explicit Closed/Open transition with hysteresis, and the two fill hypotheses.

Closed float (pipe-wet trip): the string contents come out with the pipe and
the hole must be filled with the full pipe OD volume.
Open float (pipe-dry trip): the string drains and only the steel volume has
to be replaced.
"""

from dataclasses import dataclass
from enum import Enum

from .constants import FLOAT_TOLERANCE_KPA


class FloatState(Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"


class FillHypothesis(Enum):
    CLOSED = "pipe wet (OD volume)"
    OPEN = "pipe dry (steel volume)"


@dataclass(frozen=True)
class FloatTransition:
    state: FloatState
    hypothesis: FillHypothesis
    differential_kpa: float

    @property
    def is_open(self) -> bool:
        return self.state is FloatState.OPEN


def next_float_state(previous: FloatState, string_pressure_kpa: float, annulus_pressure_kpa: float,
                     crack_float_kpa: float, tolerance_kpa: float = FLOAT_TOLERANCE_KPA) -> FloatTransition:
    """
    Decide the float state from the pressures on either side of it at the bit.

    A closed float opens only once the string side exceeds the annulus side
    by more than crack + tolerance. An open float stays open while the
    differential is above crack, and closes at or below it.

    Parameters:
    -----------
    previous : FloatState
        State before this evaluation
    string_pressure_kpa : float
        Hydrostatic pressure of the string column at the bit
    annulus_pressure_kpa : float
        Annulus pressure at the bit, including SABP
    crack_float_kpa : float
        Differential needed to crack the float open

    Returns:
    --------
    FloatTransition : new state, selected fill hypothesis and differential
    """
    differential = string_pressure_kpa - annulus_pressure_kpa
    if previous is FloatState.OPEN:
        is_open = differential > crack_float_kpa
    else:
        is_open = differential > crack_float_kpa + tolerance_kpa

    if is_open:
        return FloatTransition(FloatState.OPEN, FillHypothesis.OPEN, differential)
    return FloatTransition(FloatState.CLOSED, FillHypothesis.CLOSED, differential)


def expected_fill_volumes(geometry, from_md: float, to_md: float):
    """
    Fill volume predicted by each hypothesis for moving the bit between two depths.

    Returns:
    --------
    tuple : (if_closed_m3, if_open_m3)
    """
    top, bottom = min(from_md, to_md), max(from_md, to_md)
    return geometry.volume_of_string_od(top, bottom), geometry.volume_of_steel(top, bottom)


def float_label(open_count: int, total_count: int) -> str:
    """Summary such as 'CLOSED 100%' or 'OPEN 72%' for a recorded step."""
    if total_count <= 0 or open_count <= 0:
        return "CLOSED 100%"
    percent = max(1, int(round(100.0 * open_count / total_count)))
    return f"OPEN {percent}%"
