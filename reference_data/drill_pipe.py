"""
API 5DP Drill Pipe - Nominal Sizes
Provides the bore (ID) for common drill pipe OD / nominal weight combinations

Structure: OD (inches) -> {nominal_weight_ppf: id_inches}
"""

INCH_TO_M = 0.0254

# API 5DP drill pipe body dimensions
# OD (inches) -> {nominal weight (lb/ft): ID (inches)}
DRILL_PIPE_DATA = {
    2.375: {4.85: 1.995, 6.65: 1.815},
    2.875: {6.85: 2.441, 10.40: 2.151},
    3.5: {9.50: 2.992, 13.30: 2.764, 15.50: 2.602},
    4.0: {11.85: 3.476, 14.00: 3.340, 15.70: 3.240},
    4.5: {13.75: 3.958, 16.60: 3.826, 20.00: 3.640},
    5.0: {16.25: 4.408, 19.50: 4.276, 25.60: 4.000},
    5.5: {21.90: 4.778, 24.70: 4.670},
    6.625: {25.20: 5.965, 27.70: 5.901},
}


def get_standard_weights(od):
    """
    Get available nominal weights for a given drill pipe OD.

    Parameters:
    -----------
    od : float
        Outer diameter in inches

    Returns:
    --------
    list : Nominal weights in lb/ft (sorted ascending)
           Returns None if OD is not in the table
    """
    if od in DRILL_PIPE_DATA:
        return sorted(DRILL_PIPE_DATA[od])
    else:
        return None


def get_pipe_id(od, weight_ppf, tolerance=0.01):
    """
    Get the bore of a drill pipe from its OD and nominal weight.

    Parameters:
    -----------
    od : float
        Outer diameter in inches
    weight_ppf : float
        Nominal weight in lb/ft
    tolerance : float
        Tolerance for weight matching (default 0.01 lb/ft)

    Returns:
    --------
    float : Inner diameter in inches, or None if no match is found
    """
    if od not in DRILL_PIPE_DATA:
        return None

    for weight, pipe_id in DRILL_PIPE_DATA[od].items():
        if abs(weight - weight_ppf) <= tolerance:
            return pipe_id

    return None


def get_pipe_dimensions_m(od, weight_ppf):
    """
    OD and ID in metres for a table entry.

    Returns:
    --------
    tuple : (od_m, id_m), or None if no match is found
    """
    pipe_id = get_pipe_id(od, weight_ppf)
    if pipe_id is None:
        return None
    return od * INCH_TO_M, pipe_id * INCH_TO_M


def pipe_label(od: float, weight_ppf: float) -> str:
    """Label such as '5" 19.50 ppf'."""
    return f'{od:g}" {weight_ppf:.2f} ppf'
