"""
Measured Depth to True Vertical Depth Sampling
Survey interpolation, minimum curvature positions and heel detection.

The trip engine only ever consumes a callable ``tvd_of_md(md) -> tvd``.
TvdSampler builds that callable from survey stations (or a directional plan)
and guarantees TVD never decreases with MD.
"""

import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import numpy as np

DEG2RAD = math.pi / 180.0
RAD2DEG = 180.0 / math.pi


@dataclass
class SurveyStation:
    md: float
    inc_deg: float = 0.0
    azi_deg: float = 0.0
    tvd: Optional[float] = None


def _ratio_factor(dogleg_rad: float) -> float:
    # Ratio factor for minimum curvature (dogleg in radians)
    if abs(dogleg_rad) < 1e-12:
        return 1.0
    return 2.0 / dogleg_rad * math.tan(0.5 * dogleg_rad)


def minimum_curvature_step(md1, inc1_deg, azi1_deg, md2, inc2_deg, azi2_deg):
    """
    One minimum curvature step from station 1 to station 2.

    Returns:
    --------
    tuple : (dTVD, dNorth, dEast, dls_deg_per_30m)
    """
    ds = md2 - md1
    if ds <= 0:
        return 0.0, 0.0, 0.0, 0.0

    inc1 = inc1_deg * DEG2RAD
    inc2 = inc2_deg * DEG2RAD
    az1 = azi1_deg * DEG2RAD
    az2 = azi2_deg * DEG2RAD

    cos_dog = math.cos(inc1) * math.cos(inc2) + math.sin(inc1) * math.sin(inc2) * math.cos(az2 - az1)
    cos_dog = max(-1.0, min(1.0, cos_dog))
    dogleg = math.acos(cos_dog)
    rf = _ratio_factor(dogleg)

    d_north = 0.5 * ds * (math.sin(inc1) * math.cos(az1) + math.sin(inc2) * math.cos(az2)) * rf
    d_east = 0.5 * ds * (math.sin(inc1) * math.sin(az1) + math.sin(inc2) * math.sin(az2)) * rf
    d_tvd = 0.5 * ds * (math.cos(inc1) + math.cos(inc2)) * rf
    dls = dogleg * RAD2DEG / ds * 30.0

    return d_tvd, d_north, d_east, dls


def compute_station_tvds(stations: Sequence[SurveyStation], tie_in_tvd: float = 0.0) -> List[float]:
    """
    TVD for each station (sorted by MD), using minimum curvature from the
    tie-in. Stations that already carry a TVD keep it and re-anchor the
    accumulation.
    """
    ordered = sorted(stations, key=lambda s: s.md)
    tvds: List[float] = []
    for i, st in enumerate(ordered):
        if st.tvd is not None:
            tvds.append(float(st.tvd))
            continue
        if i == 0:
            # Vertical from surface to the first station
            tvds.append(tie_in_tvd + st.md)
            continue
        prev = ordered[i - 1]
        d_tvd, _, _, _ = minimum_curvature_step(prev.md, prev.inc_deg, prev.azi_deg,
                                                st.md, st.inc_deg, st.azi_deg)
        tvds.append(tvds[-1] + d_tvd)
    return tvds


class TvdSampler:
    """
    Piecewise-linear MD -> TVD mapping.

    Queries above the first station return the first TVD and queries below
    the last station return the last TVD. With no stations the well is
    treated as vertical (TVD = MD).
    """

    def __init__(self, md: Iterable[float], tvd: Iterable[float], is_using_plan: bool = False):
        md_arr = np.asarray(list(md), dtype=float)
        tvd_arr = np.asarray(list(tvd), dtype=float)
        if md_arr.shape != tvd_arr.shape:
            raise ValueError("md and tvd must have the same length")

        order = np.argsort(md_arr, kind="stable")
        md_arr = md_arr[order]
        tvd_arr = tvd_arr[order]

        # Drop duplicate MDs (keep first) and force TVD to be non-decreasing
        if md_arr.size:
            keep = np.concatenate(([True], np.diff(md_arr) > 0))
            md_arr = md_arr[keep]
            tvd_arr = np.maximum.accumulate(tvd_arr[keep])

        self._md = md_arr
        self._tvd = tvd_arr
        self.is_using_plan = is_using_plan

    @classmethod
    def from_stations(cls, stations: Sequence[SurveyStation], is_using_plan: bool = False) -> "TvdSampler":
        ordered = sorted(stations, key=lambda s: s.md)
        tvds = compute_station_tvds(ordered)
        # Anchor surface so shallow queries interpolate instead of clamping
        md = [s.md for s in ordered]
        if ordered and ordered[0].md > 0.0 and ordered[0].tvd is None:
            md = [0.0] + md
            tvds = [0.0] + tvds
        return cls(md, tvds, is_using_plan=is_using_plan)

    @classmethod
    def vertical(cls) -> "TvdSampler":
        return cls([], [])

    @property
    def is_vertical(self) -> bool:
        return self._md.size == 0

    def tvd(self, md: float) -> float:
        if self._md.size == 0:
            return float(md)
        return float(np.interp(md, self._md, self._tvd))

    def tvd_array(self, md_values) -> np.ndarray:
        md_values = np.asarray(md_values, dtype=float)
        if self._md.size == 0:
            return md_values.copy()
        return np.interp(md_values, self._md, self._tvd)

    def __call__(self, md: float) -> float:
        return self.tvd(md)


def _station_tvd(station: SurveyStation, tvd_of_md: Optional[Callable[[float], float]]) -> float:
    if station.tvd is not None:
        return station.tvd
    return tvd_of_md(station.md) if tvd_of_md is not None else station.md


def find_heel_depth(
    surveys: Sequence[SurveyStation],
    plan_stations: Sequence[SurveyStation] = (),
    prefer_plan: bool = False,
    tvd_of_md: Optional[Callable[[float], float]] = None,
) -> Optional[Tuple[float, float]]:
    """
    Find the heel: the first station whose inclination reaches 90 degrees.

    Falls back to the maximum-inclination station when that exceeds 45
    degrees. Returns (md, tvd) or None when neither applies. Stations
    without a stored TVD take it from tvd_of_md.
    """
    source = plan_stations if (prefer_plan and plan_stations) else surveys
    if not source:
        return None

    ordered = sorted(source, key=lambda s: s.md)
    for st in ordered:
        if st.inc_deg >= 90.0:
            return st.md, _station_tvd(st, tvd_of_md)

    steepest = max(ordered, key=lambda s: s.inc_deg)
    if steepest.inc_deg > 45.0:
        return steepest.md, _station_tvd(steepest, tvd_of_md)
    return None


def find_inclination_depth(
    target_inc_deg: float,
    surveys: Sequence[SurveyStation],
    plan_stations: Sequence[SurveyStation] = (),
    prefer_plan: bool = False,
    tvd_of_md: Optional[Callable[[float], float]] = None,
) -> Optional[Tuple[float, float]]:
    """First (md, tvd) where inclination reaches target_inc_deg, or None."""
    source = plan_stations if (prefer_plan and plan_stations) else surveys
    for st in sorted(source, key=lambda s: s.md):
        if st.inc_deg >= target_inc_deg:
            return st.md, _station_tvd(st, tvd_of_md)
    return None
