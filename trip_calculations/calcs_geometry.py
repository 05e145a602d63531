"""
Wellbore Geometry
Drill string and annulus sections with per-depth area and interval volume queries.

Sections are fixed in hole coordinates: a drill string section describes the
pipe occupying [top_md, bottom_md] with the string at its deepest position.
All diameters are in metres, areas in m^2 and volumes in m^3.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .constants import EPS, VOLUME_EPS

logger = logging.getLogger(__name__)


@dataclass
class DrillStringSection:
    """One pipe interval (drill pipe, HWDP, collars...)."""
    name: str
    top_md: float
    length_m: float
    od_m: float
    id_m: float

    @property
    def bottom_md(self) -> float:
        return self.top_md + self.length_m


@dataclass
class AnnulusSection:
    """One hole interval (casing ID or open hole size)."""
    name: str
    top_md: float
    bottom_md: float
    hole_id_m: float


def circle_area(diameter_m: float) -> float:
    return math.pi * diameter_m * diameter_m / 4.0


def _find_section(sections, md):
    for sec in sections:
        if sec.top_md - EPS <= md <= sec.bottom_md + EPS:
            return sec
    return None


class GeometryService:
    """
    Answers "what is the area at this MD" and "what volume sits between
    these two MDs" for the three columns the trip engine tracks.

    Parameters:
    -----------
    drill_string : sequence of DrillStringSection
        Ordered, non-overlapping pipe sections
    annulus : sequence of AnnulusSection
        Ordered, non-overlapping hole sections
    current_string_bottom_md : float, optional
        Pipe lookups below this depth return zero (no pipe). None means the
        string extends as far as its sections do.
    """

    def __init__(self, drill_string: Sequence[DrillStringSection],
                 annulus: Sequence[AnnulusSection],
                 current_string_bottom_md: Optional[float] = None):
        self.drill_string = sorted(drill_string, key=lambda s: s.top_md)
        self.annulus = sorted(annulus, key=lambda s: s.top_md)
        self.current_string_bottom_md = current_string_bottom_md
        self._warned_pairs = set()

    def reset_warnings(self):
        """Forget which clamped sections were already reported."""
        self._warned_pairs.clear()

    @property
    def is_empty(self) -> bool:
        return not self.drill_string or not self.annulus

    @property
    def deepest_md(self) -> float:
        depths = [s.bottom_md for s in self.annulus] + [s.bottom_md for s in self.drill_string]
        return max(depths) if depths else 0.0

    # ------------------------------------------------------------------
    # Diameters
    # ------------------------------------------------------------------
    def hole_id(self, md: float) -> float:
        sec = _find_section(self.annulus, md)
        if sec is None:
            # Below the last hole section the hole keeps its last size
            if self.annulus and md > self.annulus[-1].bottom_md:
                sec = self.annulus[-1]
            else:
                return 0.0
        return max(sec.hole_id_m, 0.0)

    def _pipe_section(self, md: float) -> Optional[DrillStringSection]:
        if self.current_string_bottom_md is not None and md > self.current_string_bottom_md + EPS:
            return None
        return _find_section(self.drill_string, md)

    def pipe_od(self, md: float) -> float:
        sec = self._pipe_section(md)
        return max(sec.od_m, 0.0) if sec else 0.0

    def pipe_id(self, md: float) -> float:
        sec = self._pipe_section(md)
        return max(sec.id_m, 0.0) if sec else 0.0

    # ------------------------------------------------------------------
    # Areas
    # ------------------------------------------------------------------
    def hole_area(self, md: float) -> float:
        return circle_area(self.hole_id(md))

    def pipe_od_area(self, md: float) -> float:
        return circle_area(self.pipe_od(md))

    def string_capacity_area(self, md: float) -> float:
        return circle_area(self.pipe_id(md))

    def steel_displacement(self, md: float) -> float:
        """Metal ring area at md (OD area minus bore area), m^2."""
        return max(0.0, self.pipe_od_area(md) - self.string_capacity_area(md))

    def annulus_area(self, md: float) -> float:
        hole_id = self.hole_id(md)
        od = self.pipe_od(md)
        area = circle_area(hole_id) - circle_area(od)
        if area < 0.0:
            key = (round(hole_id, 6), round(od, 6))
            if key not in self._warned_pairs:
                self._warned_pairs.add(key)
                logger.warning("Pipe OD %.4f m exceeds hole ID %.4f m at %.1f m MD; "
                               "annulus area clamped to zero", od, hole_id, md)
            return 0.0
        return area

    # ------------------------------------------------------------------
    # Interval volumes
    # ------------------------------------------------------------------
    def _breakpoints(self, top: float, bottom: float) -> List[float]:
        points = {top, bottom}
        for sec in self.annulus:
            points.update((sec.top_md, sec.bottom_md))
        for sec in self.drill_string:
            points.update((sec.top_md, sec.bottom_md))
        if self.current_string_bottom_md is not None:
            points.add(self.current_string_bottom_md)
        return sorted(p for p in points if top <= p <= bottom)

    def _integrate(self, area_fn, top_md: float, bottom_md: float) -> float:
        a, b = min(top_md, bottom_md), max(top_md, bottom_md)
        a = max(a, 0.0)
        if b - a <= EPS:
            return 0.0
        points = self._breakpoints(a, b)
        volume = 0.0
        for lo, hi in zip(points[:-1], points[1:]):
            if hi - lo <= 0.0:
                continue
            # Areas are piecewise constant between breakpoints
            volume += area_fn(0.5 * (lo + hi)) * (hi - lo)
        return volume

    def volume_in_annulus(self, top_md: float, bottom_md: float) -> float:
        return self._integrate(self.annulus_area, top_md, bottom_md)

    def volume_in_string(self, top_md: float, bottom_md: float) -> float:
        return self._integrate(self.string_capacity_area, top_md, bottom_md)

    def volume_of_string_od(self, top_md: float, bottom_md: float) -> float:
        """Closed-end pipe displacement (bore plus steel) over the interval."""
        return self._integrate(self.pipe_od_area, top_md, bottom_md)

    def volume_of_steel(self, top_md: float, bottom_md: float) -> float:
        """Open-end pipe displacement over the interval."""
        return self._integrate(self.steel_displacement, top_md, bottom_md)

    def volume_in_hole(self, top_md: float, bottom_md: float) -> float:
        return self._integrate(self.hole_area, top_md, bottom_md)

    # ------------------------------------------------------------------
    # Volume -> length
    # ------------------------------------------------------------------
    def _length_for_volume(self, area_fn, from_md: float, volume_m3: float) -> float:
        if volume_m3 <= VOLUME_EPS:
            return 0.0
        from_md = max(from_md, 0.0)
        deepest = max(self.deepest_md, from_md)
        points = self._breakpoints(from_md, deepest)
        remaining = volume_m3
        length = 0.0
        for lo, hi in zip(points[:-1], points[1:]):
            if hi - lo <= 0.0:
                continue
            area = area_fn(0.5 * (lo + hi))
            seg_volume = area * (hi - lo)
            if seg_volume >= remaining and area > EPS:
                return length + remaining / area
            remaining -= seg_volume
            length += hi - lo

        # Beyond the described geometry, keep the last area
        area = area_fn(deepest)
        if area <= EPS:
            return length
        return length + remaining / area

    def length_for_annulus_volume(self, from_md: float, volume_m3: float) -> float:
        """MD length below from_md that holds volume_m3 of annulus fluid."""
        return self._length_for_volume(self.annulus_area, from_md, volume_m3)

    def length_for_string_volume(self, from_md: float, volume_m3: float) -> float:
        """MD length below from_md that holds volume_m3 inside the string."""
        return self._length_for_volume(self.string_capacity_area, from_md, volume_m3)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate(self) -> List[str]:
        """
        Check the sections for data-entry problems.

        Returns:
        --------
        list : Human readable issues; empty when the geometry is usable
        """
        issues: List[str] = []
        if not self.drill_string:
            issues.append("No drill string sections defined")
        if not self.annulus:
            issues.append("No annulus sections defined")

        for label, sections in (("Drill string", self.drill_string), ("Annulus", self.annulus)):
            for prev, cur in _pairs(sections):
                if cur.top_md < prev.bottom_md - EPS:
                    issues.append(f"{label} sections '{prev.name}' and '{cur.name}' overlap "
                                  f"({cur.top_md:.1f} m < {prev.bottom_md:.1f} m)")
            for sec in sections:
                if sec.bottom_md < sec.top_md:
                    issues.append(f"{label} section '{sec.name}' has bottom above top")

        for sec in self.drill_string:
            if sec.id_m > sec.od_m:
                issues.append(f"Drill string section '{sec.name}' has ID larger than OD")
            for md in (sec.top_md, 0.5 * (sec.top_md + sec.bottom_md), sec.bottom_md):
                hole_id = self.hole_id(md)
                if hole_id > 0.0 and sec.od_m > hole_id:
                    issues.append(f"Pipe OD {sec.od_m:.4f} m of '{sec.name}' exceeds hole ID "
                                  f"{hole_id:.4f} m at {md:.1f} m MD")
                    break
        return issues


def _pairs(sections) -> List[Tuple]:
    return list(zip(sections[:-1], sections[1:]))
