"""
Fluid Layer Model
Layers, column stacks (annulus, string, pocket) and layer re-slicing at the bit.

Working layers (Layer) are mutable and live only inside a simulation run.
Everything handed back to callers is a frozen LayerRow.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from .constants import (
    AIR_DENSITY_SENTINEL_KGM3,
    DENSITY_MERGE_TOL_KGM3,
    EPS,
    G_KPA_PER_M_PER_KGM3,
    RHO_AIR_KGM3,
    VOLUME_EPS,
)


TvdFunction = Callable[[float], float]
AreaFunction = Callable[[float], float]


# ----------------------------------------------------------------------
# Colour
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class ColorRGBA:
    """Display colour, channels in 0..1."""
    r: float
    g: float
    b: float
    a: float = 1.0

    def to_hex(self) -> str:
        channels = [int(round(max(0.0, min(1.0, c)) * 255)) for c in (self.r, self.g, self.b, self.a)]
        return "#{:02X}{:02X}{:02X}{:02X}".format(*channels)


NAMED_COLORS = {
    "black": ColorRGBA(0.0, 0.0, 0.0),
    "white": ColorRGBA(1.0, 1.0, 1.0),
    "gray": ColorRGBA(0.5, 0.5, 0.5),
    "brown": ColorRGBA(0.6, 0.4, 0.2),
    "red": ColorRGBA(1.0, 0.0, 0.0),
    "orange": ColorRGBA(1.0, 0.5, 0.0),
    "yellow": ColorRGBA(1.0, 1.0, 0.0),
    "green": ColorRGBA(0.0, 0.5, 0.0),
    "blue": ColorRGBA(0.0, 0.0, 1.0),
    "purple": ColorRGBA(0.5, 0.0, 0.5),
}

ColorLike = Union[ColorRGBA, str, Sequence[float], None]


def color_from_hex(value: str) -> Optional[ColorRGBA]:
    """Parse '#RRGGBB' or '#RRGGBBAA'. Returns None for anything else."""
    text = value[1:] if value.startswith("#") else value
    if len(text) not in (6, 8):
        return None
    try:
        raw = int(text, 16)
    except ValueError:
        return None
    if len(text) == 6:
        return ColorRGBA(((raw >> 16) & 0xFF) / 255.0, ((raw >> 8) & 0xFF) / 255.0, (raw & 0xFF) / 255.0, 1.0)
    return ColorRGBA(((raw >> 24) & 0xFF) / 255.0, ((raw >> 16) & 0xFF) / 255.0,
                     ((raw >> 8) & 0xFF) / 255.0, (raw & 0xFF) / 255.0)


def resolve_color(value: ColorLike) -> Optional[ColorRGBA]:
    """
    Resolve any accepted colour form to a canonical ColorRGBA.

    Accepts a ColorRGBA, a hex string, a named colour or a 3/4 element
    sequence of 0..1 channels. Called once when inputs are loaded.

    Raises:
    -------
    ValueError : if the value cannot be interpreted as a colour
    """
    if value is None or isinstance(value, ColorRGBA):
        return value
    if isinstance(value, str):
        named = NAMED_COLORS.get(value.strip().lower())
        if named is not None:
            return named
        parsed = color_from_hex(value.strip())
        if parsed is None:
            raise ValueError(f"Unrecognised colour: {value!r}")
        return parsed
    channels = [float(c) for c in value]
    if len(channels) == 3:
        return ColorRGBA(*channels)
    if len(channels) == 4:
        return ColorRGBA(*channels)
    raise ValueError(f"Colour sequence must have 3 or 4 channels, got {len(channels)}")


def blend_colors(weighted: Iterable[Tuple[Optional[ColorRGBA], float]]) -> Optional[ColorRGBA]:
    """Weighted average of colours; entries without a colour are ignored."""
    r = g = b = a = total = 0.0
    for color, weight in weighted:
        if color is None or weight <= VOLUME_EPS:
            continue
        r += color.r * weight
        g += color.g * weight
        b += color.b * weight
        a += color.a * weight
        total += weight
    if total <= VOLUME_EPS:
        return None
    return ColorRGBA(r / total, g / total, b / total, a / total)


# ----------------------------------------------------------------------
# Layers
# ----------------------------------------------------------------------
class Placement(Enum):
    ANNULUS = "annulus"
    STRING = "string"
    BOTH = "both"

    @property
    def covers_annulus(self) -> bool:
        return self in (Placement.ANNULUS, Placement.BOTH)

    @property
    def covers_string(self) -> bool:
        return self in (Placement.STRING, Placement.BOTH)


class Column(Enum):
    ANNULUS = "Annulus"
    STRING = "String"
    POCKET = "Pocket"


@dataclass
class FinalFluidLayer:
    """Externally authored fluid placement along the whole well."""
    name: str
    placement: Placement
    top_md: float
    bottom_md: float
    density_kgm3: float
    color: Optional[ColorRGBA] = None
    pv_cp: float = 0.0
    yp_pa: float = 0.0


@dataclass
class Layer:
    density_kgm3: float
    top_md: float
    bottom_md: float
    color: Optional[ColorRGBA] = None
    pv_cp: float = 0.0
    yp_pa: float = 0.0

    @property
    def length(self) -> float:
        return self.bottom_md - self.top_md


@dataclass(frozen=True)
class LayerRow:
    """Immutable snapshot of one layer in one column."""
    side: str
    top_md_m: float
    bottom_md_m: float
    top_tvd_m: float
    bottom_tvd_m: float
    density_kgm3: float
    delta_hydrostatic_kpa: float
    volume_m3: float
    color: Optional[ColorRGBA] = None
    pv_cp: float = 0.0
    yp_pa: float = 0.0
    name: str = ""

    @property
    def is_air(self) -> bool:
        return self.density_kgm3 < AIR_DENSITY_SENTINEL_KGM3

    @property
    def length_m(self) -> float:
        return self.bottom_md_m - self.top_md_m


@dataclass(frozen=True)
class Totals:
    count: int = 0
    tvd_m: float = 0.0
    delta_p_kpa: float = 0.0


def make_row(side: str, top_md: float, bottom_md: float, density_kgm3: float,
             tvd_of_md: TvdFunction, volume_m3: float, color: Optional[ColorRGBA] = None,
             pv_cp: float = 0.0, yp_pa: float = 0.0, name: str = "") -> LayerRow:
    top_tvd = tvd_of_md(top_md)
    bottom_tvd = tvd_of_md(bottom_md)
    d_tvd = max(0.0, bottom_tvd - top_tvd)
    return LayerRow(
        side=side,
        top_md_m=top_md,
        bottom_md_m=bottom_md,
        top_tvd_m=top_tvd,
        bottom_tvd_m=bottom_tvd,
        density_kgm3=density_kgm3,
        delta_hydrostatic_kpa=density_kgm3 * G_KPA_PER_M_PER_KGM3 * d_tvd,
        volume_m3=volume_m3,
        color=color,
        pv_cp=pv_cp,
        yp_pa=yp_pa,
        name=name,
    )


def summarize(rows: Sequence[LayerRow]) -> Totals:
    tvd = sum(max(0.0, r.bottom_tvd_m - r.top_tvd_m) for r in rows)
    dp = sum(r.delta_hydrostatic_kpa for r in rows)
    return Totals(count=len(rows), tvd_m=tvd, delta_p_kpa=dp)


def _same_density(a: float, b: float) -> bool:
    return abs(a - b) < DENSITY_MERGE_TOL_KGM3


@dataclass
class CarvedFluid:
    """Fluid removed from the bottom of a column, blended by volume."""
    length_m: float = 0.0
    volume_m3: float = 0.0
    mass_kg: float = 0.0
    color: Optional[ColorRGBA] = None
    pv_cp: float = 0.0
    yp_pa: float = 0.0

    def density(self, fallback: float) -> float:
        return self.mass_kg / self.volume_m3 if self.volume_m3 > VOLUME_EPS else fallback


# ----------------------------------------------------------------------
# Column stacks above the bit
# ----------------------------------------------------------------------
class Stack:
    """
    Ordered fluid layers from surface to the bit in one column.

    Layers are kept contiguous from 0 to the bit, ordered top to bottom.
    """

    def __init__(self, column: Column, geometry, tvd_of_md: TvdFunction):
        self.column = column
        self.geometry = geometry
        self.tvd_of_md = tvd_of_md
        self.layers: List[Layer] = []

    def _volume(self, top_md: float, bottom_md: float) -> float:
        if self.column is Column.STRING:
            return self.geometry.volume_in_string(top_md, bottom_md)
        return self.geometry.volume_in_annulus(top_md, bottom_md)

    def _length_for_volume(self, from_md: float, volume_m3: float) -> float:
        if self.column is Column.STRING:
            return self.geometry.length_for_string_volume(from_md, volume_m3)
        return self.geometry.length_for_annulus_volume(from_md, volume_m3)

    @property
    def bottom_md(self) -> float:
        return self.layers[-1].bottom_md if self.layers else 0.0

    def seed_uniform(self, density_kgm3: float, top_md: float, bottom_md: float,
                     color: Optional[ColorRGBA] = None, pv_cp: float = 0.0, yp_pa: float = 0.0):
        self.layers = [Layer(density_kgm3, min(top_md, bottom_md), max(top_md, bottom_md), color, pv_cp, yp_pa)]

    def split_at(self, md: float):
        """Split the layer that strictly contains md into two."""
        for i, layer in enumerate(self.layers):
            if layer.top_md + EPS < md < layer.bottom_md - EPS:
                lower = Layer(layer.density_kgm3, md, layer.bottom_md, layer.color, layer.pv_cp, layer.yp_pa)
                layer.bottom_md = md
                self.layers.insert(i + 1, lower)
                return

    def paint_interval(self, from_md: float, to_md: float, density_kgm3: float,
                       color: Optional[ColorRGBA] = None, pv_cp: float = 0.0, yp_pa: float = 0.0):
        """Overwrite the fluid in [from_md, to_md]."""
        if to_md <= from_md:
            return
        self.split_at(from_md)
        self.split_at(to_md)
        for layer in self.layers:
            if layer.top_md >= from_md - EPS and layer.bottom_md <= to_md + EPS:
                layer.density_kgm3 = density_kgm3
                layer.color = color
                layer.pv_cp = pv_cp
                layer.yp_pa = yp_pa
        self.ensure_invariants(self.bottom_md if self.layers else to_md)

    def ensure_invariants(self, bit_md: float):
        """Clamp to [0, bit], drop empty layers, close gaps, merge equal densities."""
        if not self.layers:
            return
        for layer in self.layers:
            layer.top_md = max(0.0, min(layer.top_md, bit_md))
            layer.bottom_md = max(0.0, min(layer.bottom_md, bit_md))
        self.layers = [l for l in self.layers if l.length > VOLUME_EPS]
        self.layers.sort(key=lambda l: l.top_md)
        if not self.layers:
            return

        self.layers[0].top_md = 0.0
        for prev, cur in zip(self.layers[:-1], self.layers[1:]):
            cur.top_md = prev.bottom_md

        merged = [self.layers[0]]
        for layer in self.layers[1:]:
            last = merged[-1]
            if _same_density(layer.density_kgm3, last.density_kgm3) and abs(layer.top_md - last.bottom_md) < EPS:
                last.bottom_md = layer.bottom_md
            else:
                merged.append(layer)
        self.layers = merged

    def adjust_bit(self, new_bit_md: float):
        """Re-anchor the column so its bottom sits on new_bit_md, keeping lengths."""
        if not self.layers:
            return
        total = sum(l.length for l in self.layers)
        cursor = max(0.0, new_bit_md - total)
        for layer in self.layers:
            length = layer.length
            layer.top_md = cursor
            cursor += length
            layer.bottom_md = cursor

    def translate_all_layers(self, delta_md: float, bit_md: float):
        if not self.layers or abs(delta_md) <= VOLUME_EPS:
            return
        for layer in self.layers:
            layer.top_md += delta_md
            layer.bottom_md += delta_md
        self.ensure_invariants(bit_md)

    def _push_from_surface(self, density_kgm3: float, length: float, bit_md: float,
                           color: Optional[ColorRGBA], pv_cp: float, yp_pa: float, match_color: bool):
        top = self.layers[0] if self.layers else None
        can_merge = (top is not None and abs(top.top_md) < EPS
                     and _same_density(top.density_kgm3, density_kgm3)
                     and (not match_color or top.color == color))
        if not can_merge:
            self.layers.insert(0, Layer(density_kgm3, 0.0, 0.0, color, pv_cp, yp_pa))
        self.layers[0].bottom_md += length
        for layer in self.layers[1:]:
            layer.top_md += length
            layer.bottom_md += length
        self.ensure_invariants(bit_md)

    def add_backfill_from_surface(self, density_kgm3: float, volume_m3: float, bit_md: float,
                                  color: Optional[ColorRGBA] = None, pv_cp: float = 0.0, yp_pa: float = 0.0):
        """Pump volume_m3 into the top of the column, pushing existing fluid down."""
        if volume_m3 <= VOLUME_EPS:
            return
        length = self._length_for_volume(0.0, volume_m3)
        if length <= VOLUME_EPS:
            return
        self._push_from_surface(density_kgm3, length, bit_md, color, pv_cp, yp_pa, match_color=True)

    def add_air_from_surface(self, volume_m3: float, bit_md: float):
        if self.column is not Column.STRING:
            raise ValueError("Air fill from surface applies to the string only")
        if volume_m3 <= VOLUME_EPS:
            return
        length = self._length_for_volume(0.0, volume_m3)
        if length <= VOLUME_EPS:
            return
        self._push_from_surface(RHO_AIR_KGM3, length, bit_md, None, 0.0, 0.0, match_color=False)

    def push_down_with_air(self, length: float, bit_md: float):
        """Move the whole column down by length, filling the top with air."""
        if length <= VOLUME_EPS:
            return
        self._push_from_surface(RHO_AIR_KGM3, length, bit_md, None, 0.0, 0.0, match_color=False)

    def inject_parcel_at_bit_push_uphole(self, density_kgm3: float, volume_m3: float, bit_md: float,
                                         color: Optional[ColorRGBA] = None,
                                         pv_cp: float = 0.0, yp_pa: float = 0.0) -> float:
        """
        Inject fluid at the bit and push the annulus column toward surface.

        Returns:
        --------
        float : Volume overflowing at surface (m^3)
        """
        if self.column is not Column.ANNULUS:
            raise ValueError("Parcel injection at the bit applies to the annulus only")
        if volume_m3 <= VOLUME_EPS:
            return 0.0
        area = self.geometry.annulus_area(bit_md)
        if area <= VOLUME_EPS:
            return 0.0
        length = min(volume_m3 / area, bit_md)
        if length <= VOLUME_EPS:
            return 0.0

        for layer in self.layers:
            layer.top_md = max(0.0, layer.top_md - length)
            layer.bottom_md = max(0.0, layer.bottom_md - length)

        new_top = max(0.0, bit_md - length)
        last = self.layers[-1] if self.layers else None
        if last is not None and abs(last.bottom_md - new_top) < EPS and _same_density(last.density_kgm3, density_kgm3):
            last.bottom_md = bit_md
        else:
            self.layers.append(Layer(density_kgm3, new_top, bit_md, color, pv_cp, yp_pa))
        self.ensure_invariants(bit_md)
        return volume_m3

    def append_at_bottom(self, layers: Sequence[Layer], bit_md: float):
        """Extend the column below its current bottom (running in)."""
        for layer in layers:
            if layer.length > VOLUME_EPS:
                self.layers.append(Layer(layer.density_kgm3, layer.top_md, layer.bottom_md,
                                         layer.color, layer.pv_cp, layer.yp_pa))
        self.ensure_invariants(bit_md)

    def take_bottom_by_length(self, length: float) -> CarvedFluid:
        """Remove length of fluid from the bottom, returning its blended properties."""
        carved = CarvedFluid()
        remaining = length
        colors = []
        pv_acc = yp_acc = rheo_vol = 0.0
        while remaining > EPS and self.layers:
            last = self.layers[-1]
            span = last.length
            if span <= VOLUME_EPS:
                self.layers.pop()
                continue
            take = min(span, remaining)
            seg_top = last.bottom_md - take
            seg_volume = self._volume(seg_top, last.bottom_md)
            carved.length_m += take
            carved.volume_m3 += seg_volume
            carved.mass_kg += last.density_kgm3 * seg_volume
            colors.append((last.color, seg_volume))
            if seg_volume > VOLUME_EPS:
                pv_acc += last.pv_cp * seg_volume
                yp_acc += last.yp_pa * seg_volume
                rheo_vol += seg_volume
            last.bottom_md = seg_top
            if last.length <= VOLUME_EPS:
                self.layers.pop()
            remaining -= take

        carved.color = blend_colors(colors)
        if rheo_vol > VOLUME_EPS:
            carved.pv_cp = pv_acc / rheo_vol
            carved.yp_pa = yp_acc / rheo_vol
        return carved

    def drain_bottom_volume(self, volume_m3: float) -> Optional[CarvedFluid]:
        """Drain up to volume_m3 out of the bottom layer only (U-tube parcel)."""
        if volume_m3 <= VOLUME_EPS or not self.layers:
            return None
        bottom = self.layers[-1]
        bottom_volume = self._volume(bottom.top_md, bottom.bottom_md)
        drain = min(volume_m3, bottom_volume)
        if drain <= VOLUME_EPS:
            return None
        drain_length = drain / bottom_volume * bottom.length
        if drain_length <= VOLUME_EPS:
            return None
        bottom.bottom_md -= drain_length
        if bottom.length < EPS:
            self.layers.pop()
        return CarvedFluid(drain_length, drain, bottom.density_kgm3 * drain,
                           bottom.color, bottom.pv_cp, bottom.yp_pa)

    def extend_to(self, bit_md: float):
        """Stretch the deepest layer down to the bit if the column falls short."""
        if self.layers and self.layers[-1].bottom_md < bit_md:
            self.layers[-1].bottom_md = bit_md

    def pressure_at_bit_kpa(self, sabp_kpa: float, bit_md: float) -> float:
        """Hydrostatic pressure at the bit; the annulus includes surface back-pressure."""
        pressure = sabp_kpa if self.column is Column.ANNULUS else 0.0
        for layer in self.layers:
            a = max(0.0, min(layer.top_md, bit_md))
            b = max(0.0, min(layer.bottom_md, bit_md))
            if b <= a:
                continue
            d_tvd = max(0.0, self.tvd_of_md(b) - self.tvd_of_md(a))
            pressure += layer.density_kgm3 * G_KPA_PER_M_PER_KGM3 * d_tvd
        return pressure

    def snapshot(self, bit_md: float) -> Tuple[LayerRow, ...]:
        rows = []
        for layer in self.layers:
            a = max(0.0, layer.top_md)
            b = min(bit_md, layer.bottom_md)
            if b - a <= EPS:
                continue
            rows.append(make_row(self.column.value, a, b, layer.density_kgm3, self.tvd_of_md,
                                 self._volume(a, b), layer.color, layer.pv_cp, layer.yp_pa))
        return tuple(rows)


# ----------------------------------------------------------------------
# Pocket below the bit
# ----------------------------------------------------------------------
class PocketColumn:
    """Open hole below the bit, layers ordered by MD ascending."""

    def __init__(self, geometry, tvd_of_md: TvdFunction):
        self.geometry = geometry
        self.tvd_of_md = tvd_of_md
        self.layers: List[Layer] = []

    def seed(self, layers: Iterable[Layer]):
        self.layers = sorted((l for l in layers if l.length > EPS), key=lambda l: l.top_md)

    def push_at_bit(self, density_kgm3: float, length: float, bit_md: float,
                    color: Optional[ColorRGBA] = None, pv_cp: float = 0.0, yp_pa: float = 0.0):
        """Add fluid occupying [bit_md, bit_md + length] above the existing pocket."""
        if length <= EPS:
            return
        bottom = bit_md + length
        first = self.layers[0] if self.layers else None
        if first is not None and abs(first.top_md - bottom) < EPS and _same_density(first.density_kgm3, density_kgm3):
            total = first.length + length
            first.color = blend_colors([(first.color, first.length), (color, length)]) or first.color or color
            first.pv_cp = (first.pv_cp * first.length + pv_cp * length) / total
            first.yp_pa = (first.yp_pa * first.length + yp_pa * length) / total
            first.top_md = bit_md
        else:
            self.layers.insert(0, Layer(density_kgm3, bit_md, bottom, color, pv_cp, yp_pa))

    def take_top(self, from_md: float, to_md: float) -> List[Layer]:
        """Remove and return the pocket fluid in [from_md, to_md] (running in)."""
        taken: List[Layer] = []
        kept: List[Layer] = []
        for layer in self.layers:
            a = max(layer.top_md, from_md)
            b = min(layer.bottom_md, to_md)
            if b - a > EPS:
                taken.append(Layer(layer.density_kgm3, a, b, layer.color, layer.pv_cp, layer.yp_pa))
            if layer.bottom_md > to_md + EPS:
                kept.append(Layer(layer.density_kgm3, max(layer.top_md, to_md), layer.bottom_md,
                                  layer.color, layer.pv_cp, layer.yp_pa))
        self.layers = kept
        return taken

    def pressure_kpa(self, bit_md: float) -> float:
        """Hydrostatic pressure contributed by the pocket from the bit down."""
        pressure = 0.0
        for layer in self.layers:
            a = max(layer.top_md, bit_md)
            b = layer.bottom_md
            if b - a <= EPS:
                continue
            pressure += layer.density_kgm3 * G_KPA_PER_M_PER_KGM3 * max(0.0, self.tvd_of_md(b) - self.tvd_of_md(a))
        return pressure

    def snapshot(self, bit_md: float) -> Tuple[LayerRow, ...]:
        rows = []
        for layer in self.layers:
            if layer.bottom_md <= bit_md + EPS:
                continue
            a = max(layer.top_md, bit_md)
            b = layer.bottom_md
            if b - a <= EPS:
                continue
            rows.append(make_row(Column.POCKET.value, a, b, layer.density_kgm3, self.tvd_of_md,
                                 self.geometry.volume_in_hole(a, b), layer.color, layer.pv_cp, layer.yp_pa))
        return tuple(rows)


# ----------------------------------------------------------------------
# Re-slicing of final placement layers
# ----------------------------------------------------------------------
def _interval_volume(area_of_md: Optional[AreaFunction], top_md: float, bottom_md: float) -> float:
    if area_of_md is None or bottom_md <= top_md:
        return 0.0
    # Midpoint rule on pieces no longer than 1 m
    pieces = max(1, int(math.ceil(bottom_md - top_md)))
    width = (bottom_md - top_md) / pieces
    return sum(area_of_md(top_md + (i + 0.5) * width) for i in range(pieces)) * width


def slice_layers_at(layers: Sequence[FinalFluidLayer], cutoff_md: float, tvd_of_md: TvdFunction,
                    area_of_md: Optional[AreaFunction] = None
                    ) -> Tuple[Tuple[LayerRow, ...], Tuple[LayerRow, ...]]:
    """
    Split final placement layers at cutoff_md (usually the bit).

    A layer straddling the cutoff becomes two rows that inherit its density,
    colour and rheology, with TVD and volume recomputed. Zero-length layers
    are dropped and gaps are left as they are.

    Returns:
    --------
    tuple : (above, below), each a tuple of LayerRow ordered by MD
    """
    above: List[LayerRow] = []
    below: List[LayerRow] = []
    for layer in sorted(layers, key=lambda l: min(l.top_md, l.bottom_md)):
        top = min(layer.top_md, layer.bottom_md)
        bottom = max(layer.top_md, layer.bottom_md)
        if bottom - top <= EPS:
            continue
        side = layer.placement.value
        pieces = []
        if top < cutoff_md - EPS:
            pieces.append((above, top, min(bottom, cutoff_md)))
        if bottom > cutoff_md + EPS:
            pieces.append((below, max(top, cutoff_md), bottom))
        for target, a, b in pieces:
            if b - a <= EPS:
                continue
            target.append(make_row(side, a, b, layer.density_kgm3, tvd_of_md,
                                   _interval_volume(area_of_md, a, b), layer.color,
                                   layer.pv_cp, layer.yp_pa, layer.name))
    return tuple(above), tuple(below)
