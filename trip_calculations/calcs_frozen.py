"""
Frozen Simulation Inputs
Snapshot of geometry, muds and surveys taken when a run is saved, used to
tell whether a stored result has gone stale.
"""

import hashlib
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .calcs_geometry import AnnulusSection, DrillStringSection
from .calcs_rheology import Mud
from .calcs_tvd import SurveyStation, TvdSampler

DIAMETER_TOL_M = 1e-4
DEPTH_TOL_M = 0.1
DENSITY_TOL_KGM3 = 1.0
SURVEY_TOL_M = 0.01


@dataclass(frozen=True)
class FrozenDrillString:
    name: str
    top_md: float
    length_m: float
    od_m: float
    id_m: float


@dataclass(frozen=True)
class FrozenAnnulus:
    name: str
    top_md: float
    bottom_md: float
    hole_id_m: float


@dataclass(frozen=True)
class FrozenMud:
    name: str
    density_kgm3: float
    dial600: Optional[float] = None
    dial300: Optional[float] = None


@dataclass(frozen=True)
class FrozenSurvey:
    md: float
    tvd: float


def _freeze_mud(mud: Optional[Mud]) -> Optional[FrozenMud]:
    if mud is None:
        return None
    return FrozenMud(mud.name, mud.density_kgm3, mud.dial600, mud.dial300)


@dataclass(frozen=True)
class FrozenSimulationInputs:
    drill_string: Tuple[FrozenDrillString, ...] = ()
    annulus: Tuple[FrozenAnnulus, ...] = ()
    backfill_mud: Optional[FrozenMud] = None
    active_mud: Optional[FrozenMud] = None
    surveys: Tuple[FrozenSurvey, ...] = ()
    captured_at: str = field(default="", compare=False)

    @classmethod
    def capture(cls, drill_string: Sequence[DrillStringSection], annulus: Sequence[AnnulusSection],
                backfill_mud: Optional[Mud] = None, active_mud: Optional[Mud] = None,
                surveys: Sequence[SurveyStation] = (), sampler: Optional[TvdSampler] = None
                ) -> "FrozenSimulationInputs":
        """Freeze the current project state. Survey TVDs come from sampler when given."""
        tvd = sampler if sampler is not None else (lambda md: md)
        return cls(
            drill_string=tuple(FrozenDrillString(s.name, s.top_md, s.length_m, s.od_m, s.id_m)
                               for s in sorted(drill_string, key=lambda s: s.top_md)),
            annulus=tuple(FrozenAnnulus(s.name, s.top_md, s.bottom_md, s.hole_id_m)
                          for s in sorted(annulus, key=lambda s: s.top_md)),
            backfill_mud=_freeze_mud(backfill_mud),
            active_mud=_freeze_mud(active_mud),
            surveys=tuple(FrozenSurvey(s.md, s.tvd if s.tvd is not None else tvd(s.md))
                          for s in sorted(surveys, key=lambda s: s.md)),
            captured_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FrozenSimulationInputs":
        def mud(value):
            return FrozenMud(**value) if value else None

        return cls(
            drill_string=tuple(FrozenDrillString(**d) for d in data.get("drill_string", [])),
            annulus=tuple(FrozenAnnulus(**a) for a in data.get("annulus", [])),
            backfill_mud=mud(data.get("backfill_mud")),
            active_mud=mud(data.get("active_mud")),
            surveys=tuple(FrozenSurvey(**s) for s in data.get("surveys", [])),
            captured_at=data.get("captured_at", ""),
        )

    @property
    def input_hash(self) -> str:
        """SHA-256 of the canonical JSON form, capture time excluded."""
        payload = self.to_dict()
        payload.pop("captured_at", None)
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def make_tvd_sampler(self) -> TvdSampler:
        return TvdSampler([s.md for s in self.surveys], [s.tvd for s in self.surveys])

    @property
    def max_drill_string_depth_m(self) -> float:
        return max((d.top_md + d.length_m for d in self.drill_string), default=0.0)


def _mud_changes(label: str, frozen: Optional[FrozenMud], current: Optional[FrozenMud]) -> List[str]:
    if frozen is None and current is None:
        return []
    if (frozen is None) != (current is None):
        return [f"{label} mud configuration changed"]
    if abs(frozen.density_kgm3 - current.density_kgm3) > DENSITY_TOL_KGM3:
        return [f"{label} mud density changed ({frozen.density_kgm3:.0f} -> {current.density_kgm3:.0f} kg/m3)"]
    return []


def staleness_reasons(frozen: FrozenSimulationInputs, current: FrozenSimulationInputs) -> List[str]:
    """
    Describe what changed between a frozen snapshot and the current state.

    An empty list means the stored result is still valid.
    """
    reasons: List[str] = []

    if len(frozen.drill_string) != len(current.drill_string):
        reasons.append(f"Drill string sections changed ({len(frozen.drill_string)} -> {len(current.drill_string)})")
    else:
        for i, (old, new) in enumerate(zip(frozen.drill_string, current.drill_string), start=1):
            if abs(old.od_m - new.od_m) > DIAMETER_TOL_M or abs(old.id_m - new.id_m) > DIAMETER_TOL_M:
                reasons.append(f"Drill string section {i} geometry changed")
            if abs(old.top_md - new.top_md) > DEPTH_TOL_M or abs(old.length_m - new.length_m) > DEPTH_TOL_M:
                reasons.append(f"Drill string section {i} depths changed")

    if len(frozen.annulus) != len(current.annulus):
        reasons.append(f"Annulus sections changed ({len(frozen.annulus)} -> {len(current.annulus)})")
    else:
        for i, (old, new) in enumerate(zip(frozen.annulus, current.annulus), start=1):
            if abs(old.hole_id_m - new.hole_id_m) > DIAMETER_TOL_M:
                reasons.append(f"Annulus section {i} geometry changed")
            if abs(old.top_md - new.top_md) > DEPTH_TOL_M or abs(old.bottom_md - new.bottom_md) > DEPTH_TOL_M:
                reasons.append(f"Annulus section {i} depths changed")

    reasons.extend(_mud_changes("Backfill", frozen.backfill_mud, current.backfill_mud))
    reasons.extend(_mud_changes("Active", frozen.active_mud, current.active_mud))

    if len(frozen.surveys) != len(current.surveys):
        reasons.append(f"Surveys changed ({len(frozen.surveys)} -> {len(current.surveys)} stations)")
    elif any(abs(a.md - b.md) > SURVEY_TOL_M or abs(a.tvd - b.tvd) > SURVEY_TOL_M
             for a, b in zip(frozen.surveys, current.surveys)):
        reasons.append("Survey stations changed")

    return reasons
