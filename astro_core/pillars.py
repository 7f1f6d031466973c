"""
Four Pillars profile computation.

Public API
----------
compute_profile(name, date, time, city, timezone) -> AstrologicalProfile
    Pure and deterministic. Builds the year/month/day/hour pillars by indexing
    the stem table with ``value % 10`` and the branch table with ``value % 12``
    for each local calendar component, then derives the polarity balance,
    element distribution, day master and favorable/unfavorable element sets.

Weighting
---------
Each pillar's stem counts 1.0 and every hidden stem of its branch counts 0.5,
on both the polarity axis and the element axis. Branch polarity/element is
reported on the pillar but does not enter the aggregates.

Percentages are rounded half-up per bucket; any rounding residual is absorbed
by the heaviest bucket so each axis sums to exactly 100.
"""
from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union

from astro_core.cycle_tables import (
    ELEMENTS,
    FAVORABLE_ELEMENTS,
    POLARITIES,
    UNFAVORABLE_ELEMENTS,
    Branch,
    Stem,
    branch_for,
    hidden_stems_of,
    stem_for,
)

PILLAR_NAMES: Tuple[str, ...] = ("year", "month", "day", "hour")
HIDDEN_STEM_WEIGHT = 0.5
DOMINANCE_THRESHOLD = 10
BALANCED = "Balanced"

DateLike = Union[str, dt.date]
TimeLike = Union[str, dt.time]


@dataclass(frozen=True)
class BirthSubject:
    """Identifying birth data for a person or an organization."""
    name: str
    date: dt.date
    time: dt.time
    city: str
    timezone: str

    @classmethod
    def from_strings(cls, name: str, date: DateLike, time: TimeLike, city: str, timezone: str) -> "BirthSubject":
        return cls(name=name, date=_as_date(date), time=_as_time(time), city=city, timezone=timezone)


@dataclass(frozen=True)
class Pillar:
    stem: Stem
    branch: Branch
    hidden_stems: Tuple[Stem, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stem": self.stem.name,
            "stemHanzi": self.stem.hanzi,
            "stemElement": self.stem.element,
            "stemPolarity": self.stem.polarity,
            "branch": self.branch.name,
            "branchHanzi": self.branch.hanzi,
            "branchElement": self.branch.element,
            "branchPolarity": self.branch.polarity,
            "hiddenStems": [
                {"stem": s.name, "element": s.element, "polarity": s.polarity}
                for s in self.hidden_stems
            ],
        }


@dataclass(frozen=True)
class PolarityBalance:
    yin: int
    yang: int
    dominant: str  # Yin | Yang | Balanced


@dataclass(frozen=True)
class AstrologicalProfile:
    subject: BirthSubject
    pillars: Dict[str, Pillar]
    day_master: Stem
    polarity_balance: PolarityBalance
    element_distribution: Dict[str, int]
    favorable_elements: List[str] = field(default_factory=list)
    unfavorable_elements: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.subject.name,
            "birth": {
                "date": self.subject.date.isoformat(),
                "time": self.subject.time.strftime("%H:%M"),
                "city": self.subject.city,
                "timezone": self.subject.timezone,
            },
            "pillars": {key: self.pillars[key].to_dict() for key in PILLAR_NAMES},
            "dayMaster": {
                "stem": self.day_master.name,
                "element": self.day_master.element,
                "polarity": self.day_master.polarity,
            },
            "polarityBalance": {
                "yin": self.polarity_balance.yin,
                "yang": self.polarity_balance.yang,
                "dominant": self.polarity_balance.dominant,
            },
            "elementDistribution": {e.lower(): self.element_distribution[e] for e in ELEMENTS},
            "favorableElements": list(self.favorable_elements),
            "unfavorableElements": list(self.unfavorable_elements),
        }


def _as_date(value: DateLike) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value).strip())


def _as_time(value: TimeLike) -> dt.time:
    if isinstance(value, dt.time):
        return value
    return dt.time.fromisoformat(str(value).strip())


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def normalize_percentages(weights: Dict[str, float], order: Tuple[str, ...]) -> Dict[str, int]:
    """Convert raw weights to integer percentages summing to exactly 100."""
    total = sum(weights.get(k, 0.0) for k in order)
    if total <= 0:
        return {k: 0 for k in order}
    out = {k: _round_half_up(weights.get(k, 0.0) / total * 100.0) for k in order}
    residual = 100 - sum(out.values())
    if residual:
        heaviest = max(order, key=lambda k: (weights.get(k, 0.0), -order.index(k)))
        out[heaviest] += residual
    return out


def build_pillars(date: dt.date, time: dt.time) -> Dict[str, Pillar]:
    components = {
        "year": date.year,
        "month": date.month,
        "day": date.day,
        "hour": time.hour,
    }
    pillars: Dict[str, Pillar] = {}
    for key in PILLAR_NAMES:
        value = components[key]
        branch = branch_for(value)
        pillars[key] = Pillar(stem=stem_for(value), branch=branch, hidden_stems=tuple(hidden_stems_of(branch)))
    return pillars


def _weighted(pillars: Dict[str, Pillar], attr: str) -> Dict[str, float]:
    counts: Dict[str, float] = {}
    for key in PILLAR_NAMES:
        pillar = pillars[key]
        primary = getattr(pillar.stem, attr)
        counts[primary] = counts.get(primary, 0.0) + 1.0
        for hidden in pillar.hidden_stems:
            v = getattr(hidden, attr)
            counts[v] = counts.get(v, 0.0) + HIDDEN_STEM_WEIGHT
    return counts


def polarity_balance(pillars: Dict[str, Pillar]) -> PolarityBalance:
    pct = normalize_percentages(_weighted(pillars, "polarity"), POLARITIES)
    yin, yang = pct["Yin"], pct["Yang"]
    if abs(yin - yang) > DOMINANCE_THRESHOLD:
        dominant = "Yin" if yin > yang else "Yang"
    else:
        dominant = BALANCED
    return PolarityBalance(yin=yin, yang=yang, dominant=dominant)


def element_distribution(pillars: Dict[str, Pillar]) -> Dict[str, int]:
    return normalize_percentages(_weighted(pillars, "element"), ELEMENTS)


def compute_profile(
    name: str,
    date: DateLike,
    time: TimeLike,
    city: str,
    timezone: str,
) -> AstrologicalProfile:
    subject = BirthSubject.from_strings(name, date, time, city, timezone)
    return profile_for(subject)


def profile_for(subject: BirthSubject) -> AstrologicalProfile:
    # Components are taken from the local wall-clock timestamp as given;
    # the timezone is carried as a label only.
    pillars = build_pillars(subject.date, subject.time)
    day_master = pillars["day"].stem
    return AstrologicalProfile(
        subject=subject,
        pillars=pillars,
        day_master=day_master,
        polarity_balance=polarity_balance(pillars),
        element_distribution=element_distribution(pillars),
        favorable_elements=list(FAVORABLE_ELEMENTS.get(day_master.element, [])),
        unfavorable_elements=list(UNFAVORABLE_ELEMENTS.get(day_master.element, [])),
    )
