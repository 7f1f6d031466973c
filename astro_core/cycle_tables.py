"""
Static cycle tables for the Four Pillars engine.

Ten heavenly stems and twelve earthly branches, each tagged with one of the
five elements and a polarity. Every branch also carries one to three hidden
stems, referenced by stem name.

The lookups here are intentionally plain modular indexing: callers pass a raw
calendar component (year, month, day or hour) and get ``value % 10`` /
``value % 12`` back. No lunisolar conversion happens anywhere in this package.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

ELEMENTS: Tuple[str, ...] = ("Wood", "Fire", "Earth", "Metal", "Water")
POLARITIES: Tuple[str, ...] = ("Yin", "Yang")


@dataclass(frozen=True)
class Stem:
    name: str
    hanzi: str
    element: str
    polarity: str


@dataclass(frozen=True)
class Branch:
    name: str
    hanzi: str
    element: str
    polarity: str
    hidden_stems: Tuple[str, ...]


HEAVENLY_STEMS: Tuple[Stem, ...] = (
    Stem("Jia", "甲", "Wood", "Yang"),
    Stem("Yi", "乙", "Wood", "Yin"),
    Stem("Bing", "丙", "Fire", "Yang"),
    Stem("Ding", "丁", "Fire", "Yin"),
    Stem("Wu", "戊", "Earth", "Yang"),
    Stem("Ji", "己", "Earth", "Yin"),
    Stem("Geng", "庚", "Metal", "Yang"),
    Stem("Xin", "辛", "Metal", "Yin"),
    Stem("Ren", "壬", "Water", "Yang"),
    Stem("Gui", "癸", "Water", "Yin"),
)

EARTHLY_BRANCHES: Tuple[Branch, ...] = (
    Branch("Zi", "子", "Water", "Yang", ("Gui",)),
    Branch("Chou", "丑", "Earth", "Yin", ("Ji", "Xin", "Gui")),
    Branch("Yin", "寅", "Wood", "Yang", ("Jia", "Bing", "Wu")),
    Branch("Mao", "卯", "Wood", "Yin", ("Yi",)),
    Branch("Chen", "辰", "Earth", "Yang", ("Wu", "Yi", "Gui")),
    Branch("Si", "巳", "Fire", "Yin", ("Bing", "Wu", "Geng")),
    Branch("Wu", "午", "Fire", "Yang", ("Ding", "Ji")),
    Branch("Wei", "未", "Earth", "Yin", ("Ji", "Ding", "Yi")),
    Branch("Shen", "申", "Metal", "Yang", ("Geng", "Ren", "Wu")),
    Branch("You", "酉", "Metal", "Yin", ("Xin",)),
    Branch("Xu", "戌", "Earth", "Yang", ("Wu", "Xin", "Ding")),
    Branch("Hai", "亥", "Water", "Yin", ("Ren", "Jia")),
)

STEMS_BY_NAME: Dict[str, Stem] = {s.name: s for s in HEAVENLY_STEMS}

# Keyed by day-master element.
FAVORABLE_ELEMENTS: Dict[str, List[str]] = {
    "Wood": ["Water", "Wood"],
    "Fire": ["Wood", "Fire"],
    "Earth": ["Fire", "Earth"],
    "Metal": ["Earth", "Metal"],
    "Water": ["Metal", "Water"],
}

UNFAVORABLE_ELEMENTS: Dict[str, List[str]] = {
    "Wood": ["Metal", "Fire"],
    "Fire": ["Water", "Metal"],
    "Earth": ["Wood", "Water"],
    "Metal": ["Fire", "Wood"],
    "Water": ["Earth", "Fire"],
}


def stem_for(value: int) -> Stem:
    return HEAVENLY_STEMS[value % 10]


def branch_for(value: int) -> Branch:
    return EARTHLY_BRANCHES[value % 12]


def hidden_stems_of(branch: Branch) -> List[Stem]:
    return [STEMS_BY_NAME[name] for name in branch.hidden_stems]
