from __future__ import annotations

from dataclasses import asdict, dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

DECK_PATH = Path(__file__).with_name("cards.yaml")


class UnknownCardError(LookupError):
    """Raised when a card name is not part of the deck."""


@dataclass(frozen=True)
class SpiritCard:
    name: str
    mantra: str
    essence: str
    meaning: str
    upright: str
    affirmation: str
    image: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@lru_cache()
def load_deck(path: Path = DECK_PATH) -> Tuple[SpiritCard, ...]:
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or []
    return tuple(SpiritCard(**{k: str(v).strip() for k, v in row.items()}) for row in raw)


def list_cards() -> List[SpiritCard]:
    return list(load_deck())


def get_card(name: str) -> SpiritCard:
    wanted = (name or "").strip().lower()
    for card in load_deck():
        if card.name.lower() == wanted:
            return card
    raise UnknownCardError(f"Unknown card: {name!r}")
