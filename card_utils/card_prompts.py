from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

# Image prompt templates per spirit card. Keep these concise for fast generation.

BASE_STYLE = ", ".join([
    "tarot card, mystical, ethereal lighting, intricate linework, golden accents",
    "high detail, volumetric light, cinematic, soft bokeh",
    "hand-painted look, textured paper, rich color grading",
])

BASE_NEGATIVE = ", ".join([
    "lowres, blurry, noisy, pixelated, jpeg artifacts, watermark, signature",
    "extra limbs, deformed anatomy, text, logo, frame, border",
    "nsfw, gore, violence, disfigured, mutated, duplicate subject",
])

DEFAULT_CONCEPT = "mystical archetype in tarot card composition"

CARD_TO_CONCEPT: Dict[str, str] = {
    "Cow Spirit": "benevolent sacred cow in a meadow at golden hour, symbols of abundance and flow",
    "Emperor Spirit": "regal figure embodying structure and leadership, throne, geometric motifs, steady gaze",
    "Empress Spirit": "nurturing sovereign in a blooming garden, fertility, creation, flowing fabrics",
    "Hierophant Spirit": "wise mentor in sacred temple, candles, ritual objects, tradition and guidance",
    "High Priestess Spirit": "mystic oracle, crescent moon, veils, hidden knowledge, serene expression",
    "Horse Spirit": "majestic horse in motion, wind-swept mane, open plains, freedom and momentum",
    "Strength Spirit": "gentle strength, calm figure with guardian animal, compassion and courage",
    "Moon Spirit": "luminous moonlit scene, tides and cycles, dreamy atmosphere, intuition",
    "Sun Spirit": "radiant sun, warmth and clarity, joyful motifs, illumination and vitality",
    "Star Spirit": "cosmic starlight, guidance and hope, celestial symbols, tranquil night sky",
    "Phoenix Spirit": "phoenix rebirth in luminous embers, transformation, rising energy",
    "Wolf Spirit": "wise wolf, night forest, pack and community, instinct and balance",
}


@dataclass(frozen=True)
class PromptSpec:
    prompt: str
    negative: str


def get_prompt_for_card(card_name: str) -> PromptSpec:
    concept = CARD_TO_CONCEPT.get(card_name, DEFAULT_CONCEPT)
    return PromptSpec(prompt=f"{concept}, {BASE_STYLE}", negative=BASE_NEGATIVE)
