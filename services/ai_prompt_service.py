from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

from astro_core.pillars import AstrologicalProfile
from card_utils.deck import SpiritCard

ORGANIZATION = "organization"


@dataclass(frozen=True)
class AnalysisRequest:
    """Provider-agnostic request: a system instruction, the user prompt and the expected format."""
    system: str
    prompt: str
    response_format: str = "json"  # json | text


ANALYSIS_JSON_SHAPE = """{
  "score": <overall score 0-100>,
  "overall_compatibility": "<detailed 2-3 paragraph description>",
  "categories": {
    "communication": <score 0-100>,
    "decision_style": <score 0-100>,
    "teamwork": <score 0-100>,
    "leadership_harmony": <score 0-100>
  },
  "strengths": ["<strength 1>", "<strength 2>", ...],
  "challenges": ["<challenge 1>", "<challenge 2>", ...],
  "summary": "<2-3 sentence executive summary>",
  "recommendations": {
    "communication_style": {
      "do": ["<do 1>", "<do 2>", "<do 3>"],
      "dont": ["<dont 1>", "<dont 2>", "<dont 3>"]
    },
    "effective_work_approach": ["<approach 1>", "<approach 2>", "<approach 3>"],
    "motivators": ["<motivator 1>", "<motivator 2>", "<motivator 3>"],
    "demotivators": ["<demotivator 1>", "<demotivator 2>", "<demotivator 3>"],
    "interview_focus": {
      "areas": ["<area 1>", "<area 2>", "<area 3>"],
      "suggested_questions": ["<question 1>", "<question 2>", "<question 3>"]
    }
  },
  "yin_yang_balance": {
    "subject_a": "<Yin, Yang or Balanced>",
    "subject_b": "<Yin, Yang or Balanced>",
    "compatibility_note": "<brief note on how their energies interact>"
  },
  "five_elements": {
    "subject_a_primary": "<primary element>",
    "subject_b_primary": "<primary element>",
    "interaction": "<how these elements interact in a work context>"
  }
}"""


def _labels(kind: str):
    return ("Manager", "Company") if kind == ORGANIZATION else ("Manager", "Candidate")


def get_system_prompt_compatibility(kind: str) -> str:
    if kind == ORGANIZATION:
        return (
            "You are an expert in Four Pillars (BaZi) astrology and organizational alignment. "
            "Always reply with JSON."
        )
    return (
        "You are an expert in Four Pillars (BaZi) astrology and workplace compatibility analysis. "
        "Always respond with valid JSON."
    )


def _profile_block(label: str, profile: AstrologicalProfile, founding: bool = False) -> str:
    subject = profile.subject
    pb = profile.polarity_balance
    dm = profile.day_master
    dist = profile.element_distribution
    date_label = "Founding Date" if founding else "Date of Birth"
    time_label = "Founding Time" if founding else "Birth Time"
    return f"""{label}:
- Name: {subject.name}
- {date_label}: {subject.date.isoformat()}
- {time_label}: {subject.time.strftime("%H:%M")}
- City: {subject.city}
- Timezone: {subject.timezone}
- Four Pillars Analysis:
  - Yin-Yang: {pb.yin}% Yin, {pb.yang}% Yang ({pb.dominant} dominant)
  - Day Master: {dm.element} {dm.polarity}
  - Five Elements: Wood {dist["Wood"]}%, Fire {dist["Fire"]}%, Earth {dist["Earth"]}%, Metal {dist["Metal"]}%, Water {dist["Water"]}%"""


def get_user_prompt_compatibility(
    profile_a: AstrologicalProfile,
    profile_b: AstrologicalProfile,
    kind: str,
    context: Optional[str] = None,
) -> str:
    label_a, label_b = _labels(kind)
    is_org = kind == ORGANIZATION
    relation = (
        "alignment between a manager and a company"
        if is_org
        else "compatibility between a manager and a candidate"
    )
    context_block = f"\nPrior notes from the manager (use as context, do not repeat verbatim):\n{context.strip()}\n" if context and context.strip() else ""

    return f"""Analyze the {relation} based on their birth data and Four Pillars calculations.

{_profile_block(label_a, profile_a)}

{_profile_block(label_b, profile_b, founding=is_org)}
{context_block}
Provide a comprehensive analysis including:

1. Overall compatibility score (0-100)
2. Four category ratings (0-100 each): Communication, Decision Style, Teamwork, Leadership Harmony
3. Key strengths in their working relationship (3-5 points)
4. Potential challenges to be aware of (3-5 points)
5. A narrative summary (2-3 sentences)
6. Yin-Yang balance analysis for both ("subject_a" is the {label_a}, "subject_b" is the {label_b})
7. Five Elements analysis (Wood, Fire, Earth, Metal, Water)
8. Detailed recommendations for the manager including:
   - Best communication style (do's and don'ts)
   - Most effective ways to work with this {label_b.lower()}
   - Motivators and demotivators
   - Interview focus areas and suggested questions

Return your analysis in JSON format with this exact structure:
{ANALYSIS_JSON_SHAPE}"""


def build_compatibility_request(
    profile_a: AstrologicalProfile,
    profile_b: AstrologicalProfile,
    kind: str,
    context: Optional[str] = None,
) -> AnalysisRequest:
    return AnalysisRequest(
        system=get_system_prompt_compatibility(kind),
        prompt=get_user_prompt_compatibility(profile_a, profile_b, kind, context),
        response_format="json",
    )


# --------------- Card readings ---------------
def get_system_prompt_reading(kind: str) -> str:
    if kind == ORGANIZATION:
        return (
            "You are a concise spirit guide addressing the hiring manager. Write 4-6 sentences total. "
            "Be direct, practical, and mystical but actionable. Tie advice to manager-company fit and "
            "organizational dynamics. No headings or lists."
        )
    return (
        "You are a mystical card reader who specializes in workplace compatibility and hiring decisions. "
        "Provide insightful, practical interpretations that blend symbolic wisdom with professional guidance."
    )


def has_ready_analysis(analysis: Optional[Dict[str, Any]]) -> bool:
    return bool(analysis) and bool(analysis.get("summary")) and isinstance(analysis.get("strengths"), list)


def _snapshot(score: int, analysis: Dict[str, Any]) -> str:
    return (
        f"Compatibility snapshot: score {score}%. Summary: {analysis.get('summary', '')}. "
        f"Top strengths: {', '.join(analysis.get('strengths') or [])}. "
        f"Key challenges: {', '.join(analysis.get('challenges') or [])}."
    )


def get_user_prompt_reading(
    card: SpiritCard,
    kind: str,
    subject_b_name: str,
    score: int = 0,
    analysis: Optional[Dict[str, Any]] = None,
) -> str:
    ready = has_ready_analysis(analysis)
    if kind == ORGANIZATION:
        snapshot = _snapshot(score, analysis or {}) if ready else "No analysis data is available."
        return (
            f'For the company "{subject_b_name}", the card drawn is "{card.name}".\n'
            f'Mantra: "{card.mantra}". Essence: {card.essence}. Keywords: {card.upright}.\n'
            f"{snapshot}\n"
            "Speak directly to me as the manager. Give a 4-6 sentence oracle reading that connects this card "
            "to our culture, pace, and expectations, and ends with one clear next step."
        )
    snapshot = _snapshot(score, analysis or {}) if ready else "No compatibility analysis is available yet."
    return f"""I've drawn the card "{card.name}" (meaning: {card.meaning}) in the context of a hiring decision about {subject_b_name}.

{snapshot}

Please provide a reading that:
1. Interprets what this card means for this specific hiring decision
2. Connects the card's energy to the compatibility dynamics
3. Offers guidance on how to proceed with this candidate
4. Keeps a mystical yet practical tone (3-4 paragraphs)"""


def build_reading_request(
    card: SpiritCard,
    kind: str,
    subject_b_name: str,
    score: int = 0,
    analysis: Optional[Dict[str, Any]] = None,
) -> AnalysisRequest:
    return AnalysisRequest(
        system=get_system_prompt_reading(kind),
        prompt=get_user_prompt_reading(card, kind, subject_b_name, score, analysis),
        response_format="text",
    )


def template_interpretation(card: SpiritCard, subject_b_name: str, analysis: Optional[Dict[str, Any]] = None) -> str:
    """Deterministic reading built only from static card fields and, when present, the analysis lists."""
    if has_ready_analysis(analysis):
        strengths = f" strengths ({', '.join(analysis.get('strengths') or [])})"
        challenges = f" and watch for {', '.join(analysis.get('challenges') or [])}"
    else:
        strengths = " your best instincts"
        challenges = " and watch for potential misalignments"
    return (
        f"{card.name} highlights {card.essence.lower()} in how you and {subject_b_name} operate. "
        f"{card.meaning} Make the most of{strengths}{challenges}. "
        f'Honor the mantra: "{card.mantra}" as you align expectations and pace.'
    )
