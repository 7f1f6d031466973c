from __future__ import annotations

from typing import Dict, List

# Static descriptive tables used to explain a computed profile.

ELEMENT_CHARACTERISTICS: Dict[str, Dict[str, List[str]]] = {
    "Wood": {
        "characteristics": ["growth-oriented", "creative", "flexible", "visionary"],
        "personality": ["innovative", "idealistic", "compassionate", "determined"],
        "workStyle": ["collaborative", "mentoring", "long-term planning", "team building"],
    },
    "Fire": {
        "characteristics": ["energetic", "passionate", "inspiring", "dynamic"],
        "personality": ["enthusiastic", "charismatic", "spontaneous", "optimistic"],
        "workStyle": ["motivating", "presentation-focused", "quick decisions", "inspiring others"],
    },
    "Earth": {
        "characteristics": ["stable", "practical", "reliable", "grounded"],
        "personality": ["patient", "methodical", "loyal", "consistent"],
        "workStyle": ["systematic", "detail-oriented", "process improvement", "steady progress"],
    },
    "Metal": {
        "characteristics": ["precise", "analytical", "structured", "efficient"],
        "personality": ["disciplined", "focused", "perfectionist", "logical"],
        "workStyle": ["quality-focused", "systematic", "efficiency-driven", "standards-oriented"],
    },
    "Water": {
        "characteristics": ["adaptable", "intuitive", "flowing", "resourceful"],
        "personality": ["flexible", "empathetic", "strategic", "persistent"],
        "workStyle": ["adaptive", "research-focused", "strategic thinking", "relationship building"],
    },
}

ELEMENT_CHALLENGES: Dict[str, List[str]] = {
    "Wood": ["Can be overly idealistic", "May struggle with rigid structures", "Tends to take on too much"],
    "Fire": ["Can be impulsive", "May lack patience for details", "Can burn out quickly"],
    "Earth": ["Can be resistant to change", "May move too slowly", "Tends to overthink decisions"],
    "Metal": ["Can be overly critical", "May lack flexibility", "Tends to be perfectionist"],
    "Water": ["Can be indecisive", "May avoid confrontation", "Tends to overthink"],
}

ELEMENT_COMMUNICATION: Dict[str, List[str]] = {
    "Wood": ["Visual and creative", "Storytelling approach", "Inspirational language"],
    "Fire": ["Enthusiastic and energetic", "Direct and passionate", "Motivational speaking"],
    "Earth": ["Practical and methodical", "Step-by-step explanations", "Supportive and patient"],
    "Metal": ["Precise and analytical", "Data-driven presentations", "Structured and logical"],
    "Water": ["Adaptive and flexible", "Intuitive understanding", "Diplomatic and tactful"],
}

POLARITY_MODIFIERS: Dict[str, Dict[str, List[str]]] = {
    "Yin": {
        "traits": ["introspective", "reflective", "intuitive", "adaptable"],
        "workStyle": ["collaborative", "supportive", "patient", "methodical"],
        "communication": ["Collaborative", "Listening-focused", "Consensus-building"],
    },
    "Yang": {
        "traits": ["assertive", "direct", "action-oriented", "decisive"],
        "workStyle": ["leadership-focused", "results-driven", "energetic", "pioneering"],
        "communication": ["Direct", "Action-oriented", "Results-focused"],
    },
}

POLARITY_DESCRIPTIONS: Dict[str, str] = {
    "Yin": (
        "You have a Yin-dominant energy, which brings introspection, intuition, and a collaborative "
        "approach to work. You excel in supportive roles and prefer to work behind the scenes."
    ),
    "Yang": (
        "You have a Yang-dominant energy, which brings assertiveness, leadership qualities, and a "
        "results-driven approach. You excel in leadership positions and direct action."
    ),
    "Balanced": (
        "You have a well-balanced Yin-Yang energy, allowing you to adapt between supportive and "
        "leadership roles as needed. You can work effectively in various team dynamics."
    ),
}

PILLAR_DESCRIPTIONS: Dict[str, str] = {
    "year": (
        "The Year Pillar represents your public image, reputation, and how others perceive you in "
        "professional settings."
    ),
    "month": (
        "The Month Pillar represents authority figures and your relationship with management, and "
        "how you handle hierarchical structures."
    ),
    "day": (
        "The Day Pillar represents your core self and how you approach work. It is the most "
        "important pillar for understanding work style and decision-making."
    ),
    "hour": (
        "The Hour Pillar represents creativity and self-expression, and influences how you present "
        "ideas to others."
    ),
}


def day_master_personality(element: str, polarity: str) -> Dict[str, List[str]]:
    """Personality insight for a day master; unknown elements read as Earth."""
    base = ELEMENT_CHARACTERISTICS.get(element) or ELEMENT_CHARACTERISTICS["Earth"]
    modifier = POLARITY_MODIFIERS.get(polarity, POLARITY_MODIFIERS["Yang"])
    return {
        "traits": base["personality"] + modifier["traits"],
        "strengths": list(base["characteristics"]),
        "challenges": list(ELEMENT_CHALLENGES.get(element, [])),
        "workStyle": base["workStyle"] + modifier["workStyle"],
        "communicationStyle": ELEMENT_COMMUNICATION.get(element, []) + modifier["communication"],
    }


def polarity_description(dominant: str) -> str:
    return POLARITY_DESCRIPTIONS.get(dominant, POLARITY_DESCRIPTIONS["Balanced"])


def favorable_elements_description(favorable: List[str]) -> str:
    if not favorable:
        return "No specific favorable elements identified."
    return (
        f"Your favorable elements are {' and '.join(favorable)}. These elements support your natural "
        "strengths and help you thrive in your work environment."
    )


def unfavorable_elements_description(unfavorable: List[str]) -> str:
    if not unfavorable:
        return "No specific unfavorable elements identified."
    return (
        f"Elements to be mindful of include {' and '.join(unfavorable)}. While not necessarily negative, "
        "these elements may require more effort to work with effectively."
    )


def profile_insights(profile: Dict) -> Dict:
    """Bundle the descriptive texts for a profile dict produced by ``AstrologicalProfile.to_dict``."""
    dm = profile["dayMaster"]
    return {
        "dayMaster": day_master_personality(dm["element"], dm["polarity"]),
        "polarity": polarity_description(profile["polarityBalance"]["dominant"]),
        "pillars": dict(PILLAR_DESCRIPTIONS),
        "favorable": favorable_elements_description(profile["favorableElements"]),
        "unfavorable": unfavorable_elements_description(profile["unfavorableElements"]),
    }
