"""
Compatibility synthesis for a manager and a candidate or company.

Both kinds share one pipeline: build the two profiles, assemble the request,
run it through the text synthesizer with a strict shape check, then merge the
deterministic profile figures into the accepted analysis.
"""
from __future__ import annotations
import datetime as dt
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from astro_core.pillars import AstrologicalProfile, BirthSubject, profile_for
from schemas import CompatibilityAnalysis
from services.ai_agent_services import AnalysisShapeError, SubjectInputError, TextSynthesizer
from services.ai_prompt_service import build_compatibility_request
from utils.text_utils import strip_code_fences

logger = logging.getLogger(__name__)

DEFAULT_FOUNDING_TIME = dt.time(12, 0)


class MatchKind(str, Enum):
    PERSON = "person"
    ORGANIZATION = "organization"


@dataclass(frozen=True)
class CompatibilityResult:
    score: int
    analysis: Dict[str, Any]


def _parse_date(value: Any) -> dt.date:
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value).strip())


def _parse_time(value: Any) -> dt.time:
    if isinstance(value, dt.time):
        return value
    return dt.time.fromisoformat(str(value).strip())


def subject_from_row(row: Mapping[str, Any], fallback: Optional[BirthSubject] = None) -> BirthSubject:
    """Build a ``BirthSubject`` from a stored subject row.

    Organizations use their founding data: a missing time reads as 12:00 and a
    missing date, city or timezone is taken from ``fallback`` (subject A).
    """
    is_org = row.get("kind") == MatchKind.ORGANIZATION.value
    name = row.get("name") or ""
    raw_date = row.get("birth_date")
    raw_time = row.get("birth_time")
    city = row.get("city")
    tz = row.get("timezone")
    if is_org and fallback is not None:
        raw_date = raw_date or fallback.date
        city = city or fallback.city
        tz = tz or fallback.timezone
    if is_org and not raw_time:
        raw_time = DEFAULT_FOUNDING_TIME
    if not raw_date or not raw_time:
        raise SubjectInputError(f"Subject {row.get('id') or name!r} has no usable birth date/time")
    try:
        return BirthSubject(
            name=name,
            date=_parse_date(raw_date),
            time=_parse_time(raw_time),
            city=city or "",
            timezone=tz or "",
        )
    except ValueError as exc:
        raise SubjectInputError(f"Malformed birth data for {name!r}: {exc}") from exc


def parse_analysis(raw: str) -> Dict[str, Any]:
    """Parse provider text into a validated analysis dict, or raise ``AnalysisShapeError``."""
    text = strip_code_fences(raw or "")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AnalysisShapeError(f"Response is not JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise AnalysisShapeError("Response JSON is not an object")
    try:
        CompatibilityAnalysis.model_validate(payload)
    except ValidationError as exc:
        raise AnalysisShapeError(f"Response JSON has the wrong shape: {exc.error_count()} error(s)") from exc
    return payload


def attach_profiles(
    analysis: Dict[str, Any],
    profile_a: AstrologicalProfile,
    profile_b: AstrologicalProfile,
) -> Dict[str, Any]:
    merged = dict(analysis)
    merged["profiles"] = {
        "subject_a": profile_a.to_dict(),
        "subject_b": profile_b.to_dict(),
    }
    return merged


def merge_analysis(raw: str, profile_a: AstrologicalProfile, profile_b: AstrologicalProfile) -> Dict[str, Any]:
    return attach_profiles(parse_analysis(raw), profile_a, profile_b)


def compute_compatibility(
    subject_a: BirthSubject,
    subject_b: BirthSubject,
    kind: MatchKind,
    synthesizer: TextSynthesizer,
    context: Optional[str] = None,
) -> CompatibilityResult:
    kind = MatchKind(kind)
    profile_a = profile_for(subject_a)
    profile_b = profile_for(subject_b)
    request = build_compatibility_request(profile_a, profile_b, kind.value, context)
    analysis = synthesizer.synthesize(request, lambda raw: merge_analysis(raw, profile_a, profile_b))
    score = int(analysis["score"])
    logger.info("compatibility_computed", extra={"kind": kind.value, "score": score})
    return CompatibilityResult(score=score, analysis=analysis)
