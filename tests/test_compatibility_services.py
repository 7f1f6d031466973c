import datetime as dt
import json

import pytest

from astro_core.pillars import BirthSubject, profile_for
from conftest import FakeTextProvider, make_analysis
from services.ai_agent_services import AnalysisShapeError, SubjectInputError, TextSynthesizer
from services.ai_prompt_service import build_compatibility_request, template_interpretation
from services.compatibility_services import (
    MatchKind,
    compute_compatibility,
    merge_analysis,
    parse_analysis,
    subject_from_row,
)
from card_utils.deck import get_card

MANAGER = BirthSubject.from_strings("Amit", "1990-05-15", "08:30", "Mumbai, IN", "Asia/Kolkata")
CANDIDATE = BirthSubject.from_strings("Riya", "1993-02-20", "06:10", "Delhi, IN", "Asia/Kolkata")


def test_parse_analysis_strips_code_fences():
    raw = "```json\n" + json.dumps(make_analysis()) + "\n```"
    assert parse_analysis(raw)["score"] == 78


@pytest.mark.parametrize(
    "mutate",
    [
        lambda a: a.update(score=140),
        lambda a: a["categories"].update(teamwork="high"),
        lambda a: a.pop("recommendations"),
        lambda a: a.update(strengths=[]),
    ],
)
def test_parse_analysis_rejects_bad_shapes(mutate):
    analysis = make_analysis()
    mutate(analysis)
    with pytest.raises(AnalysisShapeError):
        parse_analysis(json.dumps(analysis))


def test_parse_analysis_rejects_non_object():
    with pytest.raises(AnalysisShapeError):
        parse_analysis("[1, 2, 3]")


def test_merge_injects_exact_profiles():
    pa, pb = profile_for(MANAGER), profile_for(CANDIDATE)
    merged = merge_analysis(json.dumps(make_analysis()), pa, pb)
    assert merged["profiles"]["subject_a"] == pa.to_dict()
    assert merged["profiles"]["subject_b"]["polarityBalance"] == pb.to_dict()["polarityBalance"]
    assert merged["summary"] == make_analysis()["summary"]


def test_organization_defaults_to_noon_and_manager_location():
    row = {"id": "c1", "kind": "organization", "name": "Acme Labs", "birth_date": "2012-03-01",
           "birth_time": None, "city": None, "timezone": None}
    subject = subject_from_row(row, fallback=MANAGER)
    assert subject.time == dt.time(12, 0)
    assert subject.city == "Mumbai, IN"
    assert subject.timezone == "Asia/Kolkata"


def test_organization_without_founding_date_uses_manager_date():
    row = {"id": "c1", "kind": "organization", "name": "Acme Labs", "birth_date": None,
           "birth_time": None, "city": "Berlin, DE", "timezone": "Europe/Berlin"}
    subject = subject_from_row(row, fallback=MANAGER)
    assert subject.date == MANAGER.date
    assert subject.city == "Berlin, DE"


def test_person_without_time_is_an_input_error():
    row = {"id": "p1", "kind": "person", "name": "Nobody", "birth_date": "1990-01-01",
           "birth_time": None, "city": "X", "timezone": "UTC"}
    with pytest.raises(SubjectInputError):
        subject_from_row(row)


def test_person_prompt_mentions_both_profiles_and_shape():
    request = build_compatibility_request(profile_for(MANAGER), profile_for(CANDIDATE), "person", context="Met twice.")
    assert request.response_format == "json"
    assert "Manager:" in request.prompt and "Candidate:" in request.prompt
    assert "61% Yang" in request.prompt
    assert "Met twice." in request.prompt
    assert '"leadership_harmony"' in request.prompt


def test_organization_prompt_uses_founding_labels():
    company = BirthSubject.from_strings("Acme Labs", "2012-03-01", "12:00", "Berlin, DE", "Europe/Berlin")
    request = build_compatibility_request(profile_for(MANAGER), profile_for(company), "organization")
    assert "Company:" in request.prompt
    assert "Founding Date: 2012-03-01" in request.prompt
    assert "organizational alignment" in request.system


def test_compute_compatibility_returns_score_and_profiles(analysis_json):
    provider = FakeTextProvider("primary", default=analysis_json)
    result = compute_compatibility(MANAGER, CANDIDATE, MatchKind.PERSON, TextSynthesizer([provider]))
    assert result.score == 78
    assert set(result.analysis["profiles"]) == {"subject_a", "subject_b"}
    assert "Candidate:" in provider.calls[0]["prompt"]


def test_template_interpretation_without_analysis():
    card = get_card("Wolf Spirit")
    text = template_interpretation(card, "Riya")
    assert text.startswith("Wolf Spirit highlights")
    assert "your best instincts" in text
    assert card.mantra in text


def test_template_interpretation_with_analysis():
    text = template_interpretation(get_card("Sun Spirit"), "Riya", make_analysis())
    assert "strengths (Shared patience, Clear roles)" in text
    assert "watch for Different pace" in text
