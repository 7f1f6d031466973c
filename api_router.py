from __future__ import annotations
import datetime as dt
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status

from astro_core.interpretation import profile_insights
from astro_core.pillars import compute_profile, profile_for
from card_utils.deck import list_cards
from deps import ServiceContainer, get_container
from schemas import (
    AudioData, AudioOut,
    BirthPayload,
    CardData, CardsOut,
    MatchData, MatchOut, MatchRequest,
    ProfileData, ProfileInsightsData, ProfileInsightsOut, ProfileOut,
    ReadingData, ReadingOut, ReadingRequest,
    SubjectData, SubjectIn, SubjectOut,
)
from services.compatibility_services import subject_from_row

router = APIRouter(prefix="/api")


# --------------------- Helpers ---------------------
def _subject_data(row: Dict[str, Any]) -> SubjectData:
    return SubjectData(
        id=row["id"],
        kind=row["kind"],
        name=row["name"],
        dateOfBirth=row["birth_date"],
        timeOfBirth=row["birth_time"],
        placeOfBirth=row["city"],
        timeZone=row["timezone"],
    )


def _match_data(row: Dict[str, Any]) -> MatchData:
    return MatchData(
        id=row["id"],
        subjectAId=row["subject_a_id"],
        subjectBId=row["subject_b_id"],
        kind=row["kind"],
        status=row["status"],
        score=row["score"],
        analysis=row["analysis"],
        error=row["error"],
        createdAt=row["created_at"],
        updatedAt=row["updated_at"],
    )


def _reading_data(row: Dict[str, Any]) -> ReadingData:
    return ReadingData(
        id=row["id"],
        matchId=row["match_id"],
        cardName=row["card_name"],
        meaning=row["meaning"],
        interpretation=row["interpretation"],
        interpretationSource=row["interpretation_source"],
        imageUrl=row["image_url"],
        imageSource=row["image_source"],
        audioReady=bool(row["audio_data"]),
        createdAt=row["created_at"],
    )


def _require_speech(container: ServiceContainer) -> None:
    if not container.speech.configured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Speech synthesis is not configured")


_BIRTH_EXAMPLE = {
    "sample": {
        "summary": "Sample",
        "value": {
            "name": "Amit",
            "dateOfBirth": "1990-05-15",
            "timeOfBirth": "08:30",
            "placeOfBirth": "Mumbai, IN",
            "timeZone": "Asia/Kolkata",
        },
    }
}


# --------------- Profile -----------------
@router.post("/profile/compute", response_model=ProfileOut, tags=["Profile"], summary="Compute Four Pillars profile")
def compute_profile_endpoint(payload: BirthPayload = Body(..., openapi_examples=_BIRTH_EXAMPLE)) -> ProfileOut:
    profile = compute_profile(
        payload.name,
        payload.dateOfBirth,
        payload.timeOfBirth,
        payload.placeOfBirth,
        payload.timeZone,
    )
    return ProfileOut(data=ProfileData(**profile.to_dict()))


@router.post("/profile/insights", response_model=ProfileInsightsOut, tags=["Profile"], summary="Profile with descriptive insights")
def profile_insights_endpoint(payload: BirthPayload = Body(..., openapi_examples=_BIRTH_EXAMPLE)) -> ProfileInsightsOut:
    profile = compute_profile(
        payload.name,
        payload.dateOfBirth,
        payload.timeOfBirth,
        payload.placeOfBirth,
        payload.timeZone,
    ).to_dict()
    return ProfileInsightsOut(data=ProfileInsightsData(profile=ProfileData(**profile), insights=profile_insights(profile)))


# --------------- Subjects -----------------
@router.post("/subjects", response_model=SubjectOut, status_code=status.HTTP_201_CREATED, tags=["Subjects"], summary="Register a person or organization")
def create_subject(payload: SubjectIn, container: ServiceContainer = Depends(get_container)) -> SubjectOut:
    row = container.store.add_subject(
        name=payload.name,
        kind=payload.kind,
        birth_date=dt.date.fromisoformat(payload.dateOfBirth) if payload.dateOfBirth else None,
        birth_time=payload.timeOfBirth,
        city=payload.placeOfBirth,
        timezone=payload.timeZone,
    )
    return SubjectOut(data=_subject_data(row))


@router.get("/subjects/{subject_id}", response_model=SubjectOut, tags=["Subjects"], summary="Get subject")
def get_subject(subject_id: str, container: ServiceContainer = Depends(get_container)) -> SubjectOut:
    return SubjectOut(data=_subject_data(container.store.get_subject(subject_id)))


@router.get("/subjects/{subject_id}/profile", response_model=ProfileOut, tags=["Subjects"], summary="Compute a stored subject's profile")
def get_subject_profile(subject_id: str, container: ServiceContainer = Depends(get_container)) -> ProfileOut:
    subject = subject_from_row(container.store.get_subject(subject_id))
    return ProfileOut(data=ProfileData(**profile_for(subject).to_dict()))


# --------------- Matches -----------------
@router.post("/matches", response_model=MatchOut, tags=["Matches"], summary="Create or reuse the compatibility match for a pair")
def create_match(
    response: Response,
    payload: MatchRequest = Body(
        ...,
        openapi_examples={
            "background": {
                "summary": "Return placeholder immediately",
                "value": {"subjectAId": "<manager-id>", "subjectBId": "<candidate-id>", "mode": "background"},
            },
            "eager": {
                "summary": "Wait for the analysis",
                "value": {"subjectAId": "<manager-id>", "subjectBId": "<company-id>", "mode": "eager"},
            },
        },
    ),
    container: ServiceContainer = Depends(get_container),
) -> MatchOut:
    if payload.mode == "eager":
        row = container.matches.create_match_eager(payload.subjectAId, payload.subjectBId, payload.context)
        return MatchOut(data=_match_data(row))
    row = container.matches.create_match_background(payload.subjectAId, payload.subjectBId, payload.context)
    if row["status"] != "ready":
        response.status_code = status.HTTP_202_ACCEPTED
    return MatchOut(data=_match_data(row))


@router.get("/matches/{match_id}", response_model=MatchOut, tags=["Matches"], summary="Get match (poll until ready)")
def get_match(match_id: str, container: ServiceContainer = Depends(get_container)) -> MatchOut:
    return MatchOut(data=_match_data(container.matches.get_match(match_id)))


@router.post("/matches/{match_id}/intro-audio", response_model=AudioOut, tags=["Readings"], summary="Narrated intro for the card draw")
def match_intro_audio(match_id: str, container: ServiceContainer = Depends(get_container)) -> AudioOut:
    _require_speech(container)
    asset = container.readings.intro_audio(match_id)
    return AudioOut(data=AudioData(audioData=asset.audio_b64, mimeType=asset.mime_type, cached=False))


# --------------- Cards & readings -----------------
@router.get("/cards", response_model=CardsOut, tags=["Readings"], summary="List spirit cards")
def get_cards() -> CardsOut:
    return CardsOut(data=[CardData(**card.to_dict()) for card in list_cards()])


@router.post("/matches/{match_id}/readings", response_model=ReadingOut, status_code=status.HTTP_201_CREATED, tags=["Readings"], summary="Draw a card for a match")
def create_reading(
    match_id: str,
    payload: ReadingRequest = Body(
        ...,
        openapi_examples={"sample": {"summary": "Sample", "value": {"cardName": "Wolf Spirit", "prefetchAudio": False}}},
    ),
    container: ServiceContainer = Depends(get_container),
) -> ReadingOut:
    row = container.readings.create_reading(match_id, payload.cardName, prefetch_audio=payload.prefetchAudio)
    return ReadingOut(data=_reading_data(row))


@router.get("/readings/{reading_id}", response_model=ReadingOut, tags=["Readings"], summary="Get reading")
def get_reading(reading_id: str, container: ServiceContainer = Depends(get_container)) -> ReadingOut:
    return ReadingOut(data=_reading_data(container.readings.get_reading(reading_id)))


@router.get("/readings/{reading_id}/audio", response_model=AudioOut, tags=["Readings"], summary="Get or synthesize reading audio")
def get_reading_audio(reading_id: str, container: ServiceContainer = Depends(get_container)) -> AudioOut:
    reading = container.readings.get_reading(reading_id)
    if not reading["audio_data"]:
        _require_speech(container)
    asset, cached = container.readings.ensure_audio(reading_id)
    return AudioOut(data=AudioData(audioData=asset.audio_b64, mimeType=asset.mime_type, cached=cached))
