from __future__ import annotations
import datetime as dt
import re
from typing import List, Optional, Dict, Any, Literal

import pytz
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator


# --------- Common ---------
class ErrorDetail(BaseModel):
    field: Optional[str] = None
    issue: Optional[str] = None


class ErrorEnvelope(BaseModel):
    code: str = Field(default="SERVER_ERROR")
    message: str
    details: Optional[List[ErrorDetail]] = None


class ErrorResponse(BaseModel):
    error: ErrorEnvelope


_TIME_RE = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")


def _check_date(value: str) -> str:
    dt.date.fromisoformat(value.strip())
    return value.strip()


def _check_time(value: str) -> str:
    value = value.strip()
    if not _TIME_RE.match(value):
        raise ValueError("Time must be HH:MM or HH:MM:SS")
    dt.time.fromisoformat(value)
    return value


def _check_timezone(value: str) -> str:
    try:
        pytz.timezone(value.strip())
    except pytz.UnknownTimeZoneError as exc:
        raise ValueError(f"Unknown IANA timezone: {value}") from exc
    return value.strip()


# --------- Inputs ---------
class BirthPayload(BaseModel):
    """Basic birth details used for profile computation."""
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "name": "Amit",
                "dateOfBirth": "1990-05-15",
                "timeOfBirth": "08:30",
                "placeOfBirth": "Mumbai, IN",
                "timeZone": "Asia/Kolkata",
            }
        ]
    })

    name: str = Field(..., min_length=1, description="Full name of the person.", examples=["Amit"])
    dateOfBirth: str = Field(..., description="Birth date in ISO format YYYY-MM-DD.", examples=["1990-05-15"])
    timeOfBirth: str = Field(..., description="Birth time in 24h format HH:MM or HH:MM:SS.", examples=["08:30"])
    placeOfBirth: str = Field(..., description="Human-readable place name (city, country).", examples=["Mumbai, IN"])
    timeZone: str = Field(..., description="IANA timezone for the place of birth.", examples=["Asia/Kolkata"])

    @field_validator("dateOfBirth")
    @classmethod
    def check_date(cls, v: str) -> str:
        return _check_date(v)

    @field_validator("timeOfBirth")
    @classmethod
    def check_time(cls, v: str) -> str:
        return _check_time(v)

    @field_validator("timeZone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        return _check_timezone(v)


class SubjectIn(BaseModel):
    """A person or organization whose birth (founding) data can be matched."""
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {"kind": "person", "name": "Riya", "dateOfBirth": "1993-02-20", "timeOfBirth": "06:10",
             "placeOfBirth": "Delhi, IN", "timeZone": "Asia/Kolkata"},
            {"kind": "organization", "name": "Acme Labs", "dateOfBirth": "2012-03-01",
             "placeOfBirth": "Berlin, DE", "timeZone": "Europe/Berlin"},
        ]
    })

    kind: Literal["person", "organization"] = "person"
    name: str = Field(..., min_length=1)
    dateOfBirth: Optional[str] = Field(default=None, description="Birth or founding date, YYYY-MM-DD.")
    timeOfBirth: Optional[str] = Field(default=None, description="Birth or founding time, HH:MM[:SS].")
    placeOfBirth: Optional[str] = None
    timeZone: Optional[str] = None

    @field_validator("dateOfBirth")
    @classmethod
    def check_date(cls, v: Optional[str]) -> Optional[str]:
        return _check_date(v) if v else None

    @field_validator("timeOfBirth")
    @classmethod
    def check_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v) if v else None

    @field_validator("timeZone")
    @classmethod
    def check_timezone(cls, v: Optional[str]) -> Optional[str]:
        return _check_timezone(v) if v else None

    @model_validator(mode="after")
    def check_person_is_complete(self) -> "SubjectIn":
        if self.kind == "person":
            missing = [k for k in ("dateOfBirth", "timeOfBirth", "placeOfBirth", "timeZone") if not getattr(self, k)]
            if missing:
                raise ValueError(f"Person subjects require: {', '.join(missing)}")
        return self


class MatchRequest(BaseModel):
    subjectAId: str = Field(..., description="Subject A (the manager).")
    subjectBId: str = Field(..., description="Subject B (candidate or company).")
    mode: Literal["eager", "background"] = "background"
    context: Optional[str] = Field(default=None, description="Optional prior notes forwarded to the analysis prompt.")


class ReadingRequest(BaseModel):
    cardName: str = Field(..., min_length=1, examples=["Wolf Spirit"])
    prefetchAudio: bool = False


# --------- Profile outputs ---------
class HiddenStemOut(BaseModel):
    stem: str
    element: str
    polarity: str


class PillarOut(BaseModel):
    stem: str
    stemHanzi: str
    stemElement: str
    stemPolarity: str
    branch: str
    branchHanzi: str
    branchElement: str
    branchPolarity: str
    hiddenStems: List[HiddenStemOut]


class PolarityBalanceOut(BaseModel):
    yin: int
    yang: int
    dominant: str


class DayMasterOut(BaseModel):
    stem: str
    element: str
    polarity: str


class ProfileData(BaseModel):
    name: str
    birth: Dict[str, str]
    pillars: Dict[str, PillarOut]
    dayMaster: DayMasterOut
    polarityBalance: PolarityBalanceOut
    elementDistribution: Dict[str, int]
    favorableElements: List[str]
    unfavorableElements: List[str]


class ProfileOut(BaseModel):
    data: ProfileData


class ProfileInsightsData(BaseModel):
    profile: ProfileData
    insights: Dict[str, Any]


class ProfileInsightsOut(BaseModel):
    data: ProfileInsightsData


# --------- Subjects / matches / readings ---------
class SubjectData(BaseModel):
    id: str
    kind: str
    name: str
    dateOfBirth: Optional[str] = None
    timeOfBirth: Optional[str] = None
    placeOfBirth: Optional[str] = None
    timeZone: Optional[str] = None


class SubjectOut(BaseModel):
    data: SubjectData


class MatchData(BaseModel):
    id: str
    subjectAId: str
    subjectBId: str
    kind: str
    status: str  # pending | ready | failed
    score: int
    analysis: Dict[str, Any]
    error: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class MatchOut(BaseModel):
    data: MatchData


class CardData(BaseModel):
    name: str
    mantra: str
    essence: str
    meaning: str
    upright: str
    affirmation: str
    image: str


class CardsOut(BaseModel):
    data: List[CardData]


class ReadingData(BaseModel):
    id: str
    matchId: str
    cardName: str
    meaning: str
    interpretation: str
    interpretationSource: str  # ai | template
    imageUrl: str
    imageSource: str  # generated | static
    audioReady: bool
    createdAt: Optional[str] = None


class ReadingOut(BaseModel):
    data: ReadingData


class AudioData(BaseModel):
    audioData: str
    mimeType: str
    cached: bool


class AudioOut(BaseModel):
    data: AudioData


# --------- AI analysis payload (validated provider output) ---------
Score = int


class CategoryScores(BaseModel):
    communication: Score = Field(..., ge=0, le=100)
    decision_style: Score = Field(..., ge=0, le=100)
    teamwork: Score = Field(..., ge=0, le=100)
    leadership_harmony: Score = Field(..., ge=0, le=100)


class CommunicationStyle(BaseModel):
    do: List[str]
    dont: List[str]


class InterviewFocus(BaseModel):
    areas: List[str]
    suggested_questions: List[str] = Field(default_factory=list)


class Recommendations(BaseModel):
    communication_style: CommunicationStyle
    effective_work_approach: List[str]
    motivators: List[str]
    demotivators: List[str]
    interview_focus: InterviewFocus


class PolarityNote(BaseModel):
    subject_a: str
    subject_b: str
    compatibility_note: str = Field(..., min_length=1)


class ElementNote(BaseModel):
    subject_a_primary: str
    subject_b_primary: str
    interaction: str = Field(..., min_length=1)


class CompatibilityAnalysis(BaseModel):
    """Shape every provider response must satisfy before it is accepted."""
    model_config = ConfigDict(extra="ignore")

    score: Score = Field(..., ge=0, le=100)
    overall_compatibility: str = Field(..., min_length=1)
    categories: CategoryScores
    strengths: List[str] = Field(..., min_length=1)
    challenges: List[str] = Field(..., min_length=1)
    summary: str = Field(..., min_length=1)
    recommendations: Recommendations
    yin_yang_balance: PolarityNote
    five_elements: ElementNote
