"""
Pytest configuration and fixtures.

Every test gets its own SQLite file under tmp_path; external providers are
replaced by fakes passed through the constructors.
"""
import datetime as dt
import json
import threading
from typing import Any, Dict, List, Optional

import pytest

from db.session import init_db, make_engine, make_session_factory
from db.store import Store
from services.ai_agent_services import ProviderResponseError, TextSynthesizer
from services.image_services import FalImageProvider
from services.job_queue import BackgroundJobQueue
from services.speech_services import SpeechService, SpeechSynthesisError
from settings import ProviderConfig


def make_analysis(score: int = 78) -> Dict[str, Any]:
    return {
        "score": score,
        "overall_compatibility": "A steady pairing with complementary instincts.",
        "categories": {
            "communication": 80,
            "decision_style": 70,
            "teamwork": 85,
            "leadership_harmony": 75,
        },
        "strengths": ["Shared patience", "Clear roles"],
        "challenges": ["Different pace"],
        "summary": "Good fit with some pacing work.",
        "recommendations": {
            "communication_style": {"do": ["Be specific"], "dont": ["Rush decisions"]},
            "effective_work_approach": ["Weekly check-ins"],
            "motivators": ["Ownership"],
            "demotivators": ["Micromanagement"],
            "interview_focus": {"areas": ["Autonomy"], "suggested_questions": ["How do you plan a week?"]},
        },
        "yin_yang_balance": {
            "subject_a": "Yang",
            "subject_b": "Balanced",
            "compatibility_note": "Yang drive meets a balanced partner.",
        },
        "five_elements": {
            "subject_a_primary": "Earth",
            "subject_b_primary": "Water",
            "interaction": "Earth channels Water.",
        },
    }


class FakeTextProvider:
    """Returns queued responses in order; an Exception in the queue is raised instead."""

    def __init__(self, name: str, responses: Optional[List[Any]] = None, default: Any = None):
        self.name = name
        self._responses = list(responses or [])
        self._default = default
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def complete(self, prompt: str, *, system: Optional[str] = None, response_format: str = "json") -> str:
        with self._lock:
            self.calls.append({"prompt": prompt, "system": system, "response_format": response_format})
            item = self._responses.pop(0) if self._responses else self._default
        if isinstance(item, Exception):
            raise item
        if item is None:
            raise ProviderResponseError(f"{self.name} has nothing to say")
        return item


class FakeImageClient:
    def __init__(self, result: Any = None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def run(self, model: str, arguments: Dict[str, Any], timeout: Optional[float] = None):
        self.calls.append({"model": model, "arguments": arguments, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.result


class FakeSpeechClient:
    def __init__(self, fail_models: Optional[List[str]] = None, audio: bytes = b"ID3-fake-audio"):
        self.fail_models = set(fail_models or [])
        self.audio = audio
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def synthesize_speech(self, text, voice_id, voice_settings, model_id) -> bytes:
        with self._lock:
            self.calls.append({"text": text, "voice_id": voice_id, "model_id": model_id})
        if model_id in self.fail_models:
            raise SpeechSynthesisError(f"{model_id} unavailable")
        return self.audio

    def close(self) -> None:
        pass


@pytest.fixture
def analysis_json() -> str:
    return json.dumps(make_analysis())


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig()


@pytest.fixture
def store(tmp_path) -> Store:
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    yield Store(make_session_factory(engine))
    engine.dispose()


@pytest.fixture
def jobs():
    queue = BackgroundJobQueue(max_workers=2)
    yield queue
    queue.shutdown(wait_for_jobs=True)


@pytest.fixture
def manager(store) -> Dict[str, Any]:
    return store.add_subject(
        name="Amit",
        kind="person",
        birth_date=dt.date(1990, 5, 15),
        birth_time="08:30",
        city="Mumbai, IN",
        timezone="Asia/Kolkata",
    )


@pytest.fixture
def candidate(store) -> Dict[str, Any]:
    return store.add_subject(
        name="Riya",
        kind="person",
        birth_date=dt.date(1993, 2, 20),
        birth_time="06:10",
        city="Delhi, IN",
        timezone="Asia/Kolkata",
    )


@pytest.fixture
def company(store) -> Dict[str, Any]:
    return store.add_subject(name="Acme Labs", kind="organization", birth_date=dt.date(2012, 3, 1))


@pytest.fixture
def synthesizer(analysis_json) -> TextSynthesizer:
    return TextSynthesizer([FakeTextProvider("primary", default=analysis_json)])


@pytest.fixture
def unconfigured_image() -> FalImageProvider:
    return FalImageProvider(api_key=None)


@pytest.fixture
def speech(provider_config) -> SpeechService:
    return SpeechService(provider_config, client=FakeSpeechClient())
