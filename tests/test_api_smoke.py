import logging

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSpeechClient, FakeTextProvider
from deps import build_container
from main import create_app
from services.ai_agent_services import TextSynthesizer
from services.speech_services import SpeechService
from settings import ProviderConfig

PAYLOAD = {
    "name": "Amit",
    "dateOfBirth": "1990-05-15",
    "timeOfBirth": "08:30",
    "placeOfBirth": "Mumbai, IN",
    "timeZone": "Asia/Kolkata",
}


@pytest.fixture
def make_client(store, unconfigured_image):
    containers = []

    def _make(synthesizer, speech=None):
        container = build_container(
            config=ProviderConfig(),
            store=store,
            synthesizer=synthesizer,
            image_provider=unconfigured_image,
            speech=speech or SpeechService(ProviderConfig(), client=FakeSpeechClient()),
            static_base_url="https://cdn.example.com",
        )
        containers.append(container)
        return TestClient(create_app(container)), container

    yield _make
    for container in containers:
        container.shutdown()


@pytest.fixture
def api(make_client, synthesizer):
    client, container = make_client(synthesizer)
    with client:
        yield client, container


def _subject(client, **overrides):
    body = dict(PAYLOAD, kind="person")
    body.update(overrides)
    r = client.post("/api/subjects", json=body)
    assert r.status_code == 201, r.text
    return r.json()["data"]["id"]


def test_profile_compute(api):
    client, _ = api
    r = client.post("/api/profile/compute", json=PAYLOAD)
    assert r.status_code == 200, f"Unexpected {r.status_code}: {r.text}"
    data = r.json()["data"]
    assert data["polarityBalance"] == {"yin": 39, "yang": 61, "dominant": "Yang"}
    assert data["pillars"]["year"]["stem"] == "Jia"
    assert sum(data["elementDistribution"].values()) == 100


def test_profile_insights(api):
    client, _ = api
    r = client.post("/api/profile/insights", json=PAYLOAD)
    assert r.status_code == 200
    assert "workStyle" in r.json()["data"]["insights"]["dayMaster"]


@pytest.mark.parametrize(
    "field,value",
    [
        ("timeZone", "Mars/Olympus"),
        ("dateOfBirth", "15/05/1990"),
        ("timeOfBirth", "25:99"),
        ("timeOfBirth", "08:30:00.123456"),
        ("timeOfBirth", "0830"),
    ],
)
def test_profile_rejects_malformed_input(api, field, value):
    client, _ = api
    r = client.post("/api/profile/compute", json=dict(PAYLOAD, **{field: value}))
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "UNPROCESSABLE_ENTITY"


def test_subject_roundtrip_and_not_found(api):
    client, _ = api
    sid = _subject(client)
    r = client.get(f"/api/subjects/{sid}")
    assert r.json()["data"]["name"] == "Amit"
    assert client.get(f"/api/subjects/{sid}/profile").json()["data"]["dayMaster"]["element"] == "Earth"
    missing = client.get("/api/subjects/nope")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"


def test_person_subject_requires_time(api):
    client, _ = api
    body = dict(PAYLOAD, kind="person")
    body.pop("timeOfBirth")
    assert client.post("/api/subjects", json=body).status_code == 422
    body["timeOfBirth"] = "06:10:00.500000"
    assert client.post("/api/subjects", json=body).status_code == 422


def test_background_match_then_poll(api):
    client, container = api
    a = _subject(client)
    b = _subject(client, name="Riya", dateOfBirth="1993-02-20", timeOfBirth="06:10")
    r = client.post("/api/matches", json={"subjectAId": a, "subjectBId": b})
    assert r.status_code == 202
    match_id = r.json()["data"]["id"]
    assert container.jobs.join(timeout=10)
    polled = client.get(f"/api/matches/{match_id}").json()["data"]
    assert polled["status"] == "ready"
    assert polled["score"] == 78

    again = client.post("/api/matches", json={"subjectAId": a, "subjectBId": b})
    assert again.status_code == 200
    assert again.json()["data"]["id"] == match_id


def test_eager_company_match(api):
    client, _ = api
    a = _subject(client)
    r = client.post("/api/subjects", json={"kind": "organization", "name": "Acme Labs", "dateOfBirth": "2012-03-01"})
    company = r.json()["data"]["id"]
    r = client.post("/api/matches", json={"subjectAId": a, "subjectBId": company, "mode": "eager"})
    assert r.status_code == 200
    assert r.json()["data"]["kind"] == "organization"


def test_eager_without_providers_is_503(make_client):
    client, _ = make_client(TextSynthesizer([]))
    with client:
        a = _subject(client)
        b = _subject(client, name="Riya")
        r = client.post("/api/matches", json={"subjectAId": a, "subjectBId": b, "mode": "eager"})
    assert r.status_code == 503
    assert r.json()["error"]["code"] == "NO_PROVIDER_CONFIGURED"


def test_eager_with_failing_providers_is_502(make_client):
    failing = TextSynthesizer([FakeTextProvider("gemini", default=ConnectionError("down"))])
    client, _ = make_client(failing)
    with client:
        a = _subject(client)
        b = _subject(client, name="Riya")
        r = client.post("/api/matches", json={"subjectAId": a, "subjectBId": b, "mode": "eager"})
    assert r.status_code == 502
    assert r.json()["error"]["details"][0]["field"] == "gemini"


def test_cards_reading_and_audio(api):
    client, _ = api
    assert len(client.get("/api/cards").json()["data"]) == 12
    a = _subject(client)
    b = _subject(client, name="Riya")
    match_id = client.post("/api/matches", json={"subjectAId": a, "subjectBId": b, "mode": "eager"}).json()["data"]["id"]

    r = client.post(f"/api/matches/{match_id}/readings", json={"cardName": "Wolf Spirit"})
    assert r.status_code == 201, r.text
    reading = r.json()["data"]
    assert reading["imageSource"] == "static"
    assert reading["audioReady"] is False
    assert reading["interpretation"]

    first = client.get(f"/api/readings/{reading['id']}/audio").json()["data"]
    second = client.get(f"/api/readings/{reading['id']}/audio").json()["data"]
    assert first["cached"] is False and second["cached"] is True
    assert first["audioData"] == second["audioData"]
    assert client.get(f"/api/readings/{reading['id']}").json()["data"]["audioReady"] is True

    intro = client.post(f"/api/matches/{match_id}/intro-audio")
    assert intro.status_code == 200
    assert intro.json()["data"]["mimeType"] == "audio/mpeg"

    bad = client.post(f"/api/matches/{match_id}/readings", json={"cardName": "Dragon Spirit"})
    assert bad.status_code == 400
    assert bad.json()["error"]["code"] == "UNKNOWN_CARD"


def test_audio_without_speech_is_503(make_client, synthesizer):
    client, _ = make_client(synthesizer, speech=SpeechService(ProviderConfig()))
    with client:
        a = _subject(client)
        b = _subject(client, name="Riya")
        match_id = client.post("/api/matches", json={"subjectAId": a, "subjectBId": b, "mode": "eager"}).json()["data"]["id"]
        reading_id = client.post(f"/api/matches/{match_id}/readings", json={"cardName": "Sun Spirit"}).json()["data"]["id"]
        r = client.get(f"/api/readings/{reading_id}/audio")
    assert r.status_code == 503


def test_health_and_request_id(api):
    client, _ = api
    r = client.get("/healthz", headers={"X-Request-ID": "rid-1"})
    assert r.status_code == 200
    assert r.headers["X-Request-ID"] == "rid-1"
    assert client.get("/readyz").json()["ready"] is True
    assert client.get("/").status_code == 200


def test_request_log_carries_context(api, caplog):
    client, _ = api
    with caplog.at_level(logging.INFO, logger="four_pillars.requests"):
        client.get("/healthz", headers={"X-Request-ID": "rid-2"})
    records = [r for r in caplog.records if r.getMessage() == "request_completed"]
    assert records
    assert records[-1].path == "/healthz"
    assert records[-1].status == 200
    assert records[-1].request_id == "rid-2"
