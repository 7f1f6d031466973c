import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import FakeTextProvider
from db.models import CompatibilityMatch
from db.store import NotFoundError
from services.ai_agent_services import AllProvidersExhausted, NoProviderConfigured, TextSynthesizer
from services.match_services import MatchService


class BlockingProvider(FakeTextProvider):
    def __init__(self, release: threading.Event, payload: str):
        super().__init__("blocking", default=payload)
        self.release = release

    def complete(self, prompt, *, system=None, response_format="json"):
        assert self.release.wait(timeout=10)
        return super().complete(prompt, system=system, response_format=response_format)


def _count_matches(store) -> int:
    with store.session() as db:
        return db.query(CompatibilityMatch).count()


def test_concurrent_ensure_match_creates_one_row(store, jobs, synthesizer, manager, candidate):
    service = MatchService(store, synthesizer, jobs)
    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(lambda _: service.ensure_match(manager["id"], candidate["id"])["id"], range(8)))
    assert len(set(ids)) == 1
    assert _count_matches(store) == 1


def test_pair_is_ordered(store, jobs, synthesizer, manager, candidate):
    service = MatchService(store, synthesizer, jobs)
    ab = service.ensure_match(manager["id"], candidate["id"])
    ba = service.ensure_match(candidate["id"], manager["id"])
    assert ab["id"] != ba["id"]


def test_placeholder_is_visible_before_synthesis_finishes(store, jobs, analysis_json, manager, candidate):
    release = threading.Event()
    service = MatchService(store, TextSynthesizer([BlockingProvider(release, analysis_json)]), jobs)

    placeholder = service.create_match_background(manager["id"], candidate["id"])
    fetched = store.get_match(placeholder["id"])
    assert fetched["status"] == "pending"
    assert fetched["score"] == 0
    assert fetched["analysis"] == {"status": "pending"}

    release.set()
    assert jobs.join(timeout=10)
    ready = store.get_match(placeholder["id"])
    assert ready["status"] == "ready"
    assert ready["score"] == 78
    assert "profiles" in ready["analysis"]


def test_repeated_background_requests_do_not_duplicate_jobs(store, jobs, analysis_json, manager, candidate):
    release = threading.Event()
    provider = BlockingProvider(release, analysis_json)
    service = MatchService(store, TextSynthesizer([provider]), jobs)
    first = service.create_match_background(manager["id"], candidate["id"])
    second = service.create_match_background(manager["id"], candidate["id"])
    assert first["id"] == second["id"]
    release.set()
    assert jobs.join(timeout=10)
    assert len(provider.calls) == 1


def test_background_failure_is_recorded_and_retry_recovers(store, jobs, analysis_json, manager, candidate):
    provider = FakeTextProvider("primary", responses=[ConnectionError("down")], default=analysis_json)
    service = MatchService(store, TextSynthesizer([provider]), jobs)

    match = service.create_match_background(manager["id"], candidate["id"])
    assert jobs.join(timeout=10)
    failed = store.get_match(match["id"])
    assert failed["status"] == "failed"
    assert "down" in failed["error"]

    retried = service.create_match_background(manager["id"], candidate["id"])
    assert retried["id"] == match["id"]
    assert retried["status"] == "pending"
    assert jobs.join(timeout=10)
    assert store.get_match(match["id"])["status"] == "ready"


def test_retry_requested_while_failed_job_is_finishing(store, jobs, analysis_json, manager, candidate):
    provider = FakeTextProvider("primary", responses=[ConnectionError("down")], default=analysis_json)
    service = MatchService(store, TextSynthesizer([provider]), jobs)
    retries = []
    original_update = store.update_match

    def update_then_retry(match_id, **fields):
        row = original_update(match_id, **fields)
        if fields.get("status") == "failed" and not retries:
            # the failing job still holds its key here
            worker = threading.Thread(
                target=lambda: retries.append(service.create_match_background(manager["id"], candidate["id"]))
            )
            worker.start()
            worker.join(timeout=10)
        return row

    store.update_match = update_then_retry
    match = service.create_match_background(manager["id"], candidate["id"])
    assert jobs.join(timeout=10)
    assert retries[0]["status"] == "pending"
    final = store.get_match(match["id"])
    assert final["status"] == "ready"
    assert final["score"] == 78
    assert len(provider.calls) == 2


def test_ready_match_is_returned_without_new_job(store, jobs, synthesizer, manager, candidate):
    service = MatchService(store, synthesizer, jobs)
    ready = service.create_match_eager(manager["id"], candidate["id"])
    again = service.create_match_background(manager["id"], candidate["id"])
    assert again["id"] == ready["id"]
    assert again["status"] == "ready"
    assert len(synthesizer.providers[0].calls) == 1


def test_eager_is_idempotent(store, jobs, synthesizer, manager, candidate):
    service = MatchService(store, synthesizer, jobs)
    first = service.create_match_eager(manager["id"], candidate["id"])
    second = service.create_match_eager(manager["id"], candidate["id"])
    assert first["id"] == second["id"]
    assert second["status"] == "ready"
    assert _count_matches(store) == 1


def test_eager_company_match(store, jobs, synthesizer, manager, company):
    service = MatchService(store, synthesizer, jobs)
    match = service.create_match_eager(manager["id"], company["id"])
    assert match["kind"] == "organization"
    assert match["analysis"]["profiles"]["subject_b"]["birth"]["time"] == "12:00"
    assert "Company:" in synthesizer.providers[0].calls[0]["prompt"]


def test_eager_surfaces_typed_errors_and_stores_nothing(store, jobs, manager, candidate):
    service = MatchService(store, TextSynthesizer([]), jobs)
    with pytest.raises(NoProviderConfigured):
        service.create_match_eager(manager["id"], candidate["id"])
    assert store.find_match(manager["id"], candidate["id"]) is None

    failing = TextSynthesizer([FakeTextProvider("a", default=IOError("x")), FakeTextProvider("b", default="nope")])
    with pytest.raises(AllProvidersExhausted):
        MatchService(store, failing, jobs).create_match_eager(manager["id"], candidate["id"])


def test_unknown_subject(store, jobs, synthesizer, manager):
    with pytest.raises(NotFoundError):
        MatchService(store, synthesizer, jobs).ensure_match(manager["id"], "missing")
