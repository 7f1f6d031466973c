from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from db.session import init_db, make_engine, make_session_factory
from db.store import Store
from services.ai_agent_services import TextSynthesizer
from services.image_services import FalImageProvider
from services.job_queue import BackgroundJobQueue
from services.match_services import MatchService
from services.reading_services import ReadingService
from services.speech_services import SpeechService
from settings import DATABASE_URL, STATIC_CARD_BASE_URL, SYNTHESIS_WORKERS, ProviderConfig

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    store: Store
    jobs: BackgroundJobQueue
    synthesizer: TextSynthesizer
    matches: MatchService
    readings: ReadingService
    speech: SpeechService

    def shutdown(self, wait_for_jobs: bool = True) -> None:
        self.jobs.shutdown(wait_for_jobs=wait_for_jobs)
        self.speech.close()


def build_container(
    config: Optional[ProviderConfig] = None,
    database_url: str = DATABASE_URL,
    *,
    store: Optional[Store] = None,
    synthesizer: Optional[TextSynthesizer] = None,
    image_provider: Optional[FalImageProvider] = None,
    speech: Optional[SpeechService] = None,
    workers: int = SYNTHESIS_WORKERS,
    static_base_url: str = STATIC_CARD_BASE_URL,
) -> ServiceContainer:
    config = config or ProviderConfig.from_env()
    if store is None:
        engine = make_engine(database_url)
        init_db(engine)
        store = Store(make_session_factory(engine))
    synthesizer = synthesizer or TextSynthesizer.from_config(config)
    image_provider = image_provider or FalImageProvider.from_config(config)
    speech = speech or SpeechService(config)
    jobs = BackgroundJobQueue(max_workers=workers)
    logger.info(
        "services_configured",
        extra={
            "text_providers": [getattr(p, "name", type(p).__name__) for p in synthesizer.providers],
            "image": image_provider.configured,
            "speech": speech.configured,
        },
    )
    return ServiceContainer(
        store=store,
        jobs=jobs,
        synthesizer=synthesizer,
        matches=MatchService(store, synthesizer, jobs),
        readings=ReadingService(store, synthesizer, image_provider, speech, jobs, static_base_url),
        speech=speech,
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container
