"""
Card reading pipeline.

create_reading(match_id, card_name)
    Image generation and the narrative interpretation run concurrently. The
    image degrades to the card's static asset and the interpretation degrades
    to a template built from the card's own fields, so a stored reading always
    has both. Audio is never produced here; it is attached later, once.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from card_utils.card_prompts import get_prompt_for_card
from card_utils.deck import SpiritCard, get_card
from db.models import MATCH_READY
from db.store import Store
from services.ai_agent_services import TextSynthesizer
from services.ai_prompt_service import build_reading_request, template_interpretation
from services.image_services import FalImageProvider
from services.job_queue import BackgroundJobQueue
from services.speech_services import SpeechAsset, SpeechService
from utils.seed_utils import hash_to_seed

logger = logging.getLogger(__name__)


def audio_job_key(reading_id: str) -> str:
    return f"audio:{reading_id}"


class ReadingService:
    def __init__(
        self,
        store: Store,
        synthesizer: TextSynthesizer,
        image_provider: FalImageProvider,
        speech: SpeechService,
        jobs: BackgroundJobQueue,
        static_base_url: str = "",
    ):
        self.store = store
        self.synthesizer = synthesizer
        self.image_provider = image_provider
        self.speech = speech
        self.jobs = jobs
        self.static_base_url = static_base_url.rstrip("/")

    def static_image_url(self, card: SpiritCard) -> str:
        return f"{self.static_base_url}{card.image}"

    def _generate_image(self, match_id: str, card: SpiritCard) -> Optional[str]:
        spec = get_prompt_for_card(card.name)
        seed = hash_to_seed(match_id, card.name)
        return self.image_provider.generate_image(spec.prompt, seed, negative_prompt=spec.negative)

    def _interpret(self, card: SpiritCard, match: Dict[str, Any], subject_b_name: str) -> Tuple[str, str]:
        analysis = match["analysis"] if match["status"] == MATCH_READY else None
        request = build_reading_request(card, match["kind"], subject_b_name, match["score"], analysis)
        try:
            return self.synthesizer.narrate(request), "ai"
        except Exception as exc:
            logger.warning("reading_interpretation_fallback", extra={"card": card.name, "error": str(exc)})
            return template_interpretation(card, subject_b_name, analysis), "template"

    async def _gather_parts(
        self,
        match_id: str,
        card: SpiritCard,
        match: Dict[str, Any],
        subject_b_name: str,
    ) -> Tuple[Tuple[str, str], Optional[str]]:
        text, image = await asyncio.gather(
            asyncio.to_thread(self._interpret, card, match, subject_b_name),
            asyncio.to_thread(self._generate_image, match_id, card),
            return_exceptions=True,
        )
        if isinstance(text, BaseException):
            raise text
        if isinstance(image, BaseException):
            logger.warning("reading_image_fallback", extra={"card": card.name, "error": str(image)})
            image = None
        return text, image

    def create_reading(self, match_id: str, card_name: str, prefetch_audio: bool = False) -> Dict[str, Any]:
        card = get_card(card_name)
        match = self.store.get_match(match_id)
        subject_b = self.store.get_subject(match["subject_b_id"])

        (interpretation, interpretation_source), image_url = asyncio.run(
            self._gather_parts(match_id, card, match, subject_b["name"])
        )

        image_source = "generated" if image_url else "static"
        reading = self.store.insert_reading(
            match_id=match_id,
            card_name=card.name,
            meaning=card.meaning,
            interpretation=interpretation,
            interpretation_source=interpretation_source,
            image_url=image_url or self.static_image_url(card),
            image_source=image_source,
        )
        logger.info(
            "reading_created",
            extra={"reading_id": reading["id"], "match_id": match_id, "card": card.name,
                   "interpretation_source": interpretation_source, "image_source": image_source},
        )
        if prefetch_audio and self.speech.configured:
            self.jobs.enqueue(audio_job_key(reading["id"]), self.ensure_audio, reading["id"])
        return reading

    def get_reading(self, reading_id: str) -> Dict[str, Any]:
        return self.store.get_reading(reading_id)

    def ensure_audio(self, reading_id: str) -> Tuple[SpeechAsset, bool]:
        """Return the reading's audio, synthesizing and storing it if absent.

        The second element is True when the audio came from the stored row.
        Concurrent callers may both synthesize; only the first write is kept.
        """
        reading = self.store.get_reading(reading_id)
        if reading["audio_data"]:
            return SpeechAsset(reading["audio_data"], reading["audio_mime_type"] or "audio/mpeg"), True
        match = self.store.get_match(reading["match_id"])
        subject_b = self.store.get_subject(match["subject_b_id"])
        asset = self.speech.reading_audio(
            reading["card_name"],
            reading["meaning"],
            reading["interpretation"],
            subject_b["name"],
            match["kind"],
        )
        if self.store.set_reading_audio_once(reading_id, asset.audio_b64, asset.mime_type):
            logger.info("reading_audio_stored", extra={"reading_id": reading_id})
            return asset, False
        stored = self.store.get_reading(reading_id)
        return SpeechAsset(stored["audio_data"], stored["audio_mime_type"] or asset.mime_type), True

    def intro_audio(self, match_id: str) -> SpeechAsset:
        match = self.store.get_match(match_id)
        subject_b = self.store.get_subject(match["subject_b_id"])
        return self.speech.intro_audio(subject_b["name"], match["kind"])
