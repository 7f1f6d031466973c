from __future__ import annotations
import base64
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from settings import ProviderConfig, VoiceSettings
from utils.text_utils import sanitize_for_speech

logger = logging.getLogger(__name__)

AUDIO_MIME_TYPE = "audio/mpeg"


class SpeechSynthesisError(Exception):
    """Speech provider failed, or is not configured."""


@dataclass(frozen=True)
class SpeechAsset:
    audio_b64: str
    mime_type: str = AUDIO_MIME_TYPE


class ElevenLabsClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.elevenlabs.io/v1",
        timeout_s: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_s),
            headers={"xi-api-key": api_key, "Accept": AUDIO_MIME_TYPE},
            transport=transport,
        )

    def synthesize_speech(self, text: str, voice_id: str, voice_settings: VoiceSettings, model_id: str) -> bytes:
        payload = {
            "text": text,
            "model_id": model_id,
            "voice_settings": voice_settings.model_dump(),
        }
        try:
            response = self._http.post(f"/text-to-speech/{voice_id}", json=payload)
        except httpx.HTTPError as exc:
            raise SpeechSynthesisError(f"ElevenLabs request failed: {exc}") from exc
        if response.status_code >= 400:
            raise SpeechSynthesisError(f"ElevenLabs API error: {response.status_code} - {response.text[:200]}")
        if not response.content:
            raise SpeechSynthesisError("ElevenLabs returned no audio")
        return response.content

    def close(self) -> None:
        self._http.close()


def reading_narration(card_name: str, meaning: str, interpretation: str, subject_b_name: str, kind: str = "person") -> str:
    card_name = sanitize_for_speech(card_name)
    meaning = sanitize_for_speech(meaning)
    interpretation = sanitize_for_speech(interpretation)
    subject_b_name = sanitize_for_speech(subject_b_name)
    if kind == "organization":
        return (
            f"The card drawn is {card_name}. {meaning}. Your reading for {subject_b_name}: "
            f"{interpretation}. May this guidance support clear decisions."
        )
    return (
        f"The card you have drawn is {card_name}. {meaning}. Your reading for {subject_b_name}: "
        f"{interpretation}. May this guidance illuminate your path."
    )


def intro_narration(subject_b_name: str, kind: str = "person") -> str:
    name = sanitize_for_speech(subject_b_name)
    if kind == "organization":
        return (
            f"Let's do a card reading for {name}. Focus on your leadership questions and choose a card "
            "that speaks to you. Trust your instincts as you select."
        )
    return (
        f"Let's do a card reading. Think about {name} and pick a card that speaks to you. "
        "Trust your intuition as you choose."
    )


class SpeechService:
    """Two-tier speech synthesis: primary model id, then the fallback model id."""

    def __init__(self, config: ProviderConfig, client: Optional[ElevenLabsClient] = None):
        self.config = config
        if client is None and config.elevenlabs_api_key:
            client = ElevenLabsClient(
                config.elevenlabs_api_key,
                base_url=config.elevenlabs_base_url,
                timeout_s=config.speech_timeout_s,
            )
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None

    def voice_for(self, kind: str) -> str:
        if kind == "organization":
            return self.config.organization_voice_id
        return self.config.person_voice_id

    def synthesize(self, text: str, kind: str = "person") -> SpeechAsset:
        if self._client is None:
            raise SpeechSynthesisError("ElevenLabs is not configured")
        voice_id = self.voice_for(kind)
        settings = self.config.voice_settings
        try:
            audio = self._client.synthesize_speech(text, voice_id, settings, self.config.speech_model_id)
        except SpeechSynthesisError as exc:
            logger.warning(
                "speech_model_fallback",
                extra={"model_id": self.config.speech_model_id, "fallback": self.config.speech_fallback_model_id, "error": str(exc)},
            )
            audio = self._client.synthesize_speech(text, voice_id, settings, self.config.speech_fallback_model_id)
        return SpeechAsset(audio_b64=base64.b64encode(audio).decode("ascii"))

    def reading_audio(self, card_name: str, meaning: str, interpretation: str, subject_b_name: str, kind: str = "person") -> SpeechAsset:
        text = reading_narration(card_name, meaning, interpretation, subject_b_name, kind)
        return self.synthesize(text, kind)

    def intro_audio(self, subject_b_name: str, kind: str = "person") -> SpeechAsset:
        return self.synthesize(intro_narration(subject_b_name, kind), kind)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
