from __future__ import annotations
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


APP_NAME = os.getenv("APP_NAME", "Four Pillars Match - Core REST")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
DEBUG = os.getenv("DEBUG", "false").lower() in {"1","true","yes","on"}
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()

CORS_ALLOW_ORIGINS: List[str] = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]
TRUSTED_HOSTS: List[str] = [h.strip() for h in os.getenv("TRUSTED_HOSTS", "*").split(",") if h.strip()]
GZIP_MIN_SIZE = int(os.getenv("GZIP_MIN_SIZE", "1000"))
REQUEST_LOGGING = os.getenv("REQUEST_LOGGING", "basic").lower()  # "off" | "basic" | "full"

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./four_pillars.db")
SYNTHESIS_WORKERS = int(os.getenv("SYNTHESIS_WORKERS", "2"))
STATIC_CARD_BASE_URL = os.getenv("STATIC_CARD_BASE_URL", "")


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value.strip() if value and value.strip() else None


class VoiceSettings(BaseModel):
    stability: float = 0.7
    similarity_boost: float = 0.8
    style: float = 0.2


class ProviderConfig(BaseModel):
    """External provider configuration, passed explicitly to the orchestrators."""

    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    text_provider_order: List[str] = Field(default_factory=lambda: ["gemini", "openai"])
    temperature: float = 0.7

    fal_api_key: Optional[str] = None
    fal_model_slug: str = "fal-ai/flux/schnell"
    image_width: int = 512
    image_height: int = 768
    image_timeout_s: float = 15.0

    elevenlabs_api_key: Optional[str] = None
    elevenlabs_base_url: str = "https://api.elevenlabs.io/v1"
    speech_model_id: str = "eleven_multilingual_v2"
    speech_fallback_model_id: str = "eleven_monolingual_v1"
    speech_timeout_s: float = 60.0
    person_voice_id: str = "Atp5cNFg1Wj5gyKD7HWV"
    organization_voice_id: str = "Sw1Vim1v8EhzvKFG9mei"
    voice_settings: VoiceSettings = Field(default_factory=VoiceSettings)

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        order = [p.strip().lower() for p in os.getenv("TEXT_PROVIDER_ORDER", "gemini,openai").split(",") if p.strip()]
        return cls(
            gemini_api_key=_env("GOOGLE_GENERATIVE_AI_API_KEY") or _env("GEMINI_API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
            openai_api_key=_env("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            text_provider_order=order,
            temperature=float(os.getenv("TEXT_TEMPERATURE", "0.7")),
            fal_api_key=_env("FAL_API_KEY") or _env("FAL_KEY"),
            fal_model_slug=os.getenv("FAL_MODEL_SLUG", "fal-ai/flux/schnell"),
            image_width=int(os.getenv("IMAGE_WIDTH", "512")),
            image_height=int(os.getenv("IMAGE_HEIGHT", "768")),
            image_timeout_s=float(os.getenv("IMAGE_TIMEOUT_S", "15")),
            elevenlabs_api_key=_env("ELEVENLABS_API_KEY"),
            elevenlabs_base_url=os.getenv("ELEVENLABS_BASE_URL", "https://api.elevenlabs.io/v1"),
            speech_model_id=os.getenv("ELEVENLABS_MODEL_ID", "eleven_multilingual_v2"),
            speech_fallback_model_id=os.getenv("ELEVENLABS_FALLBACK_MODEL_ID", "eleven_monolingual_v1"),
            speech_timeout_s=float(os.getenv("SPEECH_TIMEOUT_S", "60")),
            person_voice_id=os.getenv("PERSON_VOICE_ID", "Atp5cNFg1Wj5gyKD7HWV"),
            organization_voice_id=os.getenv("ORGANIZATION_VOICE_ID", "Sw1Vim1v8EhzvKFG9mei"),
            voice_settings=VoiceSettings(
                stability=float(os.getenv("VOICE_STABILITY", "0.7")),
                similarity_boost=float(os.getenv("VOICE_SIMILARITY_BOOST", "0.8")),
                style=float(os.getenv("VOICE_STYLE", "0.2")),
            ),
        )
