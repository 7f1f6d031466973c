from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar, cast

import google.generativeai as genai
from openai import OpenAI

from services.ai_prompt_service import AnalysisRequest
from settings import ProviderConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_ONLY_SUFFIX = "Only output valid JSON with the exact fields and types specified."


class SubjectInputError(ValueError):
    """Birth or founding data that cannot be turned into a profile."""


class ProviderError(Exception):
    """Base class for text provider failures."""


class ProviderResponseError(ProviderError):
    """Provider answered, but without usable content."""


class AnalysisShapeError(ProviderError):
    """Provider text is not JSON, or JSON with the wrong shape."""


class NoProviderConfigured(ProviderError):
    def __init__(self, message: str = "No text provider is configured"):
        super().__init__(message)


class AllProvidersExhausted(ProviderError):
    def __init__(self, attempts: List[Tuple[str, Exception]]):
        self.attempts = list(attempts)
        summary = "; ".join(f"{name}: {err}" for name, err in self.attempts)
        super().__init__(f"All text providers failed ({summary})")


def _extract_chat_content(response: Any) -> str:
    # Handle both object and dict shaped choices.
    choice = response.choices[0]
    if isinstance(choice, dict):
        msg = choice.get("message") or {}
        content = msg.get("content") if isinstance(msg, dict) else choice.get("text")
    else:
        msg = getattr(choice, "message", None)
        content = getattr(msg, "content", None) if msg is not None else getattr(choice, "text", None)
    return content.strip() if isinstance(content, str) else ""


class OpenAIProvider:
    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", temperature: float = 0.7, client: Optional[Any] = None):
        self.model = model
        self.temperature = temperature
        self._client = client or OpenAI(api_key=api_key)

    def complete(self, prompt: str, *, system: Optional[str] = None, response_format: str = "json") -> str:
        messages = cast(List[Dict[str, Any]], [])
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        kwargs: Dict[str, Any] = {}
        if response_format == "json":
            kwargs["response_format"] = {"type": "json_object"}
        response = self._client.chat.completions.create(
            model=self.model,
            messages=cast(Any, messages),
            temperature=self.temperature,
            **kwargs,
        )
        text = _extract_chat_content(response)
        if not text:
            raise ProviderResponseError("OpenAI response missing text content")
        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug("openai_usage", extra={"total_tokens": getattr(usage, "total_tokens", None)})
        return text


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str, model: str = "gemini-1.5-flash", temperature: float = 0.7, model_factory: Optional[Callable[..., Any]] = None):
        self.model = model
        self.temperature = temperature
        if model_factory is None:
            genai.configure(api_key=api_key)
            model_factory = genai.GenerativeModel
        self._model_factory = model_factory

    def complete(self, prompt: str, *, system: Optional[str] = None, response_format: str = "json") -> str:
        generation_config: Dict[str, Any] = {"temperature": self.temperature}
        if response_format == "json":
            prompt = f"{prompt}\n\n{JSON_ONLY_SUFFIX}"
            generation_config["response_mime_type"] = "application/json"
        if system:
            model = self._model_factory(self.model, system_instruction=system)
        else:
            model = self._model_factory(self.model)
        response = model.generate_content(contents=[prompt], generation_config=generation_config)
        text = (getattr(response, "text", None) or "").strip()
        if not text:
            raise ProviderResponseError("Gemini response missing text content")
        return text


class TextSynthesizer:
    """Ordered fallback over text providers sharing ``complete(prompt) -> str``.

    A provider attempt succeeds only when its text also passes ``parser``;
    any exception from the call or the parser moves on to the next provider.
    """

    def __init__(self, providers: Sequence[Any]):
        self.providers = list(providers)

    @classmethod
    def from_config(cls, cfg: ProviderConfig) -> "TextSynthesizer":
        available: Dict[str, Callable[[], Any]] = {}
        if cfg.gemini_api_key:
            available["gemini"] = lambda: GeminiProvider(cfg.gemini_api_key, cfg.gemini_model, cfg.temperature)
        if cfg.openai_api_key:
            available["openai"] = lambda: OpenAIProvider(cfg.openai_api_key, cfg.openai_model, cfg.temperature)
        providers = [available[name]() for name in cfg.text_provider_order if name in available]
        return cls(providers)

    @property
    def configured(self) -> bool:
        return bool(self.providers)

    def synthesize(self, request: AnalysisRequest, parser: Callable[[str], T]) -> T:
        if not self.providers:
            raise NoProviderConfigured()
        attempts: List[Tuple[str, Exception]] = []
        for provider in self.providers:
            name = getattr(provider, "name", type(provider).__name__)
            try:
                raw = provider.complete(request.prompt, system=request.system, response_format=request.response_format)
                result = parser(raw)
            except Exception as exc:
                logger.warning("provider_failed", extra={"provider": name, "error": str(exc)})
                attempts.append((name, exc))
                continue
            logger.info("provider_succeeded", extra={"provider": name})
            return result
        raise AllProvidersExhausted(attempts)

    def narrate(self, request: AnalysisRequest) -> str:
        def _non_empty(text: str) -> str:
            cleaned = (text or "").strip()
            if not cleaned:
                raise ProviderResponseError("empty narration")
            return cleaned

        return self.synthesize(request, _non_empty)
