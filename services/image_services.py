"""
Card image generation through fal.ai (FLUX schnell by default).

Image generation is always optional: ``generate_image`` returns a URL or
``None`` and never raises, so callers substitute the static card image.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import fal_client

from settings import ProviderConfig

logger = logging.getLogger(__name__)


def _extract_image_url(result: Any) -> Optional[str]:
    if isinstance(result, str):
        return result or None
    if not isinstance(result, dict):
        return None
    images = result.get("images") or []
    if images:
        first = images[0]
        if isinstance(first, dict):
            return first.get("url") or None
        if isinstance(first, str):
            return first or None
    image = result.get("image")
    if isinstance(image, dict):
        return image.get("url") or None
    return result.get("url") or None


class FalImageProvider:
    def __init__(
        self,
        api_key: Optional[str],
        model: str = "fal-ai/flux/schnell",
        width: int = 512,
        height: int = 768,
        timeout_s: float = 15.0,
        client: Optional[Any] = None,
    ):
        self.model = model
        self.width = width
        self.height = height
        self.timeout_s = timeout_s
        if client is None and api_key:
            client = fal_client.SyncClient(key=api_key, default_timeout=timeout_s)
        self._client = client

    @classmethod
    def from_config(cls, cfg: ProviderConfig) -> "FalImageProvider":
        return cls(
            cfg.fal_api_key,
            model=cfg.fal_model_slug,
            width=cfg.image_width,
            height=cfg.image_height,
            timeout_s=cfg.image_timeout_s,
        )

    @property
    def configured(self) -> bool:
        return self._client is not None

    def generate_image(self, prompt: str, seed: int, negative_prompt: Optional[str] = None) -> Optional[str]:
        if self._client is None:
            logger.info("image_provider_not_configured")
            return None
        arguments: Dict[str, Any] = {
            "prompt": prompt,
            "image_size": {"width": self.width, "height": self.height},
            "num_inference_steps": 4,
            "num_images": 1,
            "seed": seed,
            "enable_safety_checker": True,
        }
        if negative_prompt:
            arguments["negative_prompt"] = negative_prompt
        try:
            result = self._client.run(self.model, arguments=arguments, timeout=self.timeout_s)
        except Exception as exc:
            logger.warning("image_generation_failed", extra={"model": self.model, "error": str(exc)})
            return None
        url = _extract_image_url(result)
        if not url:
            logger.warning("image_generation_empty", extra={"model": self.model})
        return url
