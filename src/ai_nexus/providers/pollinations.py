"""Pollinations image provider (keyless GET API)."""

from urllib.parse import quote

import httpx

from ai_nexus.exceptions import AINexusError
from ai_nexus.utils.logging import get_logger

from .base import BaseGenerationProvider, GenerationKind, to_data_uri
from .config_models import ImageProviderConfig

logger = get_logger(__name__)

POLLINATIONS_URL = "https://image.pollinations.ai/prompt"
DEFAULT_MODEL = "flux"


class PollinationsProvider(BaseGenerationProvider):
    """Downloads the generated image; falls back to its URL on failure."""

    name = "Pollinations"
    kinds = frozenset({GenerationKind.IMAGE})

    @staticmethod
    def image_url(prompt: str, model: str | None = None) -> str:
        encoded = quote(prompt, safe="")
        return f"{POLLINATIONS_URL}/{encoded}?model={model or DEFAULT_MODEL}&nologo=true"

    async def generate_image(self, prompt: str, config: ImageProviderConfig) -> str:
        url = self.image_url(prompt, config.model)
        try:
            response = await self._request("GET", url)
        except (AINexusError, httpx.HTTPError) as e:
            logger.warning("pollinations_download_failed", url=url, error=str(e))
            return url
        return to_data_uri(response.content, response.headers.get("content-type"))
