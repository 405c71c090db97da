"""Hugging Face Inference API image provider."""

from ai_nexus.utils.logging import get_logger

from .base import BaseGenerationProvider, GenerationKind, to_data_uri
from .config_models import ImageProviderConfig, secret_value

logger = get_logger(__name__)

INFERENCE_URL = "https://api-inference.huggingface.co/models"
DEFAULT_MODEL = "black-forest-labs/FLUX.1-dev"


class HuggingFaceProvider(BaseGenerationProvider):
    name = "Hugging Face"
    kinds = frozenset({GenerationKind.IMAGE})

    async def generate_image(self, prompt: str, config: ImageProviderConfig) -> str:
        model = config.model or DEFAULT_MODEL
        headers = {"Content-Type": "application/json"}
        api_key = secret_value(config.api_key)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        logger.info("huggingface_image_started", model=model)
        response = await self._request(
            "POST",
            f"{INFERENCE_URL}/{model}",
            headers=headers,
            json={"inputs": prompt},
        )
        return to_data_uri(response.content, response.headers.get("content-type"))
