"""Stability AI text-to-image provider."""

from ai_nexus.error_codes import ErrorCode
from ai_nexus.exceptions import ConfigError, FatalProviderError
from ai_nexus.utils.logging import get_logger

from .base import BaseGenerationProvider, GenerationKind
from .config_models import ImageProviderConfig, secret_value
from .retry_utils import read_json_object

logger = get_logger(__name__)

STABILITY_URL = "https://api.stability.ai/v1/generation"
DEFAULT_MODEL = "stable-diffusion-xl-1024-v1-0"


class StabilityProvider(BaseGenerationProvider):
    name = "Stability"
    kinds = frozenset({GenerationKind.IMAGE})

    async def generate_image(self, prompt: str, config: ImageProviderConfig) -> str:
        api_key = secret_value(config.api_key)
        if not api_key:
            msg = "API Key is required for Stability.ai"
            raise ConfigError(msg, error_code=ErrorCode.CFG_MISSING_KEY.value)

        model = config.model or DEFAULT_MODEL
        logger.info("stability_image_started", model=model)
        response = await self._request(
            "POST",
            f"{STABILITY_URL}/{model}/text-to-image",
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            json={
                "text_prompts": [{"text": prompt}],
                "cfg_scale": 7,
                "height": 1024,
                "width": 1024,
                "samples": 1,
                "steps": 30,
            },
        )
        artifacts = read_json_object(response, self.name).get("artifacts") or []
        if artifacts and artifacts[0].get("base64"):
            return f"data:image/png;base64,{artifacts[0]['base64']}"

        msg = "No artifacts returned from Stability API."
        raise FatalProviderError(msg, error_code=ErrorCode.PRV_MALFORMED_RESPONSE.value)
