"""AI Horde provider: asynchronous job submission with bounded polling.

Submission is retried like any other request. Polling is not: it runs at a
fixed interval for a fixed number of attempts and then gives up with
ProviderTimeoutError.
"""

import httpx

from ai_nexus.error_codes import ErrorCode
from ai_nexus.exceptions import FatalProviderError, ProviderTimeoutError
from ai_nexus.utils.logging import get_logger

from .base import BaseGenerationProvider, GenerationKind
from .config_models import ImageProviderConfig, secret_value
from .retry_utils import read_json_object

logger = get_logger(__name__)

HORDE_URL = "https://stablehorde.net/api/v2"
# Anonymous key accepted by the horde at the lowest priority
ANONYMOUS_KEY = "0000000000"
CLIENT_AGENT = "AI_Nexus:1.0:Unknown"
DEFAULT_MODEL = "stable_diffusion"


class AIHordeProvider(BaseGenerationProvider):
    name = "AI Horde"
    kinds = frozenset({GenerationKind.IMAGE})

    async def generate_image(self, prompt: str, config: ImageProviderConfig) -> str:
        api_key = secret_value(config.api_key) or ANONYMOUS_KEY
        model = config.model or DEFAULT_MODEL

        response = await self._request(
            "POST",
            f"{HORDE_URL}/generate/async",
            headers={
                "Content-Type": "application/json",
                "apikey": api_key,
                "Client-Agent": CLIENT_AGENT,
            },
            json={
                "prompt": prompt,
                "params": {"n": 1, "steps": 20, "width": 512, "height": 512},
                "models": [model],
                "nsfw": True,
                "censor_nsfw": False,
            },
        )
        job_id = read_json_object(response, self.name).get("id")
        if not job_id:
            msg = "AI Horde did not return a Job ID."
            raise FatalProviderError(msg, error_code=ErrorCode.PRV_MALFORMED_RESPONSE.value)

        logger.info("image_job_submitted", provider=self.name, job_id=job_id, model=model)
        return await self._poll_job(job_id)

    async def _poll_job(self, job_id: str) -> str:
        polling = self.settings.image_polling
        status_url = f"{HORDE_URL}/generate/status/{job_id}"

        for attempt in range(1, polling.max_attempts + 1):
            await self._sleep(polling.interval)
            try:
                response = await self.client.get(status_url)
            except httpx.TransportError as e:
                logger.debug(
                    "image_job_polled",
                    job_id=job_id,
                    attempt=attempt,
                    error=str(e) or type(e).__name__,
                )
                continue
            if not response.is_success:
                logger.debug(
                    "image_job_polled",
                    job_id=job_id,
                    attempt=attempt,
                    status_code=response.status_code,
                )
                continue

            status = read_json_object(response, self.name)
            logger.debug(
                "image_job_polled",
                job_id=job_id,
                attempt=attempt,
                done=bool(status.get("done")),
            )
            if status.get("done"):
                generations = status.get("generations") or []
                if generations and generations[0].get("img"):
                    return generations[0]["img"]
                msg = "AI Horde finished but returned no image."
                raise FatalProviderError(
                    msg, error_code=ErrorCode.PRV_MALFORMED_RESPONSE.value
                )
            if not status.get("is_possible", True):
                msg = "AI Horde says generation is impossible with current settings."
                raise FatalProviderError(msg, error_code=ErrorCode.PRV_JOB_IMPOSSIBLE.value)

        msg = "AI Horde generation timed out."
        raise ProviderTimeoutError(
            msg,
            error_code=ErrorCode.PRV_POLL_TIMEOUT.value,
            context={"job_id": job_id, "attempts": polling.max_attempts},
        )
