"""Shared HTTP status classification for providers.

Maps non-2xx responses to TransientProviderError (retried by with_retry)
or FatalProviderError (raised immediately). Network failures and bodies that
are not a JSON object are fatal as well.
"""

from typing import Any

import httpx

from ai_nexus.error_codes import ErrorCode
from ai_nexus.exceptions import FatalProviderError, TransientProviderError
from ai_nexus.utils.logging import get_logger

logger = get_logger(__name__)

# HTTP status codes that should be retried
HTTP_STATUS_RETRYABLE = frozenset({429, 503})

# Longest body excerpt carried in error messages
MAX_ERROR_BODY = 500


def is_retryable_status(status_code: int) -> bool:
    """Check if HTTP status code should be retried (429 or 503)."""
    return status_code in HTTP_STATUS_RETRYABLE


async def raise_for_provider_status(response: httpx.Response, provider: str) -> None:
    """Raise a classified provider error for a non-2xx response.

    Works for both buffered and streamed responses; a streamed body is read
    before building the error message.

    Args:
        response: HTTP response to check
        provider: Provider name used in the error message and logs

    Raises:
        TransientProviderError: For 429 and 503
        FatalProviderError: For any other non-2xx status
    """
    if response.is_success:
        return

    await response.aread()
    body = response.text[:MAX_ERROR_BODY]
    status_code = response.status_code
    message = f"{provider} API Error: {status_code} - {body}"
    context = {"provider": provider, "url": str(response.request.url)}

    logger.warning(
        "provider_http_error",
        provider=provider,
        status_code=status_code,
        retryable=is_retryable_status(status_code),
    )

    if status_code == 429:
        raise TransientProviderError(
            message,
            error_code=ErrorCode.PRV_RATE_LIMITED.value,
            context=context,
            status_code=status_code,
        )
    if status_code == 503:
        raise TransientProviderError(
            message,
            error_code=ErrorCode.PRV_UNAVAILABLE.value,
            context=context,
            status_code=status_code,
        )
    raise FatalProviderError(
        message,
        error_code=ErrorCode.PRV_HTTP_ERROR.value,
        context=context,
        status_code=status_code,
    )


def network_error(error: httpx.TransportError, provider: str) -> FatalProviderError:
    """Wrap a connection failure or timeout as a fatal provider error."""
    reason = str(error) or type(error).__name__
    logger.warning(
        "provider_network_error",
        provider=provider,
        error=reason,
        error_type=type(error).__name__,
    )
    return FatalProviderError(
        f"{provider} request failed: {reason}",
        suggestion="Check the network connection and the provider endpoint",
        error_code=ErrorCode.PRV_NETWORK_ERROR.value,
        context={"provider": provider, "error_type": type(error).__name__},
    )


def read_json_object(response: httpx.Response, provider: str) -> dict[str, Any]:
    """Decode a response body that must be a JSON object.

    Raises:
        FatalProviderError: If the body is not JSON or not an object
    """
    try:
        data = response.json()
    except ValueError as e:
        msg = f"{provider} returned a malformed response: {e}"
        raise FatalProviderError(
            msg,
            error_code=ErrorCode.PRV_MALFORMED_RESPONSE.value,
            context={"provider": provider},
            status_code=response.status_code,
        ) from e
    if not isinstance(data, dict):
        msg = f"{provider} returned unexpected JSON: expected an object, got {type(data).__name__}"
        raise FatalProviderError(
            msg,
            error_code=ErrorCode.PRV_MALFORMED_RESPONSE.value,
            context={"provider": provider},
            status_code=response.status_code,
        )
    return data
