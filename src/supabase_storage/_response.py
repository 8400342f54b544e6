"""
Maps raw HTTP responses onto typed values or storage exceptions
"""

import logging
from typing import Any, Callable, Optional, TypeVar

import httpx

from .error import ApiException, SerializationException

logger = logging.getLogger(__name__)

T = TypeVar("T")


def map_response(response: httpx.Response, parser: Optional[Callable[[Any], T]] = None):
    """
    Return the parsed success value of ``response`` or raise.

    With no ``parser`` the raw body bytes are returned for 2xx responses.
    """
    if not response.is_success:
        raise api_error(response)

    if parser is None:
        return response.content

    try:
        payload = response.json()
    except ValueError as ex:
        logger.debug("[SupabaseStorage][Response] status=%s undecodable body", response.status_code)
        raise SerializationException(
            f"Failed to decode response body: {ex}", status_code=response.status_code
        ) from ex

    try:
        return parser(payload)
    except (KeyError, TypeError, ValueError) as ex:
        logger.debug("[SupabaseStorage][Response] status=%s unexpected shape: %s", response.status_code, ex)
        raise SerializationException(
            f"Unexpected response shape: {ex}", status_code=response.status_code
        ) from ex


def api_error(response: httpx.Response) -> ApiException:
    """Build the ApiException for a non-2xx response, keeping the raw body when it is not an envelope."""
    text = response.text
    try:
        envelope = response.json()
    except ValueError:
        envelope = None

    if isinstance(envelope, dict) and isinstance(envelope.get("message"), str):
        status = envelope.get("statusCode")
        error = envelope.get("error")
        exception = ApiException(
            message=envelope["message"],
            status=str(status) if status is not None else str(response.status_code),
            status_code=response.status_code,
            error=error if isinstance(error, str) else None,
            body=response.content,
        )
    else:
        exception = ApiException(
            message=text,
            status=str(response.status_code),
            status_code=response.status_code,
            body=response.content,
        )

    logger.debug(
        "[SupabaseStorage][Response] status=%s error=%s message=%s",
        exception.status,
        exception.error,
        exception.message,
    )
    return exception
