"""HTTP helpers shared by the RoleCall clients."""

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp

from ..errors import (
    AuthorizationError,
    DecodeError,
    InvalidURLError,
    ServerError,
    TransportError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)


def redact(url: str) -> str:
    """Drop the query string so tokens never reach the logs."""
    return url.split("?", 1)[0]


async def fetch(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    *,
    timeout: float,
    **kwargs: Any,
) -> tuple[int, bytes]:
    """Perform one request and return ``(status, body)``.

    Only connection problems and timeouts become the retryable
    :class:`TransportError`. Other client failures map to kinds that are
    never retried.
    """
    try:
        async with session.request(
            method,
            url,
            timeout=aiohttp.ClientTimeout(total=timeout),
            **kwargs,
        ) as response:
            body = await response.read()
            return response.status, body
    except aiohttp.InvalidURL as e:
        logger.error(f"Invalid URL {redact(str(e.url))}")
        raise InvalidURLError(f"Invalid URL: {redact(str(e.url))}") from e
    except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
        raise TransportError(f"Connection error: {str(e) or e.__class__.__name__}", cause=e) from e
    except aiohttp.ClientPayloadError as e:
        raise DecodeError(redact(url), reason=str(e) or "truncated body") from e
    except aiohttp.ClientResponseError as e:
        raise ServerError(e.status, e.message) from e
    except aiohttp.ClientError as e:
        raise ServerError(0, str(e) or e.__class__.__name__) from e


def _validation_message(body: bytes) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        return body.decode("utf-8", "replace").strip() or "Request rejected"
    if isinstance(data, dict):
        errors = data.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            return str(errors[0].get("message", "Request rejected"))
        if data.get("message"):
            return str(data["message"])
    return "Request rejected"


def check_status(status: int, body: bytes, url: str, expected: tuple[int, ...] = (200,)) -> None:
    """Raise the error matching a non-success HTTP status."""
    if status in expected:
        return
    if status == 401:
        logger.warning(f"Server returned 401 for {redact(url)} - token invalid or expired")
        raise AuthorizationError()
    if status == 422:
        raise ValidationFailedError(_validation_message(body))
    logger.warning(f"Server error {status} for {redact(url)}")
    raise ServerError(status, body[:200].decode("utf-8", "replace"))


def parse_json(body: bytes, endpoint: str) -> Any:
    try:
        return json.loads(body)
    except ValueError as e:
        logger.error(f"Invalid JSON from {endpoint}: {e}")
        raise DecodeError(endpoint, reason="invalid JSON") from e


def user_agent_headers(user_agent: str, accept: Optional[str] = "application/json") -> dict[str, str]:
    headers = {"User-Agent": user_agent}
    if accept:
        headers["Accept"] = accept
    return headers
