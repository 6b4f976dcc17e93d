"""HTTP session helpers for registry requests."""

import asyncio
import json
import logging
from typing import Any

import aiohttp

from ..exceptions import RegistryConnectionError, RegistryError
from .types import BearerToken, RegistryConfig, RegistryResponse

logger = logging.getLogger(__name__)


async def create_session(config: RegistryConfig | None = None) -> aiohttp.ClientSession:
    """Create an aiohttp session for registry requests.

    ``trust_env`` lets the session pick up ``HTTPS_PROXY`` when no explicit
    proxy is configured.

    Args:
        config: Registry configuration (timeout)

    Returns:
        Configured client session
    """
    timeout = config.timeout if config else 300
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=timeout),
        trust_env=True,
    )


def build_headers(
    accept: str | None = None, token: BearerToken | None = None
) -> dict[str, str]:
    headers: dict[str, str] = {}
    if accept:
        headers["Accept"] = accept
    if token is not None:
        headers["Authorization"] = f"Bearer {token.token}"
    return headers


async def fetch(
    session: aiohttp.ClientSession,
    url: str,
    accept: str | None = None,
    token: BearerToken | None = None,
    proxy: str | None = None,
) -> RegistryResponse:
    """Issue a GET request and return the raw response.

    Non-2xx statuses are returned, not raised, so callers can read
    ``WWW-Authenticate`` from a 401.

    Args:
        session: aiohttp client session
        url: Absolute URL
        accept: Optional Accept header value
        token: Optional bearer token
        proxy: Optional proxy URL

    Returns:
        RegistryResponse with status, body and headers

    Raises:
        RegistryConnectionError: On network, DNS, TLS or timeout failures
    """
    if not url:
        raise RegistryConnectionError("Cannot request an empty URL")

    logger.debug("GET %s (accept=%s)", url, accept or "*")
    try:
        async with session.get(
            url, headers=build_headers(accept, token), proxy=proxy
        ) as resp:
            body = await resp.read()
            return RegistryResponse(
                status=resp.status,
                body=body,
                headers=resp.headers.copy(),
                url=str(resp.url),
            )
    except asyncio.TimeoutError as e:
        raise RegistryConnectionError(f"Timed out requesting {url}") from e
    except aiohttp.ClientError as e:
        raise RegistryConnectionError(f"Failed to request {url}: {e}") from e


def parse_json_response(
    response: RegistryResponse,
    error_cls: type[RegistryError] = RegistryError,
    what: str = "response",
) -> Any:
    """Decode a JSON response body.

    Raises:
        error_cls: If the body is not valid JSON
    """
    try:
        return json.loads(response.body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise error_cls(f"Invalid JSON in {what}: {e}") from e


def ensure_ok(
    response: RegistryResponse,
    error_cls: type[RegistryError] = RegistryError,
    what: str = "request",
) -> None:
    """Raise ``error_cls`` unless the response has a 2xx status."""
    if not response.ok:
        raise error_cls(
            f"{what} failed with HTTP {response.status}: {response.text()}"
        )
