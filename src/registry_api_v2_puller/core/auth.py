"""Bearer token authentication against a registry's auth server."""

import logging
import re

import aiohttp
from yarl import URL

from ..exceptions import AuthenticationError
from .session import ensure_ok, fetch, parse_json_response
from .types import AuthChallenge, BearerToken, ImageReference, RegistryConfig

logger = logging.getLogger(__name__)

WWW_AUTHENTICATE = "WWW-Authenticate"

# key="quoted value" or key=token, separated by commas
_PARAM_PATTERN = re.compile(r'([A-Za-z][\w-]*)\s*=\s*(?:"((?:[^"\\]|\\.)*)"|([^\s,"]+))')


def parse_challenge_params(params: str) -> dict[str, str]:
    """Parse the auth-param list of a challenge into a dict.

    Keys are lower-cased; quoted values may contain commas and escapes.
    """
    result: dict[str, str] = {}
    for match in _PARAM_PATTERN.finditer(params):
        key, quoted, token = match.groups()
        value = quoted if quoted is not None else token
        result[key.lower()] = re.sub(r"\\(.)", r"\1", value)
    return result


def parse_www_authenticate(header: str | None) -> AuthChallenge:
    """Parse a ``WWW-Authenticate`` header into an AuthChallenge.

    Example:
        Bearer realm="https://auth.docker.io/token",service="registry.docker.io",
        scope="repository:library/nginx:pull"

    Raises:
        AuthenticationError: If the header is missing, not a Bearer challenge,
            or has no realm
    """
    if not header:
        raise AuthenticationError("Registry did not send a WWW-Authenticate challenge")

    scheme, _, params = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        raise AuthenticationError(f"Unsupported authentication scheme: {scheme}")

    values = parse_challenge_params(params)
    realm = values.get("realm", "")
    if not realm:
        raise AuthenticationError(f"WWW-Authenticate challenge has no realm: {header}")

    return AuthChallenge(
        realm=realm,
        service=values.get("service", ""),
        scope=values.get("scope", ""),
    )


def build_auth_url(challenge: AuthChallenge) -> str:
    """Append ``service`` and ``scope`` to the realm URL."""
    query: dict[str, str] = {}
    if challenge.service:
        query["service"] = challenge.service
    if challenge.scope:
        query["scope"] = challenge.scope
    url = URL(challenge.realm)
    if query:
        url = url.update_query(query)
    return str(url)


async def get_auth_challenge(
    session: aiohttp.ClientSession, config: RegistryConfig, image: ImageReference
) -> AuthChallenge:
    """Request the manifest anonymously and parse the returned challenge."""
    url = config.manifest_url(image.name, image.tag)
    response = await fetch(session, url, proxy=config.proxy)
    challenge = parse_www_authenticate(response.header(WWW_AUTHENTICATE))
    if not challenge.scope:
        scope = f"repository:{config.repository(image.name)}:pull"
        challenge = AuthChallenge(challenge.realm, challenge.service, scope)
    logger.debug("Auth challenge: %s", challenge)
    return challenge


async def fetch_token(
    session: aiohttp.ClientSession, config: RegistryConfig, challenge: AuthChallenge
) -> BearerToken:
    """Exchange a challenge for a bearer token.

    Raises:
        AuthenticationError: If the auth server rejects the request or
            returns no token
    """
    response = await fetch(session, build_auth_url(challenge), proxy=config.proxy)
    ensure_ok(response, AuthenticationError, "Token request")

    data = parse_json_response(response, AuthenticationError, "token response")
    if not isinstance(data, dict):
        raise AuthenticationError("Token response is not a JSON object")

    token = data.get("token") or data.get("access_token")
    if not token:
        raise AuthenticationError("Auth server returned no token")
    return BearerToken(token=token)


async def authenticate(
    session: aiohttp.ClientSession, config: RegistryConfig, image: ImageReference
) -> BearerToken:
    """Resolve the registry challenge for ``image`` into a bearer token."""
    challenge = await get_auth_challenge(session, config, image)
    return await fetch_token(session, config, challenge)
