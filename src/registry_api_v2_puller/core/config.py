"""Validation of pull options before any network activity."""

import re

from yarl import URL

from ..exceptions import ConfigurationError

# aiohttp only tunnels through HTTP proxies
PROXY_SCHEMES = ("http", "https")

_PLATFORM_PATTERN = re.compile(r"^[a-z0-9_.-]+/[a-z0-9_.-]+(/[a-z0-9_.-]+)?$")


def validate_proxy(proxy: str | None) -> str | None:
    """Return ``proxy`` unchanged if it is a usable proxy URL.

    Raises:
        ConfigurationError: If the URL has no supported scheme or no host
    """
    if not proxy:
        return None

    try:
        url = URL(proxy)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid proxy URL {proxy!r}: {e}") from e

    if url.scheme not in PROXY_SCHEMES or not url.host:
        raise ConfigurationError(
            f"Invalid proxy URL {proxy!r}: expected {'/'.join(PROXY_SCHEMES)}://host[:port]"
        )
    return proxy


def parse_platform(platform: str) -> str:
    """Validate an ``os/architecture[/variant]`` platform string.

    Raises:
        ConfigurationError: If the string is malformed
    """
    platform = platform.strip().lower()
    if not _PLATFORM_PATTERN.match(platform):
        raise ConfigurationError(
            f"Invalid platform {platform!r}: expected os/architecture (e.g. linux/amd64)"
        )
    return platform
