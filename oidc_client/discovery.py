"""
OpenID Connect discovery. Fetches {issuer}/.well-known/openid-configuration once at startup.
"""
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from oidc_client.config import HTTP_TIMEOUT
from oidc_client.errors import DiscoveryError

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/openid-configuration"


@dataclass(frozen=True)
class ProviderMetadata:
    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProviderMetadata":
        """Build from a discovery document. Authorization and token endpoints are required."""

        def _str(key: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else ""

        metadata = cls(
            issuer=_str("issuer"),
            authorization_endpoint=_str("authorization_endpoint"),
            token_endpoint=_str("token_endpoint"),
            userinfo_endpoint=_str("userinfo_endpoint"),
        )
        if not metadata.authorization_endpoint or not metadata.token_endpoint:
            raise DiscoveryError("Discovery document lacks authorization_endpoint or token_endpoint")
        return metadata


def discovery_url(issuer: str) -> str:
    return issuer.rstrip("/") + WELL_KNOWN_PATH


def discover_provider(issuer: str) -> ProviderMetadata:
    """
    GET the discovery document for `issuer` and parse the endpoints.
    Raises DiscoveryError on transport failure, non-200 status or malformed JSON.
    """
    url = discovery_url(issuer)
    try:
        r = httpx.get(url, headers={"Accept": "application/json"}, timeout=HTTP_TIMEOUT)
    except httpx.HTTPError as e:
        raise DiscoveryError(f"Discovery request to {url} failed: {e}") from e

    if r.status_code != 200:
        raise DiscoveryError(f"Discovery failed: {url} returned HTTP {r.status_code}")

    try:
        data = r.json()
    except ValueError as e:
        raise DiscoveryError(f"Discovery document at {url} is not valid JSON") from e
    if not isinstance(data, dict):
        raise DiscoveryError(f"Discovery document at {url} is not a JSON object")

    metadata = ProviderMetadata.from_dict(data)
    logger.info(
        "Discovered provider %s (authorization=%s, token=%s, userinfo=%s)",
        metadata.issuer or issuer,
        metadata.authorization_endpoint,
        metadata.token_endpoint,
        metadata.userinfo_endpoint or "-",
    )
    return metadata
