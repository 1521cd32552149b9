"""
Catalog — List repositories of the source registry.

Single call to the Docker Registry HTTP API V2:

    GET {http|https}://{api or host}/v2/_catalog
    -> {"repositories": ["team/app/api", "busybox"]}

Plain http is used when the endpoint has `ssl: false`. Basic auth is sent
when a user is configured.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from ..config.loader import DEFAULT_CATALOG_TIMEOUT, EndpointConfig
from ..errors import CatalogDecodeError, CatalogFetchError, CatalogHTTPError

logger = logging.getLogger(__name__)

CATALOG_PATH = "/v2/_catalog"


def catalog_url(endpoint: EndpointConfig) -> str:
    """Catalog URL for an endpoint."""
    scheme = "http" if endpoint.insecure else "https"
    return f"{scheme}://{endpoint.api_host}{CATALOG_PATH}"


def parse_catalog(url: str, payload: object) -> List[str]:
    """Extract the repository names from a decoded catalog body."""
    if not isinstance(payload, dict):
        raise CatalogDecodeError(url, "expected a JSON object")

    repositories = payload.get("repositories")
    if repositories is None:
        # An empty registry may omit the list entirely
        return []
    if not isinstance(repositories, list) or not all(isinstance(r, str) for r in repositories):
        raise CatalogDecodeError(url, "'repositories' must be a list of strings")
    return repositories


def fetch_catalog(
    endpoint: EndpointConfig,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_CATALOG_TIMEOUT,
) -> List[str]:
    """
    Fetch the repository list of a registry.

    Args:
        endpoint: Registry to query
        client: Optional httpx client (a short-lived one is created otherwise)
        timeout: Request timeout in seconds

    Returns:
        Repository names in the order the registry returned them

    Raises:
        CatalogFetchError: Network failure
        CatalogHTTPError: Non-200 response
        CatalogDecodeError: Body is not a valid catalog
    """
    url = catalog_url(endpoint)
    auth = (endpoint.user, endpoint.password) if endpoint.user else None

    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=timeout)

    try:
        logger.debug(f"GET {url}")
        response = client.get(url, auth=auth)
    except httpx.HTTPError as e:
        raise CatalogFetchError(url, str(e) or type(e).__name__) from e
    finally:
        if owns_client:
            client.close()

    if response.status_code != 200:
        raise CatalogHTTPError(url, response.status_code, response.reason_phrase)

    try:
        payload = response.json()
    except ValueError as e:
        raise CatalogDecodeError(url, f"invalid JSON: {e}") from e

    repositories = parse_catalog(url, payload)
    logger.debug(f"Catalog returned {len(repositories)} repositories")
    return repositories
