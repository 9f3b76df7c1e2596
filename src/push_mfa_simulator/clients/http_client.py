"""
Outbound HTTP transport shared by all IAM calls.
"""

import logging
from typing import Optional

import httpx

from push_mfa_simulator.config import Settings

logger = logging.getLogger(__name__)


def build_http_client(
    settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> httpx.AsyncClient:
    """
    Create the pooled async HTTP client, routed through the configured proxy
    when both proxy host and port are set.

    Args:
        settings: Application settings
        transport: Optional transport override (used by tests)

    Returns:
        httpx.AsyncClient: Client to be closed by the caller
    """
    proxy = settings.proxy_url
    if proxy and transport is None:
        logger.info(f"Routing IAM traffic through proxy {proxy}")
        return httpx.AsyncClient(proxy=proxy, timeout=settings.http_timeout_seconds)
    return httpx.AsyncClient(
        transport=transport, timeout=settings.http_timeout_seconds
    )
