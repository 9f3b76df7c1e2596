"""
FastAPI dependencies wiring settings, key material and the IAM client into the
protocol services.
"""

import logging
from functools import lru_cache

import httpx
from fastapi import Depends, HTTPException, Request, status

from push_mfa_simulator.clients.iam_client import IamClient
from push_mfa_simulator.config import Settings, settings
from push_mfa_simulator.security.keys import KeyMaterialStore
from push_mfa_simulator.services.challenge_responder import ChallengeResponder
from push_mfa_simulator.services.enrollment_service import EnrollmentService
from push_mfa_simulator.services.sse_service import SseService, sse_service

logger = logging.getLogger(__name__)


def get_settings() -> Settings:
    """
    Returns the application settings.
    """
    return settings


@lru_cache()
def get_key_material_store() -> KeyMaterialStore:
    """
    Returns the process-wide key store; key material is loaded once and cached.
    """
    return KeyMaterialStore.from_settings(settings)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Returns the pooled HTTP client created in the application lifespan.

    Raises:
        HTTPException: If the client has not been initialized
    """
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        logger.error("HTTP client requested before application startup")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="HTTP client not initialized",
        )
    return client


def get_iam_client(
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> IamClient:
    return IamClient(http_client)


def get_enrollment_service(
    key_store: KeyMaterialStore = Depends(get_key_material_store),
    iam_client: IamClient = Depends(get_iam_client),
    app_settings: Settings = Depends(get_settings),
) -> EnrollmentService:
    return EnrollmentService(key_store, iam_client, app_settings)


def get_challenge_responder(
    key_store: KeyMaterialStore = Depends(get_key_material_store),
    iam_client: IamClient = Depends(get_iam_client),
    app_settings: Settings = Depends(get_settings),
) -> ChallengeResponder:
    return ChallengeResponder(key_store, iam_client, app_settings)


def get_sse_service() -> SseService:
    return sse_service
