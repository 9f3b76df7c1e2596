"""
Health check router for the Push MFA Simulator.
"""
from fastapi import APIRouter, Depends, status

from push_mfa_simulator import __version__
from push_mfa_simulator.dependencies import get_sse_service
from push_mfa_simulator.schemas.health_schemas import HealthResponse
from push_mfa_simulator.services.sse_service import SseService

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check(sse: SseService = Depends(get_sse_service)) -> HealthResponse:
    """
    Liveness probe. Does not touch the IAM or the key material; reports
    whether the push mock still accepts event stream listeners.
    """
    return HealthResponse(status="ok", version=__version__, sse_running=sse.running)
