"""
Mock of the Firebase Cloud Messaging endpoints the IAM pushes through.

Accepted messages are not delivered to any device; they are broadcast to the
browsers connected to ``/fcm/register-sse``.
"""

import logging
import uuid
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import APIRouter, Body, Depends, Form, Header, status
from fastapi.responses import Response, StreamingResponse

from push_mfa_simulator.config import Settings
from push_mfa_simulator.dependencies import get_settings, get_sse_service
from push_mfa_simulator.schemas.fcm_schemas import (
    FcmMessageRequest,
    FcmMessageResponse,
    FcmServiceAccount,
    FcmTokenResponse,
)
from push_mfa_simulator.services.sse_service import SseService

logger = logging.getLogger(__name__)

router = APIRouter()

BEARER_PREFIX = "Bearer "


def generate_private_key_pem() -> str:
    """Fresh RSA-2048 private key as a PKCS#8 PEM document."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@router.post("/token", response_model=FcmTokenResponse)
async def issue_token(
    assertion: Optional[str] = Form(None),
    app_settings: Settings = Depends(get_settings),
):
    """
    OAuth token endpoint of the mock. Any non-empty assertion is accepted.
    """
    if not assertion:
        logger.warning("FCM token requested without assertion")
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)
    return FcmTokenResponse(access_token=app_settings.fcm_access_token)


@router.post("/messages:send", response_model=FcmMessageResponse)
async def send_message(
    payload: Optional[FcmMessageRequest] = Body(None),
    authorization: Optional[str] = Header(None),
    app_settings: Settings = Depends(get_settings),
    sse: SseService = Depends(get_sse_service),
):
    """
    Accept a push message and publish it as a server-sent event.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        logger.warning("FCM send rejected: missing bearer token")
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)
    if authorization[len(BEARER_PREFIX):] != app_settings.fcm_access_token:
        logger.warning("FCM send rejected: unknown access token")
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)
    message = payload.message if payload is not None else None
    if message is None or not message.is_deliverable:
        logger.warning("FCM send rejected: incomplete message")
        return Response(status_code=status.HTTP_400_BAD_REQUEST)

    await sse.broadcast(message)

    message_id = uuid.uuid4().hex
    return FcmMessageResponse(
        name=f"projects/{app_settings.fcm_project_id}/messages/{message_id}"
    )


@router.get("/register-sse")
async def register_sse(sse: SseService = Depends(get_sse_service)):
    """
    Open a server-sent events stream of ``fcm-message`` events.
    """
    listener = await sse.register()
    if listener is None:
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return StreamingResponse(
        sse.stream(listener),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
            "Connection": "keep-alive",
        },
    )


@router.get("/credentials", response_model=FcmServiceAccount)
async def mock_credentials(app_settings: Settings = Depends(get_settings)):
    """
    Service-account credentials pointing the IAM at this mock.
    """
    return FcmServiceAccount(
        project_id=app_settings.fcm_project_id,
        private_key_id=uuid.uuid4().hex,
        private_key=generate_private_key_pem(),
        client_email=app_settings.fcm_client_email,
        token_uri=app_settings.fcm_token_uri,
    )
