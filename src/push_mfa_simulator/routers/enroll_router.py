"""
Enrollment router: completes an IAM enrollment on behalf of the simulated device.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import PlainTextResponse

from push_mfa_simulator.dependencies import get_enrollment_service
from push_mfa_simulator.logging_config import record_outcome
from push_mfa_simulator.services.enrollment_service import EnrollmentService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/complete",
    response_class=PlainTextResponse,
    summary="Complete a device enrollment",
    description=(
        "Binds the device key to the enrollment session token and posts the "
        "signed enrollment token to the IAM. The IAM's status and body are "
        "returned unchanged."
    ),
)
async def complete_enrollment(
    request: Request,
    token: str = Form(...),
    context: Optional[str] = Form(None),
    iam_url: Optional[str] = Form(None, alias="iamUrl"),
    push_provider_type: Optional[str] = Form(None, alias="pushProviderType"),
    enrollment_service: EnrollmentService = Depends(get_enrollment_service),
) -> PlainTextResponse:
    outcome = await enrollment_service.complete(
        token,
        context=context,
        iam_url=iam_url or None,
        push_provider_type=push_provider_type or None,
    )
    record_outcome(request, iam_status=outcome.status_code)
    return PlainTextResponse(content=outcome.body, status_code=outcome.status_code)
