"""
Confirmation router: approves or denies a pending login challenge.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import PlainTextResponse

from push_mfa_simulator.dependencies import get_challenge_responder
from push_mfa_simulator.logging_config import record_outcome
from push_mfa_simulator.services.challenge_responder import ChallengeResponder

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/login",
    response_class=PlainTextResponse,
    summary="Respond to a login challenge",
    description=(
        "Authenticates the device against the IAM, looks up the challenge "
        "named in the confirmation token and submits the signed decision."
    ),
)
async def confirm_login(
    request: Request,
    token: str = Form(...),
    context: Optional[str] = Form(None),
    action: Optional[str] = Form(None),
    user_verification: Optional[str] = Form(None, alias="userVerification"),
    iam_url: Optional[str] = Form(None, alias="iamUrl"),
    challenge_responder: ChallengeResponder = Depends(get_challenge_responder),
) -> PlainTextResponse:
    outcome = await challenge_responder.confirm(
        token,
        context=context,
        action=action,
        user_verification=user_verification,
        iam_url=iam_url or None,
    )
    if not outcome.succeeded:
        logger.info(
            f"Confirmation rejected in state {outcome.state.value}: "
            f"{outcome.status_code} {outcome.body}"
        )
    record_outcome(
        request,
        state=outcome.state.value,
        reason=outcome.reason.value if outcome.reason else None,
        user_id=outcome.user_id,
        action=outcome.action,
    )
    return PlainTextResponse(content=outcome.body, status_code=outcome.status_code)
