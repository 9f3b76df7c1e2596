"""
Enrollment completion: binds the device's public key to an IAM enrollment
session and submits the signed enrollment token.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from push_mfa_simulator.clients.iam_client import IamClient
from push_mfa_simulator.config import Settings
from push_mfa_simulator.exceptions import TokenParseError
from push_mfa_simulator.schemas.outcome_schemas import HttpOutcome
from push_mfa_simulator.schemas.session_schemas import (
    DeviceDescriptor,
    EnrollmentSession,
)
from push_mfa_simulator.security.keys import KeyMaterialStore
from push_mfa_simulator.security.tokens import ProofTokenSigner, read_unverified_claims

logger = logging.getLogger(__name__)


def parse_enrollment_session(token: str) -> EnrollmentSession:
    """
    Raises:
        TokenParseError: If the token is not a JWT or its claims have the wrong types.
    """
    claims = read_unverified_claims(token)
    try:
        return EnrollmentSession.model_validate(claims)
    except ValidationError as e:
        raise TokenParseError(f"Invalid enrollment claims: {e}") from e


class EnrollmentService:
    def __init__(
        self,
        key_store: KeyMaterialStore,
        iam_client: IamClient,
        settings: Settings,
    ):
        self.key_store = key_store
        self.iam_client = iam_client
        self.settings = settings

    def device_descriptor(
        self, push_provider_type: Optional[str] = None
    ) -> DeviceDescriptor:
        return DeviceDescriptor(
            device_type=self.settings.device_type,
            device_id=self.settings.device_id,
            device_label=self.settings.device_label,
            push_provider_id=self.settings.push_provider_id,
            push_provider_type=push_provider_type or self.settings.push_provider_type,
        )

    async def complete(
        self,
        session_token: str,
        context: Optional[str] = None,
        iam_url: Optional[str] = None,
        push_provider_type: Optional[str] = None,
    ) -> HttpOutcome:
        """
        Complete an enrollment started by the IAM.

        Args:
            session_token: Enrollment session token issued by the IAM
            context: Device context appended to the credential id
            iam_url: Enrollment completion URL, defaults to the configured one
            push_provider_type: Overrides the configured push provider type

        Returns:
            HttpOutcome: The IAM's response, or a 400/500 outcome

        Raises:
            TokenParseError: If the session token cannot be parsed
        """
        logger.info("Starting enrollment completion process")
        target_url = iam_url or self.settings.enroll_complete_url
        logger.debug(f"Using IAM URL: {target_url}")

        session = parse_enrollment_session(session_token)
        logger.debug(
            f"Extracted claims - enrollmentId: {session.enrollment_id}, "
            f"userId: {session.subject}"
        )
        if not session.is_complete:
            logger.warning("Invalid token: missing required claims")
            return HttpOutcome(status_code=400, body="Invalid token: missing required claims")

        try:
            signer = ProofTokenSigner(
                self.key_store.load(),
                device_id=self.settings.device_id,
                key_id=self.settings.key_id,
            )
            enrollment_token = signer.sign_enrollment_token(
                session, self.device_descriptor(push_provider_type), context
            )
        except Exception as e:
            logger.error("Error while building enrollment token", exc_info=True)
            return HttpOutcome(status_code=500, body=f"Error: {e}")

        logger.debug("Enrollment token generated successfully")
        return await self.iam_client.submit_enrollment(target_url, enrollment_token)
