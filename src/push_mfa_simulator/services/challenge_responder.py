"""
Login confirmation: answers a pending IAM challenge on behalf of the device.

A run walks through these steps, stopping at the first one that rejects:

    PARSE_TOKEN -> RESOLVE_IDENTITY -> AUTHENTICATE -> FETCH_PENDING
        -> MATCH_CHALLENGE -> VERIFY_REQUIREMENT -> SUBMIT_DECISION -> DONE

Every outbound call gets its own freshly minted DPoP proof. Only an
unparsable session token raises; everything else ends in a
ConfirmationOutcome.
"""

import logging
from typing import List, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from push_mfa_simulator.clients.iam_client import (
    CHALLENGE_RESPOND_ENDPOINT,
    LOGIN_PENDING_ENDPOINT,
    TOKEN_ENDPOINT,
    IamClient,
)
from push_mfa_simulator.config import Settings
from push_mfa_simulator.exceptions import TokenParseError
from push_mfa_simulator.schemas.outcome_schemas import (
    ConfirmationOutcome,
    ConfirmationState,
    RejectionReason,
)
from push_mfa_simulator.schemas.session_schemas import (
    ConfirmationSession,
    PendingChallenge,
)
from push_mfa_simulator.security.credentials import (
    ACTION_APPROVE,
    extract_user_id,
    first_non_blank,
    normalize_action,
)
from push_mfa_simulator.security.keys import KeyMaterialStore
from push_mfa_simulator.security.tokens import ProofTokenSigner, read_unverified_claims

logger = logging.getLogger(__name__)


def parse_confirmation_session(token: str) -> ConfirmationSession:
    """
    Raises:
        TokenParseError: If the token is not a JWT or its claims have the wrong types.
    """
    claims = read_unverified_claims(token)
    try:
        return ConfirmationSession.model_validate(claims)
    except ValidationError as e:
        raise TokenParseError(f"Invalid confirmation claims: {e}") from e


def find_challenge(
    challenges: List[PendingChallenge], challenge_id: str
) -> Optional[PendingChallenge]:
    """First pending challenge whose cid equals ``challenge_id``."""
    for challenge in challenges:
        if challenge.cid is not None and challenge.cid == challenge_id:
            return challenge
    return None


def format_summary(
    user_id: str, status_code: int, user_verification: Optional[str], action: str
) -> str:
    status = f"{status_code} {httpx.codes.get_reason_phrase(status_code)}".strip()
    verification = user_verification if user_verification is not None else "null"
    return (
        f"userId: {user_id}; responseStatus: {status}; "
        f"userVerification: {verification}; action: {action}"
    )


class ChallengeResponder:
    def __init__(
        self,
        key_store: KeyMaterialStore,
        iam_client: IamClient,
        settings: Settings,
    ):
        self.key_store = key_store
        self.iam_client = iam_client
        self.settings = settings

    async def confirm(
        self,
        session_token: str,
        context: Optional[str] = None,
        action: Optional[str] = None,
        user_verification: Optional[str] = None,
        iam_url: Optional[str] = None,
    ) -> ConfirmationOutcome:
        """
        Approve or deny the challenge named in a confirmation session token.

        Args:
            session_token: Confirmation token carrying ``cid`` and ``credId``
            context: Legacy fallback for the user verification value
            action: ``approve`` (default) or ``deny``
            user_verification: Explicit user verification value
            iam_url: IAM realm base URL, defaults to the configured one

        Returns:
            ConfirmationOutcome: Success summary or the rejection of the step
            that failed

        Raises:
            TokenParseError: If the session token cannot be parsed
        """
        logger.info("Starting confirm login process")
        base_url = (iam_url or self.settings.default_iam_url).rstrip("/")
        logger.debug(f"Using IAM URL: {base_url}")

        # PARSE_TOKEN
        session = parse_confirmation_session(session_token)
        if not session.is_complete:
            logger.warning("Invalid token: missing required claims")
            return ConfirmationOutcome.rejected(
                ConfirmationState.PARSE_TOKEN,
                RejectionReason.BAD_REQUEST,
                400,
                "Invalid token: missing required claims",
            )

        # RESOLVE_IDENTITY
        effective_action = normalize_action(action)
        effective_verification = first_non_blank(
            user_verification, session.user_verification, context
        )
        logger.debug(
            f"Extracted claims - challengeId: {session.challenge_id}, "
            f"credentialId: {session.credential_id}, action: {effective_action}, "
            f"userVerification: {effective_verification}"
        )
        user_id = extract_user_id(session.credential_id)
        if user_id is None:
            logger.warning("Unable to extract user id from credential id")
            return ConfirmationOutcome.rejected(
                ConfirmationState.RESOLVE_IDENTITY,
                RejectionReason.BAD_REQUEST,
                400,
                "Unable to extract user id from credential id",
                action=effective_action,
            )

        try:
            signer = ProofTokenSigner(
                self.key_store.load(),
                device_id=self.settings.device_id,
                key_id=self.settings.key_id,
            )
            return await self._respond(
                signer,
                base_url,
                session,
                user_id,
                effective_action,
                effective_verification,
            )
        except Exception as e:
            logger.error("Error during confirm login process", exc_info=True)
            return ConfirmationOutcome.rejected(
                ConfirmationState.ERROR,
                RejectionReason.ERROR,
                500,
                f"Error: {e}",
                user_id=user_id,
                action=effective_action,
            )

    async def _respond(
        self,
        signer: ProofTokenSigner,
        base_url: str,
        session: ConfirmationSession,
        user_id: str,
        action: str,
        user_verification: Optional[str],
    ) -> ConfirmationOutcome:
        details = {"user_id": user_id, "action": action}
        challenge_id = session.challenge_id
        credential_id = session.credential_id

        # AUTHENTICATE
        token_url = f"{base_url}{TOKEN_ENDPOINT}"
        access_token = await self.iam_client.exchange_client_credentials(
            token_url,
            signer.sign_proof_of_possession("POST", token_url, user_id),
            self.settings.client_id,
            self.settings.client_secret,
        )
        if access_token is None:
            logger.warning("Failed to obtain access token")
            return ConfirmationOutcome.rejected(
                ConfirmationState.AUTHENTICATE,
                RejectionReason.UNAUTHORIZED,
                401,
                "Failed to obtain access token",
                **details,
            )

        # FETCH_PENDING: the proof is bound to the path without the query
        pending_base_url = f"{base_url}{LOGIN_PENDING_ENDPOINT}"
        pending_url = f"{pending_base_url}?{urlencode({'userId': user_id})}"
        challenges = await self.iam_client.fetch_pending_challenges(
            pending_url,
            signer.sign_proof_of_possession("GET", pending_base_url, user_id),
            access_token,
        )
        if challenges is None:
            logger.warning("Failed to get pending challenges")
            return ConfirmationOutcome.rejected(
                ConfirmationState.FETCH_PENDING,
                RejectionReason.BAD_REQUEST,
                400,
                "Failed to get pending challenges",
                **details,
            )

        # MATCH_CHALLENGE
        challenge = find_challenge(challenges, challenge_id)
        if challenge is None:
            logger.warning(f"Challenge {challenge_id} not found in pending challenges")
            return ConfirmationOutcome.rejected(
                ConfirmationState.MATCH_CHALLENGE,
                RejectionReason.NOT_FOUND,
                404,
                "Challenge not found",
                **details,
            )

        # VERIFY_REQUIREMENT: presence of the requirement gates enforcement
        if (
            action == ACTION_APPROVE
            and challenge.requires_user_verification
            and user_verification is None
        ):
            logger.warning("User verification required but not provided")
            return ConfirmationOutcome.rejected(
                ConfirmationState.VERIFY_REQUIREMENT,
                RejectionReason.BAD_REQUEST,
                400,
                "userVerification required",
                **details,
            )

        # SUBMIT_DECISION
        decision_verification = user_verification if action == ACTION_APPROVE else None
        respond_url = f"{base_url}{CHALLENGE_RESPOND_ENDPOINT.format(cid=challenge_id)}"
        decision_token = signer.sign_challenge_decision(
            credential_id, challenge_id, action, decision_verification
        )
        result = await self.iam_client.submit_challenge_decision(
            respond_url,
            signer.sign_proof_of_possession("POST", respond_url, user_id),
            access_token,
            decision_token,
        )
        if not result.is_success:
            logger.warning(f"Challenge response failed: {result.status_code}")
            return ConfirmationOutcome.rejected(
                ConfirmationState.SUBMIT_DECISION,
                RejectionReason.UPSTREAM_FAILURE,
                result.status_code,
                result.body,
                user_verification=decision_verification,
                **details,
            )

        # DONE
        summary = format_summary(
            user_id, result.status_code, decision_verification, action
        )
        logger.info(f"Confirm login completed successfully: {summary}")
        return ConfirmationOutcome(
            state=ConfirmationState.DONE,
            status_code=200,
            body=summary,
            user_verification=decision_verification,
            **details,
        )
