"""
IAM client for the outbound calls of the push MFA protocol.

None of the calls raise on transport or protocol errors: failures are logged
and returned as ``None`` or as a failed ``HttpOutcome`` so the caller can
report a structured result.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from push_mfa_simulator.schemas.outcome_schemas import HttpOutcome
from push_mfa_simulator.schemas.session_schemas import PendingChallenge

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "/protocol/openid-connect/token"
LOGIN_PENDING_ENDPOINT = "/push-mfa/login/pending"
CHALLENGE_RESPOND_ENDPOINT = "/push-mfa/login/challenges/{cid}/respond"


class IamClient:
    """
    Client for the IAM's token, pending-challenge, challenge-response and
    enrollment endpoints.
    """

    def __init__(self, http_client: httpx.AsyncClient):
        """
        Initialize the IAM client.

        Args:
            http_client: Shared async HTTP client used as the transport
        """
        self.http_client = http_client

    async def exchange_client_credentials(
        self,
        token_endpoint: str,
        pop: str,
        client_id: str,
        client_secret: str,
    ) -> Optional[str]:
        """
        Obtain an access token with the client credentials grant.

        Args:
            token_endpoint: Full token endpoint URL
            pop: DPoP proof bound to ``POST token_endpoint``
            client_id: Device client id
            client_secret: Device client secret

        Returns:
            Optional[str]: The access token, or None if the exchange failed
        """
        logger.info(f"Requesting access token for client {client_id}")
        try:
            response = await self.http_client.post(
                token_endpoint,
                data={
                    "grant_type": "client_credentials",
                    "client_id": client_id,
                    "client_secret": client_secret,
                },
                headers={"DPoP": pop},
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to get access token: {str(e)}")
            return None

        if not response.is_success:
            logger.warning(
                f"Token endpoint returned {response.status_code}: {response.text}"
            )
            return None

        data = _json_object(response)
        if data is None or not data.get("access_token"):
            logger.warning("Token endpoint response has no access_token")
            return None
        return str(data["access_token"])

    async def fetch_pending_challenges(
        self, pending_url: str, pop: str, bearer: str
    ) -> Optional[List[PendingChallenge]]:
        """
        Fetch the challenges awaiting a decision.

        Args:
            pending_url: Pending endpoint URL including the ``userId`` query
            pop: DPoP proof bound to ``GET`` and the URL without its query
            bearer: Access token

        Returns:
            Optional[List[PendingChallenge]]: Challenges in the order the IAM
            returned them, or None if the lookup failed
        """
        try:
            response = await self.http_client.get(
                pending_url,
                headers={"Authorization": f"Bearer {bearer}", "DPoP": pop},
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to get pending challenges: {str(e)}")
            return None

        if not response.is_success:
            logger.warning(
                f"Pending endpoint returned {response.status_code}: {response.text}"
            )
            return None

        data = _json_object(response)
        challenges = data.get("challenges") if data is not None else None
        if not isinstance(challenges, list):
            logger.warning("Pending endpoint response has no challenges list")
            return None

        return [
            PendingChallenge.model_validate(entry)
            for entry in challenges
            if isinstance(entry, dict)
        ]

    async def submit_challenge_decision(
        self, respond_url: str, pop: str, bearer: str, decision_token: str
    ) -> HttpOutcome:
        """
        Post the signed challenge decision.

        Returns:
            HttpOutcome: The IAM's status and body, or a 500 outcome when the
            request could not be sent
        """
        try:
            response = await self.http_client.post(
                respond_url,
                json={"token": decision_token},
                headers={"Authorization": f"Bearer {bearer}", "DPoP": pop},
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to post challenge response: {str(e)}")
            return HttpOutcome(
                status_code=500, body=f"Failed to post challenge response: {e}"
            )
        return HttpOutcome(status_code=response.status_code, body=response.text)

    async def submit_enrollment(
        self, enroll_url: str, enrollment_token: str
    ) -> HttpOutcome:
        """
        Post the signed enrollment token to the IAM's enrollment endpoint.
        """
        try:
            response = await self.http_client.post(
                enroll_url,
                json={"token": enrollment_token},
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to submit enrollment: {str(e)}")
            return HttpOutcome(status_code=500, body=f"Failed to submit enrollment: {e}")

        logger.info(
            f"Enrollment request sent to {enroll_url}. "
            f"Response status: {response.status_code}"
        )
        return HttpOutcome(status_code=response.status_code, body=response.text)


def _json_object(response: httpx.Response) -> Optional[Dict[str, Any]]:
    try:
        data = response.json()
    except ValueError:
        logger.warning("IAM response body is not valid JSON")
        return None
    return data if isinstance(data, dict) else None
