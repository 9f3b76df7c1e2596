# src/push_mfa_simulator/security/tokens.py
"""
Signing of the tokens the simulated device produces, and unverified parsing of
the session tokens it receives.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from push_mfa_simulator.exceptions import TokenParseError
from push_mfa_simulator.schemas.session_schemas import (
    DeviceDescriptor,
    EnrollmentSession,
)
from push_mfa_simulator.security.credentials import (
    build_credential_id,
    strip_query_and_fragment,
)
from push_mfa_simulator.security.keys import KeyMaterial

DPOP_TOKEN_TYPE = "dpop+jwt"
JWT_TOKEN_TYPE = "JWT"
DECISION_TOKEN_LIFETIME = timedelta(seconds=300)


def read_unverified_claims(token: str) -> Dict[str, Any]:
    """
    Return the claim set of a compact JWT without verifying its signature.
    Session tokens come from a party trusted by convention.

    Raises:
        TokenParseError: If the token is not a well-formed JWT.
    """
    try:
        return jwt.get_unverified_claims(token)
    except JWTError as e:
        raise TokenParseError(f"Malformed token: {e}") from e


class ProofTokenSigner:
    """
    Builds and signs the device's tokens with its private key.
    """

    def __init__(
        self, key_material: KeyMaterial, device_id: str, key_id: Optional[str] = None
    ):
        self.key_material = key_material
        self.device_id = device_id
        self.key_id = key_id or key_material.key_id

    def _sign(self, claims: Dict[str, Any], headers: Dict[str, Any]) -> str:
        return jwt.encode(
            claims,
            self.key_material.private_jwk,
            algorithm=self.key_material.algorithm,
            headers=headers,
        )

    def sign_proof_of_possession(
        self,
        method: str,
        url: str,
        subject: Optional[str],
        device_id: Optional[str] = None,
    ) -> str:
        """
        Create a DPoP proof binding an HTTP method and URL to the device key.

        Args:
            method: HTTP method of the request the proof accompanies
            url: Target URL; query and fragment are stripped for ``htu``
            subject: User the device acts for
            device_id: Overrides the configured device id

        Returns:
            str: Compact JWS with the public JWK in its header
        """
        claims = {
            "htm": method.upper(),
            "htu": strip_query_and_fragment(url),
            "sub": subject,
            "deviceId": device_id or self.device_id,
            "iat": datetime.now(timezone.utc),
            "jti": str(uuid.uuid4()),
        }
        headers = {
            "typ": DPOP_TOKEN_TYPE,
            "jwk": dict(self.key_material.public_jwk),
        }
        return self._sign(claims, headers)

    def sign_enrollment_token(
        self,
        session: EnrollmentSession,
        device: DeviceDescriptor,
        context: Optional[str],
    ) -> str:
        """
        Create the enrollment token that binds the device's public key to the
        enrollment session through the ``cnf`` claim.
        """
        claims = {
            "enrollmentId": session.enrollment_id,
            "nonce": session.nonce,
            "sub": session.subject,
            "deviceType": device.device_type,
            "deviceId": device.device_id,
            "deviceLabel": device.device_label,
            "pushProviderId": device.push_provider_id,
            "pushProviderType": device.push_provider_type,
            "credentialId": build_credential_id(session.subject, context),
            "cnf": {"jwk": dict(self.key_material.public_jwk)},
        }
        return self._sign(claims, {"kid": self.key_id, "typ": JWT_TOKEN_TYPE})

    def sign_challenge_decision(
        self,
        credential_id: str,
        challenge_id: str,
        action: str,
        user_verification: Optional[str] = None,
    ) -> str:
        """
        Create the token expressing the device's decision on a challenge.
        ``userVerification`` is only present when a non-blank value is given.
        """
        claims: Dict[str, Any] = {
            "cid": challenge_id,
            "credId": credential_id,
            "deviceId": self.device_id,
            "action": action,
            "exp": datetime.now(timezone.utc) + DECISION_TOKEN_LIFETIME,
        }
        if user_verification is not None and user_verification.strip():
            claims["userVerification"] = user_verification
        return self._sign(claims, {"kid": self.key_id, "typ": JWT_TOKEN_TYPE})
