"""
Unit tests for device token signing and session token parsing.
"""

import time

import pytest
from jose import jwt

from push_mfa_simulator.exceptions import TokenParseError
from push_mfa_simulator.schemas.session_schemas import (
    DeviceDescriptor,
    EnrollmentSession,
)
from push_mfa_simulator.security.tokens import read_unverified_claims
from tests.fixtures.keys import make_session_token

PENDING_URL = "http://iam.test/realms/demo/push-mfa/login/pending"


def decode(token, key_material):
    return jwt.decode(token, key_material.public_jwk, algorithms=["RS256"])


@pytest.fixture
def device():
    return DeviceDescriptor(
        device_type="ios",
        device_id="device-static-id",
        device_label="Demo Phone",
        push_provider_id="demo-push-provider-token",
        push_provider_type="log",
    )


def test_proof_of_possession_claims(signer, key_material):
    token = signer.sign_proof_of_possession("get", PENDING_URL, "user123")
    claims = decode(token, key_material)

    assert claims["htm"] == "GET"
    assert claims["htu"] == PENDING_URL
    assert claims["sub"] == "user123"
    assert claims["deviceId"] == "device-static-id"
    assert abs(claims["iat"] - int(time.time())) < 60
    assert claims["jti"]


def test_proof_of_possession_header_carries_public_jwk(signer, key_material):
    token = signer.sign_proof_of_possession("POST", PENDING_URL, "user123")
    header = jwt.get_unverified_header(token)

    assert header["typ"] == "dpop+jwt"
    assert header["alg"] == "RS256"
    assert header["jwk"]["n"] == key_material.public_jwk["n"]
    assert "d" not in header["jwk"]


def test_proof_of_possession_strips_query_from_htu(signer, key_material):
    token = signer.sign_proof_of_possession(
        "GET", f"{PENDING_URL}?userId=user123", "user123"
    )
    assert decode(token, key_material)["htu"] == PENDING_URL


def test_proofs_are_unique_per_call(signer, key_material):
    first = decode(signer.sign_proof_of_possession("GET", PENDING_URL, "u"), key_material)
    second = decode(signer.sign_proof_of_possession("GET", PENDING_URL, "u"), key_material)
    assert first["jti"] != second["jti"]


def test_proof_device_id_override(signer, key_material):
    token = signer.sign_proof_of_possession(
        "GET", PENDING_URL, "user123", device_id="other-device"
    )
    assert decode(token, key_material)["deviceId"] == "other-device"


def test_enrollment_token_binds_public_key(signer, key_material, device):
    session = EnrollmentSession(enrollmentId="enr-1", nonce="n-1", sub="user123")
    token = signer.sign_enrollment_token(session, device, "ctx")
    claims = decode(token, key_material)

    assert claims["enrollmentId"] == "enr-1"
    assert claims["nonce"] == "n-1"
    assert claims["sub"] == "user123"
    assert claims["deviceType"] == "ios"
    assert claims["deviceLabel"] == "Demo Phone"
    assert claims["pushProviderId"] == "demo-push-provider-token"
    assert claims["pushProviderType"] == "log"
    assert claims["credentialId"] == "user123-device-alias-ctx"
    assert claims["cnf"]["jwk"] == key_material.public_jwk

    header = jwt.get_unverified_header(token)
    assert header["kid"] == "DEVICE_KEY_ID"
    assert header["typ"] == "JWT"


def test_decision_token_with_user_verification(signer, key_material):
    token = signer.sign_challenge_decision(
        "user123-device-alias-ctx", "challenge-1", "approve", "42"
    )
    claims = decode(token, key_material)

    assert claims["cid"] == "challenge-1"
    assert claims["credId"] == "user123-device-alias-ctx"
    assert claims["deviceId"] == "device-static-id"
    assert claims["action"] == "approve"
    assert claims["userVerification"] == "42"
    assert 290 <= claims["exp"] - int(time.time()) <= 300


@pytest.mark.parametrize("user_verification", [None, "", "   "])
def test_decision_token_omits_blank_user_verification(
    signer, key_material, user_verification
):
    token = signer.sign_challenge_decision(
        "user123-device-alias-ctx", "challenge-1", "deny", user_verification
    )
    assert "userVerification" not in decode(token, key_material)


def test_read_unverified_claims():
    token = make_session_token({"cid": "c-1", "credId": "u-device-alias-x"})
    assert read_unverified_claims(token) == {"cid": "c-1", "credId": "u-device-alias-x"}


@pytest.mark.parametrize("token", ["not-a-jwt", "a.b.c", ""])
def test_read_unverified_claims_rejects_malformed_tokens(token):
    with pytest.raises(TokenParseError):
        read_unverified_claims(token)
