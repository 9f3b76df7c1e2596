# Re-export schemas for convenient imports
from push_mfa_simulator.schemas.fcm_schemas import (
    FcmMessage,
    FcmMessageRequest,
    FcmMessageResponse,
    FcmServiceAccount,
    FcmTokenResponse,
)
from push_mfa_simulator.schemas.outcome_schemas import (
    ConfirmationOutcome,
    ConfirmationState,
    HttpOutcome,
    RejectionReason,
)
from push_mfa_simulator.schemas.session_schemas import (
    ConfirmationSession,
    DeviceDescriptor,
    EnrollmentSession,
    PendingChallenge,
)

__all__ = [
    "ConfirmationOutcome",
    "ConfirmationSession",
    "ConfirmationState",
    "DeviceDescriptor",
    "EnrollmentSession",
    "FcmMessage",
    "FcmMessageRequest",
    "FcmMessageResponse",
    "FcmServiceAccount",
    "FcmTokenResponse",
    "HttpOutcome",
    "PendingChallenge",
    "RejectionReason",
]
