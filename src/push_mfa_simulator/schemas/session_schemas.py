"""
Pydantic models for the session tokens the simulator receives and the
pending challenges it reads back from the IAM.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EnrollmentSession(BaseModel):
    """
    Claims of an enrollment session token issued by the IAM.
    """

    enrollment_id: Optional[str] = Field(None, alias="enrollmentId")
    nonce: Optional[str] = None
    subject: Optional[str] = Field(None, alias="sub")
    iss: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def is_complete(self) -> bool:
        return all([self.enrollment_id, self.nonce, self.subject])


class ConfirmationSession(BaseModel):
    """
    Claims of a login confirmation token: which challenge to act on and for
    which device credential.
    """

    challenge_id: Optional[str] = Field(None, alias="cid")
    credential_id: Optional[str] = Field(None, alias="credId")
    user_verification: Optional[str] = Field(None, alias="userVerification")
    iss: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def is_complete(self) -> bool:
        return bool(self.challenge_id) and bool(self.credential_id)


class PendingChallenge(BaseModel):
    """
    A challenge the IAM reports as awaiting a decision.

    ``user_verification`` is whatever the IAM sent; only its presence matters.
    """

    cid: Optional[str] = None
    user_verification: Optional[Any] = Field(None, alias="userVerification")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @field_validator("cid", mode="before")
    @classmethod
    def cid_as_text(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @property
    def requires_user_verification(self) -> bool:
        return self.user_verification is not None


class DeviceDescriptor(BaseModel):
    """
    Static description of the simulated device embedded in enrollment tokens.
    """

    device_type: str
    device_id: str
    device_label: str
    push_provider_id: str
    push_provider_type: str
