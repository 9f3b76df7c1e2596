"""
Pydantic models describing the results of IAM calls and protocol runs.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class HttpOutcome(BaseModel):
    """
    Raw status/body pair of an upstream call.
    """

    status_code: int
    body: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class RejectionReason(str, Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    UPSTREAM_FAILURE = "upstream_failure"
    ERROR = "error"


class ConfirmationState(str, Enum):
    PARSE_TOKEN = "parse_token"
    RESOLVE_IDENTITY = "resolve_identity"
    AUTHENTICATE = "authenticate"
    FETCH_PENDING = "fetch_pending"
    MATCH_CHALLENGE = "match_challenge"
    VERIFY_REQUIREMENT = "verify_requirement"
    SUBMIT_DECISION = "submit_decision"
    DONE = "done"
    ERROR = "error"


class ConfirmationOutcome(BaseModel):
    """
    Result of one login confirmation run.

    ``state`` is the step the run ended in. A run that reached ``DONE`` has no
    rejection reason; every other run carries one.
    """

    state: ConfirmationState
    status_code: int
    body: str
    reason: Optional[RejectionReason] = None
    user_id: Optional[str] = None
    action: Optional[str] = None
    user_verification: Optional[str] = Field(
        None, description="Verification value sent with the decision"
    )

    @property
    def succeeded(self) -> bool:
        return self.state == ConfirmationState.DONE

    @classmethod
    def rejected(
        cls,
        state: ConfirmationState,
        reason: RejectionReason,
        status_code: int,
        body: str,
        **details,
    ) -> "ConfirmationOutcome":
        return cls(
            state=state, reason=reason, status_code=status_code, body=body, **details
        )
