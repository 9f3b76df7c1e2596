"""
Pydantic models for the mock FCM (push delivery) endpoints.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FcmNotification(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None


class FcmData(BaseModel):
    """
    Data payload of a push message. ``token`` carries the confirmation token
    the simulated device acts on; any other keys are passed through.
    """

    token: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class FcmMessage(BaseModel):
    token: Optional[str] = None
    notification: Optional[FcmNotification] = None
    data: Optional[FcmData] = None

    @property
    def is_deliverable(self) -> bool:
        return (
            self.token is not None
            and self.notification is not None
            and self.data is not None
            and self.data.token is not None
        )


class FcmMessageRequest(BaseModel):
    message: Optional[FcmMessage] = None


class FcmTokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600


class FcmMessageResponse(BaseModel):
    name: str = Field(..., description="Resource name of the accepted message")


class FcmServiceAccount(BaseModel):
    """
    Mock service-account credentials, shaped like a Google credentials file.
    """

    type: str = "service_account"
    project_id: str
    private_key_id: str
    private_key: str
    client_email: str
    token_uri: str
