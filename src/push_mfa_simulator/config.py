# src/push_mfa_simulator/config.py
"""
Configuration module for loading environment variables using pydantic-settings.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Settings for the Push MFA Simulator.
    Every value has a default so the simulator can run against a local IAM
    without any environment configured.
    """

    # Core settings
    environment: Environment = Field(default=Environment.DEVELOPMENT)
    root_path: str = ""
    log_level: str = "INFO"

    # Device key material. The file path is tried first (volume mounts),
    # the bundled JWK document is the fallback.
    jwk_path: Optional[str] = None
    key_id: str = "DEVICE_KEY_ID"

    # IAM endpoints and device client credentials
    default_iam_url: str = "http://localhost:8080/realms/demo"
    enroll_complete_url: str = (
        "http://localhost:8080/realms/demo/push-mfa/enroll/complete"
    )
    client_id: str = "push-device-client"
    client_secret: str = "device-client-secret"

    # Simulated device descriptor
    device_id: str = "device-static-id"
    device_type: str = "ios"
    device_label: str = "Demo Phone"
    push_provider_id: str = "demo-push-provider-token"
    push_provider_type: str = "log"

    # Outbound HTTP transport
    proxy_http_host: Optional[str] = None
    proxy_http_port: int = -1
    http_timeout_seconds: float = 10.0

    # Mock FCM endpoints
    fcm_access_token: str = "keycloak_push_mfa_simulator_valid_assertion"
    fcm_project_id: str = "ba-secure-mock"
    fcm_client_email: str = "fcm-mock@test.de"
    fcm_token_uri: str = "http://localhost:5000/mock/fcm/token"

    # CORS settings
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])

    @field_validator("default_iam_url", "enroll_complete_url")
    def strip_trailing_slash(cls, v: str) -> str:
        # Endpoint paths are appended verbatim
        return v.rstrip("/")

    @property
    def proxy_url(self) -> Optional[str]:
        if self.proxy_http_host and self.proxy_http_port != -1:
            return f"http://{self.proxy_http_host}:{self.proxy_http_port}"
        return None

    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    model_config = SettingsConfigDict(
        env_prefix="PUSH_MFA_SIMULATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Create a global instance of the settings
settings = Settings()
