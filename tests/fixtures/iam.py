"""
In-process fake of the IAM endpoints the simulator talks to, served through
``httpx.MockTransport``.
"""

import json
from typing import Any, Dict, List, Optional, Set

import httpx
import pytest
import pytest_asyncio

from push_mfa_simulator.clients.iam_client import (
    LOGIN_PENDING_ENDPOINT,
    TOKEN_ENDPOINT,
)

IAM_BASE_URL = "http://iam.test/realms/demo"
ENROLL_URL = f"{IAM_BASE_URL}/push-mfa/enroll/complete"
ACCESS_TOKEN = "access-token-123"


class FakeIam:
    """
    Records every request and answers with the configured status and body.
    Endpoints listed in ``unreachable`` raise a connection error instead.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.unreachable: Set[str] = set()

        self.token_status = 200
        self.token_body: Any = {"access_token": ACCESS_TOKEN, "token_type": "DPoP"}

        self.pending_status = 200
        self.challenges: List[Dict[str, Any]] = []

        self.respond_status = 200
        self.respond_body = ""

        self.enroll_status = 200
        self.enroll_body = '{"status":"ENROLLED"}'

    def endpoint_of(self, request: httpx.Request) -> str:
        path = request.url.path
        if path.endswith(TOKEN_ENDPOINT):
            return "token"
        if path.endswith(LOGIN_PENDING_ENDPOINT):
            return "pending"
        if path.endswith("/respond"):
            return "respond"
        if path.endswith("/enroll/complete"):
            return "enroll"
        return "unknown"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = self.endpoint_of(request)
        if endpoint in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)

        if endpoint == "token":
            return _response(self.token_status, self.token_body)
        if endpoint == "pending":
            return _response(self.pending_status, {"challenges": self.challenges})
        if endpoint == "respond":
            return httpx.Response(self.respond_status, text=self.respond_body)
        if endpoint == "enroll":
            return httpx.Response(self.enroll_status, text=self.enroll_body)
        return httpx.Response(404, text="Not Found")

    def requests_to(self, endpoint: str) -> List[httpx.Request]:
        return [r for r in self.requests if self.endpoint_of(r) == endpoint]

    def last_request_to(self, endpoint: str) -> Optional[httpx.Request]:
        matching = self.requests_to(endpoint)
        return matching[-1] if matching else None

    @staticmethod
    def json_body(request: httpx.Request) -> Dict[str, Any]:
        return json.loads(request.content.decode("utf-8"))


def _response(status_code: int, body: Any) -> httpx.Response:
    if isinstance(body, str):
        return httpx.Response(status_code, text=body)
    return httpx.Response(status_code, json=body)


@pytest.fixture
def fake_iam() -> FakeIam:
    return FakeIam()


@pytest_asyncio.fixture
async def iam_http_client(fake_iam):
    """Async HTTP client whose requests are answered by ``fake_iam``."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_iam.handler)) as client:
        yield client
