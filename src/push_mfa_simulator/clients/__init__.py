"""
Client modules for external service integrations.
"""

from push_mfa_simulator.clients.http_client import build_http_client
from push_mfa_simulator.clients.iam_client import IamClient

__all__ = ["IamClient", "build_http_client"]
