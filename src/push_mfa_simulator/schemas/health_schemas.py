"""
Pydantic models for the liveness endpoint.
"""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Liveness check result. ``status`` is ``ok`` while the process serves requests."""

    status: str
    version: str
    sse_running: bool
