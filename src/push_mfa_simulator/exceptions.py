"""
Exceptions raised by the Push MFA Simulator.

Structured protocol rejections are not exceptions; they are returned as
outcomes (see ``schemas.outcome_schemas``). Only failures that make a request
unprocessable are raised.
"""

from typing import List, Optional


class PushMfaSimulatorError(Exception):
    """Base class for simulator errors."""


class KeyLoadError(PushMfaSimulatorError):
    """No key source yielded a usable device key pair."""

    def __init__(self, message: str, attempts: Optional[List[str]] = None):
        self.attempts = attempts or []
        if self.attempts:
            message = f"{message}: {'; '.join(self.attempts)}"
        super().__init__(message)


class KeySourceError(PushMfaSimulatorError):
    """A single key source could not provide a key pair."""


class TokenParseError(PushMfaSimulatorError):
    """An inbound session token could not be parsed into a claim set."""
