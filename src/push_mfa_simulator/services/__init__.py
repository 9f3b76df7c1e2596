"""
Protocol services of the simulated device.
"""

from push_mfa_simulator.services.challenge_responder import ChallengeResponder
from push_mfa_simulator.services.enrollment_service import EnrollmentService
from push_mfa_simulator.services.sse_service import SseService, sse_service

__all__ = ["ChallengeResponder", "EnrollmentService", "SseService", "sse_service"]
