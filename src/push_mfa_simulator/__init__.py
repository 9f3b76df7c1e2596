"""
Push MFA Simulator - simulated push MFA device for an external IAM.
"""

__version__ = "0.1.0"
