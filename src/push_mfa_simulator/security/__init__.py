"""
Device identity: key material, credential helpers and token signing.
"""

from push_mfa_simulator.security.keys import KeyMaterial, KeyMaterialStore
from push_mfa_simulator.security.tokens import ProofTokenSigner, read_unverified_claims

__all__ = [
    "KeyMaterial",
    "KeyMaterialStore",
    "ProofTokenSigner",
    "read_unverified_claims",
]
