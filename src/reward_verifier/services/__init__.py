"""
Reward Root Verifier - Services Package

Provides leaf and proof sources, root verification, result aggregation,
ledger root resolution and report rendering.

Use direct imports from submodules:
    from reward_verifier.services.verifier import RootVerifier
    from reward_verifier.services.sources import HostedProofStore
    etc.
"""

__all__ = [
    "HostedProofStore",
    "LeafSource",
    "ProofSource",
    "RootVerifier",
    "ResultAggregator",
    "VerificationResult",
    "VerificationError",
    "LedgerClient",
]
