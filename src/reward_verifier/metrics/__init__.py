"""
Reward Root Verifier - Metrics Module

Prometheus metrics for verification runs, tree builds and leaf outcomes.
"""

from reward_verifier.metrics.verification_metrics import (
    VerificationMetrics,
    get_verification_metrics,
)

__all__ = [
    "VerificationMetrics",
    "get_verification_metrics",
]
