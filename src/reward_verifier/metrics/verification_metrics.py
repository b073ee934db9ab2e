"""
Reward Root Verifier - Verification Metrics

Prometheus metrics for root verification runs.

Metrics Categories:
- Verification runs and their duration
- Merkle tree building
- Per-leaf outcomes
- Proof fetch concurrency
"""

from contextlib import AbstractContextManager, nullcontext

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, Info

from reward_verifier.core.config import settings


class VerificationMetrics:
    """
    Centralized metrics for root verification.

    Recording methods are no-ops when metrics are disabled.
    """

    def __init__(
        self,
        registry: CollectorRegistry = REGISTRY,
        enabled: bool = settings.METRICS_ENABLED,
    ) -> None:
        """Initialize all verification metrics."""
        self._enabled = enabled
        self._init_run_metrics(registry)
        self._init_merkle_metrics(registry)
        self._init_leaf_metrics(registry)
        self._init_info_metrics(registry)

    def _init_run_metrics(self, registry: CollectorRegistry) -> None:
        """Initialize verification run metrics."""
        self.runs_total = Counter(
            "reward_verifier_runs_total",
            "Total root verification runs",
            ["outcome"],
            registry=registry,
        )

        self.run_duration = Histogram(
            "reward_verifier_run_duration_seconds",
            "Duration of a root verification run",
            buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 900.0],
            registry=registry,
        )

    def _init_merkle_metrics(self, registry: CollectorRegistry) -> None:
        """Initialize Merkle tree metrics."""
        self.merkle_build_duration = Histogram(
            "reward_verifier_merkle_build_duration_seconds",
            "Merkle tree build time",
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
            registry=registry,
        )

        self.merkle_tree_size = Histogram(
            "reward_verifier_merkle_tree_size",
            "Number of leaves in Merkle tree",
            buckets=[10, 50, 100, 500, 1000, 5000, 10000, 50000],
            registry=registry,
        )

    def _init_leaf_metrics(self, registry: CollectorRegistry) -> None:
        """Initialize per-leaf metrics."""
        self.leaf_outcomes = Counter(
            "reward_verifier_leaf_outcomes_total",
            "Per-leaf verification outcomes",
            ["outcome"],
            registry=registry,
        )

        self.proof_fetches_in_flight = Gauge(
            "reward_verifier_proof_fetches_in_flight",
            "Proof record requests currently in flight",
            registry=registry,
        )

    def _init_info_metrics(self, registry: CollectorRegistry) -> None:
        """Initialize info metrics."""
        self.service_info = Info(
            "reward_verifier_service",
            "Reward root verifier information",
            registry=registry,
        )

    # Convenience methods

    def record_run(self, outcome: str, duration: float) -> None:
        """Record a finished run: valid, invalid or error."""
        if not self._enabled:
            return
        self.runs_total.labels(outcome=outcome).inc()
        self.run_duration.observe(duration)

    def record_merkle_build(self, duration: float, tree_size: int) -> None:
        """Record Merkle tree build."""
        if not self._enabled:
            return
        self.merkle_build_duration.observe(duration)
        self.merkle_tree_size.observe(tree_size)

    def record_leaf_outcome(self, outcome: str) -> None:
        if not self._enabled:
            return
        self.leaf_outcomes.labels(outcome=outcome).inc()

    def track_proof_fetch(self) -> AbstractContextManager:
        """Context manager counting a proof request as in flight."""
        if not self._enabled:
            return nullcontext()
        return self.proof_fetches_in_flight.track_inprogress()

    def set_service_info(self, version: str, environment: str, proofs_base_url: str) -> None:
        """Set service info labels."""
        self.service_info.info({
            "version": version,
            "environment": environment,
            "proofs_base_url": proofs_base_url,
        })


# Singleton instance
_verification_metrics: VerificationMetrics | None = None


def get_verification_metrics() -> VerificationMetrics:
    """Get global verification metrics instance."""
    global _verification_metrics
    if _verification_metrics is None:
        _verification_metrics = VerificationMetrics()
    return _verification_metrics
