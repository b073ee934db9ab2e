"""
Reward Root Verifier - Root Verification

Orchestrates a verification run:
1. Fetch the leaf set published for the root
2. Rebuild the canonical tree and compare its root to the target
3. Fetch and replay every leaf's proof, bounded in concurrency
4. Aggregate per-leaf outcomes into a VerificationResult

A leaf set that cannot be read ends the run with a VerificationError.
Per-leaf failures never stop the run; they are collected as data.
"""

import asyncio
import time

import structlog

from reward_verifier.core.config import settings
from reward_verifier.crypto.merkle import Leaf, RewardTree, TreeLayout
from reward_verifier.metrics import get_verification_metrics
from reward_verifier.services.aggregator import (
    AmountMismatch,
    LeafIssue,
    ProofInvalid,
    ProofNotFound,
    ResultAggregator,
    VerificationError,
    VerificationResponse,
)
from reward_verifier.services.sources import (
    HostedProofStore,
    LeafSource,
    ProofSource,
    ProofUnavailableError,
    SourceError,
)

logger = structlog.get_logger(__name__)


class RootVerifier:
    """
    Verifies a root against its published leaves and proofs.

    The tree built for a run is read-only and shared by all leaf checks.
    At most max_concurrency proof requests are in flight at once.
    """

    def __init__(
        self,
        leaf_source: LeafSource,
        proof_source: ProofSource,
        max_concurrency: int = settings.MAX_CONCURRENT_PROOF_FETCHES,
        layout: TreeLayout = settings.TREE_LAYOUT,
    ) -> None:
        """
        Initialize root verifier.

        Args:
            leaf_source: Provides the leaf set of a root
            proof_source: Provides per-account proof records
            max_concurrency: Upper bound on simultaneous proof requests
            layout: Tree layout the publisher used
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._leaf_source = leaf_source
        self._proof_source = proof_source
        self._max_concurrency = max_concurrency
        self._layout = layout
        self._metrics = get_verification_metrics()

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def layout(self) -> TreeLayout:
        return self._layout

    async def verify_root(self, root: str) -> VerificationResponse:
        """
        Verify a root.

        Args:
            root: 0x-prefixed 32 byte hex root, compared case-insensitively

        Returns:
            VerificationResult once every leaf has been checked, or
            VerificationError if the leaf set could not be used
        """
        target = root.lower()
        started = time.monotonic()
        log = logger.bind(root=target)
        log.info("Verifying root")

        try:
            leaves = await self._leaf_source.fetch_leaves(target)
        except SourceError as e:
            log.error("Leaf set unavailable", url=e.url, status_code=e.status_code, error=str(e))
            return self._fail(target, str(e), started, url=e.url, status_code=e.status_code)

        if not leaves:
            log.error("Leaf set is empty")
            return self._fail(target, f"Leaf set for root {target} is empty", started)

        build_started = time.monotonic()
        try:
            tree = RewardTree.build(leaves, layout=self._layout)
        except ValueError as e:
            log.error("Could not build tree", error=str(e))
            return self._fail(target, f"Could not build tree for root {target}: {e}", started)
        self._metrics.record_merkle_build(time.monotonic() - build_started, tree.leaf_count)

        aggregator = ResultAggregator(root=target, computed_root=tree.root_hex)
        for leaf in leaves:
            aggregator.add_amount(leaf.value)

        root_matches = tree.root_hex == target
        log.info(
            "Built tree",
            computed_root=tree.root_hex,
            leaf_count=tree.leaf_count,
            layout=tree.layout.value,
            root_matches=root_matches,
        )
        if not root_matches:
            log.warning("Computed root does not match target root", computed_root=tree.root_hex)
            aggregator.invalidate()

        semaphore = asyncio.Semaphore(self._max_concurrency)
        await asyncio.gather(
            *(self._check_leaf(target, tree, leaf, semaphore, aggregator) for leaf in leaves)
        )

        result = aggregator.result()
        duration = time.monotonic() - started
        self._metrics.record_run("valid" if result.valid else "invalid", duration)
        log.info(
            "Verification completed",
            valid=result.valid,
            leaf_sum=str(result.leaf_sum),
            not_found=len(result.not_found),
            amount_mismatch=len(result.amount_mismatch),
            proof_invalid=len(result.proof_invalid),
            duration_seconds=round(duration, 2),
        )
        return result

    async def _check_leaf(
        self,
        root: str,
        tree: RewardTree,
        leaf: Leaf,
        semaphore: asyncio.Semaphore,
        aggregator: ResultAggregator,
    ) -> None:
        issue = await self._evaluate_leaf(root, tree, leaf, semaphore)
        aggregator.record(issue)
        self._metrics.record_leaf_outcome(issue.kind.value if issue else "valid")

    async def _evaluate_leaf(
        self,
        root: str,
        tree: RewardTree,
        leaf: Leaf,
        semaphore: asyncio.Semaphore,
    ) -> LeafIssue | None:
        """
        Check one leaf.

        Returns:
            The leaf's issue, or None if its proof record is valid
        """
        async with semaphore:
            with self._metrics.track_proof_fetch():
                try:
                    artifact = await self._proof_source.fetch_proof(root, leaf.account.lower())
                except ProofUnavailableError as e:
                    logger.warning(
                        "Proof not found",
                        root=root,
                        account=leaf.account,
                        url=e.url,
                        error=str(e),
                    )
                    return ProofNotFound(
                        account=leaf.account,
                        amount=leaf.amount,
                        at_url=e.url or "",
                        reason=str(e),
                    )

        if artifact.amount != leaf.amount:
            logger.warning(
                "Proof amount mismatch",
                root=root,
                account=leaf.account,
                amount=leaf.amount,
                amount_at_url=artifact.amount,
            )
            return AmountMismatch(
                account=leaf.account,
                amount=leaf.amount,
                at_url=artifact.url,
                amount_at_url=artifact.amount,
            )

        if not tree.verify(leaf, artifact.proof):
            logger.warning("Proof invalid", root=root, account=leaf.account, url=artifact.url)
            return ProofInvalid(
                account=leaf.account,
                amount=leaf.amount,
                at_url=artifact.url,
                proof=artifact.proof,
            )

        return None

    def _fail(
        self,
        root: str,
        msg: str,
        started: float,
        url: str | None = None,
        status_code: int | None = None,
    ) -> VerificationError:
        self._metrics.record_run("error", time.monotonic() - started)
        return VerificationError(root=root, msg=msg, url=url, status_code=status_code)


async def verify_hosted_root(
    root: str,
    store: HostedProofStore | None = None,
    max_concurrency: int = settings.MAX_CONCURRENT_PROOF_FETCHES,
) -> VerificationResponse:
    """
    Verify a root against the configured proof host.

    Args:
        root: Root to verify
        store: Optional store; a default one is opened and closed otherwise
        max_concurrency: Upper bound on simultaneous proof requests
    """
    if store is not None:
        return await RootVerifier(store, store, max_concurrency=max_concurrency).verify_root(root)

    async with HostedProofStore() as hosted:
        return await RootVerifier(hosted, hosted, max_concurrency=max_concurrency).verify_root(root)
