"""
Reward Root Verifier - Result Aggregation

Collects per-leaf outcomes of a verification run into disjoint issue
buckets plus the running leaf sum. Many concurrent leaf checks write into
one ResultAggregator; every read-modify-write happens under a lock.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from reward_verifier.crypto.merkle import canonical_account_key


class IssueKind(str, Enum):
    """Per-leaf failure category."""

    NOT_FOUND = "not_found"
    AMOUNT_MISMATCH = "amount_mismatch"
    PROOF_INVALID = "proof_invalid"


@dataclass(frozen=True)
class ProofNotFound:
    """A leaf whose proof record could not be retrieved."""

    account: str
    amount: str
    at_url: str
    reason: str = ""

    kind = IssueKind.NOT_FOUND

    def to_dict(self) -> dict[str, Any]:
        return {
            "account": self.account,
            "amount": self.amount,
            "at_url": self.at_url,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class AmountMismatch:
    """A leaf whose proof record claims a different amount."""

    account: str
    amount: str
    at_url: str
    amount_at_url: str

    kind = IssueKind.AMOUNT_MISMATCH

    def to_dict(self) -> dict[str, Any]:
        return {
            "account": self.account,
            "amount": self.amount,
            "at_url": self.at_url,
            "amount_at_url": self.amount_at_url,
        }


@dataclass(frozen=True)
class ProofInvalid:
    """A leaf whose proof does not replay to the tree root."""

    account: str
    amount: str
    at_url: str
    proof: tuple[str, ...] = ()

    kind = IssueKind.PROOF_INVALID

    def to_dict(self) -> dict[str, Any]:
        return {
            "account": self.account,
            "amount": self.amount,
            "at_url": self.at_url,
            "proof": list(self.proof),
        }


LeafIssue = ProofNotFound | AmountMismatch | ProofInvalid


@dataclass(frozen=True)
class VerificationResult:
    """
    Completed verification of a root.

    Attributes:
        root: Root that was verified
        computed_root: Root re-derived from the leaf set
        valid: True only if the roots match and every leaf checked out
        leaf_sum: Sum of every source leaf's amount, valid or not
        leaf_count: Number of source leaves
        not_found: Leaves without a retrievable proof record
        amount_mismatch: Leaves whose record claims another amount
        proof_invalid: Leaves whose proof misses the root
    """

    root: str
    computed_root: str
    valid: bool
    leaf_sum: int
    leaf_count: int
    not_found: tuple[ProofNotFound, ...] = ()
    amount_mismatch: tuple[AmountMismatch, ...] = ()
    proof_invalid: tuple[ProofInvalid, ...] = ()

    @property
    def root_matches(self) -> bool:
        return self.root == self.computed_root

    @property
    def issue_count(self) -> int:
        return len(self.not_found) + len(self.amount_mismatch) + len(self.proof_invalid)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary. The leaf sum is a string to survive JSON."""
        return {
            "root": self.root,
            "computed_root": self.computed_root,
            "valid": self.valid,
            "leaf_sum": str(self.leaf_sum),
            "leaf_count": self.leaf_count,
            "not_found": [i.to_dict() for i in self.not_found],
            "amount_mismatch": [i.to_dict() for i in self.amount_mismatch],
            "proof_invalid": [i.to_dict() for i in self.proof_invalid],
        }


@dataclass(frozen=True)
class VerificationError:
    """A run that stopped before any leaf could be checked."""

    root: str
    msg: str
    url: str | None = None
    status_code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "error": self.msg,
            "url": self.url,
            "status_code": self.status_code,
        }


VerificationResponse = VerificationResult | VerificationError


def is_verification_error(response: VerificationResponse) -> bool:
    return isinstance(response, VerificationError)


@dataclass
class ResultAggregator:
    """
    Thread-safe accumulator for one verification run.

    Validity only ever moves from True to False.
    """

    root: str
    computed_root: str
    valid: bool = True
    _leaf_sum: int = field(default=0, init=False, repr=False)
    _leaf_count: int = field(default=0, init=False, repr=False)
    _buckets: dict[IssueKind, list[LeafIssue]] = field(init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        self._buckets = {kind: [] for kind in IssueKind}

    def add_amount(self, amount: int) -> None:
        """Add one source leaf's amount to the running sum."""
        with self._lock:
            self._leaf_sum += amount
            self._leaf_count += 1

    def record(self, issue: LeafIssue | None) -> None:
        """Record the outcome of one leaf check; None means the leaf is valid."""
        if issue is None:
            return
        with self._lock:
            self._buckets[issue.kind].append(issue)
            self.valid = False

    def invalidate(self) -> None:
        with self._lock:
            self.valid = False

    @property
    def leaf_sum(self) -> int:
        with self._lock:
            return self._leaf_sum

    def result(self) -> VerificationResult:
        """Snapshot the accumulated state, buckets in canonical account order."""
        with self._lock:
            def ordered(kind: IssueKind) -> tuple:
                return tuple(
                    sorted(self._buckets[kind], key=lambda i: canonical_account_key(i.account))
                )

            return VerificationResult(
                root=self.root,
                computed_root=self.computed_root,
                valid=self.valid,
                leaf_sum=self._leaf_sum,
                leaf_count=self._leaf_count,
                not_found=ordered(IssueKind.NOT_FOUND),
                amount_mismatch=ordered(IssueKind.AMOUNT_MISMATCH),
                proof_invalid=ordered(IssueKind.PROOF_INVALID),
            )
