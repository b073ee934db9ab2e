"""
Pytest configuration and shared fixtures for reward root verifier tests.
"""

import asyncio

import pytest

from reward_verifier.crypto.merkle import Leaf, RewardTree, TreeLayout
from reward_verifier.services.sources import (
    LeafParseError,
    ProofArtifact,
    ProofUnavailableError,
    SourceUnavailableError,
    parse_leaves,
)

ACCOUNT_1 = "0x" + "aa" * 19 + "01"
ACCOUNT_2 = "0x" + "aa" * 19 + "02"
ACCOUNT_3 = "0x" + "bb" * 19 + "03"
OTHER_ROOT = "0x" + "ee" * 32


def publish(leaves: list[Leaf], layout: TreeLayout = TreeLayout.STANDARD) -> tuple[str, dict]:
    """Build a tree and the proof records a publisher would host for it."""
    tree = RewardTree.build(leaves, layout=layout)
    records = {
        leaf.account.lower(): {"amount": leaf.amount, "proof": tree.proof_for(leaf)}
        for leaf in tree.leaves
    }
    return tree.root_hex, records


class FakeProofStore:
    """
    In-memory leaf and proof source.

    Tracks how many proof requests are in flight at once.
    """

    def __init__(
        self,
        leaves_text: str = "",
        records: dict | None = None,
        leaves_status: int | None = None,
        delay: float = 0.0,
    ) -> None:
        self.leaves_text = leaves_text
        self.records = records or {}
        self.leaves_status = leaves_status
        self.delay = delay
        self.requested: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @classmethod
    def for_leaves(
        cls,
        leaves: list[Leaf],
        layout: TreeLayout = TreeLayout.STANDARD,
        **kwargs,
    ) -> tuple["FakeProofStore", str]:
        root, records = publish(leaves, layout)
        text = "\n".join(f"{leaf.account},{leaf.amount}" for leaf in leaves)
        return cls(leaves_text=text, records=records, **kwargs), root

    def url(self, root: str, account: str) -> str:
        return f"https://proofs.test/{root}/proofs/{account}.json"

    async def fetch_leaves(self, root: str) -> list[Leaf]:
        if self.leaves_status is not None:
            raise SourceUnavailableError(
                f"Could not get leaves for root {root}: {self.leaves_status}",
                url=f"https://proofs.test/{root}/leaves.csv",
                status_code=self.leaves_status,
            )
        try:
            return parse_leaves(self.leaves_text)
        except LeafParseError as e:
            raise LeafParseError(str(e), url=f"https://proofs.test/{root}/leaves.csv") from e

    async def fetch_proof(self, root: str, account: str) -> ProofArtifact:
        self.requested.append(account)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            url = self.url(root, account)
            record = self.records.get(account)
            if record is None:
                raise ProofUnavailableError("404: Not Found", url=url, status_code=404)
            return ProofArtifact.from_dict(record, url=url)
        finally:
            self.in_flight -= 1


@pytest.fixture
def two_leaves() -> list[Leaf]:
    """The two-leaf distribution used by the verification scenarios."""
    return [Leaf(ACCOUNT_1, "100"), Leaf(ACCOUNT_2, "200")]


@pytest.fixture
def many_leaves() -> list[Leaf]:
    """A larger distribution with an odd leaf count and mixed-case accounts."""
    leaves = []
    for i in range(25):
        account = "0x" + f"{i * 7919:040x}"
        if i % 3 == 0:
            account = "0x" + account[2:].upper()
        leaves.append(Leaf(account, str((i + 1) * 10**18)))
    return leaves
