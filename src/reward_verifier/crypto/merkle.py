"""
Reward Root Verifier - Merkle Tree Implementation

Provides leaf encoding, sorted-pair node hashing, canonical tree
construction and inclusion proof replay for reward distribution roots.

Leaves are encoded the way the reward contract expects them:
keccak256(keccak256(abi.encode(address account, uint256 amount))).

Internal nodes hash their two children after sorting them byte-wise, so
a proof is only an ordered list of sibling digests with no left/right
markers.

Two tree layouts are supported:
- PAIRWISE: adjacent digests are paired level by level; an unpaired last
  digest is promoted (not duplicated) to the next level.
- STANDARD: the array layout used by OpenZeppelin's StandardMerkleTree,
  where leaf digests are sorted and stored at the tail of a 2n-1 node array.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from eth_abi import encode as abi_encode
from eth_abi.exceptions import EncodingError
from eth_utils import keccak, to_canonical_address

DIGEST_SIZE = 32
LEAF_TYPES = ["address", "uint256"]


class TreeLayout(str, Enum):
    """Node arrangement used when building a tree."""

    PAIRWISE = "pairwise"
    STANDARD = "standard"


def canonical_account_key(account: str) -> bytes:
    """
    Sort key for an account.

    Byte-wise over the lower-cased representation. The root depends on
    leaf order, so the key must never depend on locale or input casing.
    """
    return account.lower().encode("utf-8")


@dataclass(frozen=True)
class Leaf:
    """
    One claimant's entitlement.

    Attributes:
        account: 0x-prefixed 20 byte hex address, any case
        amount: Non-negative integer as a decimal string
    """

    account: str
    amount: str

    @property
    def value(self) -> int:
        """Amount as an integer."""
        return int(self.amount)

    @property
    def sort_key(self) -> bytes:
        return canonical_account_key(self.account)


def to_hex(digest: bytes) -> str:
    """Render a digest as a lower-case 0x-prefixed hex string."""
    return "0x" + digest.hex()


def parse_digest(value: str | bytes) -> bytes:
    """
    Parse a 32 byte digest.

    Args:
        value: Raw bytes or hex string with optional 0x prefix

    Returns:
        Digest bytes

    Raises:
        ValueError: If the value is not exactly 32 bytes
    """
    if isinstance(value, bytes):
        digest = value
    else:
        text = value[2:] if value[:2] in ("0x", "0X") else value
        digest = bytes.fromhex(text)
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"Digest must be {DIGEST_SIZE} bytes, got {len(digest)}")
    return digest


def encode_leaf(account: str, amount: str | int) -> bytes:
    """
    Compute the digest of a leaf.

    Args:
        account: Hex address (checksum casing is not enforced)
        amount: Non-negative integer or its decimal string

    Returns:
        32 byte leaf digest

    Raises:
        ValueError: If the account is not an address or the amount does not
            fit in a uint256
    """
    try:
        encoded = abi_encode(LEAF_TYPES, [to_canonical_address(account), int(amount)])
    except EncodingError as e:
        raise ValueError(f"Cannot encode leaf ({account}, {amount}): {e}") from e
    return keccak(keccak(encoded))


def combine(a: bytes, b: bytes) -> bytes:
    """Hash two sibling digests in ascending byte order."""
    if b < a:
        a, b = b, a
    return keccak(a + b)


def compute_root_from_proof(leaf_hash: bytes, proof_path: Sequence[str | bytes]) -> bytes:
    """
    Fold a proof path into a root.

    Args:
        leaf_hash: Digest of the leaf being proven
        proof_path: Sibling digests ordered from leaf to root

    Returns:
        The root the path leads to

    Raises:
        ValueError: If any path element is not a 32 byte digest
    """
    current = leaf_hash
    for sibling in proof_path:
        current = combine(current, parse_digest(sibling))
    return current


class RewardTree:
    """
    Merkle tree over a canonically ordered reward leaf set.

    Immutable after construction and safe to share between concurrent
    verification tasks.

    Example:
        >>> tree = RewardTree.build([Leaf("0x" + "11" * 20, "100")])
        >>> tree.verify(tree.leaves[0], tree.get_proof(0))
        True
    """

    def __init__(
        self,
        leaves: tuple[Leaf, ...],
        leaf_hashes: tuple[bytes, ...],
        layout: TreeLayout,
        levels: list[list[bytes]] | None = None,
        nodes: list[bytes] | None = None,
        positions: list[int] | None = None,
    ) -> None:
        """
        Initialize tree (internal use).

        Use build() to construct trees.
        """
        self._leaves = leaves
        self._leaf_hashes = leaf_hashes
        self._layout = layout
        self._levels = levels
        self._nodes = nodes
        self._positions = positions

        if layout == TreeLayout.STANDARD:
            self._root = nodes[0]
        else:
            self._root = levels[-1][0]

    @classmethod
    def build(
        cls,
        leaves: Sequence[Leaf],
        layout: TreeLayout = TreeLayout.PAIRWISE,
    ) -> "RewardTree":
        """
        Build a tree from leaves in any order.

        Leaves are stable-sorted by canonical account key first, so two
        builds over the same multiset give the same root. Duplicate
        accounts stay as separate leaves.

        Args:
            leaves: Leaf records
            layout: Node arrangement

        Returns:
            Constructed RewardTree

        Raises:
            ValueError: If leaves is empty or a leaf cannot be encoded
        """
        if not leaves:
            raise ValueError("Cannot build a reward tree from an empty leaf set")

        ordered = tuple(sorted(leaves, key=lambda leaf: leaf.sort_key))
        hashes = tuple(encode_leaf(leaf.account, leaf.amount) for leaf in ordered)

        if layout == TreeLayout.STANDARD:
            return cls._build_standard(ordered, hashes)
        return cls._build_pairwise(ordered, hashes)

    @classmethod
    def _build_pairwise(cls, leaves: tuple[Leaf, ...], hashes: tuple[bytes, ...]) -> "RewardTree":
        levels = [list(hashes)]
        current = levels[0]

        while len(current) > 1:
            next_level = [combine(current[i], current[i + 1]) for i in range(0, len(current) - 1, 2)]
            if len(current) % 2:
                # Odd case: promote the last node
                next_level.append(current[-1])
            levels.append(next_level)
            current = next_level

        return cls(leaves, hashes, TreeLayout.PAIRWISE, levels=levels)

    @classmethod
    def _build_standard(cls, leaves: tuple[Leaf, ...], hashes: tuple[bytes, ...]) -> "RewardTree":
        size = 2 * len(hashes) - 1
        nodes = [b""] * size
        positions = [0] * len(hashes)

        by_hash = sorted(range(len(hashes)), key=lambda i: hashes[i])
        for rank, leaf_index in enumerate(by_hash):
            positions[leaf_index] = size - 1 - rank
            nodes[size - 1 - rank] = hashes[leaf_index]

        for i in range(size - 1 - len(hashes), -1, -1):
            nodes[i] = combine(nodes[2 * i + 1], nodes[2 * i + 2])

        return cls(leaves, hashes, TreeLayout.STANDARD, nodes=nodes, positions=positions)

    @property
    def root(self) -> bytes:
        """Get the root digest."""
        return self._root

    @property
    def root_hex(self) -> str:
        """Get the root as a lower-case 0x-prefixed hex string."""
        return to_hex(self._root)

    @property
    def leaves(self) -> tuple[Leaf, ...]:
        """Leaves in canonical order."""
        return self._leaves

    @property
    def leaf_count(self) -> int:
        return len(self._leaves)

    @property
    def layout(self) -> TreeLayout:
        return self._layout

    def get_leaf_hash(self, index: int) -> bytes:
        """
        Get the digest of a leaf by canonical index.

        Raises:
            IndexError: If index out of bounds
        """
        if index < 0 or index >= len(self._leaves):
            raise IndexError(f"Leaf index {index} out of bounds")
        return self._leaf_hashes[index]

    def get_proof(self, index: int) -> list[str]:
        """
        Derive the sibling path for a leaf.

        Args:
            index: Canonical index of the leaf

        Returns:
            Hex sibling digests ordered from leaf to root

        Raises:
            IndexError: If index out of bounds
        """
        if index < 0 or index >= len(self._leaves):
            raise IndexError(f"Leaf index {index} out of bounds")

        proof = []
        if self._layout == TreeLayout.STANDARD:
            position = self._positions[index]
            while position > 0:
                sibling = position + 1 if position % 2 else position - 1
                proof.append(to_hex(self._nodes[sibling]))
                position = (position - 1) // 2
            return proof

        position = index
        for level in self._levels[:-1]:
            sibling = position ^ 1
            # No sibling means the node was promoted at this level
            if sibling < len(level):
                proof.append(to_hex(level[sibling]))
            position //= 2
        return proof

    def proof_for(self, leaf: Leaf) -> list[str]:
        """
        Derive the sibling path for a leaf record.

        Raises:
            ValueError: If the leaf is not part of the tree
        """
        return self.get_proof(self._leaves.index(leaf))

    def verify(self, leaf: Leaf, proof_path: Sequence[str | bytes]) -> bool:
        """
        Replay a proof for a leaf against this tree's root.

        Malformed path elements or an unencodable leaf yield False.

        Args:
            leaf: The leaf being proven
            proof_path: Sibling digests ordered from leaf to root

        Returns:
            True if the path reproduces the root
        """
        try:
            leaf_hash = encode_leaf(leaf.account, leaf.amount)
            return compute_root_from_proof(leaf_hash, proof_path) == self._root
        except (ValueError, TypeError):
            return False
