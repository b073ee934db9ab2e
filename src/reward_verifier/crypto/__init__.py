"""
Reward Root Verifier - Cryptographic Utilities

Provides leaf encoding, Merkle tree construction and proof replay.
"""

from reward_verifier.crypto.merkle import (
    Leaf,
    RewardTree,
    TreeLayout,
    combine,
    encode_leaf,
)

__all__ = [
    "Leaf",
    "RewardTree",
    "TreeLayout",
    "combine",
    "encode_leaf",
]
