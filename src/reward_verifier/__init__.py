"""
Reward Root Verifier

Re-derives reward distribution Merkle roots from published leaf data and
checks every hosted inclusion proof against them.
"""

__version__ = "1.0.0"
