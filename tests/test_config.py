"""
Unit tests for settings.
"""

import pytest
from pydantic import ValidationError

from reward_verifier.core.config import Settings
from reward_verifier.crypto.merkle import TreeLayout


class TestSettings:
    """Tests for Settings validation."""

    def test_tree_layout_defaults_to_standard(self) -> None:
        assert Settings.model_fields["TREE_LAYOUT"].default == TreeLayout.STANDARD

    def test_tree_layout_parsed(self) -> None:
        assert Settings(TREE_LAYOUT="pairwise").TREE_LAYOUT == TreeLayout.PAIRWISE

    def test_unknown_tree_layout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(TREE_LAYOUT="binary")

    def test_concurrency_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(MAX_CONCURRENT_PROOF_FETCHES=0)

    def test_network_endpoints(self) -> None:
        settings = Settings(LEDGER_RPC_URL=None)
        assert settings.LEDGER_NETWORK in settings.NETWORK_RPC_URLS
        assert settings.LEDGER_RPC_URL is None
