"""
Reward Root Verifier - Configuration
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from reward_verifier.crypto.merkle import TreeLayout


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    # Application
    APP_NAME: str = "Reward Root Verifier"
    VERSION: str = "1.0.0"
    ENV: str = "development"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8083
    WORKERS: int = 1
    LOG_LEVEL: str = "INFO"

    # Hosted leaves and proofs
    PROOFS_BASE_URL: str = (
        "https://raw.githubusercontent.com/AcronymFoundation/anvil-reward-proofs/refs/heads/"
    )
    LEAVES_FILE_NAME: str = "leaves.csv"
    PROOFS_DIR_NAME: str = "proofs/"
    HTTP_TIMEOUT_SECONDS: float = 30.0
    MAX_CONCURRENT_PROOF_FETCHES: int = Field(default=32, ge=1)
    # Roots on the default host are published as OpenZeppelin StandardMerkleTrees
    TREE_LAYOUT: TreeLayout = TreeLayout.STANDARD

    # Ledger
    # An explicit endpoint wins over the network name
    LEDGER_RPC_URL: str | None = None
    LEDGER_NETWORK: str = "mainnet"
    NETWORK_RPC_URLS: dict[str, str] = {
        "mainnet": "https://ethereum-rpc.publicnode.com",
        "sepolia": "https://ethereum-sepolia-rpc.publicnode.com",
        "holesky": "https://ethereum-holesky-rpc.publicnode.com",
    }

    # Reporting
    TOKEN_SYMBOL: str = "ANVL"
    TOKEN_DECIMALS: int = 18

    # Metrics
    METRICS_ENABLED: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
